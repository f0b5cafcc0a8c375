"""
Warden - Input Validators
=========================

Validation for moderation input: reasons, evidence lists, user references.
All failures raise warden.core.errors.ValidationError before any state
is touched.
"""

import re
from typing import Iterable, List, Optional, Union

from warden.core.constants import MAX_EVIDENCE_ITEMS, MAX_REASON_LENGTH
from warden.core.errors import ValidationError


USER_MENTION_PATTERN = re.compile(r"^<@!?(\d+)>$")
EVIDENCE_SPLIT_PATTERN = re.compile(r"[\s,]+")


class Validators:
    """Input validation utilities."""

    @staticmethod
    def validate_reason(reason: Optional[str]) -> str:
        """
        Validate a case reason.

        Returns:
            The stripped reason.

        Raises:
            ValidationError: If the reason is empty or too long.
        """
        cleaned = (reason or "").strip()
        if not cleaned:
            raise ValidationError("Reason must not be empty", "Please provide a reason.")
        if len(cleaned) > MAX_REASON_LENGTH:
            raise ValidationError(
                f"Reason exceeds {MAX_REASON_LENGTH} characters",
                f"Reason must be at most {MAX_REASON_LENGTH} characters.",
            )
        return cleaned

    @staticmethod
    def validate_evidence(evidence: Optional[Iterable[str]]) -> List[str]:
        """
        Validate an evidence list.

        Raises:
            ValidationError: If more than MAX_EVIDENCE_ITEMS entries are given.
        """
        items = [item.strip() for item in (evidence or []) if item and item.strip()]
        if len(items) > MAX_EVIDENCE_ITEMS:
            raise ValidationError(
                f"Evidence list has {len(items)} entries (max {MAX_EVIDENCE_ITEMS})",
                f"At most {MAX_EVIDENCE_ITEMS} evidence links are allowed.",
            )
        return items


def parse_evidence(raw: Optional[str]) -> List[str]:
    """
    Split free-form evidence text into at most MAX_EVIDENCE_ITEMS entries.

    Entries are separated by whitespace or commas. Extra entries are
    dropped rather than rejected.
    """
    if not raw:
        return []
    parts = [part for part in EVIDENCE_SPLIT_PATTERN.split(raw.strip()) if part]
    return parts[:MAX_EVIDENCE_ITEMS]


def parse_user_reference(value: Union[str, int, None]) -> Optional[int]:
    """
    Extract a user ID from a mention (<@123>, <@!123>) or a raw numeric ID.

    Returns:
        The user ID, or None if the input is neither.
    """
    if value is None:
        return None
    if isinstance(value, int):
        return value if value > 0 else None

    text = value.strip()
    match = USER_MENTION_PATTERN.match(text)
    if match:
        return int(match.group(1))
    if text.isdigit():
        return int(text)
    return None


__all__ = [
    "Validators",
    "parse_evidence",
    "parse_user_reference",
]
