"""
Warden - Duration Utilities
===========================

Parsing and formatting of sanction durations.

Usage:
    from warden.utils.duration import parse_duration, format_duration

    ms = parse_duration("30m")      # 1800000
    parse_duration("31d")           # None (over the 30 day cap)
    format_duration(90_000)         # "1m"
"""

import re
from typing import Optional

from warden.core.constants import (
    MAX_SANCTION_DURATION_MS,
    MS_PER_DAY,
    MS_PER_HOUR,
    MS_PER_MINUTE,
    MS_PER_SECOND,
    MS_PER_WEEK,
)


# =============================================================================
# Constants
# =============================================================================

UNIT_MULTIPLIERS = {
    "s": MS_PER_SECOND,
    "m": MS_PER_MINUTE,
    "h": MS_PER_HOUR,
    "d": MS_PER_DAY,
    "w": MS_PER_WEEK,
}

DURATION_PATTERN = re.compile(r"^(\d+)([smhdw])$", re.IGNORECASE)


# =============================================================================
# Parsing
# =============================================================================

def parse_duration(duration_str: Optional[str]) -> Optional[int]:
    """
    Parse a duration token into milliseconds.

    Accepts a positive integer followed by one unit (s, m, h, d, w),
    case-insensitive, with no whitespace inside the token.

    Args:
        duration_str: Token such as "30m" or "2D".

    Returns:
        Milliseconds, or None if the token is malformed, zero, or longer
        than the 30 day cap.
    """
    if not duration_str:
        return None

    match = DURATION_PATTERN.match(duration_str.strip())
    if not match:
        return None

    amount = int(match.group(1))
    total = amount * UNIT_MULTIPLIERS[match.group(2).lower()]

    if total <= 0 or total > MAX_SANCTION_DURATION_MS:
        return None
    return total


def is_valid_duration_ms(duration_ms: Optional[int]) -> bool:
    """Check an already-parsed duration against the same bounds as parse_duration."""
    return duration_ms is not None and 0 < duration_ms <= MAX_SANCTION_DURATION_MS


# =============================================================================
# Formatting
# =============================================================================

def format_duration(duration_ms: Optional[int]) -> str:
    """
    Render the largest whole unit that yields a value of at least 1.

    Examples:
        format_duration(45_000)     # "45s"
        format_duration(90_000)     # "1m"
        format_duration(3_600_000)  # "1h"
        format_duration(None)       # "Permanent"
    """
    if duration_ms is None:
        return "Permanent"

    seconds = max(duration_ms, 0) // MS_PER_SECOND
    if seconds < 60:
        return f"{seconds}s"

    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes}m"

    hours = minutes // 60
    if hours < 24:
        return f"{hours}h"

    days = hours // 24
    if days < 7:
        return f"{days}d"

    return f"{days // 7}w"


__all__ = [
    "parse_duration",
    "is_valid_duration_ms",
    "format_duration",
    "UNIT_MULTIPLIERS",
]
