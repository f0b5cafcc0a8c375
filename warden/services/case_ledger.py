"""
Warden - Case Ledger
====================

Allocates per-community case numbers and stores moderation cases.

DESIGN:
    Case numbers come from a counter row incremented inside a single
    IMMEDIATE transaction, so concurrent allocations for the same
    community never observe a torn read-increment. An allocated number
    whose case insert then fails is consumed and never reused.

    Cases are immutable: the ledger exposes no update or delete.

    aggregate_stats reads the per-type counts and the most recent case
    inside one transaction, so the total always matches the breakdown.
"""

import asyncio
import sqlite3
from typing import List, Optional, Union

from warden.core.logger import logger
from warden.core.errors import PersistenceError, ValidationError
from warden.core.database import DatabaseManager, get_db
from warden.core.models import ActionType, CaseDraft, CaseStats, ModerationCase
from warden.utils.clock import Clock, SYSTEM_CLOCK
from warden.utils.validators import Validators


class CaseLedger:
    """Append-only store of moderation cases."""

    def __init__(
        self,
        db: Optional[DatabaseManager] = None,
        clock: Clock = SYSTEM_CLOCK,
    ) -> None:
        self.db = db or get_db()
        self._clock = clock

    # =========================================================================
    # Numbering
    # =========================================================================

    async def allocate_case_id(self, community_id: int) -> int:
        """
        Atomically increment and return the community's case counter.

        Raises:
            PersistenceError: If the counter write fails.
        """
        try:
            return await asyncio.to_thread(self.db.increment_case_counter, community_id)
        except sqlite3.Error as e:
            logger.error("Case Counter Increment Failed", [
                ("Guild ID", str(community_id)),
                ("Error", str(e)[:100]),
            ])
            raise PersistenceError(f"Could not allocate case id: {e}") from e

    # =========================================================================
    # Recording
    # =========================================================================

    async def record_case(self, draft: CaseDraft, assign_case_id: bool = False) -> ModerationCase:
        """
        Validate and persist a case, numbering it first when asked.

        Raises:
            ValidationError: Empty reason, too much evidence, bad duration
                or unknown action type. Nothing is allocated or written.
            PersistenceError: The counter or the case write failed.
        """
        reason = Validators.validate_reason(draft.reason)
        evidence = Validators.validate_evidence(draft.evidence)
        action = _coerce_action(draft.action_type)
        if draft.duration_ms is not None and draft.duration_ms <= 0:
            raise ValidationError(f"Duration must be positive, got {draft.duration_ms}")

        case_id = await self.allocate_case_id(draft.community_id) if assign_case_id else None

        try:
            record = await asyncio.to_thread(
                self.db.insert_case,
                draft.community_id,
                draft.subject_user_id,
                draft.actor_id,
                action.value,
                reason,
                evidence,
                self._clock.now(),
                case_id,
                draft.duration_ms,
                draft.expires_at,
                draft.metadata,
            )
        except sqlite3.Error as e:
            logger.error("Case Record Failed", [
                ("Guild ID", str(draft.community_id)),
                ("Type", action.value),
                ("Consumed Case", f"#{case_id}" if case_id else "None"),
                ("Error", str(e)[:100]),
            ])
            raise PersistenceError(f"Could not record case: {e}") from e

        case = ModerationCase.from_record(record)
        logger.tree("Case Recorded", [
            ("Guild ID", str(case.community_id)),
            ("Case", f"#{case.case_id}" if case.case_id else "Unnumbered"),
            ("Type", case.action_type.value),
            ("Subject ID", str(case.subject_user_id)),
            ("Actor ID", str(case.actor_id)),
            ("Reason", case.reason[:50]),
        ], emoji="📋")
        return case

    # =========================================================================
    # Queries
    # =========================================================================

    async def query_cases(
        self,
        community_id: int,
        subject_user_id: int,
        action_type: Optional[Union[ActionType, str]] = None,
        limit: Optional[int] = None,
    ) -> List[ModerationCase]:
        """
        Get a subject's cases, newest first.

        The result is a finished list; calling again with the same filter
        returns the same sequence unless new cases were written.
        """
        if limit is not None and limit < 0:
            raise ValidationError(f"Limit must not be negative, got {limit}")
        if limit == 0:
            return []
        type_filter = _coerce_action(action_type).value if action_type is not None else None

        try:
            records = await asyncio.to_thread(
                self.db.get_user_cases,
                community_id,
                subject_user_id,
                type_filter,
                limit,
            )
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not query cases: {e}") from e
        return [ModerationCase.from_record(record) for record in records]

    async def aggregate_stats(self, community_id: int, subject_user_id: int) -> CaseStats:
        """Total, per-type counts and most recent case, from one snapshot."""
        try:
            counts, latest = await asyncio.to_thread(
                self.db.get_case_stats,
                community_id,
                subject_user_id,
            )
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not aggregate cases: {e}") from e

        return CaseStats(
            total_cases=sum(counts.values()),
            counts_by_type=counts,
            most_recent_case=ModerationCase.from_record(latest) if latest else None,
        )


def _coerce_action(value: Union[ActionType, str]) -> ActionType:
    try:
        return ActionType(value)
    except ValueError:
        raise ValidationError(f"Unknown action type: {value}")


__all__ = ["CaseLedger"]
