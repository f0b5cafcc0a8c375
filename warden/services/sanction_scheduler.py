"""
Warden - Sanction Scheduler
===========================

Schedules, executes and cancels the automatic reversal of temporary
mutes and bans.

DESIGN:
    One asyncio task per pending reversal, keyed by
    (community, subject, kind). Scheduling a key that is already pending
    cancels the old task first, so the last sanction wins.

    Pending reversals are also written to the scheduled_sanctions table.
    recover() re-arms them at boot and fires the overdue ones right away.

    At fire time the reversal runs in a fixed order:
    1. Re-check the subject still carries the sanction (skip if lifted)
    2. Lift it through the gateway (failure aborts and logs)
    3. Record an automated unmute/unban case in the ledger
    4. Best-effort DM and mod-log entry

    Nothing is retried. A failed reversal is logged and dropped.
"""

import asyncio
import sqlite3
from dataclasses import dataclass
from typing import Dict, Optional, Set, Tuple

from warden.core.config import Config
from warden.core.errors import PersistenceError
from warden.core.logger import logger
from warden.core.database import DatabaseManager, get_db
from warden.core.models import CaseDraft, ModerationCase, SanctionKind, ScheduledSanction
from warden.gateway.base import CommunityGateway
from warden.services.case_ledger import CaseLedger
from warden.services.notifier import Notifier, render_audit_entry, render_sanction_dm
from warden.services.settings import GuildSettingsStore
from warden.utils.async_utils import create_safe_task, gather_with_logging, safe_async_operation
from warden.utils.clock import Clock, SYSTEM_CLOCK
from warden.utils.duration import format_duration


SanctionKey = Tuple[int, int, SanctionKind]


@dataclass
class PendingReversal:
    sanction: ScheduledSanction
    task: asyncio.Task


class SanctionScheduler:
    """
    Owns every pending reversal for this process.

    Attributes:
        system_actor_id: Actor recorded on automated reversal cases.
            Set to the bot's user ID once it is known.
    """

    def __init__(
        self,
        ledger: CaseLedger,
        gateway: CommunityGateway,
        notifier: Notifier,
        settings: GuildSettingsStore,
        config: Config,
        db: Optional[DatabaseManager] = None,
        clock: Clock = SYSTEM_CLOCK,
        system_actor_id: int = 0,
    ) -> None:
        self.db = db or get_db()
        self.system_actor_id = system_actor_id
        self._ledger = ledger
        self._gateway = gateway
        self._notifier = notifier
        self._settings = settings
        self._config = config
        self._clock = clock
        self._pending: Dict[SanctionKey, PendingReversal] = {}
        self._tasks: Set[asyncio.Task] = set()

    # =========================================================================
    # Public API
    # =========================================================================

    async def schedule_reversal(
        self,
        community_id: int,
        subject_user_id: int,
        kind: SanctionKind,
        duration_ms: int,
        reason: Optional[str] = None,
        role_id: Optional[int] = None,
        issued_by: Optional[int] = None,
    ) -> ScheduledSanction:
        """
        Register a reversal that fires duration_ms from now.

        duration_ms is trusted to be within the duration codec's bounds.
        Any pending reversal for the same key is cancelled.
        """
        sanction = ScheduledSanction(
            community_id=community_id,
            subject_user_id=subject_user_id,
            sanction_kind=kind,
            expires_at=self._clock.now() + duration_ms / 1000,
            reversal_reason=reason or kind.expiry_reason,
            role_id=role_id,
            issued_by=issued_by,
        )
        self._arm(sanction)

        try:
            await asyncio.to_thread(
                self.db.upsert_scheduled_sanction,
                community_id,
                subject_user_id,
                kind.value,
                sanction.expires_at,
                sanction.reversal_reason,
                role_id,
                issued_by,
            )
        except sqlite3.Error as e:
            logger.error("Reversal Not Persisted", [
                ("Guild ID", str(community_id)),
                ("User ID", str(subject_user_id)),
                ("Kind", kind.value),
                ("Error", str(e)[:100]),
            ])

        logger.tree("Reversal Scheduled", [
            ("Guild ID", str(community_id)),
            ("User ID", str(subject_user_id)),
            ("Kind", kind.value),
            ("In", format_duration(duration_ms)),
        ], emoji="⏰")
        return sanction

    async def cancel_reversal(
        self,
        community_id: int,
        subject_user_id: int,
        kind: SanctionKind,
    ) -> bool:
        """
        Cancel the pending reversal for a key. Idempotent.

        Returns:
            True if a timer was pending.
        """
        entry = self._pending.pop((community_id, subject_user_id, kind), None)
        if entry is not None:
            entry.task.cancel()
            logger.tree("Reversal Cancelled", [
                ("Guild ID", str(community_id)),
                ("User ID", str(subject_user_id)),
                ("Kind", kind.value),
            ], emoji="🛑")

        try:
            await asyncio.to_thread(
                self.db.delete_scheduled_sanction,
                community_id,
                subject_user_id,
                kind.value,
            )
        except sqlite3.Error as e:
            logger.warning("Reversal Row Not Deleted", [
                ("Guild ID", str(community_id)),
                ("User ID", str(subject_user_id)),
                ("Error", str(e)[:100]),
            ])
        return entry is not None

    def get_pending(
        self,
        community_id: int,
        subject_user_id: int,
        kind: SanctionKind,
    ) -> Optional[PendingReversal]:
        return self._pending.get((community_id, subject_user_id, kind))

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def recover(self) -> int:
        """
        Re-arm persisted reversals. Overdue ones fire immediately.

        Returns:
            Number of reversals armed.
        """
        records = await asyncio.to_thread(self.db.get_scheduled_sanctions)
        now = self._clock.now()
        armed = 0
        overdue = 0

        for record in records:
            sanction = ScheduledSanction.from_record(record)
            if sanction.key in self._pending:
                continue
            if sanction.expires_at <= now:
                overdue += 1
            self._arm(sanction)
            armed += 1

        logger.tree("Sanction Reversals Recovered", [
            ("Armed", str(armed)),
            ("Overdue", str(overdue)),
        ], emoji="🔄")
        return armed

    async def shutdown(self) -> None:
        """Cancel every timer. Persisted rows are kept for the next recover()."""
        tasks = list(self._tasks)
        self._pending.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Sanction Scheduler Stopped", [("Cancelled", str(len(tasks)))])

    # =========================================================================
    # Timer Internals
    # =========================================================================

    def _arm(self, sanction: ScheduledSanction) -> None:
        previous = self._pending.pop(sanction.key, None)
        if previous is not None:
            previous.task.cancel()
            logger.debug("Reversal Replaced", [
                ("Guild ID", str(sanction.community_id)),
                ("User ID", str(sanction.subject_user_id)),
                ("Kind", sanction.sanction_kind.value),
            ])

        delay = max(0.0, sanction.expires_at - self._clock.now())
        task = create_safe_task(
            self._run(sanction, delay),
            f"Reversal {sanction.sanction_kind.value} {sanction.community_id}:{sanction.subject_user_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self._pending[sanction.key] = PendingReversal(sanction=sanction, task=task)

    async def _run(self, sanction: ScheduledSanction, delay: float) -> None:
        await self._clock.sleep(delay)

        entry = self._pending.get(sanction.key)
        if entry is None or entry.sanction is not sanction:
            return
        # Once firing, the timer can no longer be cancelled by cancel_reversal
        del self._pending[sanction.key]

        await self._execute(sanction)
        await self._forget(sanction)

    async def _execute(self, sanction: ScheduledSanction) -> None:
        kind = sanction.sanction_kind
        log_items = [
            ("Guild ID", str(sanction.community_id)),
            ("User ID", str(sanction.subject_user_id)),
            ("Kind", kind.value),
        ]

        try:
            still_sanctioned = await self._gateway.has_sanction(
                sanction.community_id,
                sanction.subject_user_id,
                kind,
                sanction.role_id,
            )
        except Exception as e:
            logger.error("Reversal Check Failed", log_items + [
                ("Error Type", type(e).__name__),
                ("Error", str(e)[:100]),
            ])
            return

        if not still_sanctioned:
            logger.tree("Reversal Skipped", log_items + [("Why", "Already lifted")], emoji="⏭️")
            return

        try:
            await self._gateway.lift_sanction(
                sanction.community_id,
                sanction.subject_user_id,
                kind,
                sanction.reversal_reason,
                sanction.role_id,
            )
        except Exception as e:
            logger.error("Reversal Failed", log_items + [
                ("Error Type", type(e).__name__),
                ("Error", str(e)[:100]),
            ])
            return

        metadata = {"automated": True}
        if sanction.role_id:
            metadata["mute_role_id"] = sanction.role_id
        if sanction.issued_by:
            metadata["issued_by"] = sanction.issued_by

        try:
            case = await self._ledger.record_case(
                CaseDraft(
                    community_id=sanction.community_id,
                    subject_user_id=sanction.subject_user_id,
                    actor_id=self.system_actor_id,
                    action_type=kind.reversal_action,
                    reason=sanction.reversal_reason,
                    metadata=metadata,
                ),
                assign_case_id=self._config.number_sanction_cases,
            )
        except PersistenceError as e:
            logger.error("Reversal Case Not Recorded", log_items + [("Error", str(e)[:100])])
            return

        logger.tree("Sanction Reversed", log_items + [
            ("Case", f"#{case.case_id}" if case.case_id else "Unnumbered"),
        ], emoji="🔓")

        await safe_async_operation("Reversal Notifications", self._notify(case))

    async def _notify(self, case: ModerationCase) -> None:
        settings = await self._settings.get(case.community_id)
        await gather_with_logging(
            ("DM Subject", self._notifier.direct(case.subject_user_id, render_sanction_dm(case))),
            ("Mod Log", self._notifier.channel(settings.mod_log_channel_id, render_audit_entry(case))),
            context="Automated Reversal",
        )

    async def _forget(self, sanction: ScheduledSanction) -> None:
        try:
            await asyncio.to_thread(
                self.db.delete_scheduled_sanction,
                sanction.community_id,
                sanction.subject_user_id,
                sanction.sanction_kind.value,
                sanction.expires_at,
            )
        except sqlite3.Error as e:
            logger.warning("Reversal Row Not Deleted", [
                ("Guild ID", str(sanction.community_id)),
                ("User ID", str(sanction.subject_user_id)),
                ("Error", str(e)[:100]),
            ])


__all__ = ["SanctionScheduler", "PendingReversal"]
