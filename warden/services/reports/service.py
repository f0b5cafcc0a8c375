"""
Warden - Report Workflow
========================

Lifecycle of a member report: Submitted -> Taken -> VerdictGiven.

DESIGN:
    Every report is backed by a numbered "note" case in the ledger, so
    the case number doubles as the report number shown to staff.

    A private discussion channel can be opened on any non-terminal
    report. Attaching it is a conditional update: when two staff open
    at once, one channel wins and the other is deleted. Closing is
    allowed after the verdict so the discussion can be wrapped up.

    Report identity is carried on the Report row itself. Nothing here
    reads IDs back out of rendered messages.
"""

import asyncio
import sqlite3
from typing import Any, Callable, Iterable, Optional, Union

from warden.core.config import Config
from warden.core.constants import MAX_EVIDENCE_ITEMS, REPORT_CHANNEL_PREFIX, REPORT_REASON_PREFIX
from warden.core.database import DatabaseManager, get_db
from warden.core.errors import (
    HierarchyViolation,
    NotConfiguredError,
    NotFoundError,
    PersistenceError,
    StateError,
    ValidationError,
)
from warden.core.logger import logger
from warden.core.models import (
    ActionType,
    CaseDraft,
    PrivateChannelState,
    Report,
    ReportStatus,
)
from warden.gateway.base import CommunityGateway
from warden.services.case_ledger import CaseLedger
from warden.services.notifier import (
    Notifier,
    render_private_channel_closing,
    render_private_channel_opened,
    render_report_log,
    render_report_verdict_log,
    render_verdict_dm,
)
from warden.services.reclaimer import ChannelReclaimer
from warden.services.settings import GuildSettingsStore
from warden.utils.async_utils import gather_with_logging, safe_async_operation
from warden.utils.clock import Clock, SYSTEM_CLOCK
from warden.utils.validators import Validators, parse_evidence, parse_user_reference


class ReportWorkflow:
    """Submits, assigns and resolves member reports."""

    def __init__(
        self,
        ledger: CaseLedger,
        gateway: CommunityGateway,
        notifier: Notifier,
        settings: GuildSettingsStore,
        reclaimer: ChannelReclaimer,
        config: Config,
        db: Optional[DatabaseManager] = None,
        clock: Clock = SYSTEM_CLOCK,
    ) -> None:
        self.db = db or get_db()
        self._ledger = ledger
        self._gateway = gateway
        self._notifier = notifier
        self._settings = settings
        self._reclaimer = reclaimer
        self._config = config
        self._clock = clock

    async def _call(self, func: Callable[..., Any], *args: Any) -> Any:
        try:
            return await asyncio.to_thread(func, *args)
        except sqlite3.Error as e:
            logger.error("Report Storage Failed", [
                ("Operation", func.__name__),
                ("Error", str(e)[:100]),
            ])
            raise PersistenceError(f"{func.__name__} failed: {e}") from e

    async def _require(self, report_id: int) -> Report:
        record = await self._call(self.db.get_report, report_id)
        if not record:
            raise NotFoundError(f"Report {report_id} not found", "That report does not exist.")
        return Report.from_record(record)

    @staticmethod
    def _reject_terminal(report: Report) -> None:
        if report.is_terminal:
            raise StateError(
                f"Report #{report.case_id} already has a verdict",
                "This report has already been resolved.",
            )

    # =========================================================================
    # Submit
    # =========================================================================

    async def submit(
        self,
        community_id: int,
        reporter_id: int,
        reported_user: Union[int, str],
        reason: str,
        evidence: Union[str, Iterable[str], None] = None,
    ) -> Report:
        """
        File a report against a member.

        reported_user may be a raw ID or a mention. Evidence may be free
        text (split on whitespace and commas) or a list; either way only
        the first five entries are kept.

        Raises:
            ValidationError: Unparseable target, empty reason, or bot target.
            HierarchyViolation: Reporter reported themselves.
            NotFoundError: Reported user is not a member.
            PersistenceError: The backing case or report row was not written.
        """
        reported_id = parse_user_reference(reported_user)
        if reported_id is None:
            raise ValidationError(
                f"Not a user reference: {reported_user!r}",
                "Please mention a user or give their ID.",
            )
        if reported_id == reporter_id:
            raise HierarchyViolation("Reporter reported themselves", "You cannot report yourself.")

        reason = Validators.validate_reason(reason)
        if isinstance(evidence, str):
            items = parse_evidence(evidence)
        else:
            items = [item for item in (evidence or []) if item and item.strip()][:MAX_EVIDENCE_ITEMS]

        member = await self._gateway.resolve_member(community_id, reported_id)
        if member is None:
            raise NotFoundError(
                f"User {reported_id} is not a member of {community_id}",
                "That user is not in this server.",
            )
        if member.is_bot:
            raise ValidationError("Reported user is a bot", "You cannot report bots.")

        case = await self._ledger.record_case(
            CaseDraft(
                community_id=community_id,
                subject_user_id=reported_id,
                actor_id=reporter_id,
                action_type=ActionType.NOTE,
                reason=f"{REPORT_REASON_PREFIX}{reason}",
                evidence=items,
                metadata={"reported_by": reporter_id, "report_type": "user_report"},
            ),
            assign_case_id=True,
        )

        record = await self._call(
            self.db.create_report,
            community_id,
            case.case_id,
            reporter_id,
            reported_id,
            reason,
            items,
            case.created_at,
        )
        report = Report.from_record(record)

        settings = await self._settings.get(community_id)
        log_text = render_report_log(report)
        await gather_with_logging(
            ("Report Channel", self._notifier.channel(settings.report_channel_id, log_text)),
            ("Report Log", self._notifier.channel(settings.report_log_channel_id, log_text)),
            context="Report Submitted",
        )
        return report

    # =========================================================================
    # Take / Verdict
    # =========================================================================

    async def take(self, report_id: int, staff_id: int) -> Report:
        """
        Assign a report to staff. A taken report is reassigned.

        Raises:
            NotFoundError: No such report.
            StateError: The report already has a verdict.
        """
        report = await self._require(report_id)
        self._reject_terminal(report)

        if not await self._call(self.db.take_report, report_id, staff_id, self._clock.now()):
            raise StateError(
                f"Report {report_id} resolved while being taken",
                "This report has already been resolved.",
            )

        logger.tree("Report Taken", [
            ("Case", f"#{report.case_id}"),
            ("Staff ID", str(staff_id)),
            ("Previous", str(report.assigned_staff_id) if report.assigned_staff_id else "None"),
        ], emoji="✋")
        return await self._require(report_id)

    async def give_verdict(self, report_id: int, staff_id: int, verdict_text: str) -> Report:
        """
        Resolve a taken report and tell both parties.

        Raises:
            ValidationError: Empty verdict text.
            NotFoundError: No such report.
            StateError: The report is not in the Taken state.
        """
        verdict_text = Validators.validate_reason(verdict_text)
        report = await self._require(report_id)
        self._reject_terminal(report)
        if report.status is not ReportStatus.TAKEN:
            raise StateError(
                f"Report #{report.case_id} has not been taken",
                "This report must be taken before a verdict is given.",
            )

        if not await self._call(
            self.db.give_report_verdict, report_id, staff_id, verdict_text, self._clock.now()
        ):
            raise StateError(
                f"Report #{report.case_id} changed state during verdict",
                "This report has already been resolved.",
            )

        report = await self._require(report_id)
        settings = await self._settings.get(report.community_id)
        await gather_with_logging(
            ("DM Reporter", self._notifier.direct(report.reporter_id, render_verdict_dm(report, True))),
            ("DM Reported", self._notifier.direct(report.reported_user_id, render_verdict_dm(report, False))),
            ("Report Log", self._notifier.channel(
                settings.report_log_channel_id, render_report_verdict_log(report, staff_id)
            )),
            context="Report Verdict",
        )

        logger.tree("Report Verdict Given", [
            ("Case", f"#{report.case_id}"),
            ("Staff ID", str(staff_id)),
            ("Verdict", verdict_text[:50]),
        ], emoji="⚖️")
        return report

    # =========================================================================
    # Private Channel
    # =========================================================================

    async def open_private_channel(self, report_id: int, staff_id: int) -> int:
        """
        Open (or return) the report's private discussion channel.

        Raises:
            NotFoundError: No such report.
            StateError: The report already has a verdict, or its channel
                is being closed.
            NotConfiguredError: No report category configured.
        """
        report = await self._require(report_id)
        self._reject_terminal(report)

        if report.private_channel_state is PrivateChannelState.OPEN and report.private_channel_ref:
            return report.private_channel_ref
        if report.private_channel_state is PrivateChannelState.CLOSING:
            raise StateError(
                f"Private channel for report #{report.case_id} is closing",
                "The previous discussion channel is still being closed.",
            )

        settings = await self._settings.get(report.community_id)
        if not settings.report_category_id:
            raise NotConfiguredError(
                f"No report category configured for {report.community_id}",
                "Report discussion channels are not set up on this server.",
            )

        channel_ref = await self._gateway.create_restricted_channel(
            report.community_id,
            f"{REPORT_CHANNEL_PREFIX}{report.case_id}",
            settings.report_category_id,
            allow_user_ids=[report.reporter_id, report.reported_user_id, staff_id],
            allow_role_ids=sorted(self._config.staff_role_ids),
            topic=f"Report #{report.case_id}",
        )

        if not await self._call(self.db.attach_report_channel, report_id, channel_ref):
            await safe_async_operation(
                f"Delete Duplicate Report Channel {channel_ref}",
                self._gateway.delete_channel(channel_ref, "Duplicate report channel"),
            )
            winner = await self._require(report_id)
            if winner.private_channel_state is PrivateChannelState.OPEN and winner.private_channel_ref:
                return winner.private_channel_ref
            raise StateError(
                f"Report #{report.case_id} changed state while opening a channel",
                "This report can no longer be discussed.",
            )

        await self._notifier.channel(channel_ref, render_private_channel_opened(report, staff_id))
        logger.tree("Report Channel Opened", [
            ("Case", f"#{report.case_id}"),
            ("Channel ID", str(channel_ref)),
            ("Staff ID", str(staff_id)),
        ], emoji="🔐")
        return channel_ref

    async def close_private_channel(self, report_id: int, staff_id: int) -> Report:
        """
        Post a closing notice and delete the private channel after the grace delay.

        Raises:
            NotFoundError: No such report.
            StateError: No private channel is open.
        """
        report = await self._require(report_id)
        if report.private_channel_state is not PrivateChannelState.OPEN or not report.private_channel_ref:
            raise StateError(
                f"Report #{report.case_id} has no open private channel",
                "There is no open discussion channel for this report.",
            )
        if not await self._call(self.db.begin_report_channel_close, report_id):
            raise StateError(
                f"Private channel for report #{report.case_id} is already closing",
                "The discussion channel is already being closed.",
            )

        await self._notifier.channel(
            report.private_channel_ref,
            render_private_channel_closing(staff_id, self._reclaimer.grace_seconds),
        )
        self._schedule_reclaim(report)

        logger.tree("Report Channel Closing", [
            ("Case", f"#{report.case_id}"),
            ("Channel ID", str(report.private_channel_ref)),
            ("Staff ID", str(staff_id)),
        ], emoji="🔒")
        return await self._require(report_id)

    def _schedule_reclaim(self, report: Report, delay: Optional[float] = None) -> None:
        async def finish() -> None:
            await self._call(self.db.finish_report_channel_close, report.report_id)

        self._reclaimer.schedule(
            f"report:{report.report_id}",
            report.private_channel_ref,
            f"Report #{report.case_id} discussion closed",
            on_reclaimed=finish,
            delay=delay,
        )

    # =========================================================================
    # Lookup / Recovery
    # =========================================================================

    async def get(self, report_id: int) -> Optional[Report]:
        record = await self._call(self.db.get_report, report_id)
        return Report.from_record(record) if record else None

    async def get_by_case(self, community_id: int, case_id: int) -> Optional[Report]:
        record = await self._call(self.db.get_report_by_case, community_id, case_id)
        return Report.from_record(record) if record else None

    async def recover(self) -> int:
        """Finish private-channel closes interrupted by a restart."""
        records = await self._call(self.db.get_closing_report_channels)
        for record in records:
            report = Report.from_record(record)
            if report.private_channel_ref:
                self._schedule_reclaim(report, delay=0)
            else:
                await self._call(self.db.finish_report_channel_close, report.report_id)
        if records:
            logger.tree("Report Channels Recovered", [("Pending", str(len(records)))], emoji="🔄")
        return len(records)


__all__ = ["ReportWorkflow"]
