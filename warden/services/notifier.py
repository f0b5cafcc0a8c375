"""
Warden - Notifier
=================

Best-effort delivery of direct messages and log entries, plus the plain
text those messages carry.

DESIGN:
    Every delivery is wrapped so a failure is logged and reported as a
    False return. Nothing here raises into a workflow, and nothing retries.
"""

from datetime import datetime, timezone
from typing import Any, Coroutine, Optional

from warden.core.models import ActionType, ModerationCase, Report, Ticket
from warden.gateway.base import CommunityGateway
from warden.utils.async_utils import safe_async_operation
from warden.utils.duration import format_duration


ACTION_VERBS = {
    ActionType.WARN: "warned",
    ActionType.MUTE: "muted",
    ActionType.UNMUTE: "unmuted",
    ActionType.KICK: "kicked",
    ActionType.BAN: "banned",
    ActionType.UNBAN: "unbanned",
    ActionType.NOTE: "noted",
}


# =============================================================================
# Text Rendering
# =============================================================================

def _case_label(case: ModerationCase) -> str:
    return f"Case #{case.case_id}" if case.case_id else "Unnumbered case"


def _timestamp(epoch: float) -> str:
    return datetime.fromtimestamp(epoch, tz=timezone.utc).strftime("%Y-%m-%d %H:%M UTC")


def render_action_dm(
    action: ActionType,
    reason: str,
    duration_ms: Optional[int] = None,
    expires_at: Optional[float] = None,
    case_label: Optional[str] = None,
) -> str:
    lines = [
        f"You have been {ACTION_VERBS[action]}.",
        f"Reason: {reason}",
    ]
    if duration_ms:
        lines.append(f"Duration: {format_duration(duration_ms)}")
    if expires_at:
        lines.append(f"Expires: {_timestamp(expires_at)}")
    if case_label:
        lines.append(case_label)
    return "\n".join(lines)


def render_sanction_dm(case: ModerationCase) -> str:
    return render_action_dm(
        case.action_type,
        case.reason,
        case.duration_ms,
        case.expires_at,
        _case_label(case),
    )


def render_audit_entry(case: ModerationCase) -> str:
    automated = bool(case.metadata.get("automated"))
    actor = "automatic" if automated else f"<@{case.actor_id}>"
    parts = [
        f"[{case.action_type.value.upper()}] <@{case.subject_user_id}>",
        f"by {actor}",
        _case_label(case),
        f"Reason: {case.reason}",
    ]
    if case.duration_ms:
        parts.append(f"Duration: {format_duration(case.duration_ms)}")
    if case.evidence:
        parts.append("Evidence: " + " ".join(case.evidence))
    return " | ".join(parts)


def render_ticket_opened(ticket: Ticket) -> str:
    return (
        f"Ticket opened by <@{ticket.opener_user_id}> ({ticket.category.value}). "
        "A staff member will be with you shortly."
    )


def render_ticket_taken(ticket: Ticket, staff_id: int) -> str:
    return f"This ticket has been taken by <@{staff_id}>."


def render_ticket_closing(ticket: Ticket, staff_id: int, reason: Optional[str], grace_seconds: int) -> str:
    text = f"Ticket closed by <@{staff_id}>."
    if reason:
        text += f" Reason: {reason}"
    return f"{text} This channel will be deleted in {grace_seconds} seconds."


def render_ticket_log(ticket: Ticket) -> str:
    return (
        f"[TICKET CLOSED] #{ticket.ticket_id} ({ticket.category.value}) "
        f"opened by <@{ticket.opener_user_id}> | closed by <@{ticket.closed_by}> | "
        f"Reason: {ticket.close_reason or 'None'}"
    )


def render_report_log(report: Report) -> str:
    text = (
        f"[REPORT #{report.case_id}] <@{report.reporter_id}> reported <@{report.reported_user_id}> | "
        f"Reason: {report.reason}"
    )
    if report.evidence:
        text += " | Evidence: " + " ".join(report.evidence)
    return text


def render_report_verdict_log(report: Report, staff_id: int) -> str:
    return f"[VERDICT #{report.case_id}] by <@{staff_id}>: {report.verdict_text}"


def render_verdict_dm(report: Report, for_reporter: bool) -> str:
    if for_reporter:
        heading = f"Your report #{report.case_id} has been reviewed."
    else:
        heading = f"A report about you (#{report.case_id}) has been reviewed."
    return f"{heading}\nVerdict: {report.verdict_text}"


def render_private_channel_opened(report: Report, staff_id: int) -> str:
    return (
        f"Private discussion for report #{report.case_id} opened by <@{staff_id}>. "
        f"Participants: <@{report.reporter_id}>, <@{report.reported_user_id}>."
    )


def render_private_channel_closing(staff_id: int, grace_seconds: int) -> str:
    return f"Closed by <@{staff_id}>. This channel will be deleted in {grace_seconds} seconds."


# =============================================================================
# Delivery
# =============================================================================

class Notifier:
    """Fire-and-forget messaging on top of the community gateway."""

    def __init__(self, gateway: CommunityGateway) -> None:
        self._gateway = gateway

    async def _deliver(self, coro: Coroutine[Any, Any, Any]) -> bool:
        await coro
        return True

    async def direct(self, user_id: int, content: str) -> bool:
        """DM a user. Returns False (and logs) on failure."""
        return await safe_async_operation(
            f"DM User {user_id}",
            self._deliver(self._gateway.send_direct_message(user_id, content)),
            default=False,
        )

    async def channel(self, channel_ref: Optional[int], content: str) -> bool:
        """Post to a channel if one is configured. Returns False on failure."""
        if not channel_ref:
            return False
        return await safe_async_operation(
            f"Post To Channel {channel_ref}",
            self._deliver(self._gateway.send_channel_message(channel_ref, content)),
            default=False,
        )


__all__ = [
    "Notifier",
    "render_action_dm",
    "render_sanction_dm",
    "render_audit_entry",
    "render_ticket_opened",
    "render_ticket_taken",
    "render_ticket_closing",
    "render_ticket_log",
    "render_report_log",
    "render_report_verdict_log",
    "render_verdict_dm",
    "render_private_channel_opened",
    "render_private_channel_closing",
]
