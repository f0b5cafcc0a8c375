"""
Warden - Ticket Workflow
========================

Lifecycle of a support-ticket channel: Open -> Taken -> Closed.

DESIGN:
    One active ticket per requester per community. The slot is reserved
    in the database first (a partial unique index backs this up), then
    the channel is provisioned. If provisioning fails the reservation is
    discarded so the requester can try again.

    Closing posts a notice and hands the channel to the ChannelReclaimer,
    which writes the log entry and deletes the channel after the grace
    delay. Tickets closed before a restart are reclaimed by recover().
"""

import asyncio
import re
import sqlite3
from dataclasses import dataclass
from typing import Any, Callable, Optional

from warden.core.config import Config
from warden.core.constants import TICKET_CHANNEL_PREFIX
from warden.core.database import DatabaseManager, get_db
from warden.core.errors import (
    InvalidDestinationError,
    NotConfiguredError,
    NotFoundError,
    PersistenceError,
    StateError,
    ValidationError,
)
from warden.core.logger import logger
from warden.core.models import Ticket, TicketCategory, TicketStatus, TranscriptReceipt
from warden.gateway.base import CommunityGateway
from warden.services.notifier import (
    Notifier,
    render_ticket_closing,
    render_ticket_log,
    render_ticket_opened,
    render_ticket_taken,
)
from warden.services.reclaimer import ChannelReclaimer
from warden.services.settings import GuildSettingsStore
from warden.services.tickets.transcript import build_transcript, iter_history
from warden.utils.clock import Clock, SYSTEM_CLOCK


CHANNEL_NAME_PATTERN = re.compile(r"[^a-z0-9_-]+")


@dataclass(frozen=True)
class OpenTicketResult:
    """
    Outcome of TicketWorkflow.open.

    created is False when the requester already had an active ticket;
    callers should treat that as "blocked" and point them at it.
    """
    ticket: Ticket
    created: bool


def ticket_channel_name(username: str) -> str:
    slug = CHANNEL_NAME_PATTERN.sub("-", username.lower()).strip("-") or "user"
    return f"{TICKET_CHANNEL_PREFIX}{slug}"[:100]


class TicketWorkflow:
    """Opens, assigns, closes and archives support tickets."""

    def __init__(
        self,
        gateway: CommunityGateway,
        notifier: Notifier,
        settings: GuildSettingsStore,
        reclaimer: ChannelReclaimer,
        config: Config,
        db: Optional[DatabaseManager] = None,
        clock: Clock = SYSTEM_CLOCK,
    ) -> None:
        self.db = db or get_db()
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
            logger.error("Ticket Storage Failed", [
                ("Operation", func.__name__),
                ("Error", str(e)[:100]),
            ])
            raise PersistenceError(f"{func.__name__} failed: {e}") from e

    async def _require(self, ticket_id: int) -> Ticket:
        record = await self._call(self.db.get_ticket, ticket_id)
        if not record:
            raise NotFoundError(f"Ticket {ticket_id} not found", "That ticket does not exist.")
        return Ticket.from_record(record)

    # =========================================================================
    # Open
    # =========================================================================

    async def open(self, community_id: int, requester_id: int, category: str) -> OpenTicketResult:
        """
        Open a ticket, or return the requester's active one.

        Raises:
            ValidationError: Unknown category.
            NotConfiguredError: No ticket category configured.
            NotFoundError: Requester is not a member.
        """
        try:
            ticket_category = TicketCategory(category)
        except ValueError:
            raise ValidationError(
                f"Unknown ticket category: {category}",
                "Category must be one of: " + ", ".join(c.value for c in TicketCategory),
            )

        settings = await self._settings.get(community_id)
        if not settings.ticket_category_id:
            raise NotConfiguredError(
                f"No ticket category configured for {community_id}",
                "Tickets are not set up on this server.",
            )

        member = await self._gateway.resolve_member(community_id, requester_id)
        if member is None:
            raise NotFoundError(f"Requester {requester_id} is not a member of {community_id}")

        record, created = await self._call(
            self.db.open_ticket_slot,
            community_id,
            requester_id,
            ticket_category.value,
            self._clock.now(),
        )
        ticket = Ticket.from_record(record)
        if not created:
            logger.info("Ticket Already Open", [
                ("Ticket ID", str(ticket.ticket_id)),
                ("User ID", str(requester_id)),
                ("Status", ticket.status.value),
            ])
            return OpenTicketResult(ticket=ticket, created=False)

        try:
            channel_ref = await self._gateway.create_restricted_channel(
                community_id,
                ticket_channel_name(member.username),
                settings.ticket_category_id,
                allow_user_ids=[requester_id],
                allow_role_ids=sorted(self._config.staff_role_ids),
                topic=f"Ticket #{ticket.ticket_id} ({ticket_category.value})",
            )
        except Exception:
            await self._call(self.db.discard_ticket, ticket.ticket_id)
            raise

        await self._call(self.db.set_ticket_channel, ticket.ticket_id, channel_ref)
        ticket = await self._require(ticket.ticket_id)
        if ticket.status is TicketStatus.CLOSED:
            # Closed while the channel was being created; close() saw no channel to reclaim
            logger.warning("Ticket Closed During Open", [
                ("Ticket ID", str(ticket.ticket_id)),
                ("Channel ID", str(channel_ref)),
            ])
            self._schedule_reclaim(ticket)
            return OpenTicketResult(ticket=ticket, created=True)

        await self._notifier.channel(channel_ref, render_ticket_opened(ticket))

        logger.tree("Ticket Opened", [
            ("Ticket ID", str(ticket.ticket_id)),
            ("Guild ID", str(community_id)),
            ("User", f"{member.username} ({requester_id})"),
            ("Category", ticket_category.value),
            ("Channel ID", str(channel_ref)),
        ], emoji="🎫")
        return OpenTicketResult(ticket=ticket, created=True)

    # =========================================================================
    # Take / Close
    # =========================================================================

    async def take(self, ticket_id: int, staff_id: int) -> Ticket:
        """
        Assign a ticket to staff. A taken ticket is reassigned.

        Raises:
            NotFoundError: No such ticket.
            StateError: The ticket is closed.
        """
        ticket = await self._require(ticket_id)
        if ticket.status is TicketStatus.CLOSED:
            raise StateError(f"Ticket {ticket_id} is closed", "This ticket is already closed.")

        if not await self._call(self.db.take_ticket, ticket_id, staff_id, self._clock.now()):
            raise StateError(f"Ticket {ticket_id} closed while being taken", "This ticket is already closed.")

        ticket = await self._require(ticket_id)
        await self._notifier.channel(ticket.channel_ref, render_ticket_taken(ticket, staff_id))
        return ticket

    async def close(self, ticket_id: int, staff_id: int, reason: Optional[str] = None) -> Ticket:
        """
        Close a ticket and schedule its channel for deletion.

        Raises:
            NotFoundError: No such ticket.
            StateError: The ticket is already closed.
        """
        ticket = await self._require(ticket_id)
        if ticket.status is TicketStatus.CLOSED:
            raise StateError(f"Ticket {ticket_id} is already closed", "This ticket is already closed.")

        reason = reason.strip() if reason else None
        if not await self._call(self.db.close_ticket, ticket_id, staff_id, self._clock.now(), reason):
            raise StateError(f"Ticket {ticket_id} was closed concurrently", "This ticket is already closed.")

        ticket = await self._require(ticket_id)
        if ticket.channel_ref:
            await self._notifier.channel(
                ticket.channel_ref,
                render_ticket_closing(ticket, staff_id, reason, self._reclaimer.grace_seconds),
            )
        self._schedule_reclaim(ticket)
        return ticket

    def _schedule_reclaim(self, ticket: Ticket, delay: Optional[float] = None) -> None:
        if not ticket.channel_ref:
            return

        async def post_log() -> None:
            settings = await self._settings.get(ticket.community_id)
            await self._notifier.channel(settings.ticket_log_channel_id, render_ticket_log(ticket))

        async def mark_reclaimed() -> None:
            await self._call(self.db.mark_ticket_channel_reclaimed, ticket.ticket_id)

        self._reclaimer.schedule(
            f"ticket:{ticket.ticket_id}",
            ticket.channel_ref,
            f"Ticket #{ticket.ticket_id} closed",
            before_delete=post_log,
            on_reclaimed=mark_reclaimed,
            delay=delay,
        )

    # =========================================================================
    # Transcript
    # =========================================================================

    async def generate_transcript(self, ticket_id: int, requester_id: int) -> TranscriptReceipt:
        """
        Render the ticket channel's history and post it to the transcript channel.

        Works in any ticket state as long as the channel still exists.

        Raises:
            NotFoundError: No such ticket, or it never had a channel.
            NotConfiguredError: No transcript channel configured.
            InvalidDestinationError: The transcript channel is unusable.
            NotificationError: A transcript part could not be posted.
        """
        ticket = await self._require(ticket_id)
        if not ticket.channel_ref:
            raise NotFoundError(f"Ticket {ticket_id} has no channel")

        settings = await self._settings.get(ticket.community_id)
        destination = settings.transcript_channel_id
        if not destination:
            raise NotConfiguredError(
                f"No transcript channel configured for {ticket.community_id}",
                "No transcript channel is configured for this server.",
            )
        if not await self._gateway.is_text_channel(destination):
            raise InvalidDestinationError(
                f"Transcript channel {destination} is not a text channel",
                "The configured transcript channel cannot receive messages.",
            )

        parts, message_count = await build_transcript(
            ticket,
            requester_id,
            self._clock.now(),
            iter_history(self._gateway, ticket.channel_ref),
        )
        for part in parts:
            await self._gateway.send_channel_message(destination, part)

        logger.tree("Transcript Generated", [
            ("Ticket ID", str(ticket_id)),
            ("Messages", str(message_count)),
            ("Parts", str(len(parts))),
            ("Requested By", str(requester_id)),
        ], emoji="📜")
        return TranscriptReceipt(
            ticket_id=ticket_id,
            destination_ref=destination,
            message_count=message_count,
            parts=len(parts),
        )

    # =========================================================================
    # Lookup / Recovery
    # =========================================================================

    async def get(self, ticket_id: int) -> Optional[Ticket]:
        record = await self._call(self.db.get_ticket, ticket_id)
        return Ticket.from_record(record) if record else None

    async def get_by_channel(self, channel_ref: int) -> Optional[Ticket]:
        record = await self._call(self.db.get_ticket_by_channel, channel_ref)
        return Ticket.from_record(record) if record else None

    async def recover(self) -> int:
        """Reclaim channels of tickets closed before the last shutdown."""
        records = await self._call(self.db.get_unreclaimed_tickets)
        for record in records:
            self._schedule_reclaim(Ticket.from_record(record), delay=0)
        if records:
            logger.tree("Ticket Channels Recovered", [("Pending", str(len(records)))], emoji="🔄")
        return len(records)


__all__ = ["TicketWorkflow", "OpenTicketResult", "ticket_channel_name"]
