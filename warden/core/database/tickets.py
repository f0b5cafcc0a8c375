"""
Warden - Database Ticket Operations
===================================

Ticket lifecycle storage.
"""

from typing import List, Optional, Tuple, TYPE_CHECKING

from warden.core.logger import logger
from warden.core.database.models import TicketRecord

if TYPE_CHECKING:
    from warden.core.database.manager import DatabaseManager


class TicketsMixin:
    """Mixin for ticket database operations."""

    def open_ticket_slot(
        self: "DatabaseManager",
        guild_id: int,
        user_id: int,
        category: str,
        opened_at: float,
    ) -> Tuple[TicketRecord, bool]:
        """
        Reserve a ticket for a requester, or return their active one.

        Returns:
            (ticket, created). created is False when the requester already
            had an open or taken ticket in this guild.
        """
        with self.transaction() as tx:
            tx.execute(
                """SELECT * FROM tickets
                   WHERE guild_id = ? AND user_id = ? AND status != 'closed'""",
                (guild_id, user_id)
            )
            existing = tx.fetchone()
            if existing:
                return dict(existing), False

            tx.execute(
                """INSERT INTO tickets (guild_id, user_id, category, status, opened_at)
                   VALUES (?, ?, ?, 'open', ?)""",
                (guild_id, user_id, category, opened_at)
            )
            ticket_id = tx.lastrowid
            tx.execute("SELECT * FROM tickets WHERE id = ?", (ticket_id,))
            created = tx.fetchone()
        return dict(created), True

    def set_ticket_channel(self: "DatabaseManager", ticket_id: int, channel_id: int) -> None:
        self.execute(
            "UPDATE tickets SET channel_id = ? WHERE id = ?",
            (channel_id, ticket_id)
        )

    def discard_ticket(self: "DatabaseManager", ticket_id: int) -> None:
        """Remove a reserved ticket whose channel could not be provisioned."""
        self.execute("DELETE FROM tickets WHERE id = ? AND channel_id IS NULL", (ticket_id,))

    def get_ticket(self: "DatabaseManager", ticket_id: int) -> Optional[TicketRecord]:
        row = self.fetchone("SELECT * FROM tickets WHERE id = ?", (ticket_id,))
        return dict(row) if row else None

    def get_ticket_by_channel(self: "DatabaseManager", channel_id: int) -> Optional[TicketRecord]:
        row = self.fetchone("SELECT * FROM tickets WHERE channel_id = ?", (channel_id,))
        return dict(row) if row else None

    def take_ticket(
        self: "DatabaseManager",
        ticket_id: int,
        staff_id: int,
        taken_at: float,
    ) -> bool:
        """Assign a ticket to staff. Re-assignment of a taken ticket is allowed."""
        cursor = self.execute(
            """UPDATE tickets SET status = 'taken', assigned_staff_id = ?, taken_at = ?
               WHERE id = ? AND status IN ('open', 'taken')""",
            (staff_id, taken_at, ticket_id)
        )
        if cursor.rowcount > 0:
            logger.tree("Ticket Taken", [
                ("Ticket ID", str(ticket_id)),
                ("Staff ID", str(staff_id)),
            ], emoji="✋")
            return True
        return False

    def close_ticket(
        self: "DatabaseManager",
        ticket_id: int,
        closed_by: int,
        closed_at: float,
        reason: Optional[str] = None,
    ) -> bool:
        cursor = self.execute(
            """UPDATE tickets SET status = 'closed', closed_at = ?, closed_by = ?, close_reason = ?
               WHERE id = ? AND status != 'closed'""",
            (closed_at, closed_by, reason, ticket_id)
        )
        if cursor.rowcount > 0:
            logger.tree("Ticket Closed", [
                ("Ticket ID", str(ticket_id)),
                ("Closed By", str(closed_by)),
                ("Reason", (reason or "None")[:50]),
            ], emoji="🔒")
            return True
        return False

    def mark_ticket_channel_reclaimed(self: "DatabaseManager", ticket_id: int) -> None:
        self.execute(
            "UPDATE tickets SET channel_reclaimed = 1 WHERE id = ?",
            (ticket_id,)
        )

    def get_unreclaimed_tickets(self: "DatabaseManager") -> List[TicketRecord]:
        """Get closed tickets whose channel deletion never completed."""
        rows = self.fetchall(
            """SELECT * FROM tickets
               WHERE status = 'closed' AND channel_reclaimed = 0 AND channel_id IS NOT NULL"""
        )
        return [dict(row) for row in rows]
