"""
Warden - Database Scheduled Sanction Operations
===============================================

Persistence for pending mute/ban reversals so they survive restarts.
"""

import time
from typing import List, Optional, TYPE_CHECKING

from warden.core.database.models import ScheduledSanctionRecord

if TYPE_CHECKING:
    from warden.core.database.manager import DatabaseManager


class SanctionsMixin:
    """Mixin for scheduled sanction operations."""

    def upsert_scheduled_sanction(
        self: "DatabaseManager",
        guild_id: int,
        user_id: int,
        kind: str,
        expires_at: float,
        reason: str,
        role_id: Optional[int] = None,
        issued_by: Optional[int] = None,
    ) -> None:
        """Store a pending reversal, replacing any prior one for the same key."""
        self.execute(
            """INSERT INTO scheduled_sanctions
               (guild_id, user_id, kind, expires_at, reason, role_id, issued_by, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(guild_id, user_id, kind) DO UPDATE SET
                   expires_at = excluded.expires_at,
                   reason = excluded.reason,
                   role_id = excluded.role_id,
                   issued_by = excluded.issued_by,
                   created_at = excluded.created_at""",
            (guild_id, user_id, kind, expires_at, reason, role_id, issued_by, time.time())
        )

    def delete_scheduled_sanction(
        self: "DatabaseManager",
        guild_id: int,
        user_id: int,
        kind: str,
        expires_at: Optional[float] = None,
    ) -> bool:
        """
        Delete a pending reversal.

        When expires_at is given only the row with that exact expiry is
        removed, so a fired timer never deletes a newer replacement.
        """
        query = "DELETE FROM scheduled_sanctions WHERE guild_id = ? AND user_id = ? AND kind = ?"
        params: tuple = (guild_id, user_id, kind)
        if expires_at is not None:
            query += " AND expires_at = ?"
            params += (expires_at,)
        cursor = self.execute(query, params)
        return cursor.rowcount > 0

    def get_scheduled_sanction(
        self: "DatabaseManager",
        guild_id: int,
        user_id: int,
        kind: str,
    ) -> Optional[ScheduledSanctionRecord]:
        row = self.fetchone(
            "SELECT * FROM scheduled_sanctions WHERE guild_id = ? AND user_id = ? AND kind = ?",
            (guild_id, user_id, kind)
        )
        return dict(row) if row else None

    def get_scheduled_sanctions(self: "DatabaseManager") -> List[ScheduledSanctionRecord]:
        """Get all pending reversals, soonest first."""
        rows = self.fetchall(
            "SELECT * FROM scheduled_sanctions ORDER BY expires_at ASC"
        )
        return [dict(row) for row in rows]
