"""
Warden - Database Case Operations
=================================

Case ledger storage and per-guild case counters.
"""

from typing import Any, Dict, List, Optional, Tuple, TYPE_CHECKING

from warden.core.database.base import _json_dumps, _safe_json_loads
from warden.core.database.models import CaseRecord

if TYPE_CHECKING:
    from warden.core.database.manager import DatabaseManager


def _case_from_row(row: Any) -> CaseRecord:
    record = dict(row)
    record["evidence"] = _safe_json_loads(record.get("evidence"), [])
    record["metadata"] = _safe_json_loads(record.get("metadata"), {})
    return record


class CasesMixin:
    """Mixin for case ledger operations."""

    # =========================================================================
    # Counters
    # =========================================================================

    def increment_case_counter(self: "DatabaseManager", guild_id: int) -> int:
        """
        Atomically increment and return the guild's case counter.

        The upsert and the read happen inside one IMMEDIATE transaction,
        so concurrent callers always observe distinct values.
        """
        with self.transaction() as tx:
            tx.execute(
                """INSERT INTO case_counters (guild_id, last_case_id) VALUES (?, 1)
                   ON CONFLICT(guild_id) DO UPDATE SET last_case_id = last_case_id + 1""",
                (guild_id,)
            )
            tx.execute(
                "SELECT last_case_id FROM case_counters WHERE guild_id = ?",
                (guild_id,)
            )
            row = tx.fetchone()
        return int(row["last_case_id"])

    def get_case_counter(self: "DatabaseManager", guild_id: int) -> int:
        row = self.fetchone(
            "SELECT last_case_id FROM case_counters WHERE guild_id = ?",
            (guild_id,)
        )
        return int(row["last_case_id"]) if row else 0

    # =========================================================================
    # Cases
    # =========================================================================

    def insert_case(
        self: "DatabaseManager",
        guild_id: int,
        user_id: int,
        moderator_id: int,
        action_type: str,
        reason: str,
        evidence: List[str],
        created_at: float,
        case_id: Optional[int] = None,
        duration_ms: Optional[int] = None,
        expires_at: Optional[float] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> CaseRecord:
        """Insert a case record and return it as stored."""
        cursor = self.execute(
            """INSERT INTO cases (
                guild_id, case_id, user_id, moderator_id, action_type, reason,
                evidence, duration_ms, expires_at, metadata, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                guild_id, case_id, user_id, moderator_id, action_type, reason,
                _json_dumps(evidence), duration_ms, expires_at,
                _json_dumps(metadata or {}), created_at,
            )
        )
        return {
            "id": cursor.lastrowid,
            "guild_id": guild_id,
            "case_id": case_id,
            "user_id": user_id,
            "moderator_id": moderator_id,
            "action_type": action_type,
            "reason": reason,
            "evidence": list(evidence),
            "duration_ms": duration_ms,
            "expires_at": expires_at,
            "metadata": dict(metadata or {}),
            "created_at": created_at,
        }

    def get_case(self: "DatabaseManager", guild_id: int, case_id: int) -> Optional[CaseRecord]:
        row = self.fetchone(
            "SELECT * FROM cases WHERE guild_id = ? AND case_id = ?",
            (guild_id, case_id)
        )
        return _case_from_row(row) if row else None

    def get_user_cases(
        self: "DatabaseManager",
        guild_id: int,
        user_id: int,
        action_type: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[CaseRecord]:
        """
        Get a user's cases, newest first.

        Ties on created_at are broken by insertion order so repeated
        queries return the same sequence.
        """
        query = "SELECT * FROM cases WHERE guild_id = ? AND user_id = ?"
        params: Tuple = (guild_id, user_id)
        if action_type is not None:
            query += " AND action_type = ?"
            params += (action_type,)
        query += " ORDER BY created_at DESC, id DESC"
        if limit is not None:
            query += " LIMIT ?"
            params += (limit,)
        return [_case_from_row(row) for row in self.fetchall(query, params)]

    def get_case_stats(
        self: "DatabaseManager",
        guild_id: int,
        user_id: int,
    ) -> Tuple[Dict[str, int], Optional[CaseRecord]]:
        """
        Get per-type counts and the most recent case for a user.

        Both reads run in the same transaction so the counts and the
        latest case come from one snapshot.
        """
        with self.transaction() as tx:
            tx.execute(
                """SELECT action_type, COUNT(*) AS total FROM cases
                   WHERE guild_id = ? AND user_id = ?
                   GROUP BY action_type""",
                (guild_id, user_id)
            )
            counts = {row["action_type"]: int(row["total"]) for row in tx.fetchall()}
            tx.execute(
                """SELECT * FROM cases WHERE guild_id = ? AND user_id = ?
                   ORDER BY created_at DESC, id DESC LIMIT 1""",
                (guild_id, user_id)
            )
            latest = tx.fetchone()
        return counts, _case_from_row(latest) if latest else None
