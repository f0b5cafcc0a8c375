"""
Warden - Database Report Operations
===================================

User report storage. Every transition is a conditional UPDATE so an
illegal transition simply matches no rows.
"""

from typing import Any, List, Optional, TYPE_CHECKING

from warden.core.logger import logger
from warden.core.database.base import _json_dumps, _safe_json_loads
from warden.core.database.models import ReportRecord

if TYPE_CHECKING:
    from warden.core.database.manager import DatabaseManager


def _report_from_row(row: Any) -> ReportRecord:
    record = dict(row)
    record["evidence"] = _safe_json_loads(record.get("evidence"), [])
    return record


class ReportsMixin:
    """Mixin for report database operations."""

    def create_report(
        self: "DatabaseManager",
        guild_id: int,
        case_id: int,
        reporter_id: int,
        reported_id: int,
        reason: str,
        evidence: List[str],
        created_at: float,
    ) -> ReportRecord:
        cursor = self.execute(
            """INSERT INTO reports
               (guild_id, case_id, reporter_id, reported_id, reason, evidence, status, created_at)
               VALUES (?, ?, ?, ?, ?, ?, 'submitted', ?)""",
            (guild_id, case_id, reporter_id, reported_id, reason, _json_dumps(evidence), created_at)
        )
        logger.tree("Report Created", [
            ("Report ID", str(cursor.lastrowid)),
            ("Case", f"#{case_id}"),
            ("Reporter ID", str(reporter_id)),
            ("Reported ID", str(reported_id)),
        ], emoji="🚩")
        return self.get_report(cursor.lastrowid)

    def get_report(self: "DatabaseManager", report_id: int) -> Optional[ReportRecord]:
        row = self.fetchone("SELECT * FROM reports WHERE id = ?", (report_id,))
        return _report_from_row(row) if row else None

    def get_report_by_case(
        self: "DatabaseManager",
        guild_id: int,
        case_id: int,
    ) -> Optional[ReportRecord]:
        row = self.fetchone(
            "SELECT * FROM reports WHERE guild_id = ? AND case_id = ?",
            (guild_id, case_id)
        )
        return _report_from_row(row) if row else None

    def take_report(
        self: "DatabaseManager",
        report_id: int,
        staff_id: int,
        taken_at: float,
    ) -> bool:
        cursor = self.execute(
            """UPDATE reports SET status = 'taken', assigned_staff_id = ?, taken_at = ?
               WHERE id = ? AND status IN ('submitted', 'taken')""",
            (staff_id, taken_at, report_id)
        )
        return cursor.rowcount > 0

    def give_report_verdict(
        self: "DatabaseManager",
        report_id: int,
        staff_id: int,
        verdict_text: str,
        verdict_at: float,
    ) -> bool:
        cursor = self.execute(
            """UPDATE reports SET status = 'verdict_given', verdict_text = ?,
                   verdict_by = ?, verdict_at = ?
               WHERE id = ? AND status = 'taken'""",
            (verdict_text, staff_id, verdict_at, report_id)
        )
        return cursor.rowcount > 0

    # =========================================================================
    # Private Channel Sub-flow
    # =========================================================================

    def attach_report_channel(
        self: "DatabaseManager",
        report_id: int,
        channel_id: int,
    ) -> bool:
        """
        Attach a private channel unless one is already attached.

        Returns:
            False if another channel won the race (or the report is terminal).
        """
        cursor = self.execute(
            """UPDATE reports SET private_channel_id = ?, private_channel_state = 'open'
               WHERE id = ? AND private_channel_state IN ('none', 'closed')
                 AND status != 'verdict_given'""",
            (channel_id, report_id)
        )
        return cursor.rowcount > 0

    def begin_report_channel_close(self: "DatabaseManager", report_id: int) -> bool:
        cursor = self.execute(
            """UPDATE reports SET private_channel_state = 'closing'
               WHERE id = ? AND private_channel_state = 'open'""",
            (report_id,)
        )
        return cursor.rowcount > 0

    def finish_report_channel_close(self: "DatabaseManager", report_id: int) -> None:
        self.execute(
            """UPDATE reports SET private_channel_state = 'closed', private_channel_id = NULL
               WHERE id = ? AND private_channel_state = 'closing'""",
            (report_id,)
        )

    def get_closing_report_channels(self: "DatabaseManager") -> List[ReportRecord]:
        """Get reports whose private channel close was interrupted."""
        rows = self.fetchall(
            "SELECT * FROM reports WHERE private_channel_state = 'closing'"
        )
        return [_report_from_row(row) for row in rows]
