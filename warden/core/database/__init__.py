"""
Warden - Database Module
========================

SQLite persistence for cases, counters, scheduled sanctions, tickets,
reports and guild settings.
"""

from warden.core.database.manager import (
    DatabaseManager,
    get_db,
    DATA_DIR,
    DB_PATH,
)
from warden.core.database.models import (
    CaseRecord,
    ScheduledSanctionRecord,
    TicketRecord,
    ReportRecord,
    GuildSettingsRecord,
)

__all__ = [
    "DatabaseManager",
    "get_db",
    "DATA_DIR",
    "DB_PATH",
    "CaseRecord",
    "ScheduledSanctionRecord",
    "TicketRecord",
    "ReportRecord",
    "GuildSettingsRecord",
]
