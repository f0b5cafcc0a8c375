"""
Warden - Database Schema
========================

Table definitions.
"""

import sqlite3
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from warden.core.database.manager import DatabaseManager


class SchemaMixin:
    """Mixin for database schema initialization."""

    def _init_tables(self: "DatabaseManager") -> None:
        """
        Initialize all database tables.

        DESIGN: Tables are created if not exist, allowing safe restarts.
        Uniqueness rules that the workflows rely on are enforced here by
        indexes rather than in application code.
        """
        conn = self._ensure_connection()
        cursor = conn.cursor()

        # -----------------------------------------------------------------
        # Moderation Cases
        # DESIGN: Immutable audit trail. case_id is optional; SQLite treats
        # NULLs as distinct so the unique index only binds numbered cases.
        # -----------------------------------------------------------------
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS cases (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                guild_id INTEGER NOT NULL,
                case_id INTEGER,
                user_id INTEGER NOT NULL,
                moderator_id INTEGER NOT NULL,
                action_type TEXT NOT NULL,
                reason TEXT NOT NULL,
                evidence TEXT NOT NULL DEFAULT '[]',
                duration_ms INTEGER,
                expires_at REAL,
                metadata TEXT NOT NULL DEFAULT '{}',
                created_at REAL NOT NULL
            )
        """)
        cursor.execute(
            "CREATE UNIQUE INDEX IF NOT EXISTS idx_cases_guild_case ON cases(guild_id, case_id)"
        )
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_cases_subject ON cases(guild_id, user_id, created_at DESC)"
        )

        # -----------------------------------------------------------------
        # Case Counters
        # DESIGN: One row per guild, only ever incremented
        # -----------------------------------------------------------------
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS case_counters (
                guild_id INTEGER PRIMARY KEY,
                last_case_id INTEGER NOT NULL DEFAULT 0
            )
        """)

        # -----------------------------------------------------------------
        # Scheduled Sanctions
        # DESIGN: At most one pending reversal per (guild, user, kind)
        # -----------------------------------------------------------------
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS scheduled_sanctions (
                guild_id INTEGER NOT NULL,
                user_id INTEGER NOT NULL,
                kind TEXT NOT NULL,
                expires_at REAL NOT NULL,
                reason TEXT NOT NULL,
                role_id INTEGER,
                issued_by INTEGER,
                created_at REAL NOT NULL,
                PRIMARY KEY (guild_id, user_id, kind)
            )
        """)
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_scheduled_expires ON scheduled_sanctions(expires_at)"
        )

        # -----------------------------------------------------------------
        # Tickets
        # DESIGN: Partial unique index allows one active ticket per requester
        # -----------------------------------------------------------------
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS tickets (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                guild_id INTEGER NOT NULL,
                user_id INTEGER NOT NULL,
                channel_id INTEGER,
                category TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'open',
                assigned_staff_id INTEGER,
                opened_at REAL NOT NULL,
                taken_at REAL,
                closed_at REAL,
                closed_by INTEGER,
                close_reason TEXT,
                channel_reclaimed INTEGER NOT NULL DEFAULT 0
            )
        """)
        cursor.execute(
            """CREATE UNIQUE INDEX IF NOT EXISTS idx_tickets_active
               ON tickets(guild_id, user_id) WHERE status != 'closed'"""
        )
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_tickets_channel ON tickets(channel_id)"
        )

        # -----------------------------------------------------------------
        # Reports
        # -----------------------------------------------------------------
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS reports (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                guild_id INTEGER NOT NULL,
                case_id INTEGER NOT NULL,
                reporter_id INTEGER NOT NULL,
                reported_id INTEGER NOT NULL,
                reason TEXT NOT NULL,
                evidence TEXT NOT NULL DEFAULT '[]',
                status TEXT NOT NULL DEFAULT 'submitted',
                assigned_staff_id INTEGER,
                verdict_text TEXT,
                verdict_by INTEGER,
                private_channel_id INTEGER,
                private_channel_state TEXT NOT NULL DEFAULT 'none',
                created_at REAL NOT NULL,
                taken_at REAL,
                verdict_at REAL
            )
        """)
        cursor.execute(
            "CREATE UNIQUE INDEX IF NOT EXISTS idx_reports_case ON reports(guild_id, case_id)"
        )

        # -----------------------------------------------------------------
        # Guild Settings
        # DESIGN: Per-community destinations and roles, all optional
        # -----------------------------------------------------------------
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS guild_settings (
                guild_id INTEGER PRIMARY KEY,
                mute_role_id INTEGER,
                mod_log_channel_id INTEGER,
                ticket_category_id INTEGER,
                ticket_log_channel_id INTEGER,
                transcript_channel_id INTEGER,
                report_channel_id INTEGER,
                report_log_channel_id INTEGER,
                report_category_id INTEGER,
                welcome_channel_id INTEGER,
                welcome_role_id INTEGER,
                welcome_message TEXT,
                updated_at REAL NOT NULL
            )
        """)

        # Migrations for guild_settings
        for col in [
            "welcome_channel_id INTEGER",
            "welcome_role_id INTEGER",
            "welcome_message TEXT",
        ]:
            try:
                cursor.execute(f"ALTER TABLE guild_settings ADD COLUMN {col}")
            except sqlite3.OperationalError:
                pass

        conn.commit()
