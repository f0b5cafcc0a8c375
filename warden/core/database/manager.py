"""
Warden - Database Manager
=========================

Central SQLite database manager.
"""

import sqlite3
import threading
from pathlib import Path
from typing import List, Optional, Tuple

from warden.core.logger import logger
from warden.core.constants import DB_CONNECTION_TIMEOUT, SQLITE_BUSY_TIMEOUT

from warden.core.database.schema import SchemaMixin
from warden.core.database.cases import CasesMixin
from warden.core.database.sanctions import SanctionsMixin
from warden.core.database.tickets import TicketsMixin
from warden.core.database.reports import ReportsMixin
from warden.core.database.settings import SettingsMixin


# =============================================================================
# Constants
# =============================================================================

# Path: warden/core/database/manager.py -> project root is 4 levels up
DATA_DIR: Path = Path(__file__).parent.parent.parent.parent / "data"
DB_PATH: Path = DATA_DIR / "warden.db"


# =============================================================================
# Database Manager (Singleton)
# =============================================================================

class DatabaseManager(
    SchemaMixin,
    CasesMixin,
    SanctionsMixin,
    TicketsMixin,
    ReportsMixin,
    SettingsMixin,
):
    """
    Centralized database manager with thread-safe operations.

    DESIGN: Singleton pattern ensures a single database connection.
    Uses WAL mode for concurrent readers. All operations are serialized
    by an internal lock so the async services can call into it from
    worker threads via asyncio.to_thread.
    """

    _instance: Optional["DatabaseManager"] = None
    _lock: threading.Lock = threading.Lock()

    def __new__(cls) -> "DatabaseManager":
        """Singleton pattern - only one instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self) -> None:
        if self._initialized:
            return

        self._db_lock: threading.Lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None
        self._path: Path = DB_PATH

        DATA_DIR.mkdir(parents=True, exist_ok=True)
        self._connect()
        self._init_tables()
        self._initialized = True

        logger.tree("Database Manager Initialized", [
            ("Path", str(self._path)),
            ("WAL Mode", "Enabled"),
            ("SQLite", sqlite3.sqlite_version),
        ], emoji="🗄️")

    # =========================================================================
    # Connection Management
    # =========================================================================

    def _connect(self) -> None:
        """Establish database connection with WAL mode."""
        try:
            self._conn = sqlite3.connect(
                str(self._path),
                check_same_thread=False,
                timeout=DB_CONNECTION_TIMEOUT,
                isolation_level=None,
            )
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA synchronous=NORMAL")
            self._conn.execute("PRAGMA temp_store=MEMORY")
            self._conn.execute("PRAGMA foreign_keys=ON")
            self._conn.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT}")
            self._conn.row_factory = sqlite3.Row
        except sqlite3.Error as e:
            logger.error("Database Connection Failed", [("Error", str(e))])
            raise

    def _ensure_connection(self) -> sqlite3.Connection:
        """Ensure connection is valid, reconnect if needed."""
        if self._conn is None:
            self._connect()
        try:
            self._conn.execute("SELECT 1")
        except sqlite3.Error:
            self._connect()
        return self._conn

    def execute(self, query: str, params: Tuple = ()) -> sqlite3.Cursor:
        """Execute a single statement with thread safety (autocommit)."""
        with self._db_lock:
            conn = self._ensure_connection()
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor

    def fetchone(self, query: str, params: Tuple = ()) -> Optional[sqlite3.Row]:
        """Execute query and fetch one result."""
        with self._db_lock:
            conn = self._ensure_connection()
            return conn.execute(query, params).fetchone()

    def fetchall(self, query: str, params: Tuple = ()) -> List[sqlite3.Row]:
        """Execute query and fetch all results."""
        with self._db_lock:
            conn = self._ensure_connection()
            return conn.execute(query, params).fetchall()

    def close(self) -> None:
        """Close database connection."""
        with self._db_lock:
            if self._conn:
                self._conn.close()
                self._conn = None
                logger.info("Database Connection Closed")

    # =========================================================================
    # Transaction Support
    # =========================================================================

    class Transaction:
        """
        Context manager for atomic database transactions.

        Usage:
            with db.transaction() as tx:
                tx.execute("INSERT INTO ...", (...))
                tx.execute("UPDATE ...", (...))
            # Commits on success, rolls back on exception
        """

        def __init__(self, db: "DatabaseManager"):
            self._db = db
            self._cursor: Optional[sqlite3.Cursor] = None

        def __enter__(self) -> "DatabaseManager.Transaction":
            self._db._db_lock.acquire()
            try:
                conn = self._db._ensure_connection()
                conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error:
                self._db._db_lock.release()
                raise
            self._cursor = conn.cursor()
            return self

        def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
            conn = self._db._ensure_connection()
            try:
                if exc_type is None:
                    conn.execute("COMMIT")
                else:
                    conn.execute("ROLLBACK")
                    logger.warning("Database Transaction Rolled Back", [
                        ("Error", str(exc_val)[:100] if exc_val else "Unknown"),
                    ])
            finally:
                self._db._db_lock.release()
            return False

        def execute(self, query: str, params: Tuple = ()) -> sqlite3.Cursor:
            """Execute a query within this transaction."""
            self._cursor.execute(query, params)
            return self._cursor

        def fetchone(self) -> Optional[sqlite3.Row]:
            return self._cursor.fetchone() if self._cursor else None

        def fetchall(self) -> List[sqlite3.Row]:
            return self._cursor.fetchall() if self._cursor else []

        @property
        def rowcount(self) -> int:
            return self._cursor.rowcount if self._cursor else 0

        @property
        def lastrowid(self) -> int:
            return self._cursor.lastrowid if self._cursor else 0

    def transaction(self) -> "DatabaseManager.Transaction":
        """
        Create a new transaction context manager.

        Example:
            with db.transaction() as tx:
                tx.execute("INSERT INTO cases ...", (...))
                tx.execute("UPDATE case_counters ...", (...))
            # Both succeed or both are rolled back
        """
        return self.Transaction(self)


# =============================================================================
# Global Instance
# =============================================================================

def get_db() -> DatabaseManager:
    """Get the global database manager instance."""
    return DatabaseManager()


__all__ = ["DatabaseManager", "get_db", "DB_PATH", "DATA_DIR"]
