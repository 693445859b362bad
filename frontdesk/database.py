# frontdesk/database.py
"""
Front Desk Visitor Log - Database Connection and Schema

Provides:
- SCHEMA / REQUIRED_INDEXES: single source of truth for the four tables
- VisitorStore: the one read/write connection the process owns

Key Design:
- Autocommit mode (isolation_level=None): every statement commits on its own
  unless wrapped in VisitorStore.transaction()
- One connection shared by API worker threads, serialized with an RLock
- Timestamps are ISO-8601 UTC strings (see frontdesk.clock)
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from .config import DB_TIMEOUT

logger = logging.getLogger(__name__)


# ==========================================================
# Schema (single source of truth)
# ==========================================================
SCHEMA = {
    "visitors": """
        CREATE TABLE IF NOT EXISTS visitors (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            first_name TEXT NOT NULL,
            last_name TEXT NOT NULL,
            photo_path TEXT,
            is_banned INTEGER NOT NULL DEFAULT 0
        )
    """,
    "visits": """
        CREATE TABLE IF NOT EXISTS visits (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            visitor_id INTEGER NOT NULL,
            entry_time TEXT NOT NULL,
            exit_time TEXT,
            known_as TEXT,
            address TEXT,
            phone_number TEXT,
            unit TEXT NOT NULL,
            reason_for_visit TEXT,
            type TEXT NOT NULL,
            company_name TEXT,
            mandatory_acknowledgment_taken INTEGER NOT NULL DEFAULT 0,
            FOREIGN KEY (visitor_id) REFERENCES visitors(id)
        )
    """,
    "dependents": """
        CREATE TABLE IF NOT EXISTS dependents (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            full_name TEXT NOT NULL,
            age INTEGER,
            visit_id INTEGER NOT NULL,
            FOREIGN KEY (visit_id) REFERENCES visits(id)
        )
    """,
    "audit_logs": """
        CREATE TABLE IF NOT EXISTS audit_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            event_name TEXT NOT NULL,
            timestamp TEXT NOT NULL,
            status TEXT NOT NULL,
            profiles_deleted INTEGER NOT NULL DEFAULT 0,
            visits_deleted INTEGER NOT NULL DEFAULT 0,
            dependents_deleted INTEGER NOT NULL DEFAULT 0
        )
    """,
}

REQUIRED_INDEXES = {
    "idx_visits_entry_time": (
        "CREATE INDEX IF NOT EXISTS idx_visits_entry_time "
        "ON visits(entry_time)"
    ),
    "idx_visits_visitor_id": (
        "CREATE INDEX IF NOT EXISTS idx_visits_visitor_id "
        "ON visits(visitor_id)"
    ),
    "idx_dependents_visit_id": (
        "CREATE INDEX IF NOT EXISTS idx_dependents_visit_id "
        "ON dependents(visit_id)"
    ),
}


# ==========================================================
# PRAGMA Settings
# ==========================================================
def _apply_pragma_settings(conn: sqlite3.Connection, timeout: float = DB_TIMEOUT) -> None:
    """
    Apply connection-level SQLite PRAGMA settings.

    The rollback journal is left at its default: snapshots are plain file
    copies and the integrity check opens the file read-only, neither of
    which can see pages still sitting in a WAL file.
    """
    try:
        conn.execute("PRAGMA foreign_keys=ON")

        # Larger cache size (negative = KB)
        conn.execute("PRAGMA cache_size=-16000")  # 16MB

        # Busy timeout for write conflicts (e.g. tools/run_cleanup.py)
        conn.execute(f"PRAGMA busy_timeout={int(timeout * 1000)}")

        # Temp store in memory
        conn.execute("PRAGMA temp_store=MEMORY")

        logger.debug("SQLite PRAGMA settings applied")
    except sqlite3.Error as e:
        logger.warning(f"Failed to apply PRAGMA settings: {e}")


# ==========================================================
# VisitorStore
# ==========================================================
class VisitorStore:
    """
    Owner of the single read/write connection to the visitor database.

    Usage:
        store = VisitorStore(DB_FILE).open()
        store.init_schema()
        changes = store.execute("DELETE FROM visits WHERE entry_time < ?", [cutoff])
        rows = store.query("SELECT * FROM visitors")
        store.close()
    """

    def __init__(self, db_path: Path | str, timeout: float = DB_TIMEOUT):
        self.db_path = Path(db_path)
        self.timeout = timeout
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    def __enter__(self) -> "VisitorStore":
        if self._conn is None:
            self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise sqlite3.ProgrammingError("VisitorStore is not open")
        return self._conn

    def open(self) -> "VisitorStore":
        """Open the read/write connection, creating the file if needed."""
        with self._lock:
            if self._conn is not None:
                return self

            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(
                str(self.db_path),
                timeout=self.timeout,
                isolation_level=None,
                check_same_thread=False,
            )
            conn.row_factory = sqlite3.Row
            _apply_pragma_settings(conn, self.timeout)
            self._conn = conn
            logger.info("Connected to the database: %s", self.db_path)
            return self

    def close(self) -> None:
        with self._lock:
            if self._conn is None:
                return
            try:
                self._conn.close()
            except sqlite3.Error as e:
                logger.warning("Error closing database connection: %s", e)
            finally:
                self._conn = None
            logger.info("Database connection closed: %s", self.db_path.name)

    def init_schema(self) -> None:
        """Create all tables and required indexes (idempotent)."""
        with self.transaction() as conn:
            for ddl in SCHEMA.values():
                conn.execute(ddl)
            for sql in REQUIRED_INDEXES.values():
                conn.execute(sql)
        logger.info("Database schema ready (%d tables, %d indexes)", len(SCHEMA), len(REQUIRED_INDEXES))

    def ping(self) -> bool:
        """Cheap liveness probe used by /healthz."""
        try:
            with self._lock:
                self.connection.execute("SELECT 1").fetchone()
            return True
        except sqlite3.Error:
            return False

    # ------------------------------------------------------
    # Statement helpers
    # ------------------------------------------------------
    def execute(self, sql: str, params: list[Any] | tuple[Any, ...] = ()) -> int:
        """Run a write statement and return the number of rows changed."""
        with self._lock:
            cur = self.connection.execute(sql, params)
            return max(cur.rowcount, 0)

    def insert(self, sql: str, params: list[Any] | tuple[Any, ...] = ()) -> int:
        """Run an INSERT and return the new row id."""
        with self._lock:
            cur = self.connection.execute(sql, params)
            return cur.lastrowid

    def query(self, sql: str, params: list[Any] | tuple[Any, ...] = ()) -> list[dict]:
        """Execute a query and return results as list of dicts."""
        with self._lock:
            rows = self.connection.execute(sql, params).fetchall()
        return [dict(r) for r in rows]

    def query_one(self, sql: str, params: list[Any] | tuple[Any, ...] = ()) -> dict | None:
        with self._lock:
            row = self.connection.execute(sql, params).fetchone()
        return dict(row) if row is not None else None

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Explicit BEGIN/COMMIT block for multi-statement writes.

        Rolls back and re-raises on any exception, including a failed
        COMMIT (e.g. 'database is locked'), so the connection is always
        back in autocommit mode afterwards. The store lock is held for the
        whole block so other threads cannot interleave statements.
        """
        with self._lock:
            conn = self.connection
            conn.execute("BEGIN")
            try:
                yield conn
                conn.execute("COMMIT")
            except BaseException:
                self._rollback(conn)
                raise

    @staticmethod
    def _rollback(conn: sqlite3.Connection) -> None:
        """ROLLBACK if a transaction is still open; never masks the caller's error."""
        if not conn.in_transaction:
            return
        try:
            conn.execute("ROLLBACK")
        except sqlite3.Error as e:
            logger.error("ROLLBACK failed: %s", e)
