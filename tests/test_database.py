# tests/test_database.py
"""
VisitorStore Unit Tests

Schema creation, statement helpers and transaction handling, including a
COMMIT that fails because another connection still holds a read lock.
"""

import sqlite3
import sys
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from frontdesk.audit import list_events
from frontdesk.compliance import run_compliance_cleanup
from frontdesk.database import REQUIRED_INDEXES, SCHEMA, VisitorStore


@pytest.fixture
def short_timeout_store(db_path):
    s = VisitorStore(db_path, timeout=0.1).open()
    s.init_schema()
    yield s
    s.close()


@pytest.fixture
def reader(db_path, short_timeout_store):
    """Second connection holding a SHARED lock (open read transaction)."""
    conn = sqlite3.connect(str(db_path), isolation_level=None)
    conn.execute("BEGIN")
    conn.execute("SELECT * FROM visitors").fetchall()
    yield conn
    if conn.in_transaction:
        conn.execute("COMMIT")
    conn.close()


def _count(path: Path, table: str) -> int:
    conn = sqlite3.connect(str(path))
    try:
        return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
    finally:
        conn.close()


class TestSchema:
    """스키마 및 인덱스 생성"""

    def test_tables_and_indexes(self, store):
        names = {r["name"] for r in store.query("SELECT name FROM sqlite_master")}
        assert set(SCHEMA) <= names
        assert set(REQUIRED_INDEXES) <= names

    def test_init_schema_is_idempotent(self, store):
        store.init_schema()
        store.init_schema()

    def test_foreign_keys_enforced(self, store):
        with pytest.raises(sqlite3.IntegrityError):
            store.insert(
                "INSERT INTO visits (visitor_id, entry_time, unit, type) VALUES (?, ?, ?, ?)",
                [999, "2026-01-01T00:00:00.000Z", "1", "Visitor"],
            )


class TestTransaction:
    """BEGIN/COMMIT/ROLLBACK 처리"""

    def test_commit(self, store, db_path):
        with store.transaction() as conn:
            conn.execute("INSERT INTO visitors (first_name, last_name) VALUES ('A', 'B')")
        assert _count(db_path, "visitors") == 1

    def test_exception_rolls_back(self, store):
        with pytest.raises(RuntimeError):
            with store.transaction() as conn:
                conn.execute("INSERT INTO visitors (first_name, last_name) VALUES ('A', 'B')")
                raise RuntimeError("boom")

        assert not store.connection.in_transaction
        assert store.query_one("SELECT COUNT(*) AS n FROM visitors")["n"] == 0

    def test_failed_commit_leaves_autocommit_mode(self, short_timeout_store, reader):
        """COMMIT 실패(database is locked) 후에도 연결은 트랜잭션 밖이어야 함"""
        store = short_timeout_store

        with pytest.raises(sqlite3.OperationalError, match="locked"):
            with store.transaction() as conn:
                conn.execute("INSERT INTO visitors (first_name, last_name) VALUES ('A', 'B')")

        assert not store.connection.in_transaction

        reader.execute("COMMIT")
        with store.transaction() as conn:
            conn.execute("INSERT INTO visitors (first_name, last_name) VALUES ('C', 'D')")

        names = [r["first_name"] for r in store.query("SELECT first_name FROM visitors")]
        assert names == ["C"]

    def test_cleanup_audit_durable_after_failed_commit(self, short_timeout_store, reader, db_path):
        """실패한 COMMIT 이후 정리 작업의 감사 로그가 실제로 커밋되어야 함"""
        store = short_timeout_store

        with pytest.raises(sqlite3.OperationalError):
            with store.transaction() as conn:
                conn.execute("INSERT INTO visitors (first_name, last_name) VALUES ('A', 'B')")

        reader.execute("COMMIT")
        report = run_compliance_cleanup(store)

        assert report.succeeded
        assert report.audit_id is not None
        assert not store.connection.in_transaction
        assert _count(db_path, "audit_logs") == 1
        assert len(list_events(store)) == 1
