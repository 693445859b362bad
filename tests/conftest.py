# tests/conftest.py
"""
Shared fixtures: a fresh VisitorStore per test and a small seeding helper.
"""

import os
import sqlite3
import sys
import tempfile
from pathlib import Path

import pytest

# Keep data/ and logs/ of the checkout untouched while api.main is imported
_TMP_ROOT = Path(tempfile.mkdtemp(prefix="frontdesk-tests-"))
os.environ.setdefault("FRONTDESK_DATA_DIR", str(_TMP_ROOT / "data"))
os.environ.setdefault("LOG_DIR", str(_TMP_ROOT / "logs"))
os.environ.setdefault("CLEANUP_ON_STARTUP", "0")

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from frontdesk.clock import to_iso
from frontdesk.database import VisitorStore


class Seeder:
    """Direct SQL inserts with explicit timestamps (bypasses validation)."""

    def __init__(self, store: VisitorStore):
        self.store = store

    def visitor(self, first_name="Jane", last_name="Doe", banned=False, photo_path=None) -> int:
        return self.store.insert(
            "INSERT INTO visitors (first_name, last_name, photo_path, is_banned) VALUES (?, ?, ?, ?)",
            [first_name, last_name, photo_path, int(banned)],
        )

    def visit(self, visitor_id, entry, exit=None, unit="101", type="Visitor", **extra) -> int:
        columns = ["visitor_id", "entry_time", "exit_time", "unit", "type"] + list(extra)
        values = [
            visitor_id,
            to_iso(entry),
            to_iso(exit) if exit is not None else None,
            unit,
            type,
        ] + list(extra.values())
        placeholders = ", ".join("?" for _ in columns)
        return self.store.insert(
            f"INSERT INTO visits ({', '.join(columns)}) VALUES ({placeholders})", values
        )

    def dependent(self, visit_id, full_name="Kid Doe", age=7) -> int:
        return self.store.insert(
            "INSERT INTO dependents (full_name, age, visit_id) VALUES (?, ?, ?)",
            [full_name, age, visit_id],
        )

    def count(self, table: str) -> int:
        return self.store.query_one(f"SELECT COUNT(*) AS n FROM {table}")["n"]


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "data" / "database.db"


@pytest.fixture
def store(db_path):
    s = VisitorStore(db_path).open()
    s.init_schema()
    yield s
    s.close()


@pytest.fixture
def seed(store):
    return Seeder(store)


def make_healthy_db(path: Path, marker: str = "live") -> Path:
    """Small valid SQLite file with a one-row marker table."""
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    try:
        conn.execute("CREATE TABLE marker (name TEXT)")
        conn.execute("INSERT INTO marker VALUES (?)", [marker])
        conn.commit()
    finally:
        conn.close()
    return path


def make_corrupt_db(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"this is not a sqlite database" * 64)
    return path


def read_marker(path: Path) -> str:
    conn = sqlite3.connect(str(path))
    try:
        return conn.execute("SELECT name FROM marker").fetchone()[0]
    finally:
        conn.close()


@pytest.fixture
def db_files():
    """Access to the file builders above without importing conftest."""
    class _Files:
        healthy = staticmethod(make_healthy_db)
        corrupt = staticmethod(make_corrupt_db)
        marker = staticmethod(read_marker)
    return _Files
