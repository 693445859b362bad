# frontdesk/startup.py
"""
Front Desk Visitor Log - Startup Bootstrap

Order of operations at process start:
    1. ensure_healthy_database (integrity check, bounded restore)
    2. open the single VisitorStore connection, create schema
    3. one daily backup of the now-healthy file
    4. optional compliance cleanup run

Each outcome is reported into the StatusTracker passed in by the caller.
"""

from __future__ import annotations

import logging
from pathlib import Path

from .clock import utc_now_iso
from .compliance import CleanupReport, run_compliance_cleanup
from .config import BACKUP_DIR_NAME
from .database import VisitorStore
from .db_maintenance import create_daily_backup, ensure_healthy_database
from .status import StatusTracker

logger = logging.getLogger(__name__)


class DatabaseUnrecoverableError(RuntimeError):
    """The database is corrupt and no snapshot could repair it."""


def initialize_database(
    db_path: Path,
    status: StatusTracker,
    base_dir: Path | None = None,
) -> VisitorStore:
    """
    Bring the database up, or refuse to.

    Args:
        db_path: Primary database file
        status: Tracker to report db_ready / last_backup / last_error into
        base_dir: Directory holding the backups/ folder (default: db_path's parent)

    Returns:
        An open VisitorStore with the schema in place.

    Raises:
        DatabaseUnrecoverableError: integrity still fails after the restore
            limit, or there is no snapshot and the corrupt file could not be
            moved aside. The file is not opened.
    """
    base_dir = base_dir or db_path.parent
    backup_dir = base_dir / BACKUP_DIR_NAME

    if not ensure_healthy_database(db_path, backup_dir):
        message = f"Database {db_path.name} is corrupt and could not be restored"
        status.update("db_ready", False)
        status.update("last_error", message)
        raise DatabaseUnrecoverableError(message)

    store = VisitorStore(db_path).open()
    try:
        store.init_schema()
    except Exception:
        store.close()
        raise
    status.update("db_ready", True)

    if create_daily_backup(db_path, base_dir):
        status.update("last_backup", utc_now_iso())
    else:
        status.update("last_error", f"Daily backup of {db_path.name} failed")

    return store


def run_scheduled_cleanup(store: VisitorStore, status: StatusTracker) -> CleanupReport:
    """Run the compliance cleanup once and report the outcome."""
    report = run_compliance_cleanup(store)
    if report.succeeded:
        status.update("last_cleanup", report.finished_at)
    else:
        status.update("last_error", f"Compliance cleanup failed: {report.error}")
    return report
