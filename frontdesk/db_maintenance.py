# frontdesk/db_maintenance.py
"""
Front Desk Visitor Log - DB Maintenance Utilities

Integrity checking, startup recovery and daily snapshot rotation for the
single SQLite file the application owns.
Used by: frontdesk/startup.py, tools/backup_db.py

File layout:
    <data>/database.db
    <data>/backups/database-YYYY-MM-DD.db   (one per UTC day, kept 7 days)
"""

from __future__ import annotations

import logging
import shutil
import sqlite3
import time
from pathlib import Path

from .clock import utc_now, utc_today
from .config import (
    BACKUP_DIR_NAME,
    BACKUP_RETENTION_DAYS,
    DB_TIMEOUT,
    MAX_RESTORE_ATTEMPTS,
)

logger = logging.getLogger(__name__)

SIDECAR_SUFFIXES = ("-journal", "-wal", "-shm")


# ==========================================================
# Naming
# ==========================================================
def backup_file_name(db_path: Path, date_stamp: str | None = None) -> str:
    """
    Dated snapshot name for a database file.

    >>> backup_file_name(Path("data/database.db"), "2026-01-31")
    'database-2026-01-31.db'
    """
    date_stamp = date_stamp or utc_today()
    return f"{db_path.stem}-{date_stamp}{db_path.suffix}"


# ==========================================================
# Integrity Check
# ==========================================================
def check_integrity(db_path: Path) -> bool:
    """
    Run PRAGMA integrity_check on a read-only connection.

    A missing file is reported as not clean so the caller goes down the
    recovery/creation path.

    Returns:
        True only if the check returned the single row 'ok'.
    """
    if not db_path.exists():
        logger.warning("Database file is missing (integrity check): %s", db_path)
        return False

    conn = None
    try:
        conn = sqlite3.connect(
            f"file:{db_path.absolute()}?mode=ro",
            uri=True,
            timeout=DB_TIMEOUT
        )
        rows = conn.execute("PRAGMA integrity_check").fetchall()

    except sqlite3.Error as e:
        logger.error("Integrity check could not run on %s: %s", db_path.name, e)
        return False

    finally:
        if conn is not None:
            conn.close()

    if len(rows) == 1 and rows[0][0] == "ok":
        logger.info("Database integrity check passed: %s", db_path.name)
        return True

    problems = "; ".join(str(r[0]) for r in rows[:5]) or "no result rows"
    logger.error("Database corruption detected in %s: %s", db_path.name, problems)
    return False


# ==========================================================
# Restore
# ==========================================================
def find_latest_backup(db_path: Path, backup_dir: Path) -> Path | None:
    """
    Newest snapshot for db_path in backup_dir, or None.

    Snapshot names embed YYYY-MM-DD, so a descending name sort puts the
    latest date first.
    """
    if not backup_dir.is_dir():
        return None

    candidates = sorted(
        (
            p.name for p in backup_dir.iterdir()
            if p.is_file()
            and p.name.startswith(db_path.stem)
            and p.name.endswith(db_path.suffix)
        ),
        reverse=True,
    )
    if not candidates:
        return None
    return backup_dir / candidates[0]


def _remove_sidecar_files(db_path: Path) -> None:
    """Drop journal files left by the previous (corrupt) database."""
    for suffix in SIDECAR_SUFFIXES:
        sidecar = db_path.with_name(db_path.name + suffix)
        if sidecar.exists():
            try:
                sidecar.unlink()
                logger.info("Removed stale sidecar file: %s", sidecar.name)
            except OSError as e:
                logger.warning("Failed to remove %s: %s", sidecar.name, e)


def restore_from_backup(db_path: Path, backup_dir: Path) -> bool:
    """
    Copy the latest snapshot over the primary database file.

    Returns:
        False if there is no backup directory, no matching snapshot, or the
        copy fails. True otherwise.
    """
    logger.info("Attempting database recovery from %s", backup_dir)

    if not backup_dir.is_dir():
        logger.warning("No backup directory found. Cannot restore.")
        return False

    latest = find_latest_backup(db_path, backup_dir)
    if latest is None:
        logger.warning("No backup files found. Cannot restore.")
        return False

    try:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        _remove_sidecar_files(db_path)
        shutil.copyfile(latest, db_path)
    except OSError as e:
        logger.error("Error during database restoration from %s: %s", latest.name, e)
        return False

    logger.info("Restored database from latest backup: %s", latest.name)
    return True


def quarantine_corrupt_file(db_path: Path) -> Path | None:
    """
    Move a corrupt database aside as <name>.corrupt-<UTC timestamp>.

    Returns:
        The quarantine path, or None if the file was absent or could not
        be moved.
    """
    if not db_path.exists():
        return None

    stamp = utc_now().strftime("%Y%m%dT%H%M%SZ")
    target = db_path.with_name(f"{db_path.name}.corrupt-{stamp}")
    try:
        db_path.replace(target)
    except OSError as e:
        logger.error("Failed to quarantine corrupt database %s: %s", db_path.name, e)
        return None

    logger.warning("Corrupt database moved aside: %s", target.name)
    return target


# ==========================================================
# Recovery Orchestrator
# ==========================================================
def ensure_healthy_database(
    db_path: Path,
    backup_dir: Path,
    *,
    max_attempts: int = MAX_RESTORE_ATTEMPTS,
) -> bool:
    """
    Make sure db_path is safe to open read/write.

    CHECKING -> clean: done.
    CHECKING -> corrupt: RESTORING -> CHECKING, at most max_attempts times.

    Returns:
        True if the file is clean, was restored, or will be created fresh
        because no snapshot exists. False if it is still corrupt after the
        attempt limit, or if no snapshot exists and the corrupt file cannot
        be moved aside. The caller must then halt instead of opening it.
    """
    if check_integrity(db_path):
        return True

    attempt = 1
    quarantined = False

    while attempt <= max_attempts:
        if find_latest_backup(db_path, backup_dir) is None:
            logger.warning(
                "No usable backup in %s; a fresh database will be created at %s",
                backup_dir, db_path,
            )
            if db_path.exists() and quarantine_corrupt_file(db_path) is None:
                logger.critical("FATAL: corrupt database %s could not be moved aside", db_path)
                return False
            return True

        if not quarantined and db_path.exists():
            quarantine_corrupt_file(db_path)
            quarantined = True

        logger.warning("Restore attempt %d/%d for %s", attempt, max_attempts, db_path.name)
        if restore_from_backup(db_path, backup_dir) and check_integrity(db_path):
            logger.info("Database recovered on attempt %d: %s", attempt, db_path.name)
            return True

        attempt += 1

    logger.critical(
        "FATAL: %s is still corrupt after %d restore attempt(s)",
        db_path.name, max_attempts,
    )
    return False


# ==========================================================
# Daily Backup & Retention
# ==========================================================
def prune_old_backups(
    backup_dir: Path,
    file_prefix: str,
    retention_days: int = BACKUP_RETENTION_DAYS,
    suffix: str = ".db",
) -> int:
    """
    Delete snapshots whose mtime is older than retention_days.

    Failures are logged and never raised: the backup itself already
    succeeded or failed on its own.

    Returns:
        Number of files deleted.
    """
    cutoff = time.time() - retention_days * 24 * 60 * 60
    deleted = 0

    try:
        candidates = [
            p for p in backup_dir.iterdir()
            if p.is_file() and p.name.startswith(file_prefix) and p.name.endswith(suffix)
        ]
    except OSError as e:
        logger.error("Error during backup cleanup in %s: %s", backup_dir, e)
        return 0

    for backup in candidates:
        try:
            if backup.stat().st_mtime < cutoff:
                backup.unlink()
                deleted += 1
        except OSError as e:
            logger.warning("Failed to remove old backup %s: %s", backup.name, e)

    if deleted:
        logger.info("Cleaned up %d old backup file(s) (older than %d days)", deleted, retention_days)
    else:
        logger.info("No backups older than %d days to clean up", retention_days)
    return deleted


def create_daily_backup(
    db_path: Path,
    base_dir: Path,
    *,
    retention_days: int = BACKUP_RETENTION_DAYS,
) -> bool:
    """
    Snapshot db_path into base_dir/backups once per UTC day, then prune.

    Safe to call any number of times per day: an existing snapshot for
    today is left alone, but the retention sweep still runs.

    Returns:
        True if today's snapshot exists afterwards, False on copy failure.
    """
    backup_dir = base_dir / BACKUP_DIR_NAME
    backup_path = backup_dir / backup_file_name(db_path)

    try:
        backup_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error("Cannot create backup directory %s: %s", backup_dir, e)
        return False

    if backup_path.exists():
        logger.info("Daily backup %s already exists. Skipping.", backup_path.name)
        prune_old_backups(backup_dir, db_path.stem, retention_days, db_path.suffix)
        return True

    try:
        # copyfile (not copy2) so the snapshot's mtime is the backup time
        shutil.copyfile(db_path, backup_path)
    except OSError as e:
        logger.error("Error creating automated backup %s: %s", backup_path.name, e)
        if backup_path.exists():
            try:
                backup_path.unlink()
            except OSError:
                logger.warning("Partial backup left behind: %s", backup_path.name)
        return False

    logger.info("Automated daily backup created: %s", backup_path.name)
    prune_old_backups(backup_dir, db_path.stem, retention_days, db_path.suffix)
    return True
