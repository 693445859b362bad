# tools/backup_db.py
"""
Front Desk Visitor Log - Database Maintenance Script

Features:
- Daily dated snapshot (database-YYYY-MM-DD.db), at most one per UTC day
- Retention sweep of snapshots older than BACKUP_RETENTION_DAYS
- Integrity check of the primary file (PRAGMA integrity_check)
- Manual restore from the latest snapshot (bounded attempts, corrupt file kept aside)

Usage:
    python tools/backup_db.py              # Today's snapshot + retention sweep
    python tools/backup_db.py --check      # Integrity check only
    python tools/backup_db.py --restore    # Recover a corrupt primary file
    python tools/backup_db.py --prune      # Only run the retention sweep

Stop the API before --restore: it owns the read/write connection.
Can be scheduled via Windows Task Scheduler or cron.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Add parent directory for frontdesk imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from frontdesk import (
    DB_FILE,
    BACKUP_RETENTION_DAYS,
    check_integrity,
    create_daily_backup,
    ensure_healthy_database,
    setup_logging,
    get_logger,
)
from frontdesk.config import BACKUP_DIR_NAME
from frontdesk.db_maintenance import prune_old_backups

logger = get_logger("tools.backup_db")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Front Desk Visitor Log - Database Maintenance")
    parser.add_argument("--db", type=Path, default=DB_FILE, help="Primary database file")
    parser.add_argument("--check", action="store_true", help="Integrity check only")
    parser.add_argument("--restore", action="store_true", help="Restore a corrupt file from the latest snapshot")
    parser.add_argument("--prune", action="store_true", help="Only run the retention sweep, no backup")
    parser.add_argument("--retention-days", type=int, default=BACKUP_RETENTION_DAYS)
    args = parser.parse_args(argv)

    setup_logging()

    db_path: Path = args.db
    base_dir = db_path.parent
    backup_dir = base_dir / BACKUP_DIR_NAME

    logger.info("=" * 50)
    logger.info("Front Desk Visitor Log - Database Maintenance (%s)", db_path)
    logger.info("=" * 50)

    if args.check:
        return 0 if check_integrity(db_path) else 1

    if args.restore:
        return 0 if ensure_healthy_database(db_path, backup_dir) else 1

    if args.prune:
        backup_dir.mkdir(parents=True, exist_ok=True)
        prune_old_backups(backup_dir, db_path.stem, args.retention_days, db_path.suffix)
        return 0

    if not db_path.exists():
        logger.warning("Skipping backup - file not found: %s", db_path)
        return 1

    ok = create_daily_backup(db_path, base_dir, retention_days=args.retention_days)
    logger.info("Backup %s", "successful" if ok else "FAILED")
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
