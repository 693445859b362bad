# tools/run_cleanup.py
"""
Front Desk Visitor Log - Manual Compliance Cleanup

Runs the data retention cleanup once against the primary database and
prints the audit outcome. The API runs the same job at startup unless
CLEANUP_ON_STARTUP=0.

Usage:
    python tools/run_cleanup.py
    python tools/run_cleanup.py --db data/database.db
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Add parent directory for frontdesk imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from frontdesk import (
    DB_FILE,
    VisitorStore,
    check_integrity,
    run_compliance_cleanup,
    setup_logging,
    get_logger,
)

logger = get_logger("tools.run_cleanup")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Front Desk Visitor Log - Compliance Cleanup")
    parser.add_argument("--db", type=Path, default=DB_FILE, help="Primary database file")
    args = parser.parse_args(argv)

    setup_logging()

    if not check_integrity(args.db):
        logger.error("Refusing to clean %s: file is missing or corrupt", args.db)
        return 1

    with VisitorStore(args.db) as store:
        store.init_schema()
        report = run_compliance_cleanup(store)

    logger.info(
        "%s | dependents=%d visits=%d profiles=%d audit_id=%s",
        report.event_name,
        report.dependents_deleted,
        report.visits_deleted,
        report.profiles_deleted,
        report.audit_id,
    )
    return 0 if report.succeeded and report.audit_id is not None else 1


if __name__ == "__main__":
    sys.exit(main())
