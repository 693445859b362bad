# frontdesk/compliance.py
"""
Front Desk Visitor Log - Data Retention Compliance Cleanup

Deletes visit data older than DATA_RETENTION_DAYS and writes exactly one
audit record per run, whatever happened.

Order matters and each step is its own auto-committed statement:
    1. dependents of old visits
    2. old visits (open or closed)
    3. visitor profiles left with no visits, unless banned

If a step fails, the later steps are skipped and whatever was already
deleted stays deleted. The audit record carries the partial counts.
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass

from .audit import AuditStatus, record_event
from .clock import to_iso, utc_now
from .config import DATA_RETENTION_DAYS
from .database import VisitorStore

logger = logging.getLogger(__name__)

EVENT_SUCCEEDED = "Compliance Cleanup Succeeded"
EVENT_FAILED = "Compliance Cleanup Failed"

DELETE_DEPENDENTS_SQL = """
    DELETE FROM dependents
    WHERE visit_id IN (
        SELECT id FROM visits WHERE entry_time < ?
    )
"""
DELETE_VISITS_SQL = "DELETE FROM visits WHERE entry_time < ?"
DELETE_PROFILES_SQL = """
    DELETE FROM visitors
    WHERE id NOT IN (SELECT visitor_id FROM visits)
    AND is_banned = 0
"""


@dataclass
class CleanupReport:
    """Outcome of one cleanup run (mirrors the audit record it wrote)."""
    cutoff: str
    status: AuditStatus = AuditStatus.OK
    event_name: str = EVENT_SUCCEEDED
    dependents_deleted: int = 0
    visits_deleted: int = 0
    profiles_deleted: int = 0
    error: str | None = None
    audit_id: int | None = None
    finished_at: str = ""

    @property
    def succeeded(self) -> bool:
        return self.status is AuditStatus.OK


def retention_cutoff(now: dt.datetime | None = None, days: int = DATA_RETENTION_DAYS) -> str:
    """ISO-8601 UTC timestamp; visits that entered before it are purged."""
    now = now or utc_now()
    return to_iso(now - dt.timedelta(days=days))


def run_compliance_cleanup(
    store: VisitorStore,
    now: dt.datetime | None = None,
    *,
    retention_days: int = DATA_RETENTION_DAYS,
) -> CleanupReport:
    """
    Run the retention cleanup against the live store.

    Never raises. Deletion failures end up as an ERROR audit record.
    A failed audit write is logged at CRITICAL level.

    Args:
        store: Open VisitorStore
        now: Wall-clock override (tests)
        retention_days: Age threshold in days

    Returns:
        CleanupReport with the counts and the audit status.
    """
    report = CleanupReport(cutoff=retention_cutoff(now, retention_days))

    logger.info("--- Starting Data Retention Compliance Cleanup Job (cutoff=%s) ---", report.cutoff)

    try:
        report.dependents_deleted = store.execute(DELETE_DEPENDENTS_SQL, [report.cutoff])
        logger.info("Cleanup: Deleted %d old dependent record(s).", report.dependents_deleted)

        report.visits_deleted = store.execute(DELETE_VISITS_SQL, [report.cutoff])
        logger.info("Cleanup: Deleted %d old visit record(s).", report.visits_deleted)

        report.profiles_deleted = store.execute(DELETE_PROFILES_SQL)
        logger.info("Cleanup: Deleted %d inactive visitor profile(s).", report.profiles_deleted)

    except Exception as e:
        report.status = AuditStatus.ERROR
        report.event_name = EVENT_FAILED
        report.error = str(e)
        logger.error("Cleanup Error: %s", e)

    logger.info("--- Data Retention Compliance Cleanup Job Complete ---")

    report.finished_at = to_iso(utc_now())
    try:
        report.audit_id = record_event(
            store,
            report.event_name,
            report.status,
            profiles_deleted=report.profiles_deleted,
            visits_deleted=report.visits_deleted,
            dependents_deleted=report.dependents_deleted,
            timestamp=report.finished_at,
        )
        logger.info("Audit Log written successfully: %s.", report.event_name)
    except Exception as e:
        logger.critical("FATAL: Could not write audit log: %s", e)

    return report
