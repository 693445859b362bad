# frontdesk/audit.py
"""
Front Desk Visitor Log - Audit Log

Append-only audit_logs table. Rows are written by the compliance cleanup
job (one per run) and by client-side error reports. Nothing here updates
or deletes a row.
"""

from __future__ import annotations

import logging
from enum import Enum

from .clock import utc_now_iso
from .database import VisitorStore

logger = logging.getLogger(__name__)


class AuditStatus(str, Enum):
    OK = "OK"
    ERROR = "ERROR"


_INSERT_SQL = """
    INSERT INTO audit_logs (
        event_name, timestamp, status,
        profiles_deleted, visits_deleted, dependents_deleted
    ) VALUES (?, ?, ?, ?, ?, ?)
"""


def record_event(
    store: VisitorStore,
    event_name: str,
    status: AuditStatus,
    *,
    profiles_deleted: int = 0,
    visits_deleted: int = 0,
    dependents_deleted: int = 0,
    timestamp: str | None = None,
) -> int:
    """
    Append one audit record and return its id.

    Raises:
        sqlite3.Error: if the insert fails. Callers decide how loudly to
            report it.
    """
    return store.insert(
        _INSERT_SQL,
        [
            event_name,
            timestamp or utc_now_iso(),
            AuditStatus(status).value,
            profiles_deleted,
            visits_deleted,
            dependents_deleted,
        ],
    )


def list_events(store: VisitorStore, limit: int = 100) -> list[dict]:
    """Latest audit records, newest first."""
    return store.query(
        "SELECT id, event_name, timestamp, status, profiles_deleted, "
        "visits_deleted, dependents_deleted "
        "FROM audit_logs ORDER BY id DESC LIMIT ?",
        [int(limit)],
    )
