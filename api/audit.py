# api/audit.py
"""
Front Desk Visitor Log - Audit Endpoints

Client-side crash reports are appended to audit_logs (always as ERROR,
zero deletion counts) and pushed to the status widget as last_error.
"""

from __future__ import annotations

import sqlite3
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import ORJSONResponse
from pydantic import BaseModel

from frontdesk.audit import AuditStatus, list_events, record_event
from frontdesk.clock import to_iso
from frontdesk.database import VisitorStore
from frontdesk.logging_config import get_logger
from frontdesk.status import StatusTracker
from frontdesk.validators import parse_iso_timestamp

from .deps import get_status, get_store

logger = get_logger(__name__)

router = APIRouter(prefix="/api/audit", tags=["Audit"])


class ClientErrorReport(BaseModel):
    event_name: str | None = None
    timestamp: str | None = None
    status: str | None = None
    client_message: str | None = None
    client_stack: str | None = None
    client_info: Any = None


@router.post("/log-error", status_code=201)
def log_client_error(
    report: ClientErrorReport,
    store: VisitorStore = Depends(get_store),
    status: StatusTracker = Depends(get_status),
):
    if not report.event_name or not report.timestamp or not report.status:
        logger.warning("Received incomplete client error log data.")
        raise HTTPException(status_code=400, detail="Missing required log fields.")

    try:
        timestamp = to_iso(parse_iso_timestamp(report.timestamp))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        audit_id = record_event(store, report.event_name, AuditStatus.ERROR, timestamp=timestamp)
    except sqlite3.Error as e:
        logger.error(
            "Failed to insert client error into audit_logs: %s | client_message=%s",
            e, report.client_message,
        )
        return ORJSONResponse(
            status_code=202,
            content={"message": "Log request accepted, but backend insertion failed."},
        )

    status.update("last_error", f"Client Crash: {report.event_name}")

    short_stack = "\n".join((report.client_stack or "No stack trace").splitlines()[:3])
    logger.info("[ID: %s] %s: %s\n%s", audit_id, report.event_name, report.client_message, short_stack)

    return {"message": "Client error logged successfully", "id": audit_id}


@router.get("/logs")
def audit_logs(
    limit: int = Query(default=100, ge=1, le=1000),
    store: VisitorStore = Depends(get_store),
):
    """Latest audit records, newest first."""
    return list_events(store, limit)
