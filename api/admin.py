# api/admin.py
"""
Front Desk Visitor Log - Admin Endpoints

Ban/unban, history access and per-visitor CSV export.
Unban and history authorization are password-gated with a per-client
lockout (frontdesk.auth.AdminGate).
"""

from __future__ import annotations

import pandas as pd
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from pydantic import BaseModel

from frontdesk import visitors as repo
from frontdesk.auth import AdminGate
from frontdesk.database import VisitorStore
from frontdesk.logging_config import get_logger

from .deps import check_password, get_history_gate, get_store, get_unban_gate, with_photo_urls

logger = get_logger(__name__)

router = APIRouter(tags=["Admin"])


class PasswordRequest(BaseModel):
    password: str | None = None


# ==========================================================
# Ban / Unban
# ==========================================================
@router.post("/ban-visitor/{visitor_id}")
def ban_visitor(visitor_id: int, store: VisitorStore = Depends(get_store)):
    repo.ban_visitor(store, visitor_id)
    return {"message": "Visitor has been banned and signed out."}


@router.post("/unban-visitor/{visitor_id}")
def unban_visitor(
    visitor_id: int,
    body: PasswordRequest,
    request: Request,
    store: VisitorStore = Depends(get_store),
    gate: AdminGate = Depends(get_unban_gate),
):
    check_password(gate, request, body.password)
    repo.unban_visitor(store, visitor_id)
    return {"message": "Visitor has been unbanned successfully."}


# ==========================================================
# History
# ==========================================================
@router.post("/authorize-history")
def authorize_history(
    body: PasswordRequest,
    request: Request,
    gate: AdminGate = Depends(get_history_gate),
):
    check_password(gate, request, body.password)
    return {"success": True, "message": "Authorization successful."}


@router.get("/history")
def history(
    request: Request,
    search: str | None = Query(default=None, description="First or last name substring"),
    start_date: str | None = Query(default=None, description="YYYY-MM-DD (inclusive)"),
    end_date: str | None = Query(default=None, description="YYYY-MM-DD (inclusive)"),
    store: VisitorStore = Depends(get_store),
):
    """All visits with their visitor and dependents, newest first."""
    try:
        rows = repo.visit_history(store, search=search, start_date=start_date, end_date=end_date)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return with_photo_urls(request, rows)


# ==========================================================
# Export
# ==========================================================
@router.get("/export-visitors")
def export_visitor(
    id: int | None = Query(default=None, description="Visitor ID"),
    store: VisitorStore = Depends(get_store),
):
    """One visitor's visits as a CSV attachment."""
    if id is None:
        raise HTTPException(status_code=400, detail="Visitor ID is required for export.")

    rows = repo.export_visitor_rows(store, id)
    csv_text = pd.DataFrame(rows).to_csv(index=False)
    logger.info("Exported %d visit row(s) for visitor %s", len(rows), id)

    return Response(
        content=csv_text,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="visitor_{id}_data.csv"'},
    )
