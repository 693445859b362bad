# api/deps.py
"""
Front Desk Visitor Log - Request Dependencies

Per-application objects live on app.state (see api.main.create_app);
these helpers hand them to route functions.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from frontdesk.auth import AdminGate
from frontdesk.database import VisitorStore
from frontdesk.status import StatusTracker


def get_store(request: Request) -> VisitorStore:
    store = getattr(request.app.state, "store", None)
    if store is None or not store.is_open:
        raise HTTPException(status_code=503, detail="Database is not available.")
    return store


def get_status(request: Request) -> StatusTracker:
    return request.app.state.status


def get_unban_gate(request: Request) -> AdminGate:
    return request.app.state.unban_gate


def get_history_gate(request: Request) -> AdminGate:
    return request.app.state.history_gate


def client_address(request: Request) -> str:
    """Caller address used as the lockout key."""
    return request.client.host if request.client else "unknown"


def photo_url(request: Request, photo_path: str | None) -> str | None:
    """Absolute URL for a stored photo path (uploads/photo-<ms>.<ext>)."""
    if not photo_path:
        return None
    return f"{str(request.base_url).rstrip('/')}/{photo_path}"


def with_photo_urls(request: Request, rows: list[dict]) -> list[dict]:
    for row in rows:
        row["photo"] = photo_url(request, row.get("photo_path"))
    return rows


def check_password(gate: AdminGate, request: Request, password: str | None) -> None:
    """
    Raise 429 while the caller is locked out, 403 on a wrong password.
    """
    client = client_address(request)
    if gate.is_locked(client):
        raise HTTPException(
            status_code=429,
            detail="Too many incorrect password attempts. Try again later.",
            headers={"Retry-After": str(gate.retry_after(client))},
        )
    if not gate.verify(client, password):
        raise HTTPException(status_code=403, detail="Incorrect password.")
