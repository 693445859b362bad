# api/visitors.py
"""
Front Desk Visitor Log - Visitor Endpoints

Registration, sign-in/sign-out and search for the front-desk screen.
Repository errors (VisitorNotFoundError / VisitorBannedError) are mapped
to 404 / 403 by the handlers installed in api.main.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Any

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile
from pydantic import BaseModel

from frontdesk import visitors as repo
from frontdesk.config import ALLOWED_PHOTO_TYPES, MAX_PHOTO_BYTES, UPLOADS_DIR_NAME
from frontdesk.database import VisitorStore
from frontdesk.logging_config import get_logger
from frontdesk.validators import parse_iso_timestamp

from .deps import get_store, photo_url, with_photo_urls

logger = get_logger(__name__)

router = APIRouter(tags=["Visitors"])


# ==========================================================
# Models
# ==========================================================
class LoginRequest(BaseModel):
    id: int | None = None


class UpdateVisitorRequest(BaseModel):
    id: int | None = None
    known_as: str | None = None
    address: str | None = None
    phone_number: str | None = None
    unit: str | None = None
    reason_for_visit: str | None = None
    type: str | None = None
    company_name: str | None = None
    mandatory_acknowledgment_taken: bool = False
    additional_dependents: Any = None


class MissedVisitRequest(BaseModel):
    visitorId: int | None = None
    pastEntryTime: str | None = None


# ==========================================================
# Photo Upload
# ==========================================================
def _save_photo(photo: UploadFile | None, uploads_dir: Path) -> str | None:
    """
    Store an uploaded photo as uploads/photo-<ms>.<ext>.

    Returns:
        The stored relative path, or None when no photo was sent.
    """
    if photo is None or not photo.filename:
        return None

    ext = ALLOWED_PHOTO_TYPES.get(photo.content_type or "")
    if ext is None:
        raise HTTPException(status_code=400, detail="Only JPEG, PNG or GIF images are allowed.")

    data = photo.file.read(MAX_PHOTO_BYTES + 1)
    if len(data) > MAX_PHOTO_BYTES:
        raise HTTPException(status_code=413, detail="Photo exceeds the 5 MB limit.")

    uploads_dir.mkdir(parents=True, exist_ok=True)
    name = f"photo-{int(time.time() * 1000)}{ext}"
    (uploads_dir / name).write_bytes(data)
    return f"{UPLOADS_DIR_NAME}/{name}"


# ==========================================================
# Routes
# ==========================================================
@router.post("/register-visitor", status_code=201)
def register_visitor(
    request: Request,
    first_name: str | None = Form(default=None),
    last_name: str | None = Form(default=None),
    known_as: str | None = Form(default=None),
    address: str | None = Form(default=None),
    phone_number: str | None = Form(default=None),
    unit: str | None = Form(default=None),
    reason_for_visit: str | None = Form(default=None),
    type: str | None = Form(default=None),
    company_name: str | None = Form(default=None),
    mandatory_acknowledgment_taken: bool = Form(default=False),
    additional_dependents: str | None = Form(default=None),
    photo: UploadFile | None = File(default=None),
    store: VisitorStore = Depends(get_store),
):
    """Register a new visitor and sign them in."""
    try:
        dependents = repo.parse_dependents(additional_dependents)
        details = repo.VisitDetails(
            unit=unit,
            type=type,
            phone_number=phone_number,
            reason_for_visit=reason_for_visit,
            company_name=company_name,
            known_as=known_as,
            address=address,
            mandatory_acknowledgment_taken=mandatory_acknowledgment_taken,
        ).validated()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    uploads_dir: Path = request.app.state.uploads_dir
    photo_path = _save_photo(photo, uploads_dir)

    try:
        visitor_id = repo.register_visitor(
            store, first_name, last_name, details, dependents, photo_path=photo_path
        )
    except ValueError as e:
        _discard_photo(uploads_dir, photo_path)
        raise HTTPException(status_code=400, detail=str(e))
    except Exception:
        _discard_photo(uploads_dir, photo_path)
        raise

    return {"message": "Visitor registered successfully!", "id": visitor_id}


def _discard_photo(uploads_dir: Path, photo_path: str | None) -> None:
    if photo_path:
        (uploads_dir / Path(photo_path).name).unlink(missing_ok=True)


@router.get("/visitors")
def list_visitors(request: Request, store: VisitorStore = Depends(get_store)):
    """Visitors currently signed in."""
    return with_photo_urls(request, repo.list_active_visitors(store))


@router.get("/visitor-search")
def visitor_search(
    request: Request,
    name: str | None = Query(default=None, description="Space-separated name terms"),
    store: VisitorStore = Depends(get_store),
):
    if not name or not name.strip():
        raise HTTPException(status_code=400, detail="Search term 'name' is required.")
    return with_photo_urls(request, repo.search_visitors(store, name))


@router.post("/login")
def login(body: LoginRequest, request: Request, store: VisitorStore = Depends(get_store)):
    """Sign a returning visitor in with their previous visit details."""
    if body.id is None:
        raise HTTPException(status_code=400, detail="Visitor ID is required.")

    visitor = repo.sign_in_returning_visitor(store, body.id)
    visitor["photo"] = photo_url(request, visitor.get("photo_path"))
    return {"message": "Visitor logged in successfully!", "visitorData": visitor}


@router.post("/update-visitor-details", status_code=201)
def update_visitor_details(body: UpdateVisitorRequest, store: VisitorStore = Depends(get_store)):
    """Sign a returning visitor in with new details and dependents."""
    if body.id is None:
        raise HTTPException(status_code=400, detail="Visitor ID is required for re-registration.")

    try:
        dependents = repo.parse_dependents(body.additional_dependents)
        details = repo.VisitDetails(
            unit=body.unit,
            type=body.type,
            phone_number=body.phone_number,
            reason_for_visit=body.reason_for_visit,
            company_name=body.company_name,
            known_as=body.known_as,
            address=body.address,
            mandatory_acknowledgment_taken=body.mandatory_acknowledgment_taken,
        )
        visit_id = repo.update_visitor_details(store, body.id, details, dependents)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {"message": "Visitor Updated Successfully & signed in!", "id": visit_id}


@router.post("/exit-visitor/{visitor_id}")
def exit_visitor(visitor_id: int, store: VisitorStore = Depends(get_store)):
    full_name = repo.sign_out_visitor(store, visitor_id)
    return {"message": f"{full_name} has been successfully signed out."}


@router.post("/record-missed-visit")
def record_missed_visit(body: MissedVisitRequest, store: VisitorStore = Depends(get_store)):
    """Record a visit that was never signed in: entry in the past, exit now."""
    if body.visitorId is None or not body.pastEntryTime:
        raise HTTPException(status_code=400, detail="Missing visitor ID or required entry time.")

    try:
        entry = parse_iso_timestamp(body.pastEntryTime, "pastEntryTime")
        entry_time, exit_time = repo.record_missed_visit(store, body.visitorId, entry)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "message": "Visitor entry time corrected and signed out.",
        "entry": entry_time,
        "exit": exit_time,
    }
