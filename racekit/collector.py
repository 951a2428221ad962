from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import models, services
from .auth import login_required, CurrentUser
from .db import get_session
from .filters import filter_kits
from .schemas import CollectionCreate, RepresentativeDetails, validation_message
from .templating import templates

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/collector")

ID_TYPE_LABELS = {
    "ic": "IC (Identity Card)",
    "passport": "Passport",
    "driving_license": "Driving License",
}

SUCCESS_MESSAGES = {
    "self": "Kit collected successfully!",
    "representative": "Kit collected by representative successfully!",
}


def _empty_form() -> dict:
    return {
        "collection_type": "self",
        "rep_full_name": "",
        "rep_id_number": "",
        "rep_id_type": "ic",
        "rep_phone": "",
        "rep_relationship": "",
        "notes": "",
    }


def _render_dialog(request: Request, kit: models.RaceKit, form: dict, error: Optional[str] = None, status_code: int = 200):
    return templates.TemplateResponse(
        request,
        "collect_kit.html",
        {"kit": kit, "form": form, "error": error, "id_types": ID_TYPE_LABELS},
        status_code=status_code,
    )


def _load_kit(session: Session, kit_id: str) -> models.RaceKit:
    kit = services.get_kit(session, kit_id)
    if not kit:
        raise HTTPException(status_code=404, detail="Race kit not found")
    return kit


@router.get("", response_class=HTMLResponse)
def collector_page(
    request: Request,
    q: str = "",
    collected: Optional[str] = None,
    by: Optional[str] = None,
    user: CurrentUser = Depends(login_required),
    session: Session = Depends(get_session),
):
    kits = []
    error = None
    try:
        kits = services.list_kits(session)
    except SQLAlchemyError as e:
        session.rollback()
        logger.error("Error fetching race kits: %s", e)
        error = f"Error fetching race kits: {e}"

    msg = None
    if collected:
        msg = f"{SUCCESS_MESSAGES.get(by or 'self', SUCCESS_MESSAGES['self'])} (Kit #{collected})"

    return templates.TemplateResponse(
        request,
        "collector.html",
        {"user": user, "q": q, "kits": filter_kits(kits, q), "total": len(kits), "msg": msg, "error": error},
    )


@router.get("/kits/{kit_id}/collect", response_class=HTMLResponse)
def collect_kit_form(
    kit_id: str,
    request: Request,
    user: CurrentUser = Depends(login_required),
    session: Session = Depends(get_session),
):
    kit = _load_kit(session, kit_id)
    if kit.status == "collected":
        return RedirectResponse(url="/collector", status_code=302)
    return _render_dialog(request, kit, _empty_form())


@router.post("/kits/{kit_id}/collect", response_class=HTMLResponse)
def collect_kit_submit(
    kit_id: str,
    request: Request,
    collection_type: str = Form("self"),
    rep_full_name: str = Form(""),
    rep_id_number: str = Form(""),
    rep_id_type: str = Form("ic"),
    rep_phone: str = Form(""),
    rep_relationship: str = Form(""),
    notes: str = Form(""),
    user: CurrentUser = Depends(login_required),
    session: Session = Depends(get_session),
):
    kit = _load_kit(session, kit_id)
    form = {
        "collection_type": collection_type,
        "rep_full_name": rep_full_name,
        "rep_id_number": rep_id_number,
        "rep_id_type": rep_id_type,
        "rep_phone": rep_phone,
        "rep_relationship": rep_relationship,
        "notes": notes,
    }

    # validation happens before anything touches the database
    try:
        payload = CollectionCreate(
            collection_type=collection_type,
            representative=RepresentativeDetails(
                full_name=rep_full_name,
                id_number=rep_id_number,
                id_type=rep_id_type,
                phone=rep_phone,
                relationship=rep_relationship,
            ) if collection_type == "representative" else RepresentativeDetails(),
            notes=notes,
        )
    except ValidationError as e:
        return _render_dialog(request, kit, form, error=validation_message(e), status_code=400)

    try:
        services.collect_kit(session, kit.id, user.id, payload)
    except ValueError as e:
        return _render_dialog(request, kit, form, error=str(e), status_code=400)
    except SQLAlchemyError as e:
        return _render_dialog(request, kit, form, error=f"Error recording collection: {e}", status_code=400)
    except Exception:
        session.rollback()
        logger.exception("Unexpected error while collecting kit %s", kit_id)
        return _render_dialog(request, kit, form, error="An error occurred while collecting the kit", status_code=500)

    return RedirectResponse(
        url=f"/collector?collected={quote(kit.kit_number)}&by={payload.collection_type}",
        status_code=302,
    )
