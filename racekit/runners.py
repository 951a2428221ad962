from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Form, Request, UploadFile, File
from fastapi.responses import HTMLResponse, RedirectResponse
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import services
from .auth import login_required, CurrentUser
from .db import get_session
from .filters import filter_runners
from .schemas import RunnerCreate, validation_message
from .templating import templates

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/runners")


def _render(
    request: Request,
    session: Session,
    user: CurrentUser,
    *,
    q: str = "",
    msg: Optional[str] = None,
    error: Optional[str] = None,
    status_code: int = 200,
):
    runners = []
    try:
        runners = services.list_runners(session)
    except SQLAlchemyError as e:
        session.rollback()
        logger.error("Error fetching runners: %s", e)
        error = error or f"Error fetching runners: {e}"
    return templates.TemplateResponse(
        request,
        "runners.html",
        {
            "user": user,
            "q": q,
            "runners": filter_runners(runners, q),
            "total": len(runners),
            "msg": msg,
            "error": error,
        },
        status_code=status_code,
    )


@router.get("", response_class=HTMLResponse)
def runners_page(
    request: Request,
    q: str = "",
    kits_created: Optional[int] = None,
    added: Optional[int] = None,
    skipped: Optional[int] = None,
    bib: Optional[str] = None,
    user: CurrentUser = Depends(login_required),
    session: Session = Depends(get_session),
):
    msg = None
    if kits_created is not None:
        msg = f"Successfully created {kits_created} race kits!"
    elif added is not None:
        msg = f"Imported {added} runners. Skipped {skipped or 0} rows."
    elif bib:
        msg = f"Runner with bib {bib} registered."
    return _render(request, session, user, q=q, msg=msg)


@router.post("/generate-kits")
def generate_kits_submit(
    request: Request,
    user: CurrentUser = Depends(login_required),
    session: Session = Depends(get_session),
):
    try:
        created = services.generate_kits(session)
    except SQLAlchemyError as e:
        return _render(request, session, user, error=f"Error creating race kits: {e}", status_code=400)
    except Exception:
        session.rollback()
        logger.exception("Unexpected error while creating race kits")
        return _render(request, session, user, error="An error occurred while creating race kits", status_code=500)
    return RedirectResponse(url=f"/runners?kits_created={created}", status_code=302)


@router.post("/new")
def new_runner_submit(
    request: Request,
    bib_number: str = Form(""),
    full_name: str = Form(""),
    participant_id: str = Form(""),
    email: str = Form(""),
    phone: str = Form(""),
    category: str = Form(""),
    race_distance: str = Form(""),
    user: CurrentUser = Depends(login_required),
    session: Session = Depends(get_session),
):
    try:
        payload = RunnerCreate(
            bib_number=bib_number,
            full_name=full_name,
            participant_id=participant_id,
            email=email,
            phone=phone,
            category=category,
            race_distance=race_distance,
        )
    except ValidationError as e:
        return _render(request, session, user, error=validation_message(e), status_code=400)
    try:
        runner = services.create_runner(session, payload)
    except SQLAlchemyError as e:
        session.rollback()
        return _render(request, session, user, error=f"Error registering runner: {e}", status_code=400)
    return RedirectResponse(url=f"/runners?bib={quote(runner.bib_number)}", status_code=302)


@router.post("/upload", response_class=HTMLResponse)
async def upload_runners_submit(
    request: Request,
    file: UploadFile = File(...),
    user: CurrentUser = Depends(login_required),
    session: Session = Depends(get_session),
):
    try:
        content = (await file.read()).decode("utf-8-sig")
        added, skipped = services.import_runners_csv(session, content)
    except UnicodeDecodeError:
        return _render(request, session, user, error="The uploaded file is not UTF-8 CSV", status_code=400)
    except SQLAlchemyError as e:
        session.rollback()
        return _render(request, session, user, error=f"Error importing runners: {e}", status_code=400)
    except Exception:
        session.rollback()
        logger.exception("Unexpected error while importing runners from %s", file.filename)
        return _render(request, session, user, error="An error occurred while importing runners", status_code=500)
    return RedirectResponse(url=f"/runners?added={added}&skipped={skipped}", status_code=302)
