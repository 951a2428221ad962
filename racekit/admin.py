from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import models, services
from .auth import admin_required, CurrentUser
from .db import get_session
from .errors import SetupRequiredError
from .filters import filter_profiles
from .schemas import ProfileFilter
from .templating import templates

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin")

# action -> title, button label, confirmation text, past tense
ACTIONS = {
    "deactivate": (
        "Deactivate User",
        "Deactivate",
        "Are you sure you want to deactivate {target}? They will no longer be able to access the system.",
        "deactivated",
    ),
    "activate": (
        "Activate User",
        "Activate",
        "Are you sure you want to reactivate {target}? They will regain access to the system.",
        "activated",
    ),
    "delete": (
        "Delete User",
        "Delete",
        "Are you sure you want to permanently delete {target}? This action cannot be undone.",
        "deleted",
    ),
}

_GERUND = {"deactivate": "deactivating", "activate": "activating", "delete": "deleting"}


def display_name(profile: models.Profile) -> str:
    return profile.email or f"User {profile.user_id[:8]}..."

templates.env.globals["profile_display_name"] = display_name


def _load(session: Session, profile_id: str, action: str) -> models.Profile:
    if action not in ACTIONS:
        raise HTTPException(status_code=404, detail="Unknown action")
    profile = services.get_profile_by_id(session, profile_id)
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile


def _render_confirm(request: Request, profile: models.Profile, action: str, error: Optional[str] = None, status_code: int = 200):
    title, button, text, _ = ACTIONS[action]
    return templates.TemplateResponse(
        request,
        "admin_confirm.html",
        {
            "profile": profile,
            "action": action,
            "title": title,
            "button": button,
            "description": text.format(target=display_name(profile)),
            "error": error,
        },
        status_code=status_code,
    )


@router.get("")
def admin_home(user: CurrentUser = Depends(admin_required)):
    return RedirectResponse(url="/admin/users", status_code=302)


@router.get("/users", response_class=HTMLResponse)
def users_page(
    request: Request,
    q: str = "",
    status: str = "all",
    role: str = "all",
    done: Optional[str] = None,
    user: CurrentUser = Depends(admin_required),
    session: Session = Depends(get_session),
):
    flt = ProfileFilter.from_query(q=q, status=status, role=role)
    profiles = []
    error = None
    try:
        profiles = services.list_profiles(session)
    except SetupRequiredError as e:
        return templates.TemplateResponse(
            request,
            "setup_required.html",
            {"detail": e.detail, "migration_sql": e.migration_sql},
            status_code=503,
        )
    except SQLAlchemyError as e:
        session.rollback()
        logger.error("Fetch error: %s", e)
        error = f"Error fetching users: {e}"
    except Exception:
        session.rollback()
        logger.exception("Unexpected error while fetching users")
        error = "An unexpected error occurred while fetching users"

    msg = None
    if done in ("deactivated", "activated", "deleted"):
        msg = f"User successfully {done}!"

    filtering = bool(flt.q) or flt.status != "all" or flt.role != "all"
    return templates.TemplateResponse(
        request,
        "admin_users.html",
        {
            "user": user,
            "filter": flt,
            "filtering": filtering,
            "profiles": filter_profiles(profiles, flt),
            "stats": services.profile_stats(profiles),
            "msg": msg,
            "error": error,
        },
    )


@router.get("/users/{profile_id}/{action}", response_class=HTMLResponse)
def confirm_action_form(
    profile_id: str,
    action: str,
    request: Request,
    user: CurrentUser = Depends(admin_required),
    session: Session = Depends(get_session),
):
    profile = _load(session, profile_id, action)
    return _render_confirm(request, profile, action)


@router.post("/users/{profile_id}/{action}", response_class=HTMLResponse)
def confirm_action_submit(
    profile_id: str,
    action: str,
    request: Request,
    user: CurrentUser = Depends(admin_required),
    session: Session = Depends(get_session),
):
    profile = _load(session, profile_id, action)
    try:
        if action == "deactivate":
            services.set_profile_status(session, profile.id, "inactive")
        elif action == "activate":
            services.set_profile_status(session, profile.id, "active")
        else:
            services.delete_profile(session, profile.id)
    except (ValueError, SQLAlchemyError) as e:
        return _render_confirm(request, profile, action, error=f"Error {_GERUND[action]} user: {e}", status_code=400)
    except Exception:
        session.rollback()
        logger.exception("Unexpected error during %s of profile %s", action, profile_id)
        return _render_confirm(request, profile, action, error="An error occurred while processing the request", status_code=500)

    return RedirectResponse(url=f"/admin/users?done={ACTIONS[action][3]}", status_code=302)
