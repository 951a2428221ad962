from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Request, Depends
from itsdangerous import URLSafeSerializer, BadSignature
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from . import models, services
from .db import get_session
from .errors import LoginRequired, AdminRequired
from .settings import settings

logger = logging.getLogger(__name__)

COOKIE_NAME = "racekit_auth"

def _serializer() -> URLSafeSerializer:
    return URLSafeSerializer(settings.RACEKIT_SECRET_KEY, salt="racekit-auth")

@dataclass
class CurrentUser:
    id: str
    email: str
    role: Optional[str] = None  # None when the profile lookup failed

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

def set_login_cookie(request: Request, *, user_id: str, email: str) -> None:
    token = _serializer().dumps({"id": user_id, "e": email})
    request.state._set_auth_cookie = token

def clear_login_cookie(request: Request) -> None:
    request.state._clear_auth_cookie = True

def _read_cookie(request: Request) -> Optional[dict]:
    raw = request.cookies.get(COOKIE_NAME)
    if not raw:
        return None
    try:
        data = _serializer().loads(raw)
        return {"id": str(data["id"]), "email": str(data.get("e") or "")}
    except (BadSignature, KeyError, TypeError):
        return None

def get_current_user(request: Request, session: Session = Depends(get_session)) -> Optional[CurrentUser]:
    """Identity from the auth cookie, with its role looked up from the profile."""
    identity = _read_cookie(request)
    if identity is None:
        return None

    role = None
    try:
        if session.get(models.User, identity["id"]) is None:
            clear_login_cookie(request)
            return None
        if services.is_deactivated(session, identity["id"]):
            clear_login_cookie(request)
            return None
        role = services.get_role(session, identity["id"])
    except SQLAlchemyError as exc:
        # unknown role, treated as non-admin
        session.rollback()
        logger.error("Error fetching user role for %s: %s", identity["id"], exc)

    return CurrentUser(id=identity["id"], email=identity["email"], role=role)

def login_required(user: Optional[CurrentUser] = Depends(get_current_user)) -> CurrentUser:
    if not user:
        raise LoginRequired()
    return user

def admin_required(user: CurrentUser = Depends(login_required)) -> CurrentUser:
    if not user.is_admin:
        raise AdminRequired()
    return user


class AuthCookieMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response: Response = await call_next(request)

        token = getattr(request.state, "_set_auth_cookie", None)
        if token:
            response.set_cookie(
                COOKIE_NAME,
                token,
                httponly=True,
                samesite="lax",
                secure=False,  # set True behind HTTPS
                max_age=settings.SESSION_MAX_AGE_SECONDS,
            )
        if getattr(request.state, "_clear_auth_cookie", False):
            response.delete_cookie(COOKIE_NAME)
        return response
