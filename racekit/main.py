from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, Depends, Form
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .settings import settings
from .logging_config import setup_logging
from .db import init_db, get_session, session_scope
from . import services
from .auth import (
    AuthCookieMiddleware,
    CurrentUser,
    get_current_user,
    login_required,
    set_login_cookie,
    clear_login_cookie,
)
from .errors import LoginRequired, AdminRequired
from .schemas import SignUp, PasswordUpdate, validation_message
from .templating import templates, BASE_DIR
from .runners import router as runners_router
from .collector import router as collector_router
from .admin import router as admin_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(debug=settings.RACEKIT_DEBUG, log_file=settings.RACEKIT_LOG_FILE)
    logger.info("Starting race kit console")
    if settings.RACEKIT_SECRET_KEY == "dev-secret-change-me":
        logger.warning("RACEKIT_SECRET_KEY is not set; using the development default")
    init_db()
    # Ensure the bootstrap admin account exists
    with session_scope() as s:
        try:
            services.ensure_admin_user(s)
        except SQLAlchemyError as e:
            # an unmigrated profiles table; the admin page shows the setup SQL
            s.rollback()
            logger.error("Could not ensure bootstrap admin: %s", e)
    yield
    logger.info("Stopping race kit console")


app = FastAPI(title="Race Kit Console", lifespan=lifespan)
app.add_middleware(AuthCookieMiddleware)
app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")

app.include_router(runners_router)
app.include_router(collector_router)
app.include_router(admin_router)


@app.exception_handler(LoginRequired)
async def _login_required(request: Request, exc: LoginRequired):
    return RedirectResponse(url="/", status_code=302)

@app.exception_handler(AdminRequired)
async def _admin_required(request: Request, exc: AdminRequired):
    # non-admins are sent back to the dashboard without a message
    return RedirectResponse(url="/dashboard", status_code=302)


@app.get("/health")
def health():
    return {"status": "ok"}

# ---------------------------
# Auth
# ---------------------------

def _landing(request: Request, *, error: Optional[str] = None, signup_error: Optional[str] = None, status_code: int = 200):
    return templates.TemplateResponse(
        request,
        "landing.html",
        {"error": error, "signup_error": signup_error},
        status_code=status_code,
    )

@app.get("/", response_class=HTMLResponse)
def landing(request: Request, user=Depends(get_current_user)):
    if user:
        return RedirectResponse(url="/dashboard", status_code=302)
    return _landing(request)

@app.post("/login")
def login_submit(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    session: Session = Depends(get_session),
):
    try:
        u = services.authenticate_user(session, email=email, password=password)
    except ValueError as e:
        return _landing(request, error=str(e), status_code=403)
    if not u:
        return _landing(request, error="Invalid email or password.", status_code=401)
    set_login_cookie(request, user_id=u.id, email=u.email)
    logger.info("User %s signed in", u.email)
    return RedirectResponse(url="/dashboard", status_code=302)

@app.post("/signup")
def signup_submit(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    full_name: str = Form(""),
    session: Session = Depends(get_session),
):
    try:
        payload = SignUp(email=email, password=password, full_name=full_name)
    except ValidationError as e:
        return _landing(request, signup_error=validation_message(e), status_code=400)
    try:
        u = services.register_user(session, payload)
    except ValueError as e:
        return _landing(request, signup_error=str(e), status_code=400)
    except SQLAlchemyError as e:
        session.rollback()
        return _landing(request, signup_error=f"Error creating account: {e}", status_code=400)
    set_login_cookie(request, user_id=u.id, email=u.email)
    return RedirectResponse(url="/dashboard", status_code=302)

@app.post("/logout")
def logout(request: Request):
    clear_login_cookie(request)
    return RedirectResponse(url="/", status_code=302)

# ---------------------------
# Pages
# ---------------------------

@app.get("/dashboard", response_class=HTMLResponse)
def dashboard(request: Request, user: CurrentUser = Depends(login_required), session: Session = Depends(get_session)):
    try:
        stats = services.get_dashboard_stats(session)
    except SQLAlchemyError as e:
        session.rollback()
        logger.error("Error fetching stats: %s", e)
        stats = services.DashboardStats(total_runners=0, pending_kits=0, collected_kits=0)
    return templates.TemplateResponse(request, "dashboard.html", {"user": user, "stats": stats})

@app.get("/reset-password", response_class=HTMLResponse)
def reset_password_form(request: Request, user=Depends(get_current_user)):
    if not user:
        return templates.TemplateResponse(request, "reset_invalid.html", {}, status_code=401)
    return templates.TemplateResponse(request, "reset_password.html", {"error": None})

@app.post("/reset-password", response_class=HTMLResponse)
def reset_password_submit(
    request: Request,
    password: str = Form(""),
    confirm_password: str = Form(""),
    user=Depends(get_current_user),
    session: Session = Depends(get_session),
):
    if not user:
        return templates.TemplateResponse(request, "reset_invalid.html", {}, status_code=401)
    try:
        payload = PasswordUpdate(password=password, confirm_password=confirm_password)
    except ValidationError as e:
        return templates.TemplateResponse(
            request, "reset_password.html", {"error": validation_message(e)}, status_code=400
        )
    try:
        services.update_password(session, user.id, payload.password)
    except (ValueError, SQLAlchemyError) as e:
        session.rollback()
        return templates.TemplateResponse(request, "reset_password.html", {"error": str(e)}, status_code=400)
    except Exception:
        session.rollback()
        logger.exception("Unexpected error while updating password")
        return templates.TemplateResponse(
            request,
            "reset_password.html",
            {"error": "An unexpected error occurred. Please try again."},
            status_code=500,
        )
    logger.info("Password updated for %s", user.email)
    return templates.TemplateResponse(
        request,
        "password_updated.html",
        {"redirect_seconds": settings.RESET_REDIRECT_SECONDS},
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("racekit.main:app", host="127.0.0.1", port=8000, reload=settings.RACEKIT_DEBUG)
