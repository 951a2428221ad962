from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from io import StringIO
from math import floor
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from . import models
from .errors import SetupRequiredError
from .security import hash_password, verify_password
from .settings import settings
from .schemas import SignUp, RunnerCreate, CollectionCreate

logger = logging.getLogger(__name__)

# ---------------------------
# Identities / profiles
# ---------------------------

def ensure_admin_user(session: Session) -> None:
    """Ensure the bootstrap admin identity (from settings) exists with an admin profile."""
    email = settings.RACEKIT_ADMIN_EMAIL.strip().lower()
    user = session.execute(select(models.User).where(models.User.email == email)).scalar_one_or_none()

    if user is None:
        user = models.User(email=email, password_hash=hash_password(settings.RACEKIT_ADMIN_PASSWORD))
        session.add(user)
        session.flush()
        logger.info("Created bootstrap admin %s", email)

    profile = get_profile(session, user.id)
    if profile is None:
        session.add(models.Profile(user_id=user.id, full_name="Administrator", role="admin", status="active"))
    else:
        if profile.role != "admin":
            profile.role = "admin"
        if profile.effective_status != "active":
            profile.status = "active"
    session.commit()

def get_profile(session: Session, user_id: str) -> Optional[models.Profile]:
    return session.execute(
        select(models.Profile).where(models.Profile.user_id == user_id)
    ).scalar_one_or_none()

def authenticate_user(session: Session, email: str, password: str) -> Optional[models.User]:
    email = (email or "").strip().lower()
    user = session.execute(select(models.User).where(models.User.email == email)).scalar_one_or_none()
    if not user or not verify_password(password, user.password_hash):
        return None
    if is_deactivated(session, user.id):
        raise ValueError("This account has been deactivated")
    return user

def get_role(session: Session, user_id: str) -> Optional[str]:
    # role column only, so it still resolves on a profiles table without status
    return session.execute(
        select(models.Profile.role).where(models.Profile.user_id == user_id)
    ).scalar_one_or_none()

def is_deactivated(session: Session, user_id: str) -> bool:
    """True only for an explicit ``inactive`` status. A missing status column reads as active."""
    try:
        status = session.execute(
            select(models.Profile.status).where(models.Profile.user_id == user_id)
        ).scalar_one_or_none()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.warning("Could not read profile status for %s: %s", user_id, exc)
        return False
    return status == "inactive"

def register_user(session: Session, payload: SignUp) -> models.User:
    if session.execute(select(models.User).where(models.User.email == payload.email)).scalar_one_or_none():
        raise ValueError("User already registered")
    user = models.User(email=payload.email, password_hash=hash_password(payload.password))
    session.add(user)
    session.flush()
    session.add(models.Profile(user_id=user.id, full_name=payload.full_name, role="user", status="active"))
    session.commit()
    logger.info("Registered user %s", user.email)
    return user

def update_password(session: Session, user_id: str, password: str) -> None:
    user = session.get(models.User, user_id)
    if not user:
        raise ValueError("User not found")
    user.password_hash = hash_password(password)
    session.commit()

# ---------------------------
# Runners
# ---------------------------

def list_runners(session: Session) -> list[models.Runner]:
    return session.execute(
        select(models.Runner).order_by(models.Runner.registration_date.desc())
    ).scalars().all()

def create_runner(session: Session, payload: RunnerCreate) -> models.Runner:
    runner = models.Runner(**payload.model_dump())
    session.add(runner)
    session.commit()
    return runner

def import_runners_csv(session: Session, csv_text: str) -> tuple[int, int]:
    """Import runners from CSV text. Returns (added, skipped)."""
    reader = csv.DictReader(StringIO(csv_text))
    added = 0
    skipped = 0

    known_bibs = set(session.execute(select(models.Runner.bib_number)).scalars().all())

    for row in reader:
        # surplus fields (e.g. a trailing comma) land under the None key as a list
        row = {
            k.strip().lower(): (v if isinstance(v, str) else "").strip()
            for k, v in row.items()
            if k is not None
        }
        bib = row.get("bib_number") or row.get("bib") or ""
        full_name = row.get("full_name") or row.get("name") or ""
        if not bib or not full_name or bib in known_bibs:
            skipped += 1
            continue

        session.add(models.Runner(
            bib_number=bib,
            full_name=full_name,
            participant_id=row.get("participant_id") or None,
            email=row.get("email") or None,
            phone=row.get("phone") or None,
            category=row.get("category") or None,
            race_distance=row.get("race_distance") or row.get("distance") or None,
        ))
        known_bibs.add(bib)
        added += 1

    session.commit()
    logger.info("Runner import: %d added, %d skipped", added, skipped)
    return added, skipped

def generate_kits(session: Session) -> int:
    """One pending kit per runner, inserted as a single batch."""
    runners = list_runners(session)
    kits = [
        models.RaceKit(kit_number=r.bib_number, runner_id=r.id, status="pending", contents=[])
        for r in runners
    ]
    try:
        session.add_all(kits)
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Kit generation failed for %d runners", len(kits))
        raise
    logger.info("Generated %d race kits", len(kits))
    return len(kits)

# ---------------------------
# Kits / collections
# ---------------------------

def list_kits(session: Session) -> list[models.RaceKit]:
    return session.execute(
        select(models.RaceKit)
        .options(selectinload(models.RaceKit.runner))
        .order_by(models.RaceKit.kit_number.asc())
    ).scalars().all()

def get_kit(session: Session, kit_id: str) -> Optional[models.RaceKit]:
    return session.get(models.RaceKit, kit_id)

def collect_kit(session: Session, kit_id: str, collected_by_user_id: str, payload: CollectionCreate) -> models.KitCollection:
    """
    Record a collection and mark the kit collected.

    The representative (if any), the collection row and the status change
    are committed together; any failure rolls all of them back.
    """
    kit = get_kit(session, kit_id)
    if not kit:
        raise ValueError("Race kit not found")
    if kit.status == "collected":
        raise ValueError(f"Kit #{kit.kit_number} has already been collected")

    try:
        representative_id = None
        if payload.collection_type == "representative":
            rep = models.Representative(
                full_name=payload.representative.full_name,
                id_number=payload.representative.id_number,
                id_type=payload.representative.id_type,
                phone=payload.representative.phone,
                relationship=payload.representative.relationship,
            )
            session.add(rep)
            session.flush()
            representative_id = rep.id

        collection = models.KitCollection(
            race_kit_id=kit.id,
            collected_by_user_id=collected_by_user_id,
            representative_id=representative_id,
            collection_type=payload.collection_type,
            notes=payload.notes,
        )
        session.add(collection)
        kit.status = "collected"
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Collection of kit %s failed", kit_id)
        raise

    logger.info("Kit %s collected (%s) by user %s", kit.kit_number, payload.collection_type, collected_by_user_id)
    return collection

# ---------------------------
# Dashboard
# ---------------------------

@dataclass
class DashboardStats:
    total_runners: int
    pending_kits: int
    collected_kits: int

    @property
    def collection_rate(self) -> int:
        return collection_rate(self.pending_kits, self.collected_kits)

def collection_rate(pending: int, collected: int) -> int:
    total = pending + collected
    if total <= 0:
        return 0
    # half-up, not banker's rounding
    return int(floor(collected * 100 / total + 0.5))

def get_dashboard_stats(session: Session) -> DashboardStats:
    # one statement so the three counts come from the same snapshot
    def _kits(status: str):
        return select(func.count(models.RaceKit.id)).where(models.RaceKit.status == status).scalar_subquery()

    total_runners, pending, collected = session.execute(
        select(
            select(func.count(models.Runner.id)).scalar_subquery(),
            _kits("pending"),
            _kits("collected"),
        )
    ).one()
    return DashboardStats(
        total_runners=total_runners or 0,
        pending_kits=pending or 0,
        collected_kits=collected or 0,
    )

# ---------------------------
# User administration
# ---------------------------

def probe_profiles(session: Session) -> None:
    """Fetch one profile row; a failure means the schema needs migrating."""
    try:
        session.execute(select(models.Profile).limit(1)).scalars().first()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("Profiles table probe failed: %s", exc)
        raise SetupRequiredError(f"Database error: {getattr(exc, 'orig', None) or exc}") from exc

def list_profiles(session: Session) -> list[models.Profile]:
    probe_profiles(session)
    return session.execute(
        select(models.Profile)
        .options(selectinload(models.Profile.user))
        .order_by(models.Profile.created_at.desc())
    ).scalars().all()

def get_profile_by_id(session: Session, profile_id: str) -> Optional[models.Profile]:
    return session.get(models.Profile, profile_id)

@dataclass
class ProfileStats:
    total: int
    active: int
    inactive: int
    admins: int

def profile_stats(profiles: list[models.Profile]) -> ProfileStats:
    return ProfileStats(
        total=len(profiles),
        active=sum(1 for p in profiles if p.effective_status == "active"),
        inactive=sum(1 for p in profiles if p.status == "inactive"),
        admins=sum(1 for p in profiles if p.role == "admin"),
    )

def set_profile_status(session: Session, profile_id: str, status: str) -> models.Profile:
    if status not in models.PROFILE_STATUSES:
        raise ValueError("status must be active or inactive")
    profile = get_profile_by_id(session, profile_id)
    if not profile:
        raise ValueError("Profile not found")
    try:
        profile.status = status
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        raise
    logger.info("Profile %s set to %s", profile_id, status)
    return profile

def delete_profile(session: Session, profile_id: str) -> None:
    profile = get_profile_by_id(session, profile_id)
    if not profile:
        raise ValueError("Profile not found")
    try:
        session.delete(profile)
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        raise
    logger.info("Profile %s deleted", profile_id)
