from __future__ import annotations

import uuid
from datetime import datetime, timezone
from sqlalchemy import String, DateTime, ForeignKey, Index, JSON, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base

PROFILE_STATUSES = ("active", "inactive")


def _new_id() -> str:
    return str(uuid.uuid4())

def utcnow() -> datetime:
    # naive UTC, SQLite drops tzinfo anyway
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    email: Mapped[str] = mapped_column(String, nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    profile: Mapped["Profile | None"] = relationship(back_populates="user", uselist=False)


class Profile(Base):
    __tablename__ = "profiles"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, unique=True, index=True)
    full_name: Mapped[str] = mapped_column(String, nullable=False)
    phone: Mapped[str | None] = mapped_column(String, nullable=True)
    role: Mapped[str] = mapped_column(String, nullable=False, default="user")  # admin | organizer | user
    status: Mapped[str | None] = mapped_column(String, nullable=True, default="active")  # active | inactive
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user: Mapped["User"] = relationship(back_populates="profile")

    __table_args__ = (
        Index("idx_profiles_status", "status"),
    )

    @property
    def email(self) -> str | None:
        return self.user.email if self.user else None

    @property
    def effective_status(self) -> str:
        return self.status or "active"

    @property
    def effective_role(self) -> str:
        return self.role or "user"


class Runner(Base):
    __tablename__ = "runners"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    participant_id: Mapped[str | None] = mapped_column(String, nullable=True)
    bib_number: Mapped[str] = mapped_column(String, nullable=False)  # not unique
    full_name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    phone: Mapped[str | None] = mapped_column(String, nullable=True)
    category: Mapped[str | None] = mapped_column(String, nullable=True)
    race_distance: Mapped[str | None] = mapped_column(String, nullable=True)
    registration_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    kits: Mapped[list["RaceKit"]] = relationship(back_populates="runner")

    __table_args__ = (
        Index("ix_runners_bib", "bib_number"),
    )


class RaceKit(Base):
    __tablename__ = "race_kits"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    kit_number: Mapped[str] = mapped_column(String, nullable=False)
    # pending | collected, only flipped by a recorded collection
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    runner_id: Mapped[str] = mapped_column(ForeignKey("runners.id"), nullable=False)
    contents: Mapped[list | None] = mapped_column(JSON, nullable=True, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    runner: Mapped["Runner"] = relationship(back_populates="kits")
    collections: Mapped[list["KitCollection"]] = relationship(back_populates="race_kit")

    __table_args__ = (
        Index("ix_race_kits_status", "status"),
        Index("ix_race_kits_number", "kit_number"),
    )


class Representative(Base):
    __tablename__ = "representatives"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    full_name: Mapped[str] = mapped_column(String, nullable=False)
    id_number: Mapped[str] = mapped_column(String, nullable=False)
    id_type: Mapped[str] = mapped_column(String, nullable=False, default="ic")  # ic | passport | driving_license
    phone: Mapped[str | None] = mapped_column(String, nullable=True)
    relationship: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


class KitCollection(Base):
    __tablename__ = "kit_collections"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    race_kit_id: Mapped[str] = mapped_column(ForeignKey("race_kits.id"), nullable=False)
    collected_by_user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False)
    representative_id: Mapped[str | None] = mapped_column(ForeignKey("representatives.id"), nullable=True)
    collection_type: Mapped[str] = mapped_column(String, nullable=False, default="self")  # self | representative
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    collected_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    race_kit: Mapped["RaceKit"] = relationship(back_populates="collections")
    representative: Mapped["Representative | None"] = relationship()

    __table_args__ = (
        Index("ix_kit_collections_kit", "race_kit_id"),
    )
