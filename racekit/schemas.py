from __future__ import annotations
from typing import Literal, Optional
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

MIN_PASSWORD_LENGTH = 6
REPRESENTATIVE_REQUIRED_MSG = "Please fill in representative's full name and ID number"


def validation_message(exc: ValidationError) -> str:
    """First error of ``exc`` as the plain text the validator raised."""
    err = exc.errors()[0]
    raised = (err.get("ctx") or {}).get("error")
    return str(raised) if raised else err["msg"]


def _blank_to_none(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


class SignUp(BaseModel):
    email: str
    password: str
    full_name: str

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v or v.startswith("@") or v.endswith("@"):
            raise ValueError("Please enter a valid email address")
        return v

    @field_validator("full_name")
    @classmethod
    def _full_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Full name is required")
        return v

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        if len(v) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
        return v


class PasswordUpdate(BaseModel):
    password: str = ""
    confirm_password: str = ""

    @model_validator(mode="after")
    def _check(self) -> "PasswordUpdate":
        if not self.password or not self.confirm_password:
            raise ValueError("Please fill in all fields")
        if len(self.password) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class RunnerCreate(BaseModel):
    bib_number: str
    full_name: str
    participant_id: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    category: Optional[str] = None
    race_distance: Optional[str] = None

    @field_validator("bib_number", "full_name")
    @classmethod
    def _required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Bib number and full name are required")
        return v

    @field_validator("participant_id", "email", "phone", "category", "race_distance")
    @classmethod
    def _optional(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)


class RepresentativeDetails(BaseModel):
    full_name: str = ""
    id_number: str = ""
    id_type: Literal["ic", "passport", "driving_license"] = "ic"
    phone: Optional[str] = None
    relationship: Optional[str] = None

    @field_validator("full_name", "id_number")
    @classmethod
    def _strip(cls, v: str) -> str:
        return (v or "").strip()

    @field_validator("phone", "relationship")
    @classmethod
    def _optional(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)


class CollectionCreate(BaseModel):
    collection_type: Literal["self", "representative"] = "self"
    representative: RepresentativeDetails = Field(default_factory=RepresentativeDetails)
    notes: Optional[str] = None

    @field_validator("notes")
    @classmethod
    def _notes(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)

    @model_validator(mode="after")
    def _representative_required(self) -> "CollectionCreate":
        if self.collection_type == "representative":
            if not self.representative.full_name or not self.representative.id_number:
                raise ValueError(REPRESENTATIVE_REQUIRED_MSG)
        return self


class ProfileFilter(BaseModel):
    q: str = ""
    status: Literal["all", "active", "inactive"] = "all"
    role: Literal["all", "admin", "organizer", "user"] = "all"

    @classmethod
    def from_query(cls, q: str = "", status: str = "all", role: str = "all") -> "ProfileFilter":
        """Unknown status/role values read as ``all``."""
        if status not in ("all", "active", "inactive"):
            status = "all"
        if role not in ("all", "admin", "organizer", "user"):
            role = "all"
        return cls(q=q or "", status=status, role=role)
