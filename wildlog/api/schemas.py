from __future__ import annotations

import re
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from wildlog.storage.models import Account, Sighting

MAX_ANIMAL_NAME_LENGTH = 200
MAX_LOCATION_LENGTH = 500
MAX_PHOTO_URL_LENGTH = 2_900_000
PHOTO_URL_PATTERN = re.compile(r"^data:image/(jpeg|jpg|png|webp);base64,")

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_UPPERCASE = re.compile(r"[A-Z]")


def _validate_email(value: str) -> str:
    if not isinstance(value, str):
        raise ValueError("Invalid email address")
    normalized = value.strip().lower()
    if len(normalized) > 254 or not _EMAIL_PATTERN.match(normalized):
        raise ValueError("Invalid email address")
    local, _, domain = normalized.partition("@")
    if len(local) > 64 or ".." in domain or domain.startswith(".") or domain.endswith("."):
        raise ValueError("Invalid email address")
    return normalized


def _validate_password_strength(value: str) -> str:
    if len(value) < 8:
        raise ValueError("Password must be at least 8 characters")
    if not _UPPERCASE.search(value):
        raise ValueError("Password must contain at least one uppercase letter")
    return value


def _validate_bounded_text(value: Optional[str], label: str, max_length: int) -> str:
    if value is None:
        raise ValueError(f"{label} is required")
    trimmed = value.strip()
    if not trimmed:
        raise ValueError(f"{label} is required")
    if len(trimmed) > max_length:
        raise ValueError(f"{label} must not exceed {max_length} characters")
    return trimmed


def _validate_photo_url(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    if not PHOTO_URL_PATTERN.match(value):
        raise ValueError("Photo must be a valid base64 data URL (JPEG, PNG, or WebP)")
    if len(value) > MAX_PHOTO_URL_LENGTH:
        raise ValueError("Photo must be less than 2MB (base64 encoded)")
    return value


class SignupRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _validate_signup_email(cls, value: str) -> str:
        return _validate_email(value)

    @field_validator("password")
    @classmethod
    def _validate_password(cls, value: str) -> str:
        return _validate_password_strength(value)


class SigninRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _validate_signin_email(cls, value: str) -> str:
        return _validate_email(value)

    @field_validator("password")
    @classmethod
    def _require_password(cls, value: str) -> str:
        if not value:
            raise ValueError("Password is required")
        return value


class CreateSightingRequest(BaseModel):
    animal_name: str
    location: str
    photo_url: Optional[str] = None

    @field_validator("animal_name")
    @classmethod
    def _validate_animal_name(cls, value: str) -> str:
        return _validate_bounded_text(value, "Animal name", MAX_ANIMAL_NAME_LENGTH)

    @field_validator("location")
    @classmethod
    def _validate_location(cls, value: str) -> str:
        return _validate_bounded_text(value, "Location", MAX_LOCATION_LENGTH)

    @field_validator("photo_url")
    @classmethod
    def _validate_photo(cls, value: Optional[str]) -> Optional[str]:
        return _validate_photo_url(value)


class UpdateSightingRequest(BaseModel):
    """Partial update; only fields present in the body are applied.

    ``photo_url: null`` removes the photo. ``animal_name`` and ``location``
    may be omitted but not nulled.
    """

    model_config = ConfigDict(extra="forbid")

    animal_name: Optional[str] = None
    location: Optional[str] = None
    photo_url: Optional[str] = None

    @field_validator("animal_name")
    @classmethod
    def _validate_animal_name(cls, value: Optional[str]) -> str:
        return _validate_bounded_text(value, "Animal name", MAX_ANIMAL_NAME_LENGTH)

    @field_validator("location")
    @classmethod
    def _validate_location(cls, value: Optional[str]) -> str:
        return _validate_bounded_text(value, "Location", MAX_LOCATION_LENGTH)

    @field_validator("photo_url")
    @classmethod
    def _validate_photo(cls, value: Optional[str]) -> Optional[str]:
        return _validate_photo_url(value)

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class SignupResponse(BaseModel):
    id: str
    email: str
    created_at: int

    @classmethod
    def from_account(cls, account: Account) -> "SignupResponse":
        return cls(id=account.id, email=account.email, created_at=account.created_at)


class UserResponse(BaseModel):
    id: str
    email: str
    created_at: int
    last_login_at: Optional[int] = None

    @classmethod
    def from_account(cls, account: Account) -> "UserResponse":
        return cls(
            id=account.id,
            email=account.email,
            created_at=account.created_at,
            last_login_at=account.last_login_at,
        )


class SightingResponse(BaseModel):
    id: str
    user_id: str
    animal_name: str
    location: str
    timestamp_sighted: int
    photo_url: Optional[str] = None
    created_at: int
    updated_at: int

    @classmethod
    def from_sighting(cls, sighting: Sighting) -> "SightingResponse":
        return cls(
            id=sighting.id,
            user_id=sighting.user_id,
            animal_name=sighting.animal_name,
            location=sighting.location,
            timestamp_sighted=sighting.timestamp_sighted,
            photo_url=sighting.photo_url,
            created_at=sighting.created_at,
            updated_at=sighting.updated_at,
        )


class SightingEnvelope(BaseModel):
    success: bool = True
    sighting: SightingResponse


class SightingListResponse(BaseModel):
    success: bool = True
    sightings: List[SightingResponse]


class ErrorResponse(BaseModel):
    error: str
    details: Optional[dict[str, str]] = None


class SeedResponse(BaseModel):
    success: bool = True
    accounts_created: int
    sightings_created: int


class HealthResponse(BaseModel):
    status: str
    timestamp: int
    build_sha: str
