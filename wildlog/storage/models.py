from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Optional


def unix_now() -> int:
    """Current time as integer Unix seconds, the unit used for every timestamp."""
    return int(time.time())


def new_id() -> str:
    """Opaque 32-char lowercase hex identifier."""
    return uuid.uuid4().hex


@dataclass
class Account:
    id: str
    email: str
    password_hash: str
    created_at: int = field(default_factory=unix_now)
    last_login_at: Optional[int] = None
    deleted_at: Optional[int] = None

    @property
    def is_active(self) -> bool:
        return self.deleted_at is None


@dataclass
class Session:
    user_id: str
    created_at: int
    expires_at: int

    @classmethod
    def new(cls, user_id: str, ttl_seconds: int, now: Optional[int] = None) -> "Session":
        issued = unix_now() if now is None else now
        return cls(user_id=user_id, created_at=issued, expires_at=issued + ttl_seconds)

    def is_expired(self, now: int) -> bool:
        return self.expires_at < now

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "created_at": self.created_at,
            "expires_at": self.expires_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Session":
        return cls(
            user_id=str(data["user_id"]),
            created_at=int(data["created_at"]),
            expires_at=int(data["expires_at"]),
        )


@dataclass
class Sighting:
    id: str
    user_id: str
    animal_name: str
    location: str
    timestamp_sighted: int
    photo_url: Optional[str] = None
    created_at: int = field(default_factory=unix_now)
    updated_at: int = field(default_factory=unix_now)
    deleted_at: Optional[int] = None
