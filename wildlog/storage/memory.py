from __future__ import annotations

import threading
import time
from dataclasses import replace
from typing import Callable, Dict, List, Optional, Tuple

from wildlog.logging import get_logger
from wildlog.storage.errors import ConstraintViolation
from wildlog.storage.models import Account, Sighting, new_id, unix_now

_SIGHTING_FIELDS = frozenset({"animal_name", "location", "photo_url"})


class MemoryStore:
    """In-memory relational store used by tests and local development."""

    def __init__(self) -> None:
        self.logger = get_logger(__name__)
        self.accounts: Dict[str, Account] = {}
        self.sightings: Dict[str, Sighting] = {}
        # insertion order breaks created_at ties when listing newest first
        self._sighting_order: List[str] = []
        self._data_lock = threading.RLock()

    # -- accounts -----------------------------------------------------------

    def create_account(self, email: str, password_hash: str) -> Account:
        normalized = email.strip().lower()
        with self._data_lock:
            if self._find_active_account(normalized):
                raise ConstraintViolation("email already exists", {"field": "email"})
            account = Account(id=new_id(), email=normalized, password_hash=password_hash)
            self.accounts[account.id] = account
        return replace(account)

    def _find_active_account(self, normalized_email: str) -> Optional[Account]:
        for account in self.accounts.values():
            if account.is_active and account.email.lower() == normalized_email:
                return account
        return None

    def get_account(self, account_id: str) -> Optional[Account]:
        with self._data_lock:
            account = self.accounts.get(account_id)
            if not account or not account.is_active:
                return None
            return replace(account)

    def get_account_by_email(self, email: str) -> Optional[Account]:
        with self._data_lock:
            account = self._find_active_account(email.strip().lower())
            return replace(account) if account else None

    def touch_last_login(self, account_id: str, at: Optional[int] = None) -> Optional[int]:
        stamp = unix_now() if at is None else at
        with self._data_lock:
            account = self.accounts.get(account_id)
            if not account or not account.is_active:
                return None
            account.last_login_at = stamp
        return stamp

    def soft_delete_account(self, account_id: str) -> bool:
        with self._data_lock:
            account = self.accounts.get(account_id)
            if not account or not account.is_active:
                return False
            account.deleted_at = unix_now()
        return True

    # -- sightings ----------------------------------------------------------

    def create_sighting(
        self,
        user_id: str,
        animal_name: str,
        location: str,
        photo_url: Optional[str] = None,
        *,
        timestamp_sighted: Optional[int] = None,
    ) -> Sighting:
        now = unix_now()
        sighting = Sighting(
            id=new_id(),
            user_id=user_id,
            animal_name=animal_name,
            location=location,
            timestamp_sighted=now if timestamp_sighted is None else timestamp_sighted,
            photo_url=photo_url,
            created_at=now,
            updated_at=now,
        )
        with self._data_lock:
            self.sightings[sighting.id] = sighting
            self._sighting_order.append(sighting.id)
        return replace(sighting)

    def get_sighting(self, sighting_id: str) -> Optional[Sighting]:
        with self._data_lock:
            sighting = self.sightings.get(sighting_id)
            if not sighting or sighting.deleted_at is not None:
                return None
            return replace(sighting)

    def list_sightings(
        self, user_id: str, *, limit: Optional[int] = None, offset: int = 0
    ) -> List[Sighting]:
        with self._data_lock:
            owned = [
                self.sightings[sid]
                for sid in reversed(self._sighting_order)
                if self.sightings[sid].user_id == user_id
                and self.sightings[sid].deleted_at is None
            ]
            # stable sort keeps newest-inserted first among equal created_at
            owned.sort(key=lambda s: s.created_at, reverse=True)
            window = owned[offset:] if limit is None else owned[offset : offset + limit]
            return [replace(s) for s in window]

    def update_sighting(self, sighting_id: str, changes: dict) -> Optional[Sighting]:
        unknown = set(changes) - _SIGHTING_FIELDS
        if unknown:
            raise ValueError(f"unsupported sighting fields: {sorted(unknown)}")
        with self._data_lock:
            sighting = self.sightings.get(sighting_id)
            if not sighting or sighting.deleted_at is not None:
                return None
            for name, value in changes.items():
                setattr(sighting, name, value)
            sighting.updated_at = unix_now()
            return replace(sighting)

    def soft_delete_sighting(self, sighting_id: str) -> bool:
        with self._data_lock:
            sighting = self.sightings.get(sighting_id)
            if not sighting or sighting.deleted_at is not None:
                return False
            sighting.deleted_at = unix_now()
        return True

    def clear_all(self) -> None:
        with self._data_lock:
            self.sightings.clear()
            self._sighting_order.clear()
            self.accounts.clear()


class MemoryCache:
    """In-process stand-in for Redis session storage with per-key expiry.

    Used when Redis is unreachable under TEST_MODE or ALLOW_REDIS_FALLBACK_DEV.
    The ``clock`` is injectable so tests can move time forward.
    """

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._values: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()

    def verify_connection(self) -> None:
        return None

    def _get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._values.get(key)
            if not entry:
                return None
            value, expires_at = entry
            if expires_at <= self._clock():
                self._values.pop(key, None)
                return None
            return value

    async def cache_session(self, token: str, payload: str, ttl_seconds: int) -> None:
        with self._lock:
            self._values[f"session:{token}"] = (payload, self._clock() + max(1, ttl_seconds))

    async def get_session(self, token: str) -> Optional[str]:
        return self._get(f"session:{token}")

    async def revoke_session(self, token: str) -> None:
        with self._lock:
            self._values.pop(f"session:{token}", None)

    async def close(self) -> None:
        with self._lock:
            self._values.clear()
