from __future__ import annotations

import json
import secrets
from typing import Callable, Optional, Protocol

from wildlog.config import DEFAULT_SESSION_TTL_SECONDS
from wildlog.logging import get_logger, redact_token
from wildlog.storage.models import Session, unix_now

logger = get_logger(__name__)

TOKEN_BYTES = 32


class SessionCache(Protocol):
    async def cache_session(self, token: str, payload: str, ttl_seconds: int) -> None: ...

    async def get_session(self, token: str) -> Optional[str]: ...

    async def revoke_session(self, token: str) -> None: ...


def generate_token() -> str:
    """Return 32 random bytes from the OS CSPRNG rendered as 64 hex chars."""
    return secrets.token_hex(TOKEN_BYTES)


class SessionManager:
    """Issues, validates and destroys sign-in sessions held in a KV cache.

    Expiry is enforced lazily on read: a record whose ``expires_at`` has
    passed is deleted and treated as absent even if the cache TTL has not
    fired yet. The cache TTL only reclaims sessions nobody reads again.
    """

    def __init__(
        self,
        cache: SessionCache,
        *,
        ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS,
        clock: Callable[[], int] = unix_now,
    ) -> None:
        self.cache = cache
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    async def create(self, account_id: str, ttl_seconds: Optional[int] = None) -> str:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        token = generate_token()
        session = Session.new(account_id, ttl, now=self._clock())
        await self.cache.cache_session(token, json.dumps(session.to_dict()), ttl)
        logger.info("session_created", user_id=account_id, session=redact_token(token))
        return token

    async def validate(self, token: str) -> Optional[Session]:
        if not token:
            return None
        try:
            raw = await self.cache.get_session(token)
            if raw is None:
                return None
            session = Session.from_dict(json.loads(raw))
        except Exception as exc:
            # fail closed: an unreadable record is never a valid session
            logger.warning(
                "session_lookup_failed", session=redact_token(token), error=str(exc)
            )
            return None
        if session.is_expired(self._clock()):
            try:
                await self.destroy(token)
            except Exception as exc:
                # the cache TTL still reclaims the record
                logger.warning(
                    "session_expire_delete_failed",
                    session=redact_token(token),
                    error=str(exc),
                )
            logger.info("session_expired", user_id=session.user_id)
            return None
        return session

    async def destroy(self, token: str) -> None:
        await self.cache.revoke_session(token)
