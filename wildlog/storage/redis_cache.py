from __future__ import annotations

from typing import Optional

import redis.asyncio as aioredis
from redis import Redis


def _session_key(token: str) -> str:
    return f"session:{token}"


class RedisCache:
    """Thin Redis wrapper holding sign-in sessions.

    Records are stored as JSON strings under ``session:<token>`` with a Redis
    expiry equal to the session TTL, so abandoned sessions disappear on their
    own even if nobody reads them again.
    """

    def __init__(self, redis_url: str, *, socket_timeout: float = 5.0):
        self.redis_url = redis_url
        self.client = aioredis.from_url(
            redis_url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )

    def verify_connection(self) -> None:
        """Assert Redis connectivity before serving requests."""
        # Short-lived sync client so the async client is not bound to a
        # temporary event loop during startup checks.
        sync_client = Redis.from_url(self.redis_url, decode_responses=True)
        try:
            sync_client.ping()
        finally:
            sync_client.close()

    async def cache_session(self, token: str, payload: str, ttl_seconds: int) -> None:
        await self.client.set(_session_key(token), payload, ex=max(1, ttl_seconds))

    async def get_session(self, token: str) -> Optional[str]:
        return await self.client.get(_session_key(token))

    async def revoke_session(self, token: str) -> None:
        # DEL on a missing key returns 0, never an error
        await self.client.delete(_session_key(token))

    async def close(self) -> None:
        """Close the connection pool. Call when shutting down or resetting runtime."""
        await self.client.close()
        await self.client.connection_pool.disconnect()


class SyncRedisCache:
    """Synchronous Redis wrapper for use in tests.

    Uses a synchronous client internally to avoid event loop binding issues in
    pytest, but exposes the same awaitable interface as ``RedisCache``.
    """

    def __init__(self, redis_url: str, *, socket_timeout: float = 5.0):
        self.redis_url = redis_url
        self.client = Redis.from_url(
            redis_url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )

    def verify_connection(self) -> None:
        self.client.ping()

    async def cache_session(self, token: str, payload: str, ttl_seconds: int) -> None:
        self.client.set(_session_key(token), payload, ex=max(1, ttl_seconds))

    async def get_session(self, token: str) -> Optional[str]:
        return self.client.get(_session_key(token))

    async def revoke_session(self, token: str) -> None:
        self.client.delete(_session_key(token))

    async def close(self) -> None:
        self.client.close()
