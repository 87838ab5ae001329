"""Shared key-value backing store.

Wraps an optional ``redis.asyncio`` client. When Redis is not configured
or unreachable, every call degrades to a no-op so callers can fall back
to process-local state.
"""

import logging
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

STORE_ERRORS = (RedisError, OSError)


class RedisStore:
    """Best-effort Redis access; never raises to the caller."""

    def __init__(self, client: Optional["redis.Redis"] = None, connected: bool = False):
        self._client = client
        self._connected = connected and client is not None

    @classmethod
    async def connect(cls, url: str) -> "RedisStore":
        if not url:
            logger.warning("Redis not configured - shared caching and limits disabled")
            return cls()

        client = redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        store = cls(client)
        store._connected = await store.ping()
        if store._connected:
            logger.info("Redis connected")
        else:
            logger.warning("Redis unreachable - falling back to in-memory state")
        return store

    def is_ready(self) -> bool:
        return self._connected and self._client is not None

    async def ping(self) -> bool:
        if self._client is None:
            return False
        try:
            return bool(await self._client.ping())
        except STORE_ERRORS as exc:
            logger.error("Redis PING error: %s", exc)
            return False

    async def get(self, key: str) -> Optional[str]:
        if not self.is_ready():
            return None
        try:
            return await self._client.get(key)  # type: ignore[union-attr]
        except STORE_ERRORS as exc:
            logger.error("Redis GET error: %s", exc)
            return None

    async def set(
        self,
        key: str,
        value: str,
        ttl: Optional[int] = None,
        keep_ttl: bool = False,
    ) -> bool:
        if not self.is_ready():
            return False
        try:
            if ttl:
                await self._client.set(key, value, ex=ttl)  # type: ignore[union-attr]
            elif keep_ttl:
                await self._client.set(key, value, keepttl=True)  # type: ignore[union-attr]
            else:
                await self._client.set(key, value)  # type: ignore[union-attr]
            return True
        except STORE_ERRORS as exc:
            logger.error("Redis SET error: %s", exc)
            return False

    async def incr(self, key: str) -> Optional[int]:
        if not self.is_ready():
            return None
        try:
            return int(await self._client.incr(key))  # type: ignore[union-attr]
        except STORE_ERRORS as exc:
            logger.error("Redis INCR error: %s", exc)
            return None

    async def expire(self, key: str, seconds: int) -> bool:
        if not self.is_ready():
            return False
        try:
            await self._client.expire(key, seconds)  # type: ignore[union-attr]
            return True
        except STORE_ERRORS as exc:
            logger.error("Redis EXPIRE error: %s", exc)
            return False

    async def ttl(self, key: str) -> Optional[int]:
        """Remaining lifetime in seconds, or None if unknown or persistent."""
        if not self.is_ready():
            return None
        try:
            remaining = int(await self._client.ttl(key))  # type: ignore[union-attr]
        except STORE_ERRORS as exc:
            logger.error("Redis TTL error: %s", exc)
            return None
        return remaining if remaining >= 0 else None

    async def close(self) -> None:
        if self._client is not None:
            try:
                await self._client.aclose()
            except STORE_ERRORS as exc:
                logger.error("Redis close error: %s", exc)
            self._connected = False
