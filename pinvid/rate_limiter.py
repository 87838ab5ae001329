"""Per-minute request windows keyed by API key tier or client IP.

Counters live in the shared store when it is ready. Otherwise they are
held in process memory, which makes limits per process rather than
global; a background sweep drops expired in-memory windows.
"""

import asyncio
import contextlib
import logging
import math
import time
from typing import Callable, Dict, Optional

from pinvid.errors import TooManyRequests
from pinvid.models import ApiKeyRecord, RateLimitResult, RateLimitWindow
from pinvid.store import RedisStore

logger = logging.getLogger(__name__)

RATE_LIMIT_PREFIX = "ratelimit:"


def rate_limit_key(record: Optional[ApiKeyRecord], client_ip: Optional[str]) -> str:
    if record is not None:
        return f"{RATE_LIMIT_PREFIX}{record.tier}:{record.key}"
    return f"{RATE_LIMIT_PREFIX}ip:{client_ip or 'unknown'}"


class RateLimiter:
    """Fixed-window request counter."""

    def __init__(
        self,
        store: RedisStore,
        window_seconds: int = 60,
        default_limit: int = 60,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.window_seconds = window_seconds
        self.default_limit = default_limit
        self.clock = clock
        self._windows: Dict[str, RateLimitWindow] = {}
        self._lock: asyncio.Lock = asyncio.Lock()
        self._sweep_task: Optional["asyncio.Task[None]"] = None
        self._warned_fallback = False

    def limit_for(self, record: Optional[ApiKeyRecord]) -> int:
        if record is None:
            return self.default_limit
        return record.limits.requests_per_minute

    async def check(
        self, record: Optional[ApiKeyRecord], client_ip: Optional[str]
    ) -> RateLimitResult:
        """Count one request for the caller and enforce its ceiling.

        Raises:
            TooManyRequests: The caller's window is already full.
        """
        identifier = rate_limit_key(record, client_ip)
        limit = self.limit_for(record)

        result = await self._hit_store(identifier, limit)
        if result is None:
            result = await self._hit_memory(identifier, limit)

        if not result.allowed:
            raise TooManyRequests(result.retry_after, headers=result.headers())
        return result

    async def _hit_store(self, identifier: str, limit: int) -> Optional[RateLimitResult]:
        if not self.store.is_ready():
            return None

        current = await self.store.incr(identifier)
        if current is None:
            return None
        if current == 1:
            _ = await self.store.expire(identifier, self.window_seconds)

        remaining_ttl = await self.store.ttl(identifier)
        if remaining_ttl is None:
            _ = await self.store.expire(identifier, self.window_seconds)
            remaining_ttl = self.window_seconds

        return RateLimitResult(
            limit=limit,
            remaining=max(0, limit - current),
            reset_time=self.clock() + remaining_ttl,
            retry_after=max(1, remaining_ttl),
            allowed=current <= limit,
        )

    async def _hit_memory(self, identifier: str, limit: int) -> RateLimitResult:
        if not self._warned_fallback:
            logger.warning("Rate limiting with in-memory windows (per-process limits)")
            self._warned_fallback = True

        now = self.clock()
        async with self._lock:
            window = self._windows.get(identifier)
            if window is None or window.expired(now):
                window = RateLimitWindow(count=1, reset_time=now + self.window_seconds)
                self._windows[identifier] = window
            else:
                window.count += 1
            current = window.count
            reset_time = window.reset_time

        return RateLimitResult(
            limit=limit,
            remaining=max(0, limit - current),
            reset_time=reset_time,
            retry_after=max(1, math.ceil(reset_time - now)),
            allowed=current <= limit,
        )

    async def sweep(self) -> int:
        """Drop expired in-memory windows, locking per entry."""
        now = self.clock()
        expired = [key for key, window in list(self._windows.items()) if window.expired(now)]
        removed = 0
        for key in expired:
            async with self._lock:
                window = self._windows.get(key)
                if window is not None and window.expired(now):
                    del self._windows[key]
                    removed += 1
        if removed:
            logger.debug("Swept %d expired rate-limit windows", removed)
        return removed

    async def _sweep_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            _ = await self.sweep()

    def start_sweeper(self, interval: float) -> None:
        if self._sweep_task is None:
            self._sweep_task = asyncio.create_task(self._sweep_loop(interval))

    async def stop_sweeper(self) -> None:
        if self._sweep_task is None:
            return
        self._sweep_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._sweep_task
        self._sweep_task = None
