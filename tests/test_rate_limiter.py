import asyncio

import pytest

from pinvid.errors import TooManyRequests
from pinvid.models import TIER_FREE, TIER_PRO, ApiKeyRecord
from pinvid.rate_limiter import RateLimiter, rate_limit_key
from pinvid.store import RedisStore


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def free_key() -> ApiKeyRecord:
    return ApiKeyRecord(key="free-key", tier=TIER_FREE)


def test_rate_limit_key_prefers_api_key():
    assert rate_limit_key(free_key(), "1.2.3.4") == "ratelimit:free:free-key"
    assert rate_limit_key(None, "1.2.3.4") == "ratelimit:ip:1.2.3.4"
    assert rate_limit_key(None, None) == "ratelimit:ip:unknown"


def test_limit_for_tier_and_anonymous():
    limiter = RateLimiter(RedisStore(), default_limit=42)

    assert limiter.limit_for(None) == 42
    assert limiter.limit_for(free_key()) == 10
    assert limiter.limit_for(ApiKeyRecord(key="p", tier=TIER_PRO)) == 60


@pytest.mark.asyncio
async def test_free_tier_eleventh_request_rejected_then_window_resets():
    clock = FakeClock()
    limiter = RateLimiter(RedisStore(), window_seconds=60, clock=clock)
    record = free_key()

    for expected_remaining in range(9, -1, -1):
        result = await limiter.check(record, "1.2.3.4")
        assert result.remaining == expected_remaining

    clock.advance(15)
    with pytest.raises(TooManyRequests) as exc_info:
        await limiter.check(record, "1.2.3.4")

    assert exc_info.value.status_code == 429
    assert exc_info.value.retry_after == 45
    assert exc_info.value.headers["Retry-After"] == "45"
    assert exc_info.value.headers["X-RateLimit-Remaining"] == "0"

    clock.advance(46)
    result = await limiter.check(record, "1.2.3.4")
    assert result.allowed
    assert result.remaining == 9


@pytest.mark.asyncio
async def test_anonymous_callers_are_limited_per_ip():
    limiter = RateLimiter(RedisStore(), default_limit=2, clock=FakeClock())

    await limiter.check(None, "1.1.1.1")
    await limiter.check(None, "1.1.1.1")
    await limiter.check(None, "2.2.2.2")

    with pytest.raises(TooManyRequests):
        await limiter.check(None, "1.1.1.1")


@pytest.mark.asyncio
async def test_sweep_removes_only_expired_windows():
    clock = FakeClock()
    limiter = RateLimiter(RedisStore(), window_seconds=60, clock=clock)

    await limiter.check(None, "old")
    clock.advance(30)
    await limiter.check(None, "new")
    clock.advance(31)

    removed = await limiter.sweep()

    assert removed == 1
    assert list(limiter._windows) == ["ratelimit:ip:new"]


@pytest.mark.asyncio
async def test_sweeper_task_lifecycle():
    clock = FakeClock()
    limiter = RateLimiter(RedisStore(), window_seconds=1, clock=clock)
    await limiter.check(None, "1.1.1.1")
    clock.advance(5)

    limiter.start_sweeper(0.01)
    await asyncio.sleep(0.05)
    await limiter.stop_sweeper()

    assert limiter._windows == {}
    assert limiter._sweep_task is None


@pytest.mark.asyncio
async def test_concurrent_memory_hits_are_all_counted():
    limiter = RateLimiter(RedisStore(), default_limit=1000, clock=FakeClock())

    results = await asyncio.gather(*[limiter.check(None, "1.1.1.1") for _ in range(50)])

    assert sorted(r.remaining for r in results) == list(range(950, 1000))


@pytest.mark.asyncio
async def test_shared_store_counts_across_limiters(redis_client):
    store = RedisStore(redis_client, connected=True)
    first = RateLimiter(store, window_seconds=60)
    second = RateLimiter(store, window_seconds=60)
    record = free_key()

    for _ in range(5):
        await first.check(record, None)
    for _ in range(5):
        await second.check(record, None)

    with pytest.raises(TooManyRequests) as exc_info:
        await first.check(record, None)

    assert 0 < exc_info.value.retry_after <= 60
    assert 0 < await redis_client.ttl("ratelimit:free:free-key") <= 60
    assert first._windows == {}


@pytest.mark.asyncio
async def test_store_failure_falls_back_to_memory():
    class BrokenRedis:
        async def incr(self, key):
            raise ConnectionError("redis went away")

    limiter = RateLimiter(RedisStore(BrokenRedis(), connected=True), default_limit=1, clock=FakeClock())

    await limiter.check(None, "1.1.1.1")
    with pytest.raises(TooManyRequests):
        await limiter.check(None, "1.1.1.1")

    assert "ratelimit:ip:1.1.1.1" in limiter._windows
