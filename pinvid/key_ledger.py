"""API key ledger: key lookup, expiry and per-day quota accounting."""

import asyncio
import json
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from pinvid.config import Config
from pinvid.errors import DailyLimitExceeded, InvalidKey, KeyExpired
from pinvid.models import DEFAULT_TIER, TIER_LIMITS, ApiKeyRecord
from pinvid.store import RedisStore

logger = logging.getLogger(__name__)

API_KEY_PREFIX = "apikey:"
USAGE_PREFIX = "usage:"
CONFIG_KEY_TTL = 24 * 60 * 60
USAGE_TTL = 30 * 24 * 60 * 60


def parse_key_entries(entries: List[str]) -> Dict[str, Tuple[str, str]]:
    """Parse ``key:tier:name`` entries into ``{key: (tier, name)}``."""
    parsed: Dict[str, Tuple[str, str]] = {}
    for entry in entries:
        parts = entry.split(":", 2)
        key = parts[0].strip()
        if not key:
            continue
        tier = parts[1].strip().lower() if len(parts) > 1 and parts[1].strip() else DEFAULT_TIER
        name = parts[2].strip() if len(parts) > 2 and parts[2].strip() else "Unknown"
        if tier not in TIER_LIMITS:
            logger.warning("Unknown tier %r for configured key, using %s", tier, DEFAULT_TIER)
            tier = DEFAULT_TIER
        parsed[key] = (tier, name)
    return parsed


def generate_api_key(prefix: str = "pvd") -> str:
    return f"{prefix}_{secrets.token_urlsafe(24)}"


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class ApiKeyLedger:
    """Owns API key records.

    Records live in the shared store when it is ready and in process
    memory otherwise. Keys listed in configuration are materialized on
    first use. In memory mode quotas are per process, not global.
    """

    def __init__(self, config: Config, store: RedisStore):
        self.store = store
        self._configured = parse_key_entries(config.api_keys)
        self._memory: Dict[str, ApiKeyRecord] = {}
        self._lock: asyncio.Lock = asyncio.Lock()

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    def _today(self) -> str:
        return self._now().date().isoformat()

    def _from_config(self, key: str) -> Optional[ApiKeyRecord]:
        entry = self._configured.get(key)
        if entry is None:
            return None
        tier, name = entry
        now = self._now()
        return ApiKeyRecord(
            key=key,
            tier=tier,
            name=name,
            requests_per_day=TIER_LIMITS[tier].requests_per_day,
            requests_today=0,
            last_reset_date=now.date().isoformat(),
            active=True,
            created_at=now.isoformat(),
        )

    async def _load(self, key: str) -> Optional[ApiKeyRecord]:
        if self.store.is_ready():
            raw = await self.store.get(f"{API_KEY_PREFIX}{key}")
            if raw:
                return ApiKeyRecord.from_dict(json.loads(raw))

        if key in self._memory:
            return self._memory[key]

        record = self._from_config(key)
        if record is not None:
            self._memory[key] = record
            await self.store.set(
                f"{API_KEY_PREFIX}{key}", json.dumps(record.to_dict()), ttl=CONFIG_KEY_TTL
            )
        return record

    async def _save(self, record: ApiKeyRecord) -> None:
        if self.store.is_ready():
            payload = json.dumps(record.to_dict())
            if record.key in self._configured:
                saved = await self.store.set(
                    f"{API_KEY_PREFIX}{record.key}", payload, ttl=CONFIG_KEY_TTL
                )
            else:
                saved = await self.store.set(
                    f"{API_KEY_PREFIX}{record.key}", payload, keep_ttl=True
                )
            if saved:
                return
        self._memory[record.key] = record

    def _check_valid(self, record: Optional[ApiKeyRecord]) -> ApiKeyRecord:
        if record is None or not record.active:
            raise InvalidKey()
        if record.expires_at and _parse_timestamp(record.expires_at) < self._now():
            raise KeyExpired()
        return record

    def _roll_day(self, record: ApiKeyRecord) -> bool:
        today = self._today()
        if record.last_reset_date == today:
            return False
        record.requests_today = 0
        record.last_reset_date = today
        return True

    async def authorize(self, key: str) -> ApiKeyRecord:
        """Validate ``key`` and count one request against its daily quota.

        Raises:
            InvalidKey: Unknown or inactive key.
            KeyExpired: The key is past its expiry timestamp.
            DailyLimitExceeded: Counting this request would exceed the
                tier's daily ceiling. The counter is not incremented.
        """
        async with self._lock:
            record = self._check_valid(await self._load(key))
            rolled = self._roll_day(record)

            limit = record.limits.requests_per_day
            if record.requests_today + 1 > limit:
                if rolled:
                    await self._save(record)
                raise DailyLimitExceeded(limit)

            record.requests_today += 1
            await self._save(record)

        await self._track_usage(key)
        return record

    async def _track_usage(self, key: str) -> None:
        usage_key = f"{USAGE_PREFIX}{key}:{self._today()}"
        count = await self.store.incr(usage_key)
        if count == 1:
            _ = await self.store.expire(usage_key, USAGE_TTL)

    async def create_key(
        self,
        name: str,
        tier: str = DEFAULT_TIER,
        expires_in_days: Optional[int] = None,
    ) -> ApiKeyRecord:
        if tier not in TIER_LIMITS:
            raise ValueError(f"Invalid tier: {tier}")

        now = self._now()
        record = ApiKeyRecord(
            key=generate_api_key(),
            tier=tier,
            name=name,
            requests_per_day=TIER_LIMITS[tier].requests_per_day,
            requests_today=0,
            last_reset_date=now.date().isoformat(),
            active=True,
            created_at=now.isoformat(),
            expires_at=(
                (now + timedelta(days=expires_in_days)).isoformat()
                if expires_in_days
                else None
            ),
        )

        async with self._lock:
            stored = await self.store.set(
                f"{API_KEY_PREFIX}{record.key}",
                json.dumps(record.to_dict()),
                ttl=expires_in_days * CONFIG_KEY_TTL if expires_in_days else None,
            )
            if not stored:
                self._memory[record.key] = record

        logger.info("Created %s API key %s", tier, record.key_prefix())
        return record

    async def usage_stats(self, key: str) -> Dict[str, object]:
        async with self._lock:
            record = self._check_valid(await self._load(key))
            if self._roll_day(record):
                await self._save(record)

        limit = record.limits.requests_per_day
        return {
            "requestsToday": record.requests_today,
            "requestsPerDay": limit,
            "remaining": record.remaining,
            "tier": record.tier,
        }

    async def deactivate_key(self, key: str) -> bool:
        async with self._lock:
            record = await self._load(key)
            if record is None:
                return False
            record.active = False
            await self._save(record)
            return True
