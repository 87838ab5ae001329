"""Result cache for extracted video metadata."""

import hashlib
import json
import logging
from typing import Optional

from pinvid.models import VideoMetadata
from pinvid.store import RedisStore

logger = logging.getLogger(__name__)

CACHE_PREFIX = "pinterest:video:"


def cache_key(normalized_url: str) -> str:
    digest = hashlib.md5(normalized_url.encode("utf-8")).hexdigest()
    return f"{CACHE_PREFIX}{digest}"


class ResultCache:
    """Caches serialized ``VideoMetadata`` by source URL.

    A performance aid only: a missing or failing store behaves as a
    permanent miss and writes are dropped.
    """

    def __init__(self, store: RedisStore):
        self.store = store

    async def get(self, normalized_url: str) -> Optional[VideoMetadata]:
        if not self.store.is_ready():
            return None

        raw = await self.store.get(cache_key(normalized_url))
        if not raw:
            return None

        try:
            metadata = VideoMetadata.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("Discarding unreadable cache entry for %s: %s", normalized_url, exc)
            return None

        logger.info("Cache HIT: %s", normalized_url)
        return metadata

    async def set(self, normalized_url: str, metadata: VideoMetadata, ttl: int) -> bool:
        if not self.store.is_ready() or ttl <= 0:
            return False

        stored = await self.store.set(
            cache_key(normalized_url), json.dumps(metadata.to_dict()), ttl=ttl
        )
        if stored:
            logger.info("Cached: %s (ttl=%ss)", normalized_url, ttl)
        return stored
