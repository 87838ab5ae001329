"""Pinterest video lookup pipeline."""

import logging
from typing import Optional

import httpx

from pinvid.cache import ResultCache
from pinvid.config import Config
from pinvid.extractor import extract_video_metadata
from pinvid.fetcher import fetch_pin_page
from pinvid.models import DEFAULT_TIER, TIER_LIMITS, VideoMetadata
from pinvid.robots import RobotsPolicy
from pinvid.sizes import augment_file_sizes
from pinvid.validator import normalize_pin_url

logger = logging.getLogger(__name__)

DEFAULT_CACHE_DURATION = TIER_LIMITS[DEFAULT_TIER].cache_duration


class PinterestService:
    """Resolves a pin URL to video metadata.

    Flow: validate -> cache lookup -> robots gate -> page fetch ->
    extraction -> size probes -> cache write. A cache hit returns
    before any network activity, robots check included.
    """

    def __init__(
        self,
        config: Config,
        http_client: httpx.AsyncClient,
        robots: RobotsPolicy,
        cache: ResultCache,
    ):
        self.config = config
        self.http_client = http_client
        self.robots = robots
        self.cache = cache

    async def fetch_video(
        self,
        url: str,
        client_ip: Optional[str] = None,
        cache_duration: int = DEFAULT_CACHE_DURATION,
        include_file_size: bool = True,
    ) -> VideoMetadata:
        normalized_url = normalize_pin_url(url)

        cached = await self.cache.get(normalized_url)
        if cached is not None:
            return cached

        user_agent = self.config.pinterest_user_agent
        await self.robots.ensure_allowed(normalized_url, user_agent)

        page = await fetch_pin_page(
            self.http_client, normalized_url, user_agent, client_ip
        )
        metadata = extract_video_metadata(page, normalized_url)
        logger.info(
            "Extracted %d video qualities from %s",
            len(metadata.qualities),
            normalized_url,
        )

        if include_file_size:
            _ = await augment_file_sizes(self.http_client, metadata, user_agent)

        _ = await self.cache.set(normalized_url, metadata, cache_duration)
        return metadata
