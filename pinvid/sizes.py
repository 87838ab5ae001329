"""File-size enrichment for extracted video qualities."""

import asyncio
import logging
from typing import List, Optional

import httpx

from pinvid.models import VideoMetadata, VideoQuality

logger = logging.getLogger(__name__)

PROBE_TIMEOUT_SECONDS = 5.0


async def probe_file_size(
    http_client: httpx.AsyncClient, url: str, user_agent: str
) -> Optional[int]:
    response = await http_client.head(
        url,
        headers={"User-Agent": user_agent},
        timeout=PROBE_TIMEOUT_SECONDS,
        follow_redirects=True,
    )
    _ = response.raise_for_status()
    content_length = response.headers.get("content-length")
    if content_length is None:
        return None
    return int(content_length)


async def _augment_one(
    http_client: httpx.AsyncClient, quality: VideoQuality, user_agent: str
) -> None:
    try:
        size = await probe_file_size(http_client, quality.url, user_agent)
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning(
            "Failed to fetch file size for %s: %s", quality.quality_label, exc
        )
        return
    if size is not None:
        quality.file_size = size


async def augment_file_sizes(
    http_client: httpx.AsyncClient, metadata: VideoMetadata, user_agent: str
) -> VideoMetadata:
    """Probe every quality concurrently and record ``file_size`` in place.

    Individual failures leave that quality's size unset; the call waits
    for every probe to settle and never raises for a single probe.
    """
    tasks: List["asyncio.Future[None]"] = [
        asyncio.ensure_future(_augment_one(http_client, quality, user_agent))
        for quality in metadata.qualities
    ]
    results = await asyncio.gather(*tasks, return_exceptions=True)
    for quality, result in zip(metadata.qualities, results):
        if isinstance(result, Exception):
            logger.warning("Size probe for %s failed: %s", quality.url, result)
    return metadata
