"""Download proxy that streams Pinterest CDN videos back to the caller."""

import logging
import re
import time
from typing import AsyncIterator, Dict, Optional
from urllib.parse import urlsplit

import httpx
from starlette.responses import StreamingResponse

from pinvid.errors import InvalidVideoUrl, UpstreamFetchFailed

logger = logging.getLogger(__name__)

VIDEO_CDN_HOST = re.compile(r"^v\d*\.pinimg\.com$", re.IGNORECASE)
VIDEO_CDN_PATH_PREFIX = "/videos/"
PROXY_TIMEOUT_SECONDS = 30.0


def validate_video_url(video_url: Optional[str]) -> str:
    """Accept only https URLs on the Pinterest video CDN under /videos/."""
    if not video_url:
        raise InvalidVideoUrl("Missing required query parameter: videoUrl")
    try:
        parsed = urlsplit(video_url)
    except ValueError:
        raise InvalidVideoUrl() from None
    if (
        parsed.scheme.lower() != "https"
        or not VIDEO_CDN_HOST.match(parsed.hostname or "")
        or not parsed.path.startswith(VIDEO_CDN_PATH_PREFIX)
    ):
        raise InvalidVideoUrl()
    return video_url


def download_filename() -> str:
    return f"pinterest-video-{int(time.time() * 1000)}.mp4"


async def proxy_video(
    http_client: httpx.AsyncClient,
    video_url: Optional[str],
    user_agent: str,
) -> StreamingResponse:
    """Open the upstream video and stream it as a forced download.

    Errors before the upstream headers arrive become ``UpstreamFetchFailed``.
    Once the response has started, an upstream failure can only abort
    the stream.
    """
    url = validate_video_url(video_url)

    request = http_client.build_request(
        "GET",
        url,
        headers={"User-Agent": user_agent},
        timeout=PROXY_TIMEOUT_SECONDS,
    )
    try:
        upstream = await http_client.send(request, stream=True, follow_redirects=True)
    except httpx.HTTPError as exc:
        logger.error("Proxy download error: %s", exc)
        raise UpstreamFetchFailed("Failed to fetch video from Pinterest") from exc

    if not upstream.is_success:
        status = upstream.status_code
        await upstream.aclose()
        logger.error("Proxy download upstream returned HTTP %s", status)
        raise UpstreamFetchFailed(f"Video host responded with HTTP {status}")

    headers: Dict[str, str] = {
        "Content-Disposition": f'attachment; filename="{download_filename()}"',
    }
    content_length = upstream.headers.get("content-length")
    if content_length:
        headers["Content-Length"] = content_length

    async def stream_body() -> AsyncIterator[bytes]:
        try:
            async for chunk in upstream.aiter_raw():
                if chunk:
                    yield chunk
        except httpx.HTTPError as exc:
            logger.error("Proxy stream aborted for %s: %s", url, exc)
            raise
        finally:
            await upstream.aclose()

    return StreamingResponse(stream_body(), media_type="video/mp4", headers=headers)
