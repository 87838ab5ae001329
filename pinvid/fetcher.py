"""Pin page retrieval."""

import logging
from typing import Dict, Optional

import httpx

from pinvid.errors import UpstreamFetchFailed

logger = logging.getLogger(__name__)

PAGE_TIMEOUT_SECONDS = 10.0
MAX_REDIRECTS = 5

TEXT_CONTENT_TYPES = ("text/", "application/xhtml+xml", "application/xml")


def build_page_headers(user_agent: str, client_ip: Optional[str]) -> Dict[str, str]:
    return {
        "User-Agent": user_agent,
        "Accept": (
            "text/html,application/xhtml+xml,application/xml;q=0.9,"
            "image/avif,image/webp,*/*;q=0.8"
        ),
        "Accept-Language": "en-US,en;q=0.9",
        "Referer": "https://www.pinterest.com/",
        "X-Client-IP": client_ip or "unknown",
    }


def _is_text(response: httpx.Response) -> bool:
    content_type = response.headers.get("content-type", "").lower()
    if not content_type:
        return True
    return content_type.startswith(TEXT_CONTENT_TYPES)


async def fetch_pin_page(
    http_client: httpx.AsyncClient,
    url: str,
    user_agent: str,
    client_ip: Optional[str] = None,
) -> str:
    """GET the pin page and return its HTML.

    No retries are attempted; a failed fetch surfaces immediately.

    Raises:
        UpstreamFetchFailed: On network errors, too many redirects, a
            terminal status outside 2xx/3xx or a non-text body.
    """
    try:
        response = await http_client.get(
            url,
            headers=build_page_headers(user_agent, client_ip),
            timeout=PAGE_TIMEOUT_SECONDS,
            follow_redirects=True,
        )
    except httpx.HTTPError as exc:
        logger.error("Failed to fetch pin page %s: %s", url, exc)
        raise UpstreamFetchFailed("Failed to fetch the Pinterest page") from exc

    if not 200 <= response.status_code < 400:
        logger.error("Pin page %s returned HTTP %s", url, response.status_code)
        raise UpstreamFetchFailed(
            f"Pinterest responded with HTTP {response.status_code}"
        )

    if not _is_text(response):
        raise UpstreamFetchFailed()

    try:
        return response.text
    except (UnicodeDecodeError, LookupError) as exc:
        raise UpstreamFetchFailed() from exc
