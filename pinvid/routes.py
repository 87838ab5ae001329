"""Pinterest download and proxy-download endpoints."""

from typing import Dict, Optional, Tuple

from fastapi import APIRouter, Request, Response
from starlette.responses import StreamingResponse

from pinvid.errors import InvalidInput, MissingApiKey
from pinvid.models import ApiKeyRecord, RateLimitResult
from pinvid.proxy import proxy_video, validate_video_url
from pinvid.service import DEFAULT_CACHE_DURATION
from pinvid.validator import validate_pin_url

pinterest_router = APIRouter(prefix="/api/v1/pinterest", tags=["pinterest"])

DISCLAIMER = (
    "This tool is for downloading public Pinterest videos only. Users are "
    "responsible for copyright compliance and must only download content "
    "they own or have permission to use."
)


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client is not None:
        return request.client.host
    return "unknown"


def extract_api_key(request: Request) -> Optional[str]:
    return (
        request.headers.get("x-api-key")
        or request.query_params.get("api_key")
        or request.query_params.get("apiKey")
    )


async def authorize_caller(
    request: Request,
) -> Tuple[Optional[ApiKeyRecord], RateLimitResult]:
    """Run the key ledger (when a key is given) and the rate limiter."""
    config = request.app.state.config
    ledger = request.app.state.key_ledger
    rate_limiter = request.app.state.rate_limiter

    api_key = extract_api_key(request)
    record: Optional[ApiKeyRecord] = None
    if api_key:
        record = await ledger.authorize(api_key)
    elif config.api_key_required:
        raise MissingApiKey()

    result = await rate_limiter.check(record, client_ip(request))
    return record, result


@pinterest_router.post("/download")
async def download_video(request: Request, response: Response) -> Dict[str, object]:
    """Resolve a pin URL to downloadable video metadata.

    Body: {"url": "https://www.pinterest.com/pin/123/"}
    """
    try:
        body = await request.json()
    except ValueError:
        body = None

    url = body.get("url") if isinstance(body, dict) else None
    if not url or not isinstance(url, str):
        raise InvalidInput("Missing required field: url")

    _ = validate_pin_url(url)
    record, limit_result = await authorize_caller(request)
    response.headers.update(limit_result.headers())

    cache_duration = (
        record.limits.cache_duration if record is not None else DEFAULT_CACHE_DURATION
    )
    service = request.app.state.pinterest_service
    video = await service.fetch_video(url, client_ip(request), cache_duration)

    return {"success": True, "data": video.to_dict(), "disclaimer": DISCLAIMER}


@pinterest_router.get("/proxy-download")
async def proxy_download(request: Request) -> StreamingResponse:
    """Stream a Pinterest CDN video back with attachment headers."""
    video_url = validate_video_url(request.query_params.get("videoUrl"))
    rate_limiter = request.app.state.rate_limiter
    limit_result = await rate_limiter.check(None, client_ip(request))

    streaming = await proxy_video(
        request.app.state.http_client,
        video_url,
        request.app.state.config.pinterest_user_agent,
    )
    streaming.headers.update(limit_result.headers())
    return streaming
