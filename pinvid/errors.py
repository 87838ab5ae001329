"""Error types surfaced by the download pipeline and key/rate checks."""

from typing import Dict, Optional


class PinvidError(Exception):
    """Base error rendered as ``{"success": false, "error": message}``."""

    status_code: int = 500
    default_message: str = "Internal Server Error"

    def __init__(
        self,
        message: Optional[str] = None,
        extra: Optional[Dict[str, object]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.message = message or self.default_message
        self.extra: Dict[str, object] = extra or {}
        self.headers: Dict[str, str] = headers or {}
        super().__init__(self.message)

    def to_payload(self) -> Dict[str, object]:
        return {"success": False, "error": self.message, **self.extra}


class InvalidInput(PinvidError):
    status_code = 400
    default_message = "Invalid URL"


class UnsupportedDomain(InvalidInput):
    default_message = "Only Pinterest URLs are allowed"


class InvalidVideoUrl(PinvidError):
    status_code = 400
    default_message = "Invalid video URL"


class MissingApiKey(PinvidError):
    status_code = 401
    default_message = "Missing API key"

    def __init__(self, message: Optional[str] = None):
        super().__init__(
            message,
            extra={
                "message": "Provide API key via x-api-key header or api_key query parameter"
            },
        )


class InvalidKey(PinvidError):
    status_code = 401
    default_message = "Invalid API key"


class KeyExpired(PinvidError):
    status_code = 401
    default_message = "API key expired"


class AdminRequired(PinvidError):
    status_code = 403
    default_message = "Admin token required"


class PolicyDenied(PinvidError):
    status_code = 403
    default_message = "Access to this URL is disallowed by robots.txt"


class NoVideoFound(PinvidError):
    status_code = 422
    default_message = (
        "Unable to find a public video URL on this pin. "
        "It may be private or not a video."
    )


class DailyLimitExceeded(PinvidError):
    status_code = 429
    default_message = "Daily request limit exceeded"

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(extra={"limit": limit})


class TooManyRequests(PinvidError):
    status_code = 429
    default_message = "Too many requests"

    def __init__(self, retry_after: int, headers: Optional[Dict[str, str]] = None):
        self.retry_after = retry_after
        merged = dict(headers or {})
        merged["Retry-After"] = str(retry_after)
        super().__init__(extra={"retryAfter": retry_after}, headers=merged)


class UpstreamFetchFailed(PinvidError):
    status_code = 502
    default_message = "Unexpected response from Pinterest"


class PolicyUnverifiable(PinvidError):
    status_code = 503
    default_message = "Unable to verify robots.txt rules"
