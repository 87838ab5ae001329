"""Data models for video metadata, API keys and rate-limit windows."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional

TIER_FREE = "free"
TIER_PRO = "pro"
TIER_ENTERPRISE = "enterprise"


@dataclass(frozen=True)
class TierLimits:
    """Static per-tier ceilings."""

    requests_per_minute: int
    requests_per_day: int
    cache_duration: int
    allow_bulk_download: bool
    allow_high_quality: bool

    def to_dict(self) -> Dict[str, object]:
        return {
            "requestsPerMinute": self.requests_per_minute,
            "requestsPerDay": self.requests_per_day,
            "cacheDuration": self.cache_duration,
            "allowBulkDownload": self.allow_bulk_download,
            "allowHighQuality": self.allow_high_quality,
        }


TIER_LIMITS: Dict[str, TierLimits] = {
    TIER_FREE: TierLimits(
        requests_per_minute=10,
        requests_per_day=100,
        cache_duration=3600,
        allow_bulk_download=False,
        allow_high_quality=False,
    ),
    TIER_PRO: TierLimits(
        requests_per_minute=60,
        requests_per_day=5000,
        cache_duration=7200,
        allow_bulk_download=True,
        allow_high_quality=True,
    ),
    TIER_ENTERPRISE: TierLimits(
        requests_per_minute=300,
        requests_per_day=50000,
        cache_duration=14400,
        allow_bulk_download=True,
        allow_high_quality=True,
    ),
}

DEFAULT_TIER = TIER_FREE


@dataclass
class VideoQuality:
    """One discovered rendition of a pin's video."""

    url: str
    quality_label: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    file_size: Optional[int] = None
    bitrate: Optional[int] = None

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {"url": self.url}
        if self.quality_label is not None:
            data["qualityLabel"] = self.quality_label
        if self.width is not None:
            data["width"] = self.width
        if self.height is not None:
            data["height"] = self.height
        if self.file_size is not None:
            data["fileSize"] = self.file_size
        if self.bitrate is not None:
            data["bitrate"] = self.bitrate
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "VideoQuality":
        return cls(
            url=str(data["url"]),
            quality_label=data.get("qualityLabel"),  # type: ignore[arg-type]
            width=data.get("width"),  # type: ignore[arg-type]
            height=data.get("height"),  # type: ignore[arg-type]
            file_size=data.get("fileSize"),  # type: ignore[arg-type]
            bitrate=data.get("bitrate"),  # type: ignore[arg-type]
        )


@dataclass
class VideoMetadata:
    """Extraction result for a single pin.

    ``video_url`` always equals ``qualities[0].url``.
    """

    source_url: str
    video_url: str
    qualities: List[VideoQuality]
    title: Optional[str] = None
    author: Optional[str] = None
    duration_seconds: Optional[int] = None

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {
            "sourceUrl": self.source_url,
            "videoUrl": self.video_url,
            "qualities": [quality.to_dict() for quality in self.qualities],
        }
        if self.title is not None:
            data["title"] = self.title
        if self.author is not None:
            data["author"] = self.author
        data["durationSeconds"] = self.duration_seconds
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "VideoMetadata":
        raw_qualities = data.get("qualities") or []
        return cls(
            source_url=str(data["sourceUrl"]),
            video_url=str(data["videoUrl"]),
            qualities=[VideoQuality.from_dict(item) for item in raw_qualities],  # type: ignore[union-attr]
            title=data.get("title"),  # type: ignore[arg-type]
            author=data.get("author"),  # type: ignore[arg-type]
            duration_seconds=data.get("durationSeconds"),  # type: ignore[arg-type]
        )


@dataclass
class ApiKeyRecord:
    """Represents a single API key with daily usage tracking."""

    key: str
    tier: str = DEFAULT_TIER
    name: str = "Unknown"
    requests_per_day: int = 0
    requests_today: int = 0
    last_reset_date: str = ""
    active: bool = True
    created_at: str = ""
    expires_at: Optional[str] = None

    @property
    def limits(self) -> TierLimits:
        return TIER_LIMITS.get(self.tier, TIER_LIMITS[DEFAULT_TIER])

    @property
    def remaining(self) -> int:
        return max(0, self.limits.requests_per_day - self.requests_today)

    def key_prefix(self) -> str:
        if len(self.key) <= 11:
            return self.key
        return f"{self.key[:8]}...{self.key[-3:]}"

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {
            "key": self.key,
            "tier": self.tier,
            "name": self.name,
            "requestsPerDay": self.requests_per_day,
            "requestsToday": self.requests_today,
            "lastResetDate": self.last_reset_date,
            "active": self.active,
            "createdAt": self.created_at,
        }
        if self.expires_at is not None:
            data["expiresAt"] = self.expires_at
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "ApiKeyRecord":
        return cls(
            key=str(data["key"]),
            tier=str(data.get("tier", DEFAULT_TIER)),
            name=str(data.get("name", "Unknown")),
            requests_per_day=int(data.get("requestsPerDay", 0)),  # type: ignore[arg-type]
            requests_today=int(data.get("requestsToday", 0)),  # type: ignore[arg-type]
            last_reset_date=str(data.get("lastResetDate", "")),
            active=bool(data.get("active", True)),
            created_at=str(data.get("createdAt", "")),
            expires_at=data.get("expiresAt"),  # type: ignore[arg-type]
        )


@dataclass
class RateLimitWindow:
    """Fixed request-count window; ``reset_time`` is a unix timestamp."""

    count: int = 0
    reset_time: float = 0.0

    def expired(self, now: float) -> bool:
        return self.reset_time <= now


@dataclass
class RateLimitResult:
    """Outcome of a rate-limit check, used to build response headers."""

    limit: int
    remaining: int
    reset_time: float
    retry_after: int = 0
    allowed: bool = True

    def headers(self) -> Dict[str, str]:
        reset = datetime.fromtimestamp(self.reset_time, tz=timezone.utc)
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": reset.isoformat().replace("+00:00", "Z"),
        }
