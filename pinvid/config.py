"""Configuration management for the Pinterest video service."""

import os
from dataclasses import dataclass, field
from typing import List, Optional
from dotenv import load_dotenv

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


@dataclass
class Config:
    """Application configuration loaded from environment variables."""

    api_keys: List[str] = field(default_factory=list)
    port: int = 8080
    host: str = "0.0.0.0"
    api_key_required: bool = False
    pinterest_user_agent: str = DEFAULT_USER_AGENT
    redis_url: str = ""
    rate_limit_window_ms: int = 60000
    rate_limit_max: int = 60
    rate_limit_sweep_seconds: int = 300
    robots_url: str = "https://www.pinterest.com/robots.txt"
    admin_token: str = ""
    log_level: str = "INFO"

    def __post_init__(self):
        if self.rate_limit_window_ms <= 0:
            raise ValueError("GLOBAL_RATE_LIMIT_WINDOW_MS must be a positive integer")
        if self.rate_limit_max <= 0:
            raise ValueError("GLOBAL_RATE_LIMIT_MAX must be a positive integer")
        if self.rate_limit_sweep_seconds <= 0:
            raise ValueError("RATE_LIMIT_SWEEP_SECONDS must be a positive integer")

    @property
    def rate_limit_window_seconds(self) -> int:
        return max(1, self.rate_limit_window_ms // 1000)


def _to_int(value: Optional[str], fallback: int) -> int:
    if not value:
        return fallback
    try:
        return int(value)
    except ValueError:
        return fallback


def _to_bool(value: Optional[str], fallback: bool) -> bool:
    if value is None:
        return fallback
    return value.strip().lower() in ("true", "1")


def load_config(use_dotenv: bool = True) -> Config:
    """Load configuration from environment variables.

    Args:
        use_dotenv: Read a ``.env`` file into the environment first.

    Returns:
        Config: Configured application settings

    Raises:
        ValueError: If rate-limit settings are not positive
    """
    if use_dotenv:
        load_dotenv()

    api_keys_raw = os.getenv("API_KEYS", "")
    api_keys = [key.strip() for key in api_keys_raw.split(",") if key.strip()]

    return Config(
        api_keys=api_keys,
        port=_to_int(os.getenv("PORT"), 8080),
        host=os.getenv("HOST", "0.0.0.0"),
        api_key_required=_to_bool(os.getenv("API_KEY_REQUIRED"), False),
        pinterest_user_agent=os.getenv("PINTEREST_USER_AGENT") or DEFAULT_USER_AGENT,
        redis_url=os.getenv("REDIS_URL", ""),
        rate_limit_window_ms=_to_int(os.getenv("GLOBAL_RATE_LIMIT_WINDOW_MS"), 60000),
        rate_limit_max=_to_int(os.getenv("GLOBAL_RATE_LIMIT_MAX"), 60),
        rate_limit_sweep_seconds=_to_int(os.getenv("RATE_LIMIT_SWEEP_SECONDS"), 300),
        robots_url=os.getenv("ROBOTS_URL") or "https://www.pinterest.com/robots.txt",
        admin_token=os.getenv("ADMIN_TOKEN", ""),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
