"""Pinterest pin URL validation and normalization."""

import re
from urllib.parse import SplitResult, urlsplit, urlunsplit

from pinvid.errors import InvalidInput, UnsupportedDomain

PINTEREST_MAIN_HOST = re.compile(
    r"(?:^|\.)pinterest\.(?:com|co\.uk|de|fr|it|es|ca|jp|ru|br|in)$", re.IGNORECASE
)
PINTEREST_SHORT_HOSTS = frozenset({"pin.it"})
PIN_PATH_SEGMENT = "/pin/"


def _parse(url: str) -> SplitResult:
    if not isinstance(url, str) or not url.strip():
        raise InvalidInput("Invalid URL")
    try:
        parsed = urlsplit(url.strip())
        # Accessing .port validates the netloc.
        _ = parsed.port
    except ValueError:
        raise InvalidInput("Invalid URL") from None
    if parsed.scheme.lower() not in ("http", "https") or not parsed.hostname:
        raise InvalidInput("Invalid URL")
    return parsed


def is_pinterest_main_host(hostname: str) -> bool:
    return PINTEREST_MAIN_HOST.search(hostname) is not None


def is_pinterest_short_host(hostname: str) -> bool:
    return hostname in PINTEREST_SHORT_HOSTS


def validate_pin_url(url: str) -> SplitResult:
    """Ensure ``url`` points at a single public pin on a Pinterest domain.

    Short links (pin.it) are accepted regardless of path since they
    redirect to the pin itself.

    Raises:
        InvalidInput: If the string is not a parsable http(s) URL, or a
            main-domain URL does not contain a pin path.
        UnsupportedDomain: If the host is not a Pinterest domain.
    """
    parsed = _parse(url)
    hostname = (parsed.hostname or "").lower()

    is_main = is_pinterest_main_host(hostname)
    is_short = is_pinterest_short_host(hostname)

    if not is_main and not is_short:
        raise UnsupportedDomain()

    if is_main and PIN_PATH_SEGMENT not in parsed.path:
        raise InvalidInput("URL must point to a specific public pin")

    return parsed


def normalize_pin_url(url: str) -> str:
    """Validate ``url`` and return its canonical string form.

    Scheme and host are lowercased, an empty path becomes ``/`` and the
    fragment is dropped.
    """
    parsed = validate_pin_url(url)
    netloc = (parsed.hostname or "").lower()
    if parsed.port is not None:
        netloc = f"{netloc}:{parsed.port}"
    return urlunsplit(
        (parsed.scheme.lower(), netloc, parsed.path or "/", parsed.query, "")
    )
