"""robots.txt policy gate.

The parsed rules are fetched on first use and kept for the life of the
process; a restart is required to pick up policy changes. Concurrent
first-time fetches are tolerated since the result is idempotent.

Rules are evaluated with Protego, which follows Google's robots.txt
matching: ``*``/``$`` wildcards and longest-match precedence between
Allow and Disallow.
"""

import logging
from typing import Optional

import httpx
from protego import Protego

from pinvid.errors import PolicyDenied, PolicyUnverifiable

logger = logging.getLogger(__name__)

ROBOTS_TIMEOUT_SECONDS = 5.0


class RobotsPolicy:
    """Process-scoped cache of the remote site's robots rules."""

    def __init__(self, http_client: httpx.AsyncClient, robots_url: str):
        self.http_client = http_client
        self.robots_url = robots_url
        self._rules: Optional[Protego] = None

    @property
    def loaded(self) -> bool:
        return self._rules is not None

    async def _load(self) -> Protego:
        if self._rules is not None:
            return self._rules

        response = await self.http_client.get(
            self.robots_url, timeout=ROBOTS_TIMEOUT_SECONDS
        )
        _ = response.raise_for_status()

        rules = Protego.parse(response.text)
        self._rules = rules
        return rules

    async def ensure_allowed(self, url: str, user_agent: str) -> None:
        """Fail closed unless robots.txt explicitly permits ``url``.

        Raises:
            PolicyDenied: The rules disallow the URL for ``user_agent``.
            PolicyUnverifiable: The rules could not be fetched or parsed.
        """
        try:
            rules = await self._load()
            allowed = rules.can_fetch(url, user_agent)
        except (httpx.HTTPError, httpx.InvalidURL, ValueError, UnicodeError) as exc:
            logger.warning(
                "Failed to check robots.txt, failing closed for safety: %s", exc
            )
            raise PolicyUnverifiable() from exc

        if not allowed:
            raise PolicyDenied()
