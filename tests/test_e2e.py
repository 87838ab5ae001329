"""End-to-end smoke test against live Pinterest."""

import os

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from pinvid.config import load_config
from pinvid.main import app as main_app
from pinvid.main import configure_state
from pinvid.store import RedisStore

E2E_PIN_URL = os.getenv("PINVID_E2E_PIN_URL", "")

STATE_ATTRS = (
    "config",
    "http_client",
    "store",
    "robots",
    "result_cache",
    "key_ledger",
    "rate_limiter",
    "pinterest_service",
)


@pytest.mark.e2e
@pytest.mark.asyncio
@pytest.mark.skipif(not E2E_PIN_URL, reason="PINVID_E2E_PIN_URL not set")
async def test_e2e_download_real_pin(monkeypatch):
    """Smoke test: resolve a real public video pin."""
    monkeypatch.delenv("API_KEY_REQUIRED", raising=False)
    monkeypatch.delenv("REDIS_URL", raising=False)

    config = load_config(use_dotenv=False)
    http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(10.0),
        follow_redirects=True,
        max_redirects=5,
    )
    configure_state(main_app, config, http_client, RedisStore())

    try:
        async with AsyncClient(
            transport=ASGITransport(app=main_app), base_url="http://test"
        ) as client:
            response = await client.post(
                "/api/v1/pinterest/download",
                json={"url": E2E_PIN_URL},
                timeout=60.0,
            )

            assert response.status_code == 200
            data = response.json()["data"]
            assert data["videoUrl"].startswith("https://")
            assert ".pinimg.com/videos/" in data["videoUrl"]
            assert len(data["qualities"]) >= 1
    finally:
        await http_client.aclose()

        for name in STATE_ATTRS:
            if hasattr(main_app.state, name):
                delattr(main_app.state, name)
