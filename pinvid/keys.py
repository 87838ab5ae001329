"""API key endpoints: usage stats, creation, deactivation and tier listing."""

import secrets
from typing import Dict

from fastapi import APIRouter, HTTPException, Request, Response
from starlette.responses import JSONResponse

from pinvid.errors import AdminRequired, InvalidInput, MissingApiKey
from pinvid.models import DEFAULT_TIER, TIER_LIMITS

keys_router = APIRouter(prefix="/api/v1/keys", tags=["keys"])


def _require_admin(request: Request) -> None:
    admin_token = request.app.state.config.admin_token
    if not admin_token:
        return
    supplied = request.headers.get("x-admin-token", "")
    if not secrets.compare_digest(supplied, admin_token):
        raise AdminRequired()


@keys_router.get("/usage")
async def get_usage(request: Request) -> Dict[str, object]:
    """Usage statistics for the key in the X-API-Key header."""
    api_key = request.headers.get("x-api-key")
    if not api_key:
        raise MissingApiKey("API key is required")

    key_ledger = request.app.state.key_ledger
    stats = await key_ledger.usage_stats(api_key)
    return {"success": True, "data": stats}


@keys_router.post("/create")
async def create_key(request: Request) -> JSONResponse:
    """Create a new API key.

    Body: {"name": "Company A", "tier": "pro", "expiresInDays": 30}
    """
    _require_admin(request)

    try:
        body = await request.json()
    except ValueError:
        body = None
    if not isinstance(body, dict):
        raise InvalidInput("Name is required")

    name = body.get("name")
    if not isinstance(name, str) or not name.strip():
        raise InvalidInput("Name is required")

    tier = body.get("tier") or DEFAULT_TIER
    if tier not in TIER_LIMITS:
        raise InvalidInput("Invalid tier")

    expires_in_days = body.get("expiresInDays")
    if expires_in_days is not None and (
        isinstance(expires_in_days, bool)
        or not isinstance(expires_in_days, int)
        or expires_in_days < 1
    ):
        raise InvalidInput("Invalid expiration")

    key_ledger = request.app.state.key_ledger
    record = await key_ledger.create_key(name.strip(), tier, expires_in_days)
    return JSONResponse(
        content={
            "success": True,
            "data": record.to_dict(),
            "message": (
                "API key created successfully. Store it securely - "
                "it cannot be retrieved again."
            ),
        },
        status_code=201,
    )


@keys_router.get("/tiers")
async def list_tiers() -> Dict[str, object]:
    """Static tier table."""
    return {
        "success": True,
        "data": {
            "tiers": [
                {"tier": tier, **limits.to_dict()}
                for tier, limits in TIER_LIMITS.items()
            ]
        },
    }


@keys_router.delete("/{api_key}", status_code=204)
async def deactivate_key(api_key: str, request: Request) -> Response:
    """Deactivate a key; later requests with it are rejected as invalid."""
    _require_admin(request)

    key_ledger = request.app.state.key_ledger
    if not await key_ledger.deactivate_key(api_key):
        raise HTTPException(status_code=404, detail="API key not found")
    return Response(status_code=204)
