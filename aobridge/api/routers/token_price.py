"""Token price endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from aobridge.api.dependencies import get_price_client
from aobridge.errors import ValidationError
from aobridge.services.token_price import TokenPriceClient, supported_tokens

router = APIRouter(prefix="/token-price", tags=["token-price"])


@router.get("")
async def token_price(
    token: str | None = None,
    client: TokenPriceClient = Depends(get_price_client),  # noqa: B008
) -> dict:
    if not token:
        raise ValidationError(
            "Missing or invalid token parameter",
            supportedTokens=supported_tokens(),
            example="/api/token-price?token=AO",
        )
    return await client.get_price(token)


@router.get("/supported")
async def supported() -> dict:
    tokens = supported_tokens()
    return {
        "supportedTokens": tokens,
        "count": len(tokens),
        "examples": [f"/api/token-price?token={t}" for t in tokens],
    }
