"""USD price lookups for AO ecosystem tokens.

AO and AR are priced by the `usd-price` edge function; the remaining
tokens go through the `hopper` aggregator, which answers with its own
field names.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Literal

import httpx
from loguru import logger

from aobridge.config.schema import PriceConfig
from aobridge.errors import UpstreamUnavailableError, ValidationError


@dataclass(frozen=True, slots=True)
class TokenSource:
    process_id: str
    endpoint: Literal["usd-price", "hopper"]


TOKENS: dict[str, TokenSource] = {
    "AO": TokenSource("0syT13r0s0tgPmIed95bJnuSqaD29HQNN8D3ElLSrsc", "usd-price"),
    "AR": TokenSource("xU9zFkq3X2ZQ6olwNVvr1vUWIjc3kXTWr7xKQD6dh10", "usd-price"),
    "ARIO": TokenSource("qNvAoz0TgcH7DMg8BCVn8jF32QH5L6T29VjHxhHqqGE", "hopper"),
    "TRUNK": TokenSource("wOrb8b_V8QixWyXZub48Ki5B6OIDyf_p1ngoonsaRpQ", "hopper"),
    "GAME": TokenSource("s6jcB3ctSbiDNwR-paJgy5iOAhahXahLul8exSLHbGE", "hopper"),
}


def supported_tokens() -> list[str]:
    return list(TOKENS)


class TokenPriceClient:
    """Fetches token prices from the configured edge functions."""

    def __init__(self, config: PriceConfig, http_client: httpx.AsyncClient) -> None:
        self._config = config
        self._http = http_client

    def _headers(self) -> dict[str, str]:
        headers = {"accept": "*/*", "content-type": "application/json"}
        key = self._config.api_key.get_secret_value()
        if key:
            headers["apikey"] = key
            headers["authorization"] = f"Bearer {key}"
        return headers

    async def _post(self, endpoint: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self._config.base_url.rstrip('/')}/{endpoint}"
        resp = await self._http.post(
            url, json=payload, headers=self._headers(), timeout=self._config.timeout
        )
        resp.raise_for_status()
        data = resp.json()
        if not isinstance(data, dict):
            raise ValueError(f"unexpected response shape from {endpoint}")
        return data

    async def get_price(self, token: str) -> dict[str, Any]:
        """Return `{token, processId, price, currency, timestamp}` for a symbol.

        Raises ValidationError for unsupported symbols and
        UpstreamUnavailableError when the price service fails.
        """
        symbol = token.upper()
        source = TOKENS.get(symbol)
        if source is None:
            raise ValidationError(
                f"Unsupported token: {token}. Supported tokens: {', '.join(TOKENS)}",
                supportedTokens=supported_tokens(),
            )

        try:
            if source.endpoint == "usd-price":
                data = await self._post("usd-price", {"processId": source.process_id})
                process_id = data.get("processId") or source.process_id
                price = data.get("price")
                currency = "USD"
            else:
                data = await self._post(
                    "hopper",
                    {"baseToken": source.process_id, "quoteToken": "USD", "priceOnly": True},
                )
                process_id = data.get("Base-Token-Process") or source.process_id
                price = data.get("Price")
                currency = data.get("Quote-Token-Process") or "USD"
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Error fetching {} price: {}", symbol, exc)
            raise UpstreamUnavailableError(f"Failed to fetch {symbol} price: {exc}") from exc

        return {
            "token": symbol,
            "processId": process_id,
            "price": price,
            "currency": currency,
            "timestamp": datetime.now(UTC).isoformat(),
        }
