"""ArDrive Turbo client over plain HTTP.

Balance, price and top-up calls go to the Turbo payment service. Uploads
are posted to `upload_url`, which must accept raw file bytes plus a JSON
tag header and sign the data item for the configured wallet (a Turbo
bundler fronted by a signing proxy). All calls share one httpx client
with a request timeout.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

import httpx
from loguru import logger

from aobridge.config.schema import StorageConfig
from aobridge.storage.backend import StorageBackendError, Tag, UploadReceipt

_READ_CHUNK = 256 * 1024
_DEFAULT_TOP_UP_CENTS = 500


class TurboStorageBackend:
    """StorageBackend implementation for ArDrive Turbo."""

    def __init__(self, config: StorageConfig, http_client: httpx.AsyncClient) -> None:
        self._config = config
        self._http = http_client
        self._timeout = httpx.Timeout(config.timeout)

    async def get_address(self) -> str:
        if not self._config.wallet_address:
            raise StorageBackendError("Storage wallet address is not configured")
        return self._config.wallet_address

    async def get_balance(self) -> int:
        address = await self.get_address()
        url = f"{self._config.payment_url}/v1/account/balance/{self._config.token_type}"
        data = await self._get_json(url, params={"address": address})
        return _as_int(data.get("winc"), "balance")

    async def get_upload_costs(self, sizes: list[int]) -> list[int]:
        costs: list[int] = []
        for size in sizes:
            data = await self._get_json(f"{self._config.payment_url}/v1/price/bytes/{size}")
            costs.append(_as_int(data.get("winc"), "upload cost"))
        return costs

    async def create_checkout_session(self, amount: int) -> str:
        """Open a fiat top-up session and return its payment URL.

        Turbo prices top-ups in fiat; `amount` (winc still needed) is only
        logged and the session is opened for the minimum top-up.
        """
        address = await self.get_address()
        currency = self._config.currency
        url = (
            f"{self._config.payment_url}/v1/top-up/checkout-session/"
            f"{address}/{currency}/{_DEFAULT_TOP_UP_CENTS}"
        )
        logger.info("Creating checkout session for {} ({} winc short)", address, amount)
        data = await self._get_json(url)
        session = data.get("paymentSession") or {}
        checkout_url = session.get("url") or data.get("url")
        if not checkout_url:
            raise StorageBackendError("Top-up response did not include a checkout URL")
        return checkout_url

    async def upload_file(self, path: Path, size: int, tags: list[Tag]) -> UploadReceipt:
        headers = {
            "Content-Type": "application/octet-stream",
            "Content-Length": str(size),
            "x-tags": json.dumps([t.to_dict() for t in tags]),
        }
        url = f"{self._config.upload_url}/v1/tx/{self._config.token_type}"
        try:
            response = await self._http.post(
                url,
                content=_stream_file(path),
                headers=headers,
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            raise StorageBackendError(f"Upload request failed: {exc}") from exc

        data = _json_or_raise(response)
        if not data.get("id"):
            raise StorageBackendError("Upload response did not include a transaction id")
        return UploadReceipt(
            id=data["id"],
            owner=data.get("owner", ""),
            data_caches=list(data.get("dataCaches") or []),
            fast_finality_indexes=list(data.get("fastFinalityIndexes") or []),
        )

    async def _get_json(self, url: str, params: dict[str, str] | None = None) -> dict[str, Any]:
        try:
            response = await self._http.get(url, params=params, timeout=self._timeout)
        except httpx.HTTPError as exc:
            raise StorageBackendError(f"Request to {url} failed: {exc}") from exc
        return _json_or_raise(response)


async def _stream_file(path: Path) -> AsyncIterator[bytes]:
    with path.open("rb") as fh:
        while chunk := fh.read(_READ_CHUNK):
            yield chunk


def _json_or_raise(response: httpx.Response) -> dict[str, Any]:
    if response.status_code >= 400:
        detail = response.text[:200].replace("\n", " ")
        raise StorageBackendError(f"Turbo returned HTTP {response.status_code}: {detail}")
    try:
        data = response.json()
    except ValueError as exc:
        raise StorageBackendError("Turbo returned a non-JSON response") from exc
    if not isinstance(data, dict):
        raise StorageBackendError("Turbo returned an unexpected response shape")
    return data


def _as_int(value: Any, what: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise StorageBackendError(f"Turbo returned an invalid {what}: {value!r}") from exc
