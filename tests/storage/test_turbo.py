"""Tests for the ArDrive Turbo storage backend."""

from __future__ import annotations

import json

import httpx
import pytest

from aobridge.config.schema import StorageConfig
from aobridge.storage import StorageBackend, StorageBackendError, Tag, TurboStorageBackend, winc_to_ar

PAYMENT = "https://payment.test"
UPLOAD = "https://upload.test"


def _config(**overrides) -> StorageConfig:
    values = {
        "payment_url": PAYMENT,
        "upload_url": UPLOAD,
        "wallet_address": "0xabc",
        "token_type": "ethereum",
    }
    values.update(overrides)
    return StorageConfig(**values)


class TurboStub:
    """Records requests and answers like the Turbo payment and upload services."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.balance: object = "5000"
        self.upload_status = 200
        self.receipt: dict = {"id": "tx-abc", "owner": "owner-1", "dataCaches": ["arweave.net"]}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.startswith("/v1/account/balance/"):
            return httpx.Response(200, json={"winc": self.balance})
        if path.startswith("/v1/price/bytes/"):
            size = int(path.rsplit("/", 1)[-1])
            return httpx.Response(200, json={"winc": str(size * 10)})
        if path.startswith("/v1/top-up/checkout-session/"):
            return httpx.Response(200, json={"paymentSession": {"url": "https://checkout.test/s/1"}})
        if path.startswith("/v1/tx/"):
            if self.upload_status != 200:
                return httpx.Response(self.upload_status, text="bundler unavailable")
            return httpx.Response(200, json=self.receipt)
        return httpx.Response(404)


@pytest.fixture
def stub() -> TurboStub:
    return TurboStub()


@pytest.fixture
def backend(stub: TurboStub) -> TurboStorageBackend:
    client = httpx.AsyncClient(transport=httpx.MockTransport(stub))
    return TurboStorageBackend(_config(), client)


class TestBalanceAndCost:
    def test_satisfies_protocol(self, backend):
        assert isinstance(backend, StorageBackend)

    @pytest.mark.asyncio
    async def test_balance_queries_wallet(self, backend, stub):
        assert await backend.get_balance() == 5000
        request = stub.requests[0]
        assert request.url.path == "/v1/account/balance/ethereum"
        assert request.url.params["address"] == "0xabc"

    @pytest.mark.asyncio
    async def test_invalid_balance_raises(self, backend, stub):
        stub.balance = "lots"
        with pytest.raises(StorageBackendError, match="invalid balance"):
            await backend.get_balance()

    @pytest.mark.asyncio
    async def test_missing_wallet_raises(self, stub):
        client = httpx.AsyncClient(transport=httpx.MockTransport(stub))
        backend = TurboStorageBackend(_config(wallet_address=""), client)
        with pytest.raises(StorageBackendError, match="wallet address"):
            await backend.get_balance()
        assert stub.requests == []

    @pytest.mark.asyncio
    async def test_costs_per_size(self, backend):
        assert await backend.get_upload_costs([1, 100]) == [10, 1000]

    @pytest.mark.asyncio
    async def test_checkout_session_url(self, backend, stub):
        url = await backend.create_checkout_session(1234)
        assert url == "https://checkout.test/s/1"
        assert stub.requests[0].url.path == "/v1/top-up/checkout-session/0xabc/usd/500"


class TestUpload:
    @pytest.mark.asyncio
    async def test_upload_streams_file_with_tags(self, backend, stub, tmp_path):
        path = tmp_path / "a.txt"
        path.write_bytes(b"permanent")

        receipt = await backend.upload_file(path, 9, [Tag("App-Name", "Test")])

        assert receipt.id == "tx-abc"
        assert receipt.owner == "owner-1"
        assert receipt.data_caches == ["arweave.net"]
        request = stub.requests[0]
        assert request.url.path == "/v1/tx/ethereum"
        assert request.content == b"permanent"
        assert json.loads(request.headers["x-tags"]) == [{"name": "App-Name", "value": "Test"}]

    @pytest.mark.asyncio
    async def test_null_receipt_lists_become_empty(self, backend, stub, tmp_path):
        stub.receipt = {"id": "tx-abc", "owner": "o", "dataCaches": None, "fastFinalityIndexes": None}
        path = tmp_path / "a.txt"
        path.write_bytes(b"x")

        receipt = await backend.upload_file(path, 1, [])

        assert receipt.id == "tx-abc"
        assert receipt.data_caches == []
        assert receipt.fast_finality_indexes == []

    @pytest.mark.asyncio
    async def test_http_error_raises(self, backend, stub, tmp_path):
        stub.upload_status = 503
        path = tmp_path / "a.txt"
        path.write_bytes(b"x")
        with pytest.raises(StorageBackendError, match="HTTP 503"):
            await backend.upload_file(path, 1, [])

    @pytest.mark.asyncio
    async def test_transport_error_raises(self, tmp_path):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        client = httpx.AsyncClient(transport=httpx.MockTransport(refuse))
        backend = TurboStorageBackend(_config(), client)
        path = tmp_path / "a.txt"
        path.write_bytes(b"x")
        with pytest.raises(StorageBackendError, match="Upload request failed"):
            await backend.upload_file(path, 1, [])


class TestWincToAr:
    def test_format(self):
        assert winc_to_ar(1_000_000_000_000) == "1.000000"
        assert winc_to_ar(1_500_000_000) == "0.001500"
