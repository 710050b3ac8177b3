"""Shared test fixtures for the aobridge test suite.

The _isolate_bridge_config fixture (autouse) prevents BridgeConfig from
reading the user's real ~/.aobridge/config.json during tests.

FakeStorageBackend and FakeTelegramApplication stand in for ArDrive Turbo
and the python-telegram-bot Application so nothing touches the network.
"""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from aobridge.api.app import create_api_app
from aobridge.config.schema import BridgeConfig
from aobridge.storage.backend import StorageBackendError, Tag, UploadReceipt
from aobridge.telegram.models import FileRecord


@pytest.fixture(autouse=True)
def _isolate_bridge_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Point BridgeConfig's json_file at an empty temp file for every test."""
    empty_config = tmp_path / "aobridge_test_config.json"
    empty_config.write_text("{}", encoding="utf-8")
    monkeypatch.setitem(BridgeConfig.model_config, "json_file", empty_config)


class FakeStorageBackend:
    """In-memory StorageBackend with a settable balance and per-upload cost."""

    def __init__(self, balance: int = 10**12, cost: int = 100) -> None:
        self.balance = balance
        self.cost = cost
        self.checkout_url = "https://checkout.test/session/1"
        self.fail_balance: str | None = None
        self.fail_upload: str | None = None
        self.uploads: list[tuple[Path, int, list[Tag]]] = []
        self.checkout_amounts: list[int] = []

    async def get_address(self) -> str:
        return "0xwallet"

    async def get_balance(self) -> int:
        if self.fail_balance:
            raise StorageBackendError(self.fail_balance)
        return self.balance

    async def get_upload_costs(self, sizes: list[int]) -> list[int]:
        return [self.cost for _ in sizes]

    async def create_checkout_session(self, amount: int) -> str:
        self.checkout_amounts.append(amount)
        return self.checkout_url

    async def upload_file(self, path: Path, size: int, tags: list[Tag]) -> UploadReceipt:
        if self.fail_upload:
            raise StorageBackendError(self.fail_upload)
        self.uploads.append((path, size, tags))
        return UploadReceipt(
            id=f"tx-{len(self.uploads)}",
            owner="owner-address",
            data_caches=["arweave.net"],
            fast_finality_indexes=["arweave.net"],
        )


class FakeUpdater:
    def __init__(self) -> None:
        self.running = False
        self.error_callback: Any = None
        self.start_calls = 0

    async def start_polling(self, drop_pending_updates: bool = False, error_callback: Any = None) -> None:
        self.running = True
        self.start_calls += 1
        self.error_callback = error_callback

    async def stop(self) -> None:
        self.running = False


class FakeTelegramBot:
    def __init__(self, fail_get_me: bool = False) -> None:
        self.fail_get_me = fail_get_me
        self.defaults = None

    async def get_me(self) -> SimpleNamespace:
        if self.fail_get_me:
            raise RuntimeError("Unauthorized")
        return SimpleNamespace(id=42, username="bridge_bot", first_name="Bridge")

    async def get_file(self, file_id: str) -> SimpleNamespace:
        return SimpleNamespace(file_path=f"https://files.test/{file_id}")


class FakeTelegramApplication:
    """Enough of telegram.ext.Application for TelegramBotService."""

    def __init__(self, fail_get_me: bool = False) -> None:
        self.bot = FakeTelegramBot(fail_get_me=fail_get_me)
        self.updater = FakeUpdater()
        self.running = False
        self.handlers: list[Any] = []
        self.initialized = False
        self.shut_down = False
        self.processed: list[Any] = []

    async def initialize(self) -> None:
        self.initialized = True

    def add_handler(self, handler: Any) -> None:
        self.handlers.append(handler)

    async def start(self) -> None:
        self.running = True

    async def stop(self) -> None:
        self.running = False

    async def shutdown(self) -> None:
        self.shut_down = True

    async def process_update(self, update: Any) -> None:
        self.processed.append(update)


def file_server(request: httpx.Request) -> httpx.Response:
    """MockTransport handler serving https://files.test/<id>.

    Ids starting with "missing" answer 404; otherwise the body is
    `size-<n>` -> n bytes, or a short fixed payload.
    """
    file_id = request.url.path.rsplit("/", 1)[-1]
    if file_id.startswith("missing"):
        return httpx.Response(404)
    if file_id.startswith("size-"):
        return httpx.Response(200, content=b"x" * int(file_id.split("-", 1)[1]))
    return httpx.Response(200, content=b"hello from telegram")


@pytest.fixture
def fake_backend() -> FakeStorageBackend:
    return FakeStorageBackend()


@pytest.fixture
def fake_app() -> FakeTelegramApplication:
    return FakeTelegramApplication()


@pytest.fixture
def upload_dir(tmp_path: Path) -> Path:
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(file_server))


@pytest.fixture
def make_record(upload_dir: Path):
    """Factory for FileRecords backed by a real file in the upload dir."""
    counter = {"n": 0}

    def _make(
        content_type: str = "application/pdf",
        file_name: str = "report.pdf",
        data: bytes = b"%PDF-1.4 test",
        with_file: bool = True,
        **fields: Any,
    ) -> FileRecord:
        counter["n"] += 1
        record_id = fields.pop("id", f"file-{counter['n']}")
        local_path = upload_dir / f"{record_id}-{file_name}"
        if with_file:
            local_path.write_bytes(data)
        return FileRecord(
            id=record_id,
            file_name=file_name,
            file_size=len(data),
            content_type=content_type,
            uploaded_by="alice",
            telegram_file_id=f"tg-{record_id}",
            local_path=local_path,
            **fields,
        )

    return _make


@pytest.fixture
def bridge_config(upload_dir: Path, tmp_path: Path) -> BridgeConfig:
    """Config with a dummy bot token, no autostart and no real aos binary."""
    return BridgeConfig(
        telegram={"token": "123:abc", "start_on_boot": False, "upload_dir": str(upload_dir)},
        ao={"aos_command": str(tmp_path / "no-aos-here"), "timeout": 5},
        gateway={"cors_allowed_origins": []},
    )


@pytest.fixture
def api_client(
    bridge_config: BridgeConfig,
    fake_backend: FakeStorageBackend,
    fake_app: FakeTelegramApplication,
):
    """TestClient around a fully wired app; outbound HTTP is served by file_server."""
    app = create_api_app(
        bridge_config,
        backend=fake_backend,
        application_factory=lambda _token: fake_app,
        transport=httpx.MockTransport(file_server),
    )
    with TestClient(app) as client:
        yield client
