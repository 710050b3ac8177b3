"""Move cached Telegram files to permanent storage.

UploadCoordinator.upload() runs the whole check-cost-upload sequence for
one file while holding that file's lock, so concurrent uploads (or an
upload racing a delete) of the same id are serialized. Outcomes are
written onto the FileRecord so later reads see them without retrying:

  pending  -> in flight, or waiting for a balance top-up
  success  -> remote id and URL recorded
  failed   -> error detail recorded
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from aobridge.errors import NotFoundError, PartialStateError
from aobridge.storage.backend import StorageBackend, StorageBackendError, Tag, winc_to_ar
from aobridge.telegram.file_cache import FileUploadCache
from aobridge.telegram.models import FileRecord, UploadStatus


@dataclass(slots=True)
class UploadResult:
    """Outcome of one upload attempt."""

    success: bool
    file_id: str
    remote_id: str | None = None
    remote_url: str | None = None
    owner: str | None = None
    data_caches: list[str] = field(default_factory=list)
    fast_finality_indexes: list[str] = field(default_factory=list)
    error: str | None = None
    insufficient_balance: bool = False
    checkout_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success, "fileId": self.file_id}
        if self.success:
            data.update(
                {
                    "arweave_id": self.remote_id,
                    "arweave_url": self.remote_url,
                    "owner": self.owner,
                    "dataCaches": self.data_caches,
                    "fastFinalityIndexes": self.fast_finality_indexes,
                }
            )
        else:
            data["error"] = self.error
        if self.checkout_url:
            data["checkoutUrl"] = self.checkout_url
        return data


@dataclass(frozen=True, slots=True)
class CostEstimate:
    winc: int
    balance: int

    @property
    def sufficient(self) -> bool:
        return self.balance >= self.winc

    def to_dict(self) -> dict[str, Any]:
        return {
            "winc": self.winc,
            "ar": winc_to_ar(self.winc),
            "balance": self.balance,
            "sufficient": self.sufficient,
        }


class UploadCoordinator:
    """Uploads cached files to a StorageBackend and records the outcome."""

    def __init__(
        self,
        cache: FileUploadCache,
        backend: StorageBackend,
        app_name: str = "AO-Process-Builder",
        gateway_url: str = "https://arweave.net",
    ) -> None:
        self._cache = cache
        self._backend = backend
        self._app_name = app_name
        self._gateway_url = gateway_url.rstrip("/")

    async def upload(self, file_id: str, custom_tags: list[Tag] | None = None) -> UploadResult:
        """Upload one cached file.

        Raises NotFoundError for unknown ids and PartialStateError when the
        local copy is gone. Every other outcome is returned as an UploadResult
        and recorded on the FileRecord, unexpected backend errors included.
        """
        async with self._cache.locked(file_id):
            record = self._cache.get(file_id)
            if record is None:
                raise NotFoundError("File not found")

            if record.upload_status == UploadStatus.SUCCESS and record.remote_id:
                logger.debug("File {} already uploaded as {}", file_id, record.remote_id)
                return UploadResult(
                    success=True,
                    file_id=file_id,
                    remote_id=record.remote_id,
                    remote_url=record.remote_url,
                )

            if not record.has_local_copy:
                raise PartialStateError("File content not available on disk")

            record.mark_pending()
            try:
                return await self._attempt(record, custom_tags)
            except Exception as exc:
                logger.exception("Unexpected error while uploading {}", file_id)
                return self._fail(record, f"Unexpected upload error: {exc}")

    async def _attempt(self, record: FileRecord, custom_tags: list[Tag] | None) -> UploadResult:
        size = record.local_path.stat().st_size

        try:
            balance = await self._backend.get_balance()
            [cost] = await self._backend.get_upload_costs([size])
        except (StorageBackendError, ValueError) as exc:
            return self._fail(record, f"Could not price upload: {exc}")

        if balance < cost:
            logger.warning("Insufficient balance for upload of {}: {} < {}", record.id, balance, cost)
            try:
                checkout_url = await self._backend.create_checkout_session(cost - balance)
            except StorageBackendError as exc:
                return self._fail(record, f"Insufficient balance and top-up failed: {exc}")
            return UploadResult(
                success=False,
                file_id=record.id,
                error="Insufficient balance for upload",
                insufficient_balance=True,
                checkout_url=checkout_url,
            )

        tags = self._default_tags(record) + list(custom_tags or [])
        try:
            receipt = await self._backend.upload_file(record.local_path, size, tags)
        except StorageBackendError as exc:
            return self._fail(record, str(exc))

        remote_url = f"{self._gateway_url}/{receipt.id}"
        record.mark_success(receipt.id, remote_url)
        logger.info("Uploaded {} to permanent storage as {}", record.file_name, receipt.id)
        return UploadResult(
            success=True,
            file_id=record.id,
            remote_id=receipt.id,
            remote_url=remote_url,
            owner=receipt.owner,
            data_caches=receipt.data_caches,
            fast_finality_indexes=receipt.fast_finality_indexes,
        )

    async def balance(self) -> int:
        return await self._backend.get_balance()

    async def estimate_cost(self, file_id: str) -> CostEstimate:
        record = self._cache.get(file_id)
        if record is None:
            raise NotFoundError("File not found")
        size = record.local_path.stat().st_size if record.has_local_copy else record.file_size
        balance = await self._backend.get_balance()
        [cost] = await self._backend.get_upload_costs([size])
        return CostEstimate(winc=cost, balance=balance)

    def _default_tags(self, record: FileRecord) -> list[Tag]:
        return [
            Tag("Content-Type", record.content_type),
            Tag("File-Name", record.file_name),
            Tag("Uploaded-By", record.uploaded_by),
            Tag("App-Name", self._app_name),
        ]

    @staticmethod
    def _fail(record: FileRecord, error: str) -> UploadResult:
        record.mark_failed(error)
        logger.error("Upload of {} failed: {}", record.id, error)
        return UploadResult(success=False, file_id=record.id, error=error)
