"""Data models for the Telegram file intake pipeline.

FileRecord describes one file received from Telegram and tracks its
permanent-storage upload lifecycle. Captures are immutable snapshots of
an inbound message taken at receive time, so a queued message can be
replayed later without the original Telegram connection.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from pathlib import Path
from typing import Any


class UploadStatus(StrEnum):
    """Permanent-storage upload states for a FileRecord."""

    UNSET = "unset"
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(slots=True)
class FileRecord:
    """Metadata for a file received through the bot.

    Invariants:
      - status SUCCESS implies remote_id and remote_url are set
      - status FAILED implies upload_error is set
    Use the mark_* helpers rather than assigning status directly.
    """

    id: str
    file_name: str
    file_size: int
    content_type: str
    uploaded_by: str
    telegram_file_id: str
    file_url: str | None = None
    local_path: Path | None = None
    remote_id: str | None = None
    remote_url: str | None = None
    upload_status: UploadStatus = UploadStatus.UNSET
    upload_error: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def mark_pending(self) -> None:
        self.upload_status = UploadStatus.PENDING
        self.upload_error = None

    def mark_success(self, remote_id: str, remote_url: str) -> None:
        if not remote_id or not remote_url:
            raise ValueError("A successful upload needs both a remote id and a remote URL")
        self.remote_id = remote_id
        self.remote_url = remote_url
        self.upload_status = UploadStatus.SUCCESS
        self.upload_error = None

    def mark_failed(self, error: str) -> None:
        self.upload_status = UploadStatus.FAILED
        self.upload_error = error or "Unknown upload error"

    @property
    def has_local_copy(self) -> bool:
        return self.local_path is not None and self.local_path.is_file()

    @property
    def is_reachable(self) -> bool:
        """True when the content can be served locally or from permanent storage."""
        return self.has_local_copy or bool(self.remote_url)

    def to_public_dict(self) -> dict[str, Any]:
        """JSON view without local filesystem paths or Telegram handles."""
        data: dict[str, Any] = {
            "id": self.id,
            "fileName": self.file_name,
            "fileSize": self.file_size,
            "contentType": self.content_type,
            "uploadedBy": self.uploaded_by,
            "createdAt": self.created_at.isoformat(),
            "arweaveUploadStatus": str(self.upload_status),
        }
        if self.remote_id:
            data["arweaveId"] = self.remote_id
        if self.remote_url:
            data["arweaveUrl"] = self.remote_url
        if self.upload_error:
            data["arweaveUploadError"] = self.upload_error
        return data


@dataclass(frozen=True, slots=True)
class DocumentCapture:
    """An inbound document message."""

    file_id: str
    file_name: str
    mime_type: str
    file_size: int
    from_id: str

    @property
    def kind(self) -> str:
        return "document"


@dataclass(frozen=True, slots=True)
class PhotoCapture:
    """An inbound photo message (largest available size)."""

    file_id: str
    caption: str
    file_size: int
    from_id: str

    @property
    def kind(self) -> str:
        return "photo"

    @property
    def file_name(self) -> str:
        return f"{self.caption or 'photo'}.jpg"


@dataclass(frozen=True, slots=True)
class TextCapture:
    """An inbound plain text message. Carries no attachment."""

    text: str
    from_id: str

    @property
    def kind(self) -> str:
        return "text"


MessageCapture = DocumentCapture | PhotoCapture | TextCapture


@dataclass(frozen=True, slots=True)
class PendingMessage:
    """A captured message waiting to be replayed after the bot was inactive."""

    id: str
    capture: MessageCapture
    received_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def kind(self) -> str:
        return self.capture.kind

    def summary(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "type": self.kind,
            "from": self.capture.from_id,
            "receivedAt": self.received_at.isoformat(),
        }
        if isinstance(self.capture, DocumentCapture | PhotoCapture):
            data["fileName"] = self.capture.file_name
            data["fileSize"] = self.capture.file_size
        else:
            data["text"] = self.capture.text[:100]
        return data
