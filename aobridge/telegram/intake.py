"""Download attachments of inbound Telegram messages into the upload directory.

The handler resolves the file link through Telegram, streams the binary
to `<upload_dir>/<id>-<name>` and registers a FileRecord. Either a fully
written file is registered or nothing is: a partial download is removed
before the failure is reported.
"""

from __future__ import annotations

import asyncio
import re
import uuid
from collections.abc import Awaitable, Callable
from pathlib import Path

import httpx
from loguru import logger

from aobridge.errors import UpstreamUnavailableError
from aobridge.telegram.file_cache import FileUploadCache
from aobridge.telegram.models import (
    DocumentCapture,
    FileRecord,
    MessageCapture,
    PhotoCapture,
    UploadStatus,
)

LinkResolver = Callable[[str], Awaitable[str]]

_UNSAFE_CHARS = re.compile(r"[^\w\-. ]")
_MAX_NAME_LENGTH = 120
_CHUNK_SIZE = 64 * 1024


def sanitize_file_name(name: str) -> str:
    """Strip directory parts and unsafe characters from a user-supplied name."""
    base = Path(name.replace("\\", "/")).name.strip()
    cleaned = _UNSAFE_CHARS.sub("_", base).lstrip(".")
    return cleaned[:_MAX_NAME_LENGTH] or "unknown_file"


class MessageIntakeHandler:
    """Turns a captured document or photo message into a cached FileRecord."""

    def __init__(
        self,
        cache: FileUploadCache,
        upload_dir: Path,
        resolve_link: LinkResolver,
        http_client: httpx.AsyncClient,
        timeout: float = 60.0,
    ) -> None:
        self._cache = cache
        self._upload_dir = upload_dir
        self._resolve_link = resolve_link
        self._http = http_client
        self._timeout = timeout

    @property
    def upload_dir(self) -> Path:
        return self._upload_dir

    async def process(self, capture: MessageCapture) -> FileRecord | None:
        """Download and register the capture's attachment.

        Returns None for captures without an attachment (plain text).
        Raises UpstreamUnavailableError when the link cannot be resolved or
        the download fails; no record is registered in that case.
        """
        if isinstance(capture, DocumentCapture):
            file_name = capture.file_name or "unknown_file"
            content_type = capture.mime_type or "application/octet-stream"
        elif isinstance(capture, PhotoCapture):
            file_name = capture.file_name
            content_type = "image/jpeg"
        else:
            logger.debug("Nothing to download for {} message from {}", capture.kind, capture.from_id)
            return None

        try:
            link = await asyncio.wait_for(self._resolve_link(capture.file_id), timeout=self._timeout)
        except Exception as exc:
            logger.error("Could not resolve Telegram file link for {}: {}", capture.file_id, exc)
            raise UpstreamUnavailableError(f"Failed to resolve file link: {exc}") from exc

        record_id = str(uuid.uuid4())
        local_path = self._upload_dir / f"{record_id}-{sanitize_file_name(file_name)}"

        try:
            written = await asyncio.wait_for(self._download(link, local_path), timeout=self._timeout)
        except (httpx.HTTPError, OSError, TimeoutError) as exc:
            self._discard_partial(local_path)
            logger.error("Download of {} failed: {}", file_name, exc)
            raise UpstreamUnavailableError(f"Failed to download file: {str(exc) or type(exc).__name__}") from exc

        record = FileRecord(
            id=record_id,
            file_name=file_name,
            file_size=capture.file_size or written,
            content_type=content_type,
            uploaded_by=capture.from_id,
            telegram_file_id=capture.file_id,
            file_url=link,
            local_path=local_path,
            upload_status=UploadStatus.PENDING,
        )
        self._cache.insert(record)
        logger.info("File received: {} ({}, {} bytes)", file_name, record_id, written)
        return record

    async def _download(self, url: str, destination: Path) -> int:
        """Stream `url` to `destination`. Returns the number of bytes written."""
        destination.parent.mkdir(parents=True, exist_ok=True)
        written = 0
        async with self._http.stream("GET", url) as response:
            response.raise_for_status()
            with destination.open("wb") as fh:
                async for chunk in response.aiter_bytes(_CHUNK_SIZE):
                    fh.write(chunk)
                    written += len(chunk)
        return written

    @staticmethod
    def _discard_partial(path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not remove partial download {}: {}", path, exc)
