"""In-memory store of FileRecords received through the bot.

The cache is owned by the serving process and handed to the components
that need it. Nothing is persisted: a restart forgets every record while
the downloaded files stay in the upload directory.
"""

from __future__ import annotations

import dataclasses
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

from loguru import logger

from aobridge.errors import NotFoundError
from aobridge.telegram.locks import KeyedLock
from aobridge.telegram.models import FileRecord

_MUTABLE_FIELDS = frozenset(f.name for f in dataclasses.fields(FileRecord)) - {"id", "created_at"}


class FileUploadCache:
    """Mapping of generated file id to FileRecord with per-id locking."""

    def __init__(self) -> None:
        self._records: dict[str, FileRecord] = {}
        self._locks = KeyedLock()

    def insert(self, record: FileRecord) -> None:
        if record.id in self._records:
            raise ValueError(f"File id already registered: {record.id}")
        self._records[record.id] = record
        logger.debug("Cached file {} ({})", record.id, record.file_name)

    def get(self, file_id: str) -> FileRecord | None:
        return self._records.get(file_id)

    def all(self) -> list[FileRecord]:
        return list(self._records.values())

    def update(self, file_id: str, **changes) -> FileRecord:
        """Merge the given fields into an existing record in place.

        The identity fields (id, created_at) cannot be changed.
        """
        record = self._records.get(file_id)
        if record is None:
            raise NotFoundError("File not found")

        unknown = set(changes) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update field(s): {', '.join(sorted(unknown))}")
        for name, value in changes.items():
            setattr(record, name, value)
        return record

    @asynccontextmanager
    async def locked(self, file_id: str) -> AsyncIterator[None]:
        """Hold the advisory lock for one file id."""
        async with self._locks.acquire(file_id):
            yield

    async def delete(self, file_id: str) -> FileRecord | None:
        """Evict a record and remove its local file.

        Returns the evicted record, or None if the id is unknown. A failure
        to remove the file from disk is logged; the record is evicted anyway.
        """
        async with self._locks.acquire(file_id):
            record = self._records.pop(file_id, None)
            if record is None:
                return None

            if record.local_path is not None:
                try:
                    record.local_path.unlink(missing_ok=True)
                except OSError as exc:
                    logger.error("Failed to delete file {} from disk: {}", file_id, exc)

            logger.info("Deleted file {} ({})", file_id, record.file_name)
            return record

    def recent(
        self,
        since: datetime | None = None,
        content_type: str | None = None,
        limit: int | None = None,
    ) -> list[FileRecord]:
        """Return records newest first, optionally filtered.

        content_type matches the full MIME type when it contains a slash,
        otherwise the major type (e.g. "image" matches "image/png").
        """
        records = self._records.values()
        if since is not None:
            records = [r for r in records if r.created_at >= since]
        if content_type:
            records = [r for r in records if _matches_type(r.content_type, content_type)]

        ordered = sorted(records, key=lambda r: r.created_at, reverse=True)
        if limit is not None:
            ordered = ordered[:limit]
        return ordered

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, file_id: object) -> bool:
        return file_id in self._records


def _matches_type(actual: str, wanted: str) -> bool:
    actual = actual.lower()
    wanted = wanted.lower().strip()
    if "/" in wanted:
        return actual == wanted
    return actual.startswith(f"{wanted}/")
