"""Document metadata store and the email relay stub.

Documents live in a dict keyed by `doc-<uuid>` ids and are lost on
restart. Listings return a content preview rather than the full body.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from loguru import logger

from aobridge.errors import NotFoundError, ValidationError

PREVIEW_LENGTH = 100


def _now() -> str:
    return datetime.now(UTC).isoformat()


def preview(content: str, limit: int = PREVIEW_LENGTH) -> str:
    if len(content) > limit:
        return content[:limit] + "..."
    return content


@dataclass(slots=True)
class Document:
    id: str
    file_name: str
    file_size: int = 0
    content_type: str = "application/octet-stream"
    content: str = ""
    uploaded_by: str = "anonymous"
    department: str = "general"
    created_at: str = field(default_factory=_now)
    updated_at: str = field(default_factory=_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "fileName": self.file_name,
            "fileSize": self.file_size,
            "contentType": self.content_type,
            "content": preview(self.content),
            "uploadedBy": self.uploaded_by,
            "department": self.department,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


class DocumentStore:
    """In-memory document CRUD."""

    def __init__(self) -> None:
        self._documents: dict[str, Document] = {}

    def create(
        self,
        file_name: str | None,
        *,
        file_size: int | None = None,
        content_type: str | None = None,
        content: str | None = None,
        uploaded_by: str | None = None,
        department: str | None = None,
    ) -> Document:
        if not file_name:
            raise ValidationError("File name is required")
        doc = Document(
            id=f"doc-{uuid.uuid4()}",
            file_name=file_name,
            file_size=file_size or 0,
            content_type=content_type or "application/octet-stream",
            content=content or "",
            uploaded_by=uploaded_by or "anonymous",
            department=department or "general",
        )
        self._documents[doc.id] = doc
        logger.info("Document created: {} ({})", doc.id, file_name)
        return doc

    def list(self) -> list[Document]:
        return list(self._documents.values())

    def get(self, doc_id: str) -> Document:
        doc = self._documents.get(doc_id)
        if doc is None:
            raise NotFoundError("Document not found")
        return doc

    def update(
        self,
        doc_id: str,
        *,
        file_name: str | None = None,
        file_size: int | None = None,
        content_type: str | None = None,
        content: str | None = None,
        uploaded_by: str | None = None,
        department: str | None = None,
    ) -> Document:
        """Merge the given fields. Size and content may be set to falsy values."""
        doc = self.get(doc_id)
        if file_name:
            doc.file_name = file_name
        if file_size is not None:
            doc.file_size = file_size
        if content_type:
            doc.content_type = content_type
        if content is not None:
            doc.content = content
        if uploaded_by:
            doc.uploaded_by = uploaded_by
        if department:
            doc.department = department
        doc.updated_at = _now()
        logger.info("Document updated: {}", doc_id)
        return doc

    def delete(self, doc_id: str) -> Document:
        doc = self.get(doc_id)
        del self._documents[doc_id]
        logger.info("Document deleted: {}", doc_id)
        return doc

    def __len__(self) -> int:
        return len(self._documents)


def send_email(to: str | None, body: str | None, subject: str | None = None, sender: str | None = None) -> None:
    """Validate an outgoing email and log it. No mail transport is configured."""
    if not to:
        raise ValidationError("Recipient (to) is required")
    if not body:
        raise ValidationError("Email body is required")
    logger.info(
        "Email from={} to={} subject={!r} body_len={}",
        sender or "noreply@example.com",
        to,
        subject or "No Subject",
        len(body),
    )
