"""Document metadata CRUD and the email relay endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from aobridge.api.dependencies import get_documents
from aobridge.services.documents import DocumentStore, send_email

router = APIRouter(prefix="/documents", tags=["documents"])
email_router = APIRouter(prefix="/email", tags=["email"])


class DocumentBody(BaseModel):
    fileName: str | None = Field(default=None, max_length=512)  # noqa: N815
    fileSize: int | None = Field(default=None, ge=0)  # noqa: N815
    contentType: str | None = Field(default=None, max_length=256)  # noqa: N815
    content: str | None = None
    uploadedBy: str | None = Field(default=None, max_length=256)  # noqa: N815
    department: str | None = Field(default=None, max_length=256)


class EmailBody(BaseModel):
    to: str | None = Field(default=None, max_length=1024)
    subject: str | None = Field(default=None, max_length=1024)
    body: str | None = None
    from_: str | None = Field(default=None, alias="from", max_length=1024)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_document(body: DocumentBody, store: DocumentStore = Depends(get_documents)) -> dict:  # noqa: B008
    doc = store.create(
        body.fileName,
        file_size=body.fileSize,
        content_type=body.contentType,
        content=body.content,
        uploaded_by=body.uploadedBy,
        department=body.department,
    )
    return {"success": True, "message": "Document created successfully", "document": doc.to_dict()}


@router.get("")
async def list_documents(store: DocumentStore = Depends(get_documents)) -> dict:  # noqa: B008
    return {"success": True, "documents": [d.to_dict() for d in store.list()]}


@router.get("/{doc_id}")
async def get_document(doc_id: str, store: DocumentStore = Depends(get_documents)) -> dict:  # noqa: B008
    return {"success": True, "document": store.get(doc_id).to_dict()}


@router.put("/{doc_id}")
async def update_document(
    doc_id: str,
    body: DocumentBody,
    store: DocumentStore = Depends(get_documents),  # noqa: B008
) -> dict:
    doc = store.update(
        doc_id,
        file_name=body.fileName,
        file_size=body.fileSize,
        content_type=body.contentType,
        content=body.content,
        uploaded_by=body.uploadedBy,
        department=body.department,
    )
    return {"success": True, "message": "Document updated successfully", "document": doc.to_dict()}


@router.delete("/{doc_id}")
async def delete_document(doc_id: str, store: DocumentStore = Depends(get_documents)) -> dict:  # noqa: B008
    store.delete(doc_id)
    return {"success": True, "message": "Document deleted successfully"}


@email_router.post("/send")
async def send(body: EmailBody) -> dict:
    send_email(body.to, body.body, subject=body.subject, sender=body.from_)
    return {"success": True, "message": "Email sent successfully"}
