"""Telegram intake and permanent-storage endpoints.

Bot lifecycle (start/stop/status), the pending message queue, the file
cache and the ArDrive upload flow. File bodies never expose the local
path or the Telegram file id.
"""

from __future__ import annotations

import hmac
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import FileResponse, JSONResponse, RedirectResponse, Response
from pydantic import BaseModel, Field

from aobridge.api.dependencies import (
    get_bot,
    get_config,
    get_file_cache,
    get_pending_queue,
    get_uploader,
)
from aobridge.config.schema import BridgeConfig
from aobridge.errors import (
    InsufficientBalanceError,
    NotFoundError,
    PartialStateError,
    UpstreamUnavailableError,
    ValidationError,
)
from aobridge.storage.backend import StorageBackendError, Tag, winc_to_ar
from aobridge.telegram.bot import TelegramBotService
from aobridge.telegram.file_cache import FileUploadCache
from aobridge.telegram.pending import PendingMessageQueue
from aobridge.telegram.uploads import UploadCoordinator

router = APIRouter(prefix="/telegram", tags=["telegram"])


class TagBody(BaseModel):
    name: str = Field(..., min_length=1, max_length=256)
    value: str = Field(..., max_length=4096)


class UploadRequest(BaseModel):
    """Optional body for the upload endpoint."""

    tags: list[TagBody] = Field(default_factory=list, max_length=64)


# ── Bot lifecycle ──


@router.post("/start")
async def start_bot(bot: TelegramBotService = Depends(get_bot)) -> dict:  # noqa: B008
    if not await bot.start():
        raise UpstreamUnavailableError(bot.last_error or "Failed to start Telegram bot")
    return {"success": True, "message": "Telegram bot started", "status": bot.status()}


@router.post("/initialize")
async def initialize_bot(bot: TelegramBotService = Depends(get_bot)) -> dict:  # noqa: B008
    """Older clients call this instead of /start; it has the same effect."""
    if not await bot.start():
        raise UpstreamUnavailableError(bot.last_error or "Failed to initialize Telegram bot")
    return {"success": True, "message": "Telegram bot initialized successfully"}


@router.post("/stop")
async def stop_bot(bot: TelegramBotService = Depends(get_bot)) -> dict:  # noqa: B008
    if not await bot.stop():
        raise UpstreamUnavailableError(bot.last_error or "Failed to stop Telegram bot")
    return {"success": True, "message": "Telegram bot stopped", "status": bot.status()}


@router.get("/status")
async def bot_status(bot: TelegramBotService = Depends(get_bot)) -> dict:  # noqa: B008
    return {"success": True, **bot.status()}


@router.post("/webhook")
async def telegram_webhook(
    request: Request,
    bot: TelegramBotService = Depends(get_bot),  # noqa: B008
    config: BridgeConfig = Depends(get_config),  # noqa: B008
    secret_token: str | None = Header(default=None, alias="X-Telegram-Bot-Api-Secret-Token"),
) -> dict:
    """Accept a Telegram update pushed by webhook delivery."""
    expected = config.telegram.webhook_secret.get_secret_value()
    if expected and not hmac.compare_digest(secret_token or "", expected):
        raise NotFoundError("Not found")
    try:
        payload: Any = await request.json()
    except ValueError as exc:
        raise ValidationError("Webhook body must be valid JSON") from exc
    if not isinstance(payload, dict):
        raise ValidationError("Webhook body must be a JSON object")
    handled = await bot.handle_update(payload)
    return {"success": handled}


# ── Pending messages ──


@router.get("/messages/pending")
async def list_pending(queue: PendingMessageQueue = Depends(get_pending_queue)) -> dict:  # noqa: B008
    messages = [m.summary() for m in queue.list()]
    return {"success": True, "messages": messages, "count": len(messages)}


@router.post("/messages/{message_id}/process")
async def process_pending(
    message_id: str,
    bot: TelegramBotService = Depends(get_bot),  # noqa: B008
) -> dict:
    found, record = await bot.process_pending(message_id)
    if not found:
        raise NotFoundError("Pending message not found")
    return {
        "success": True,
        "message": "Message processed successfully",
        "file": record.to_public_dict() if record is not None else None,
    }


# ── Files ──


@router.get("/files")
async def list_files(cache: FileUploadCache = Depends(get_file_cache)) -> dict:  # noqa: B008
    return {"success": True, "files": [r.to_public_dict() for r in cache.all()]}


# Declared before /files/{file_id} so "recent" is not taken as an id.
@router.get("/files/recent")
async def recent_files(
    since: datetime | None = None,
    type: str | None = None,  # noqa: A002
    limit: int | None = None,
    cache: FileUploadCache = Depends(get_file_cache),  # noqa: B008
) -> dict:
    if since is not None and since.tzinfo is None:
        since = since.replace(tzinfo=UTC)
    if limit is not None and limit < 0:
        limit = 0
    records = cache.recent(since=since, content_type=type, limit=limit)
    return {
        "success": True,
        "files": [r.to_public_dict() for r in records],
        "count": len(records),
    }


@router.get("/files/{file_id}")
async def get_file(file_id: str, cache: FileUploadCache = Depends(get_file_cache)) -> dict:  # noqa: B008
    record = cache.get(file_id)
    if record is None:
        raise NotFoundError("File not found")
    return {"success": True, "file": record.to_public_dict()}


@router.get("/files/{file_id}/download")
async def download_file(
    file_id: str,
    cache: FileUploadCache = Depends(get_file_cache),  # noqa: B008
) -> Response:
    record = cache.get(file_id)
    if record is None:
        raise NotFoundError("File not found")
    if record.has_local_copy:
        return FileResponse(
            record.local_path,
            media_type=record.content_type,
            filename=record.file_name,
        )
    if record.remote_url:
        return RedirectResponse(record.remote_url, status_code=302)
    raise PartialStateError("File content not available on disk")


@router.delete("/files/{file_id}")
async def delete_file(file_id: str, cache: FileUploadCache = Depends(get_file_cache)) -> dict:  # noqa: B008
    record = await cache.delete(file_id)
    if record is None:
        raise NotFoundError("File not found")
    body: dict[str, Any] = {"success": True, "message": "File deleted successfully"}
    if record.remote_id:
        body["warning"] = (
            f"A permanent copy remains at {record.remote_url}; it cannot be removed."
        )
    return body


# ── Permanent storage ──


@router.get("/ardrive/balance")
async def ardrive_balance(uploader: UploadCoordinator = Depends(get_uploader)) -> dict:  # noqa: B008
    try:
        winc = await uploader.balance()
    except StorageBackendError as exc:
        raise UpstreamUnavailableError(f"Failed to get balance: {exc}") from exc
    return {"success": True, "balance": {"winc": winc, "ar": winc_to_ar(winc)}}


@router.get("/ardrive/files/{file_id}/cost")
async def ardrive_cost(
    file_id: str,
    uploader: UploadCoordinator = Depends(get_uploader),  # noqa: B008
) -> dict:
    try:
        estimate = await uploader.estimate_cost(file_id)
    except StorageBackendError as exc:
        raise UpstreamUnavailableError(f"Failed to get upload cost: {exc}") from exc
    return {"success": True, "fileId": file_id, "cost": estimate.to_dict()}


@router.post("/ardrive/files/{file_id}/upload")
async def ardrive_upload(
    file_id: str,
    body: UploadRequest | None = None,
    uploader: UploadCoordinator = Depends(get_uploader),  # noqa: B008
) -> JSONResponse:
    tags = [Tag(t.name, t.value) for t in body.tags] if body else []
    result = await uploader.upload(file_id, custom_tags=tags)
    if result.insufficient_balance:
        raise InsufficientBalanceError(
            result.error or "Insufficient balance for upload",
            checkout_url=result.checkout_url or "",
            fileId=file_id,
        )
    return JSONResponse(status_code=200 if result.success else 500, content=result.to_dict())
