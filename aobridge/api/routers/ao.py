"""AO platform endpoints: connection state and direct process messaging."""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from aobridge.api.dependencies import get_ao_client
from aobridge.errors import ValidationError
from aobridge.services.ao import AOClient

router = APIRouter(prefix="/ao", tags=["ao"])


class ConnectRequest(BaseModel):
    processId: str | None = Field(default=None, max_length=128)  # noqa: N815
    emailBotId: str | None = Field(default=None, max_length=128)  # noqa: N815


class SendMessageRequest(BaseModel):
    target: str | None = Field(default=None, max_length=128)
    action: str | None = Field(default=None, max_length=256)
    data: str | None = None
    tags: dict[str, str] = Field(default_factory=dict)


def _require_connected(ao: AOClient) -> None:
    if not ao.connected:
        raise ValidationError("Not connected to AO platform")


@router.post("/connect")
async def connect(body: ConnectRequest, ao: AOClient = Depends(get_ao_client)) -> dict:  # noqa: B008
    if not body.processId:
        raise ValidationError("Process ID is required")
    ao.connect(body.processId, body.emailBotId)
    return {
        "success": True,
        "message": "Connected to AO platform",
        "processId": ao.process_id,
        "emailBotId": ao.email_bot_id,
    }


@router.post("/disconnect")
async def disconnect(ao: AOClient = Depends(get_ao_client)) -> dict:  # noqa: B008
    ao.disconnect()
    return {"success": True, "message": "Disconnected from AO platform"}


@router.get("/status")
async def status(ao: AOClient = Depends(get_ao_client)) -> dict:  # noqa: B008
    _require_connected(ao)
    return ao.status()


@router.get("/targets")
async def targets(ao: AOClient = Depends(get_ao_client)) -> list[dict]:  # noqa: B008
    _require_connected(ao)
    return ao.targets()


@router.post("/send")
async def send_message(body: SendMessageRequest, ao: AOClient = Depends(get_ao_client)) -> dict:  # noqa: B008
    if not body.target:
        raise ValidationError("Target is required")
    if not body.action:
        raise ValidationError("Action is required")

    result = await ao.send_message(body.target, body.action, body.data or "")
    return {
        "success": True,
        "message": "Message sent to AO network",
        "target": body.target,
        "action": body.action,
        "result": result.to_dict(),
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.get("/messages/{process_id}")
async def messages(process_id: str, ao: AOClient = Depends(get_ao_client)) -> list[dict]:  # noqa: B008
    return ao.recent_messages(process_id)
