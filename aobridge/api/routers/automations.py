"""Automation CRUD and trigger endpoints.

Every route requires an AO connection (POST /api/ao/connect) and answers
400 without one. Bodies use the ProcessBuilder's capitalized field names.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from aobridge.api.dependencies import get_automations
from aobridge.services.automations import AutomationStore

router = APIRouter(prefix="/automations", tags=["automations"])


class AutomationBody(BaseModel):
    When: str | None = Field(default=None, max_length=256)
    Then: str | None = Field(default=None, max_length=256)
    Target: str | None = Field(default=None, max_length=128)
    Name: str | None = Field(default=None, max_length=256)
    Description: str | None = Field(default=None, max_length=4096)


class TriggerBody(BaseModel):
    action: str | None = Field(default=None, max_length=256)
    data: str | None = None


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_automation(
    body: AutomationBody,
    store: AutomationStore = Depends(get_automations),  # noqa: B008
) -> dict:
    automation, ao_error = await store.create(
        body.When or "",
        body.Then or "",
        body.Target or "",
        name=body.Name,
        description=body.Description,
    )
    result: dict[str, Any] = {
        "success": True,
        "message": "Automation created successfully",
        "id": automation.id,
        "config": automation.config(),
    }
    if ao_error is not None:
        result["message"] = "Automation created locally but AO communication failed"
        result["aoError"] = ao_error
    return result


@router.get("")
async def list_automations(store: AutomationStore = Depends(get_automations)) -> list[dict]:  # noqa: B008
    return [a.to_dict() for a in store.list()]


@router.get("/{automation_id}")
async def get_automation(
    automation_id: str,
    store: AutomationStore = Depends(get_automations),  # noqa: B008
) -> dict:
    return store.get(automation_id).to_dict()


@router.put("/{automation_id}")
async def update_automation(
    automation_id: str,
    body: AutomationBody,
    store: AutomationStore = Depends(get_automations),  # noqa: B008
) -> dict:
    automation = store.update(
        automation_id,
        name=body.Name,
        description=body.Description,
        when=body.When,
        then=body.Then,
        target=body.Target,
    )
    return automation.to_dict()


@router.delete("/{automation_id}")
async def delete_automation(
    automation_id: str,
    store: AutomationStore = Depends(get_automations),  # noqa: B008
) -> dict:
    return store.delete(automation_id).to_dict()


@router.post("/{automation_id}/trigger")
async def trigger_automation(
    automation_id: str,
    body: TriggerBody,
    store: AutomationStore = Depends(get_automations),  # noqa: B008
) -> dict:
    return await store.trigger(automation_id, body.action or "", body.data)
