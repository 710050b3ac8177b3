"""Automation registry backed by the AO ProcessBuilder.

Automations are kept in memory keyed by id (last write wins) and mirrored
to the connected ProcessBuilder process with a CreateAutomation message.
Nothing survives a restart.
"""

from __future__ import annotations

import json
import random
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from loguru import logger

from aobridge.errors import BridgeError, NotFoundError, ValidationError
from aobridge.services.ao import AOClient


@dataclass(slots=True)
class Automation:
    """A When/Then rule routed to a target AO process."""

    id: str
    name: str
    description: str
    when: str
    then: str
    target: str
    status: str = "active"
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime | None = None

    def config(self) -> dict[str, str]:
        return {
            "When": self.when,
            "Then": self.then,
            "Target": self.target,
            "Name": self.name,
            "Description": self.description,
        }

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "when": self.when,
            "then": self.then,
            "target": self.target,
            "status": self.status,
            "createdAt": self.created_at.isoformat(),
        }
        if self.updated_at is not None:
            data["updatedAt"] = self.updated_at.isoformat()
        return data


def new_automation_id() -> str:
    return f"auto-{int(time.time() * 1000)}-{random.randrange(1000)}"


class AutomationStore:
    """In-memory automation CRUD plus trigger dispatch through AOClient."""

    def __init__(self, ao: AOClient) -> None:
        self._ao = ao
        self._automations: dict[str, Automation] = {}

    def _require_connection(self) -> str:
        if not self._ao.process_id:
            raise ValidationError("Not connected to AO platform")
        return self._ao.process_id

    def _require(self, automation_id: str) -> Automation:
        automation = self._automations.get(automation_id)
        if automation is None:
            raise NotFoundError("Automation not found")
        return automation

    async def create(
        self,
        when: str,
        then: str,
        target: str,
        name: str | None = None,
        description: str | None = None,
    ) -> tuple[Automation, str | None]:
        """Store an automation and announce it to the ProcessBuilder.

        Returns the automation and the AO error text, if the announcement
        failed. The automation is stored either way.
        """
        process_id = self._require_connection()
        if not when or not then or not target:
            raise ValidationError("When, Then, and Target are required")

        automation = Automation(
            id=new_automation_id(),
            name=name or "Unnamed Automation",
            description=description or "",
            when=when,
            then=then,
            target=target,
        )
        self._automations[automation.id] = automation

        try:
            await self._ao.send_message(
                process_id, "CreateAutomation", json.dumps(automation.config())
            )
        except BridgeError as exc:
            logger.warning("Automation {} stored locally, AO send failed: {}", automation.id, exc)
            return automation, exc.message

        logger.info("Created automation on AO network: {}", automation.id)
        return automation, None

    def list(self) -> list[Automation]:
        self._require_connection()
        return list(self._automations.values())

    def get(self, automation_id: str) -> Automation:
        self._require_connection()
        return self._require(automation_id)

    def update(self, automation_id: str, **changes: str | None) -> Automation:
        """Overwrite the non-empty fields among name, description, when, then, target."""
        self._require_connection()
        automation = self._require(automation_id)
        for key in ("name", "description", "when", "then", "target"):
            value = changes.get(key)
            if value:
                setattr(automation, key, value)
        automation.updated_at = datetime.now(UTC)
        logger.info("Updated automation: {}", automation_id)
        return automation

    def delete(self, automation_id: str) -> Automation:
        self._require_connection()
        self._require(automation_id)
        logger.info("Deleted automation: {}", automation_id)
        return self._automations.pop(automation_id)

    async def trigger(self, automation_id: str, action: str, data: str | None = None) -> dict[str, Any]:
        """Send `action` to the automation when it matches the automation's trigger.

        AO failures propagate as UpstreamUnavailableError.
        """
        self._require_connection()
        automation = self._require(automation_id)
        if not action:
            raise ValidationError("Action is required")
        if action != automation.when:
            raise ValidationError(
                f"Action does not match automation trigger. "
                f"Expected: {automation.when}, Got: {action}"
            )

        logger.info("Triggering automation {} action={}", automation_id, action)
        result = await self._ao.send_message(automation_id, action, data or "")
        return {
            "success": True,
            "message": "Automation triggered successfully",
            "id": automation_id,
            "action": action,
            "result": result.to_dict(),
        }

    def __len__(self) -> int:
        return len(self._automations)
