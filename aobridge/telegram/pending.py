"""Queue of inbound messages captured while the bot was inactive.

Entries live only in memory and are removed exactly once, when a caller
asks for the message to be processed.
"""

from __future__ import annotations

import uuid

from loguru import logger

from aobridge.telegram.models import MessageCapture, PendingMessage


class PendingMessageQueue:
    """Insertion-ordered map of pending message id to PendingMessage."""

    def __init__(self) -> None:
        self._messages: dict[str, PendingMessage] = {}

    def add(self, capture: MessageCapture) -> PendingMessage:
        message = PendingMessage(id=uuid.uuid4().hex, capture=capture)
        self._messages[message.id] = message
        logger.info(
            "Queued {} message {} from {} (pending: {})",
            message.kind,
            message.id,
            capture.from_id,
            len(self._messages),
        )
        return message

    def get(self, message_id: str) -> PendingMessage | None:
        return self._messages.get(message_id)

    def list(self) -> list[PendingMessage]:
        """Return pending messages oldest first."""
        return list(self._messages.values())

    def pop(self, message_id: str) -> PendingMessage | None:
        """Remove and return a message. Returns None if unknown or already taken."""
        return self._messages.pop(message_id, None)

    def __len__(self) -> int:
        return len(self._messages)
