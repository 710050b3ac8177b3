"""Telegram file intake and permanent-storage upload pipeline."""

from aobridge.telegram.bot import BotPhase, IntakeOutcome, TelegramBotService
from aobridge.telegram.file_cache import FileUploadCache
from aobridge.telegram.intake import MessageIntakeHandler
from aobridge.telegram.models import (
    DocumentCapture,
    FileRecord,
    PendingMessage,
    PhotoCapture,
    TextCapture,
    UploadStatus,
)
from aobridge.telegram.pending import PendingMessageQueue
from aobridge.telegram.uploads import CostEstimate, UploadCoordinator, UploadResult

__all__ = [
    "BotPhase",
    "CostEstimate",
    "DocumentCapture",
    "FileRecord",
    "FileUploadCache",
    "IntakeOutcome",
    "MessageIntakeHandler",
    "PendingMessage",
    "PendingMessageQueue",
    "PhotoCapture",
    "TelegramBotService",
    "TextCapture",
    "UploadCoordinator",
    "UploadResult",
    "UploadStatus",
]
