"""Telegram bot service: activity state machine plus message handlers.

Uses python-telegram-bot (async native). Lifecycle:

  uninitialized -> initialized -> active <-> inactive

initialize() needs a token and a successful getMe probe. start() launches
polling in a supervised background task and returns immediately; if the
task dies (network failure, Telegram error) the service drops to inactive
and records the reason in `last_error`. While the bot is not active,
inbound messages (e.g. arriving through the webhook endpoint) are queued
as PendingMessages and can be replayed one by one with process_pending().

Bot commands registered with Telegram:
  /start  Welcome message
  /help   Usage hint
  /list   Files you have sent
  /get    Send a stored file back (/get <file_id>)
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Any

import httpx
from loguru import logger
from telegram import Update
from telegram.ext import ApplicationBuilder, CommandHandler, MessageHandler, filters

from aobridge.config.schema import TelegramConfig
from aobridge.errors import BridgeError
from aobridge.telegram.file_cache import FileUploadCache
from aobridge.telegram.intake import MessageIntakeHandler
from aobridge.telegram.models import (
    DocumentCapture,
    FileRecord,
    MessageCapture,
    PendingMessage,
    PhotoCapture,
    TextCapture,
)
from aobridge.telegram.pending import PendingMessageQueue

ApplicationFactory = Callable[[str], Any]


class BotPhase(StrEnum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    ACTIVE = "active"
    INACTIVE = "inactive"


@dataclass(frozen=True, slots=True)
class IntakeOutcome:
    """Result of receive(): either a queued message or a processed one."""

    queued: bool
    pending: PendingMessage | None = None
    record: FileRecord | None = None


def _default_application(token: str) -> Any:
    return ApplicationBuilder().token(token).build()


def capture_from_message(message: Any) -> MessageCapture | None:
    """Snapshot the parts of a Telegram message needed to process it later."""
    user = message.from_user
    from_id = ""
    if user is not None:
        from_id = user.username or str(user.id)

    if message.document is not None:
        doc = message.document
        return DocumentCapture(
            file_id=doc.file_id,
            file_name=doc.file_name or "unknown_file",
            mime_type=doc.mime_type or "application/octet-stream",
            file_size=doc.file_size or 0,
            from_id=from_id,
        )
    if message.photo:
        photo = message.photo[-1]
        return PhotoCapture(
            file_id=photo.file_id,
            caption=message.caption or "photo",
            file_size=photo.file_size or 0,
            from_id=from_id,
        )
    if message.text:
        return TextCapture(text=message.text, from_id=from_id)
    return None


def format_file_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024**2:
        return f"{size / 1024:.2f} KB"
    if size < 1024**3:
        return f"{size / 1024**2:.2f} MB"
    return f"{size / 1024**3:.2f} GB"


class TelegramBotService:
    """Owns the Telegram application, the activity state and the intake path."""

    def __init__(
        self,
        config: TelegramConfig,
        cache: FileUploadCache,
        pending: PendingMessageQueue,
        http_client: httpx.AsyncClient,
        application_factory: ApplicationFactory | None = None,
    ) -> None:
        self._config = config
        self._cache = cache
        self._pending = pending
        self._factory = application_factory or _default_application
        self._app: Any = None
        self._phase = BotPhase.UNINITIALIZED
        self._bot_info: dict[str, Any] | None = None
        self._last_error: str | None = None
        self._poll_task: asyncio.Task | None = None
        self._stop_event: asyncio.Event | None = None
        self._polling_failure: Exception | None = None
        self._intake = MessageIntakeHandler(
            cache,
            Path(config.upload_dir).expanduser(),
            self.get_file_link,
            http_client,
            timeout=config.download_timeout,
        )

    @property
    def phase(self) -> BotPhase:
        return self._phase

    @property
    def initialized(self) -> bool:
        return self._phase != BotPhase.UNINITIALIZED

    @property
    def active(self) -> bool:
        return self._phase == BotPhase.ACTIVE

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def intake(self) -> MessageIntakeHandler:
        return self._intake

    def status(self) -> dict[str, Any]:
        return {
            "initialized": self.initialized,
            "active": self.active,
            "phase": str(self._phase),
            "botInfo": self._bot_info,
            "lastError": self._last_error,
            "pendingMessages": len(self._pending),
        }

    # ── Lifecycle ──

    async def initialize(self) -> bool:
        """Build the application and probe the bot identity. Never raises."""
        if self.initialized:
            return True

        token = self._config.token.get_secret_value()
        if not token:
            self._last_error = "Telegram bot token is not configured"
            logger.error("Telegram bot token is not set. Telegram bot will not work.")
            return False

        try:
            app = self._factory(token)
            await app.initialize()
            me = await app.bot.get_me()
        except Exception as exc:
            self._last_error = f"Failed to initialize Telegram bot: {exc}"
            logger.error("Failed to initialize Telegram bot: {}", exc)
            return False

        self._register_handlers(app)
        self._app = app
        self._bot_info = {"id": me.id, "username": me.username, "firstName": me.first_name}
        self._phase = BotPhase.INITIALIZED
        self._last_error = None
        logger.info("Telegram bot initialized as @{}", me.username)
        return True

    async def start(self) -> bool:
        """Begin polling in the background. No-op when already active."""
        if self.active:
            return True
        if not await self.initialize():
            return False

        self._stop_event = asyncio.Event()
        self._polling_failure = None
        self._last_error = None
        self._poll_task = asyncio.create_task(self._run_polling(), name="telegram-polling")
        self._poll_task.add_done_callback(self._on_polling_done)
        self._phase = BotPhase.ACTIVE
        logger.info("Telegram bot started")
        return True

    async def stop(self) -> bool:
        """Stop polling. Queued messages stay queued. No-op when not active."""
        if not self.active:
            return True

        self._phase = BotPhase.INACTIVE
        if self._stop_event is not None:
            self._stop_event.set()
        if self._poll_task is not None:
            await asyncio.gather(self._poll_task, return_exceptions=True)
            self._poll_task = None
        logger.info("Telegram bot stopped")
        return True

    async def shutdown(self) -> None:
        await self.stop()
        if self._app is not None:
            try:
                await self._app.shutdown()
            except Exception as exc:
                logger.warning("Error shutting down Telegram application: {}", exc)
            self._app = None
        self._phase = BotPhase.UNINITIALIZED

    async def _run_polling(self) -> None:
        app = self._app
        await app.start()
        try:
            await app.updater.start_polling(
                drop_pending_updates=True,
                error_callback=self._on_polling_error,
            )
            await self._stop_event.wait()
            if self._polling_failure is not None:
                raise self._polling_failure
        finally:
            if app.updater.running:
                await app.updater.stop()
            if app.running:
                await app.stop()

    def _on_polling_error(self, exc: Exception) -> None:
        logger.error("Telegram polling error: {}", exc)
        self._polling_failure = exc
        if self._stop_event is not None:
            self._stop_event.set()

    def _on_polling_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            error = "Polling task was cancelled"
        else:
            exc = task.exception()
            error = f"Polling stopped: {exc}" if exc is not None else None
        if error is not None:
            self._last_error = error
            logger.error("Telegram bot went inactive: {}", error)
        if self._phase == BotPhase.ACTIVE:
            self._phase = BotPhase.INACTIVE

    # ── Intake ──

    async def get_file_link(self, telegram_file_id: str) -> str:
        if self._app is None:
            raise RuntimeError("Telegram bot is not initialized")
        tg_file = await self._app.bot.get_file(telegram_file_id)
        return tg_file.file_path

    async def receive(self, capture: MessageCapture) -> IntakeOutcome:
        """Process a message now if active, otherwise queue it."""
        if not self.active:
            return IntakeOutcome(queued=True, pending=self._pending.add(capture))
        record = await self._intake.process(capture)
        return IntakeOutcome(queued=False, record=record)

    async def process_pending(self, message_id: str) -> tuple[bool, FileRecord | None]:
        """Replay one queued message.

        Returns (found, record). The message is removed before processing,
        so a failed replay is not retried; intake errors propagate.
        """
        message = self._pending.pop(message_id)
        if message is None:
            return False, None
        logger.info("Processing pending {} message {}", message.kind, message_id)
        record = await self._intake.process(message.capture)
        return True, record

    async def handle_update(self, payload: dict[str, Any]) -> bool:
        """Feed a webhook update through the registered handlers."""
        if not self.initialized and not await self.initialize():
            return False
        update = Update.de_json(payload, self._app.bot)
        if update is None:
            logger.warning("Received invalid Telegram update payload")
            return False
        await self._app.process_update(update)
        return True

    # ── Handlers ──

    def _is_allowed(self, user: Any) -> bool:
        allow = self._config.allow_from
        if not allow:
            return True
        if user is None:
            return False
        return str(user.id) in allow or (user.username or "") in allow

    def _register_handlers(self, app: Any) -> None:
        service = self

        async def on_attachment(update: Update, _ctx) -> None:
            message = update.effective_message
            if message is None or not service._is_allowed(message.from_user):
                return
            capture = capture_from_message(message)
            if capture is None:
                return
            label = "Photo" if capture.kind == "photo" else "File"
            try:
                outcome = await service.receive(capture)
            except BridgeError as exc:
                logger.error("Error handling {} upload: {}", capture.kind, exc)
                await message.reply_text(f"Sorry, there was an error processing your {capture.kind}.")
                return
            if outcome.queued:
                await message.reply_text(
                    f"{label} queued for processing (message ID: {outcome.pending.id})."
                )
            else:
                await message.reply_text(f"{label} received and stored with ID: {outcome.record.id}")

        async def on_text(update: Update, _ctx) -> None:
            message = update.effective_message
            if message is None or not service._is_allowed(message.from_user):
                return
            capture = capture_from_message(message)
            if capture is None:
                return
            outcome = await service.receive(capture)
            if outcome.queued:
                await message.reply_text("Message queued for processing.")
            else:
                await message.reply_text("Send me a document or photo and I will store it.")

        async def cmd_start(update: Update, _ctx) -> None:
            if update.effective_message:
                await update.effective_message.reply_text(
                    "Welcome! You can send me files, documents, or photos, and I will save them for you."
                )

        async def cmd_help(update: Update, _ctx) -> None:
            if update.effective_message:
                await update.effective_message.reply_text(
                    "Send me any file, document, or photo, and I will save it and give you an ID "
                    "for reference.\n/list shows your files, /get <id> sends one back."
                )

        async def cmd_list(update: Update, _ctx) -> None:
            message = update.effective_message
            if message is None or message.from_user is None:
                return
            user = message.from_user
            owner = user.username or str(user.id)
            files = [f for f in service._cache.all() if f.uploaded_by == owner]
            if not files:
                await message.reply_text("You have not uploaded any files yet.")
                return
            lines = [
                f"- {f.file_name} (ID: {f.id}, Type: {f.content_type}, Size: {format_file_size(f.file_size)})"
                for f in files
            ]
            await message.reply_text("Your uploaded files:\n" + "\n".join(lines))

        async def cmd_get(update: Update, ctx) -> None:
            message = update.effective_message
            if message is None:
                return
            if not ctx.args:
                await message.reply_text("Please provide a file ID. Example: /get file_id")
                return
            record = service._cache.get(ctx.args[0])
            if record is None:
                await message.reply_text("File not found. Please check the ID and try again.")
                return
            try:
                if record.has_local_copy:
                    with record.local_path.open("rb") as fh:
                        await message.reply_document(document=fh, filename=record.file_name)
                elif record.telegram_file_id:
                    await message.reply_document(document=record.telegram_file_id)
                else:
                    await message.reply_text("Sorry, the file is not available for download.")
            except Exception as exc:
                logger.error("Error sending file {}: {}", record.id, exc)
                await message.reply_text("Sorry, there was an error retrieving the file.")

        app.add_handler(CommandHandler("start", cmd_start))
        app.add_handler(CommandHandler("help", cmd_help))
        app.add_handler(CommandHandler("list", cmd_list))
        app.add_handler(CommandHandler("get", cmd_get))
        app.add_handler(MessageHandler(filters.Document.ALL | filters.PHOTO, on_attachment))
        app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, on_text))
