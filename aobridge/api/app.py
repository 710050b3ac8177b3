"""FastAPI application factory for the aobridge REST API.

create_api_app() builds a fully wired FastAPI instance with:
  - Lifespan that owns the bridge state (file cache, pending queue, bot,
    upload coordinator, AO client, stores, HTTP pool)
  - Middleware (size limit, audit log, optional CORS)
  - Error handlers mapping every failure to `{success: false, error}`
  - All route modules mounted under /api

Nothing on app.state is persisted; a restart starts from empty stores.
"""

from __future__ import annotations

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from aobridge import __version__
from aobridge.api.errors import register_error_handlers
from aobridge.api.middleware import AuditLogMiddleware, RequestSizeLimitMiddleware
from aobridge.api.routers import ao, automations, documents, health, telegram, token_price, twitter
from aobridge.config.schema import BridgeConfig
from aobridge.pool import ConnectionPool
from aobridge.services.ao import AOClient
from aobridge.services.automations import AutomationStore
from aobridge.services.documents import DocumentStore
from aobridge.services.token_price import TokenPriceClient
from aobridge.services.twitter import TwitterMonitor
from aobridge.storage.backend import StorageBackend
from aobridge.storage.turbo import TurboStorageBackend
from aobridge.telegram.bot import ApplicationFactory, TelegramBotService
from aobridge.telegram.file_cache import FileUploadCache
from aobridge.telegram.pending import PendingMessageQueue
from aobridge.telegram.uploads import UploadCoordinator

API_PREFIX = "/api"


def create_api_app(
    config: BridgeConfig,
    *,
    backend: StorageBackend | None = None,
    application_factory: ApplicationFactory | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build a fully wired FastAPI application.

    `backend`, `application_factory` and `transport` replace the Turbo
    client, the Telegram application and the outbound HTTP transport;
    tests use them to run the app without network access.
    """
    gateway = config.gateway

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        pool = ConnectionPool(transport=transport)
        http_client = await pool.get_client()

        cache = FileUploadCache()
        pending = PendingMessageQueue()
        bot = TelegramBotService(
            config.telegram,
            cache,
            pending,
            http_client,
            application_factory=application_factory,
        )
        storage = backend or TurboStorageBackend(config.storage, http_client)
        ao_client = AOClient(config.ao.aos_command, timeout=config.ao.timeout)

        app.state.config = config
        app.state.start_time = time.time()
        app.state.pool = pool
        app.state.file_cache = cache
        app.state.pending_queue = pending
        app.state.bot = bot
        app.state.uploader = UploadCoordinator(
            cache,
            storage,
            app_name=config.storage.app_name,
            gateway_url=config.storage.gateway_url,
        )
        app.state.ao_client = ao_client
        app.state.automations = AutomationStore(ao_client)
        app.state.documents = DocumentStore()
        app.state.price_client = TokenPriceClient(config.prices, http_client)
        app.state.twitter_monitor = TwitterMonitor(config.twitter, http_client)

        if config.telegram.token.get_secret_value() and config.telegram.start_on_boot:
            if not await bot.start():
                logger.warning("Telegram bot did not start: {}", bot.last_error)

        logger.info("API server started on {}:{}", gateway.host, gateway.port)

        try:
            yield
        finally:
            logger.info("API server shutting down")
            await bot.shutdown()
            await pool.close()

    app = FastAPI(
        title="aobridge API",
        version=__version__,
        description="Telegram intake, permanent storage and AO messaging bridge",
        lifespan=lifespan,
    )

    # Middleware (outermost applied first = added last in FastAPI)
    app.add_middleware(AuditLogMiddleware)
    app.add_middleware(RequestSizeLimitMiddleware, max_bytes=gateway.max_request_body_bytes)
    if gateway.cors_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=gateway.cors_allowed_origins,
            allow_methods=["GET", "POST", "PUT", "DELETE"],
            allow_headers=["Content-Type", "X-Request-ID"],
        )

    register_error_handlers(app)

    for module in (health, telegram, ao, automations, documents, token_price, twitter):
        app.include_router(module.router, prefix=API_PREFIX)
    app.include_router(documents.email_router, prefix=API_PREFIX)

    return app
