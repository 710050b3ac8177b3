"""Shared FastAPI dependencies injected into route handlers.

All dependencies pull from app.state, which is populated during the
lifespan startup in app.py.
"""

from __future__ import annotations

from fastapi import Request

from aobridge.config.schema import BridgeConfig
from aobridge.services.ao import AOClient
from aobridge.services.automations import AutomationStore
from aobridge.services.documents import DocumentStore
from aobridge.services.token_price import TokenPriceClient
from aobridge.services.twitter import TwitterMonitor
from aobridge.telegram.bot import TelegramBotService
from aobridge.telegram.file_cache import FileUploadCache
from aobridge.telegram.pending import PendingMessageQueue
from aobridge.telegram.uploads import UploadCoordinator


def get_config(request: Request) -> BridgeConfig:
    return request.app.state.config


def get_file_cache(request: Request) -> FileUploadCache:
    return request.app.state.file_cache


def get_pending_queue(request: Request) -> PendingMessageQueue:
    return request.app.state.pending_queue


def get_bot(request: Request) -> TelegramBotService:
    return request.app.state.bot


def get_uploader(request: Request) -> UploadCoordinator:
    return request.app.state.uploader


def get_ao_client(request: Request) -> AOClient:
    return request.app.state.ao_client


def get_automations(request: Request) -> AutomationStore:
    return request.app.state.automations


def get_documents(request: Request) -> DocumentStore:
    return request.app.state.documents


def get_price_client(request: Request) -> TokenPriceClient:
    return request.app.state.price_client


def get_twitter_monitor(request: Request) -> TwitterMonitor:
    return request.app.state.twitter_monitor
