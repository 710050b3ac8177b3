"""Auxiliary integrations: AO messaging, automations, documents, prices, Twitter."""

from aobridge.services.ao import AOClient, MessageResult
from aobridge.services.automations import Automation, AutomationStore
from aobridge.services.documents import Document, DocumentStore, send_email
from aobridge.services.token_price import TokenPriceClient, supported_tokens
from aobridge.services.twitter import TwitterMonitor

__all__ = [
    "AOClient",
    "Automation",
    "AutomationStore",
    "Document",
    "DocumentStore",
    "MessageResult",
    "TokenPriceClient",
    "TwitterMonitor",
    "send_email",
    "supported_tokens",
]
