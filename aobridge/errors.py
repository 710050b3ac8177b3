"""Error taxonomy shared by the bridge services and the REST layer.

Each class carries the HTTP status it maps to so the API error handlers
can turn any of them into a `{success: false, error: ...}` body without
a per-route translation table.
"""

from __future__ import annotations

from typing import Any


class BridgeError(Exception):
    """Base class for all errors surfaced to API callers."""

    status_code: int = 500

    def __init__(self, message: str, **extra: Any) -> None:
        self.message = message
        self.extra = extra
        super().__init__(message)

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"success": False, "error": self.message}
        body.update(self.extra)
        return body


class ValidationError(BridgeError):
    """A required field is missing or malformed. Caller error."""

    status_code = 400


class NotFoundError(BridgeError):
    """Unknown identifier."""

    status_code = 404


class UpstreamUnavailableError(BridgeError):
    """A platform or backend call failed. Not retried automatically."""

    status_code = 500


class InsufficientBalanceError(BridgeError):
    """The storage account cannot pay for an upload; carries a top-up link."""

    status_code = 402

    def __init__(self, message: str, *, checkout_url: str = "", **extra: Any) -> None:
        super().__init__(message, checkoutUrl=checkout_url, **extra)
        self.checkout_url = checkout_url


class PartialStateError(BridgeError):
    """The record exists but its local content is gone."""

    status_code = 404
