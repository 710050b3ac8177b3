"""Permanent-storage backends."""

from aobridge.storage.backend import (
    StorageBackend,
    StorageBackendError,
    Tag,
    UploadReceipt,
    winc_to_ar,
)
from aobridge.storage.turbo import TurboStorageBackend

__all__ = [
    "StorageBackend",
    "StorageBackendError",
    "Tag",
    "TurboStorageBackend",
    "UploadReceipt",
    "winc_to_ar",
]
