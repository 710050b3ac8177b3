"""Permanent-storage backend interface and shared result types."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, runtime_checkable

WINC_PER_AR = 1_000_000_000_000


class StorageBackendError(Exception):
    """Any failure reported by, or while talking to, the storage backend."""


@dataclass(frozen=True, slots=True)
class Tag:
    """A name/value tag attached to an uploaded data item."""

    name: str
    value: str

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "value": self.value}


@dataclass(slots=True)
class UploadReceipt:
    """What the backend reports after a successful upload."""

    id: str
    owner: str = ""
    data_caches: list[str] = field(default_factory=list)
    fast_finality_indexes: list[str] = field(default_factory=list)


@runtime_checkable
class StorageBackend(Protocol):
    """Cost, balance and upload operations of a permanent-storage service.

    Amounts are integer winston credits (winc).
    """

    async def get_balance(self) -> int: ...

    async def get_upload_costs(self, sizes: list[int]) -> list[int]: ...

    async def upload_file(self, path: Path, size: int, tags: list[Tag]) -> UploadReceipt: ...

    async def create_checkout_session(self, amount: int) -> str: ...

    async def get_address(self) -> str: ...


def winc_to_ar(winc: int) -> str:
    """Format a winston amount as AR with six decimals."""
    return f"{winc / WINC_PER_AR:.6f}"
