"""Shared outbound HTTP client for the bridge.

One pool is created per server process and its client is handed to every
outbound caller: Telegram file downloads, Turbo payment and upload calls,
token price and Twitter lookups. Callers pass their own per-request
timeouts (file transfers need minutes, price lookups seconds); the pool
only fixes the connect timeout and the connection limits.
"""

from __future__ import annotations

import asyncio

import httpx
from loguru import logger

from aobridge import __version__

USER_AGENT = f"aobridge/{__version__}"


class ConnectionPool:
    """Lazily created httpx.AsyncClient shared by all outbound callers."""

    def __init__(
        self,
        max_connections: int = 20,
        max_keepalive: int = 10,
        connect_timeout: float = 10.0,
        read_timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._limits = httpx.Limits(
            max_connections=max_connections,
            max_keepalive_connections=max_keepalive,
        )
        self._timeout = httpx.Timeout(read_timeout, connect=connect_timeout)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._lock = asyncio.Lock()

    async def get_client(self) -> httpx.AsyncClient:
        """Return the shared client, creating it on first use or after close()."""
        async with self._lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    limits=self._limits,
                    timeout=self._timeout,
                    transport=self._transport,
                    headers={"User-Agent": USER_AGENT},
                    # Telegram file links and the arweave gateway redirect
                    follow_redirects=True,
                )
                logger.debug(
                    "Created outbound HTTP client (max_connections={}, connect_timeout={}s)",
                    self._limits.max_connections,
                    self._timeout.connect,
                )
            return self._client

    async def close(self) -> None:
        async with self._lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None
                logger.debug("Closed outbound HTTP client")

    @property
    def is_open(self) -> bool:
        return self._client is not None
