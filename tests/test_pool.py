"""Tests for connection pool lifecycle management."""

from __future__ import annotations

import httpx
import pytest

from aobridge.pool import USER_AGENT, ConnectionPool


def _echo(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, text=request.url.path)


class TestPoolLifecycle:
    @pytest.mark.asyncio
    async def test_get_client_returns_same_instance(self):
        pool = ConnectionPool(transport=httpx.MockTransport(_echo))
        client1 = await pool.get_client()
        client2 = await pool.get_client()
        assert client1 is client2
        assert pool.is_open
        await pool.close()

    @pytest.mark.asyncio
    async def test_close_resets_client(self):
        pool = ConnectionPool(transport=httpx.MockTransport(_echo))
        client = await pool.get_client()
        await pool.close()
        assert not pool.is_open
        assert client.is_closed

        fresh = await pool.get_client()
        assert fresh is not client
        await pool.close()

    @pytest.mark.asyncio
    async def test_close_without_client_is_noop(self):
        pool = ConnectionPool()
        await pool.close()
        assert not pool.is_open

    @pytest.mark.asyncio
    async def test_transport_is_used(self):
        pool = ConnectionPool(transport=httpx.MockTransport(_echo))
        client = await pool.get_client()
        resp = await client.get("https://example.test/ping")
        assert resp.text == "/ping"
        await pool.close()


class TestClientSettings:
    @pytest.mark.asyncio
    async def test_user_agent_and_timeouts(self):
        pool = ConnectionPool(connect_timeout=3.0, read_timeout=12.0, transport=httpx.MockTransport(_echo))
        client = await pool.get_client()
        assert client.headers["User-Agent"] == USER_AGENT
        assert client.timeout.connect == 3.0
        assert client.timeout.read == 12.0
        await pool.close()

    @pytest.mark.asyncio
    async def test_follows_file_link_redirects(self):
        def redirecting(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/file/bot123/doc.pdf":
                return httpx.Response(302, headers={"Location": "https://cdn.test/doc.pdf"})
            return httpx.Response(200, content=b"pdf", headers={"X-Agent": request.headers["User-Agent"]})

        pool = ConnectionPool(transport=httpx.MockTransport(redirecting))
        client = await pool.get_client()
        resp = await client.get("https://files.test/file/bot123/doc.pdf")
        assert resp.content == b"pdf"
        assert resp.headers["X-Agent"] == USER_AGENT
        await pool.close()
