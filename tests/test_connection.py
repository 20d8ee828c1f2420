"""
Tests for the connect-once shared connection
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from meowwalker.errors import NetworkTimeout
from meowwalker.geocoding.connection import SharedConnection


class TestSharedConnection:
    @pytest.mark.asyncio
    async def test_connects_once(self):
        factory = AsyncMock(return_value="client")
        connection = SharedConnection(factory)

        assert await connection.acquire() == "client"
        assert await connection.acquire() == "client"

        factory.assert_awaited_once()
        assert connection.is_connected

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_attempt(self):
        calls = []
        release = asyncio.Event()

        async def factory():
            calls.append(1)
            await release.wait()
            return "client"

        connection = SharedConnection(factory)
        waiters = [asyncio.ensure_future(connection.acquire()) for _ in range(3)]
        await asyncio.sleep(0)
        release.set()

        assert await asyncio.gather(*waiters) == ["client"] * 3
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_failure_clears_cache(self):
        factory = AsyncMock(side_effect=[RuntimeError("refused"), "client"])
        connection = SharedConnection(factory)

        with pytest.raises(RuntimeError):
            await connection.acquire()
        assert not connection.is_connected

        assert await connection.acquire() == "client"
        assert factory.await_count == 2

    @pytest.mark.asyncio
    async def test_timeout_raises_and_allows_retry(self):
        attempts = []

        async def factory():
            attempts.append(1)
            if len(attempts) == 1:
                await asyncio.sleep(1)
            return "client"

        connection = SharedConnection(factory, timeout=0.05)

        with pytest.raises(NetworkTimeout):
            await connection.acquire()

        assert await connection.acquire() == "client"
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_reset_closes_resource(self):
        closer = AsyncMock()
        connection = SharedConnection(AsyncMock(return_value="client"), closer=closer)
        await connection.acquire()

        await connection.reset()

        closer.assert_awaited_once_with("client")
        assert not connection.is_connected

    @pytest.mark.asyncio
    async def test_reset_ignores_close_errors(self):
        closer = AsyncMock(side_effect=RuntimeError("already closed"))
        connection = SharedConnection(AsyncMock(return_value="client"), closer=closer)
        await connection.acquire()

        await connection.reset()

        assert not connection.is_connected

    @pytest.mark.asyncio
    async def test_close_without_connection(self):
        closer = AsyncMock()
        connection = SharedConnection(AsyncMock(return_value="client"), closer=closer)

        await connection.close()

        closer.assert_not_awaited()
