"""Unit tests for retry with round-robin endpoint failover."""
from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from yield_agent.rpc import ResilientClient

ENDPOINTS = ("https://rpc1.example.com", "https://rpc2.example.com", "https://rpc3.example.com")


@pytest.fixture()
def sleep() -> AsyncMock:
    return AsyncMock()


@pytest.fixture()
def client(sleep: AsyncMock) -> ResilientClient:
    return ResilientClient(ENDPOINTS, max_retries=3, base_delay=1.0, sleep=sleep)


class TestRun:
    @pytest.mark.asyncio
    async def test_success_first_try(self, client: ResilientClient, sleep: AsyncMock) -> None:
        operation = AsyncMock(return_value="ok")
        assert await client.run(operation) == "ok"
        operation.assert_awaited_once_with(ENDPOINTS[0])
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_always_failing_raises_last_error(
        self, client: ResilientClient, sleep: AsyncMock
    ) -> None:
        errors = [ConnectionError("e1"), ConnectionError("e2"), ConnectionError("e3")]
        operation = AsyncMock(side_effect=errors)

        with pytest.raises(ConnectionError, match="e3"):
            await client.run(operation)

        assert operation.await_count == 3
        called_with = [c.args[0] for c in operation.await_args_list]
        assert called_with == list(ENDPOINTS)
        # two rotations between three attempts, linear backoff
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]
        assert client.current_index == 2

    @pytest.mark.asyncio
    async def test_recovers_on_second_endpoint(
        self, client: ResilientClient, sleep: AsyncMock
    ) -> None:
        operation = AsyncMock(side_effect=[TimeoutError("slow"), "ok"])
        assert await client.run(operation) == "ok"
        assert operation.await_args_list[1].args[0] == ENDPOINTS[1]
        sleep.assert_awaited_once_with(1.0)

    @pytest.mark.asyncio
    async def test_rotation_wraps_around(self, sleep: AsyncMock) -> None:
        client = ResilientClient(ENDPOINTS[:2], max_retries=3, base_delay=0.5, sleep=sleep)
        operation = AsyncMock(side_effect=RuntimeError("down"))
        with pytest.raises(RuntimeError):
            await client.run(operation)
        called_with = [c.args[0] for c in operation.await_args_list]
        assert called_with == [ENDPOINTS[0], ENDPOINTS[1], ENDPOINTS[0]]
        assert [c.args[0] for c in sleep.await_args_list] == [0.5, 1.0]

    @pytest.mark.asyncio
    async def test_single_attempt_no_sleep(self, sleep: AsyncMock) -> None:
        client = ResilientClient(ENDPOINTS, max_retries=1, sleep=sleep)
        with pytest.raises(ValueError):
            await client.run(AsyncMock(side_effect=ValueError("bad")))
        sleep.assert_not_awaited()


class TestConstruction:
    def test_requires_endpoint(self) -> None:
        with pytest.raises(ValueError, match="at least one endpoint"):
            ResilientClient([])

    def test_requires_an_attempt(self) -> None:
        with pytest.raises(ValueError, match="max_retries"):
            ResilientClient(ENDPOINTS, max_retries=0)

    def test_rotate(self) -> None:
        client = ResilientClient(ENDPOINTS[:2])
        assert client.endpoint == ENDPOINTS[0]
        assert client.rotate() == ENDPOINTS[1]
        assert client.rotate() == ENDPOINTS[0]
