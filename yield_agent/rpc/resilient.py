"""Bounded retry with round-robin endpoint failover."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ResilientClient:
    """Run remote operations against a rotating list of endpoints.

    An operation is an async callable receiving the current endpoint URL. On
    failure, while attempts remain, the client advances to the next endpoint
    and waits ``base_delay * attempt`` seconds before retrying. Once
    ``max_retries`` attempts have failed the last error is re-raised.
    """

    def __init__(
        self,
        endpoints: Sequence[str],
        max_retries: int = 3,
        base_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if not endpoints:
            raise ValueError("ResilientClient needs at least one endpoint")
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.endpoints = list(endpoints)
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.current_index = 0
        self._sleep = sleep

    @property
    def endpoint(self) -> str:
        return self.endpoints[self.current_index]

    def rotate(self) -> str:
        self.current_index = (self.current_index + 1) % len(self.endpoints)
        logger.info("Switched to RPC endpoint: %s", self.endpoint)
        return self.endpoint

    async def run(self, operation: Callable[[str], Awaitable[T]]) -> T:
        attempt = 1
        while True:
            try:
                return await operation(self.endpoint)
            except Exception as e:
                logger.warning(
                    "Attempt %d/%d against %s failed: %s",
                    attempt, self.max_retries, self.endpoint, e,
                )
                if attempt >= self.max_retries:
                    raise
            self.rotate()
            await self._sleep(self.base_delay * attempt)
            attempt += 1
