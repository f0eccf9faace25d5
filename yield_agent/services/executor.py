"""Action execution: admission control, dispatch and sequential batches."""
from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Awaitable, Callable, Mapping, Sequence

from ..config import ExecutorConfig, StrategyConfig
from ..interfaces.chain import ChainClient
from ..interfaces.protocol_adapter import ProtocolAdapter
from ..interfaces.wallet import WalletProvider
from ..models import (
    ActionKind,
    ActionRequest,
    ActionResult,
    AgentAction,
    FailureKind,
    ProtocolId,
)

logger = logging.getLogger(__name__)


class ActionLog:
    """Append-only record of executed batches, oldest first."""

    def __init__(self) -> None:
        self._entries: list[AgentAction] = []

    def append(self, action: AgentAction) -> None:
        self._entries.append(action)

    def entries(self) -> list[AgentAction]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


class Executor:
    """Execute single actions and batches against the protocol adapters."""

    def __init__(
        self,
        adapters: Mapping[ProtocolId, ProtocolAdapter],
        chain_client: ChainClient,
        wallet: WalletProvider,
        strategy_config: StrategyConfig,
        executor_config: ExecutorConfig,
        action_log: ActionLog | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._adapters = dict(adapters)
        self._chain = chain_client
        self._wallet = wallet
        self._max_gas_gwei = strategy_config.max_gas_price_gwei
        self._step_delay = executor_config.step_delay_seconds
        self._log = action_log if action_log is not None else ActionLog()
        self._sleep = sleep

    async def _check_gas(self) -> str | None:
        """Return a rejection message when the gas price is above the ceiling."""
        gas_gwei = await self._chain.gas_price_gwei()
        if gas_gwei > self._max_gas_gwei:
            return f"Gas price too high: {gas_gwei:.2f} gwei (max: {self._max_gas_gwei})"
        return None

    async def execute_action(self, request: ActionRequest) -> ActionResult:
        if not self._wallet.address():
            return ActionResult.failed(
                request, "No wallet configured", FailureKind.CONFIGURATION
            )
        if request.action is not ActionKind.CLAIM and request.amount <= 0:
            return ActionResult.failed(
                request, "Amount must be chosen before execution", FailureKind.CONFIGURATION
            )

        try:
            rejection = await self._check_gas()
        except Exception as e:
            logger.error("Could not read gas price: %s", e)
            return ActionResult.failed(request, f"Could not read gas price: {e}")
        if rejection:
            logger.warning("Rejected %s %s: %s", request.action.value, request.token, rejection)
            return ActionResult.failed(request, rejection, FailureKind.ADMISSION)

        adapter = self._adapters.get(request.protocol)
        if adapter is None:
            return ActionResult.failed(
                request,
                f"Unknown protocol: {request.protocol.value}",
                FailureKind.CONFIGURATION,
            )

        logger.info(
            "Executing %s %s %s on %s",
            request.action.value,
            request.amount,
            request.token,
            request.protocol.value,
        )
        if request.action is ActionKind.SUPPLY:
            return await adapter.supply(request.token, request.amount)
        elif request.action is ActionKind.WITHDRAW:
            return await adapter.withdraw(request.token, request.amount)
        elif request.action is ActionKind.BORROW:
            return await adapter.borrow(request.token, request.amount)
        elif request.action is ActionKind.REPAY:
            return await adapter.repay(request.token, request.amount)
        elif request.action is ActionKind.CLAIM:
            return await adapter.claim_rewards()
        raise AssertionError(f"Unhandled action kind: {request.action!r}")

    async def execute_batch(
        self,
        requests: Sequence[ActionRequest],
        strategy: str,
        reasoning: str,
    ) -> AgentAction:
        """Run ``requests`` in order, stopping at the first failure."""
        results: list[ActionResult] = []
        for index, request in enumerate(requests):
            try:
                result = await self.execute_action(request)
            except Exception as e:
                logger.error("Action %s %s raised: %s", request.action.value, request.token, e)
                result = ActionResult.failed(request, str(e))
            results.append(result)

            if not result.ok:
                logger.error(
                    "Batch '%s' stopped at step %d/%d: %s",
                    strategy,
                    index + 1,
                    len(requests),
                    result.error,
                )
                break
            if index < len(requests) - 1:
                await self._sleep(self._step_delay)

        record = AgentAction(
            id=f"action-{uuid.uuid4().hex[:12]}",
            timestamp=time.time(),
            strategy=strategy,
            actions=tuple(requests),
            results=tuple(results),
            reasoning=reasoning,
        )
        self._log.append(record)
        return record

    def action_log(self) -> list[AgentAction]:
        return self._log.entries()
