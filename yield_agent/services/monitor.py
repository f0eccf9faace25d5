"""Periodic agent checks with emergency detection and optional auto-execution."""
from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime, timezone
from typing import Any

from ..chains.evm import EvmClient, LocalWallet
from ..config import AppConfig
from ..interfaces.chain import ChainClient
from ..interfaces.notifier import Notifier
from ..interfaces.price_oracle import PriceOracle
from ..interfaces.protocol_adapter import ProtocolAdapter
from ..interfaces.wallet import WalletProvider
from ..models import (
    AgentAction,
    AgentStatus,
    ControlResult,
    ProtocolId,
    Recommendation,
    RiskTier,
)
from ..notifications import TelegramNotifier
from ..oracles import AaveOracle, PythOracle
from ..protocols.aave import AaveAdapter
from ..protocols.venus import VenusAdapter
from ..strategy import StrategyEngine
from .executor import ActionLog, Executor
from .portfolio import PortfolioAggregator

logger = logging.getLogger(__name__)

# Registry of protocol adapter factories keyed by protocol id.
_PROTOCOL_FACTORIES: dict[ProtocolId, Any] = {
    ProtocolId.VENUS: lambda chain, cfg, wallet, oracle: VenusAdapter(
        chain, cfg.protocols.venus, cfg.tokens, wallet, oracle
    ),
    ProtocolId.AAVE: lambda chain, cfg, wallet, oracle: AaveAdapter(
        chain, cfg.protocols.aave, cfg.tokens, wallet
    ),
}


def build_price_oracle(config: AppConfig, chain_client: ChainClient) -> PriceOracle:
    if config.price_oracle.provider == "aave":
        return AaveOracle(chain_client, config.protocols.aave)
    return PythOracle(config.price_oracle.pyth)


def build_adapters(
    config: AppConfig,
    chain_client: ChainClient,
    wallet: WalletProvider,
    price_oracle: PriceOracle,
) -> list[ProtocolAdapter]:
    enabled = {
        ProtocolId.VENUS: config.protocols.venus.enabled,
        ProtocolId.AAVE: config.protocols.aave.enabled,
    }
    return [
        factory(chain_client, config, wallet, price_oracle)
        for protocol, factory in _PROTOCOL_FACTORIES.items()
        if enabled[protocol]
    ]


class Monitor:
    """Owns the agent status and the periodic check loop."""

    def __init__(
        self,
        config: AppConfig,
        *,
        wallet: WalletProvider | None = None,
        chain_client: ChainClient | None = None,
        adapters: Sequence[ProtocolAdapter] | None = None,
        price_oracle: PriceOracle | None = None,
        notifiers: Sequence[Notifier] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._config = config
        self._sleep = sleep

        if wallet is None:
            wallet = LocalWallet(config.wallet.private_key)
        if chain_client is None:
            chain_client = EvmClient(
                config.chain, wallet if isinstance(wallet, LocalWallet) else None
            )
        self._wallet = wallet
        self._chain = chain_client

        self._oracle = price_oracle or build_price_oracle(config, chain_client)
        if adapters is None:
            adapters = build_adapters(config, chain_client, wallet, self._oracle)
        self._adapters = list(adapters)

        if notifiers is None:
            notifiers = []
            if config.notifications.telegram.enabled:
                notifiers.append(TelegramNotifier(config.notifications.telegram))
        self._notifiers = list(notifiers)

        self.aggregator = PortfolioAggregator(self._adapters, self._oracle)
        self.engine = StrategyEngine(self._adapters, self.aggregator, config.strategy)
        self.executor = Executor(
            {a.protocol: a for a in self._adapters},
            chain_client,
            wallet,
            config.strategy,
            config.executor,
            ActionLog(),
            sleep=sleep,
        )

        self._status = AgentStatus(
            active_strategies=list(config.strategy.active_strategies),
            errors=deque(maxlen=config.monitor.error_log_size),
        )
        self._auto_execute = config.monitor.auto_execute
        self._lock = asyncio.Lock()
        self._task: asyncio.Task | None = None
        self._check_task: asyncio.Future | None = None

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @property
    def auto_execute(self) -> bool:
        return self._auto_execute

    def set_auto_execute(self, enabled: bool) -> None:
        self._auto_execute = enabled
        logger.info("Auto-execution %s", "enabled" if enabled else "disabled")

    def status(self) -> AgentStatus:
        """A copy of the current status."""
        return self._status.snapshot()

    def monitored_address(self) -> str | None:
        return self._wallet.address() or self._config.wallet.watch_address or None

    @staticmethod
    def _now_str() -> str:
        return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

    def _record_error(self, message: str) -> None:
        self._status.add_error(f"[{self._now_str()}] {message}")

    # ------------------------------------------------------------------
    # Notification dispatch
    # ------------------------------------------------------------------

    async def _send_log(self, message: str, silent: bool = True) -> None:
        for notifier in self._notifiers:
            try:
                await notifier.send_log(message, silent=silent)
            except Exception as e:
                logger.error("Notifier send_log failed: %s", e)

    async def _send_alert(self, message: str, subject: str = "") -> None:
        for notifier in self._notifiers:
            try:
                await notifier.send_alert(message, subject=subject)
            except Exception as e:
                logger.error("Notifier send_alert failed: %s", e)

    def _build_emergency_alert(self, address: str, health_factor: float) -> str:
        per_protocol = "\n".join(
            f"  {p.value}: {hf:.2f}" for p, hf in self._status.health_factors.items()
        )
        return (
            f"🚨 EMERGENCY — Health factor {health_factor:.2f}\n"
            f"\n"
            f"Threshold: {self._config.monitor.emergency_health_factor:.2f}\n"
            f"{per_protocol}\n"
            f"\n"
            f"⚠️ Repay debt or add collateral immediately!\n"
            f"\n"
            f"Wallet: {address}\n"
            f"{self._now_str()} UTC"
        )

    def _build_action_log(self, record: AgentAction) -> str:
        lines = []
        for result in record.results:
            mark = "✅" if result.ok else "❌"
            detail = result.tx_hash if result.ok else result.error
            lines.append(
                f"{mark} {result.action.value} {result.amount} {result.token} "
                f"on {result.protocol.value} — {detail}"
            )
        return (
            f"🤖 Auto-executed {record.strategy}\n"
            f"\n"
            f"{record.reasoning}\n"
            f"\n"
            + "\n".join(lines)
            + f"\n\n{self._now_str()} UTC"
        )

    # ------------------------------------------------------------------
    # Core workflow
    # ------------------------------------------------------------------

    async def _check(self) -> None:
        address = self.monitored_address()
        if not address:
            logger.error("No wallet or watch address configured; skipping check")
            self._record_error("No wallet configured")
            return

        portfolio = await self.aggregator.get_portfolio(address)
        self._status.total_value_usd = portfolio.net_worth_usd
        self._status.health_factors.update(portfolio.protocol_health)

        threshold = self._config.monitor.emergency_health_factor
        if 0 < portfolio.health_factor < threshold:
            logger.critical(
                "EMERGENCY: health factor %.2f below %.2f", portfolio.health_factor, threshold
            )
            self._record_error(
                f"EMERGENCY: Health factor critically low ({portfolio.health_factor:.2f})"
            )
            await self._send_alert(
                self._build_emergency_alert(address, portfolio.health_factor),
                subject="🚨 EMERGENCY: Liquidation Risk!",
            )

        report = await self.engine.scan(address, portfolio)
        self._status.recommendations = list(report.recommendations)
        self._status.diagnostics = list(report.diagnostics)

        if self._auto_execute and report.recommendations:
            await self._auto_execute_top(report.recommendations[0])

        self._status.last_check = time.time()

    async def _auto_execute_top(self, top: Recommendation) -> None:
        if top.risk is RiskTier.HIGH:
            logger.info("Top recommendation '%s' is high risk; not auto-executing", top.strategy)
            return
        actions = [a for a in top.actions if a.amount > 0]
        if not actions:
            logger.info("Top recommendation '%s' has no sized actions", top.strategy)
            return

        record = await self.executor.execute_batch(actions, top.strategy, top.reasoning)
        self._status.last_action = record.timestamp
        await self._send_log(self._build_action_log(record))

    async def run_check(self) -> None:
        """Run one check. Concurrent callers queue; never raises."""
        async with self._lock:
            try:
                await self._check()
            except Exception as e:
                logger.error("Check failed: %s", e)
                self._record_error(str(e))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def _loop(self, interval_minutes: float) -> None:
        while True:
            # stop() cancels the loop; a check already underway still finishes.
            self._check_task = asyncio.ensure_future(self.run_check())
            await asyncio.shield(self._check_task)
            await self._sleep(interval_minutes * 60)

    def start(self, interval_minutes: float | None = None) -> ControlResult:
        """Start the periodic loop on the running event loop."""
        if self._status.running:
            return ControlResult(True, "Agent already running")

        interval = interval_minutes or self._config.monitor.check_interval_minutes
        self._status.running = True
        self._task = asyncio.get_running_loop().create_task(self._loop(interval))
        logger.info("Agent monitor started (checking every %s minutes)", interval)
        return ControlResult(True, f"Agent started, checking every {interval} minutes")

    def stop(self) -> ControlResult:
        """Stop scheduling checks. A check already underway runs to completion."""
        if self._task is not None:
            self._task.cancel()
            self._task = None
        was_running = self._status.running
        self._status.running = False
        logger.info("Agent monitor stopped")
        return ControlResult(True, "Agent stopped" if was_running else "Agent not running")

    async def run_continuous(self, interval_minutes: float | None = None) -> None:
        """Run the loop in the foreground until cancelled."""
        interval = interval_minutes or self._config.monitor.check_interval_minutes
        logger.info("Starting continuous monitoring (checking every %s minutes)", interval)
        self._status.running = True
        try:
            await self._loop(interval)
        finally:
            self._status.running = False

    async def control(self, command: str) -> ControlResult:
        """Handle ``start``, ``stop``, ``check``, ``auto-on`` and ``auto-off``."""
        if command == "start":
            return self.start()
        if command == "stop":
            return self.stop()
        if command == "check":
            await self.run_check()
            return ControlResult(True, "Check completed")
        if command == "auto-on":
            self.set_auto_execute(True)
            return ControlResult(True, "Auto-execution enabled")
        if command == "auto-off":
            self.set_auto_execute(False)
            return ControlResult(True, "Auto-execution disabled")
        return ControlResult(False, f"Unknown command: {command}")
