"""Strategy engine: fetch rates and portfolio, then run the generators."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..config import StrategyConfig
from ..interfaces.protocol_adapter import ProtocolAdapter
from ..models import (
    NormalizedRate,
    PortfolioSummary,
    RateScan,
    ReadDiagnostic,
    Recommendation,
)
from . import generators

if TYPE_CHECKING:
    from ..services.portfolio import PortfolioAggregator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StrategyReport:
    """Ranked recommendations with the read failures encountered on the way."""

    recommendations: tuple[Recommendation, ...]
    diagnostics: tuple[ReadDiagnostic, ...] = ()
    portfolio: PortfolioSummary | None = None


class StrategyEngine:
    """Turn live rates (and optionally a portfolio) into recommendations."""

    def __init__(
        self,
        adapters: Sequence[ProtocolAdapter],
        aggregator: PortfolioAggregator,
        config: StrategyConfig,
    ) -> None:
        self._adapters = list(adapters)
        self._aggregator = aggregator
        self._config = config

    async def get_all_rates(self) -> RateScan:
        scans = await asyncio.gather(*(a.get_rates() for a in self._adapters))
        merged = RateScan()
        for scan in scans:
            merged = merged.merge(scan)
        return merged

    def recommend(
        self,
        rates: Sequence[NormalizedRate],
        portfolio: PortfolioSummary | None = None,
    ) -> list[Recommendation]:
        """Run every generator over already-fetched data. Pure."""
        cfg = self._config
        recs: list[Recommendation] = []
        recs.extend(generators.best_yield(rates, cfg.min_supply_apy))
        recs.extend(generators.stable_yield(rates))
        recs.extend(generators.rate_arbitrage(rates, cfg.arbitrage_min_spread))
        if portfolio is not None:
            recs.extend(
                generators.rebalance(rates, portfolio, cfg.rebalance_threshold)
            )
        return generators.rank(recs)

    async def scan(
        self,
        address: str | None = None,
        portfolio: PortfolioSummary | None = None,
    ) -> StrategyReport:
        """Fetch rates (and the portfolio when only an address is given)."""
        if portfolio is None and address:
            rate_scan, portfolio = await asyncio.gather(
                self.get_all_rates(), self._aggregator.get_portfolio(address)
            )
        else:
            rate_scan = await self.get_all_rates()

        for diag in rate_scan.diagnostics:
            logger.warning(
                "Skipped %s %s %s: %s",
                diag.protocol.value,
                diag.token,
                diag.operation,
                diag.error,
            )

        recs = self.recommend(rate_scan.rates, portfolio)
        logger.info(
            "Generated %d recommendations from %d rates", len(recs), len(rate_scan.rates)
        )
        return StrategyReport(
            recommendations=tuple(recs),
            diagnostics=rate_scan.diagnostics,
            portfolio=portfolio,
        )

    async def generate_recommendations(
        self, address: str | None = None
    ) -> list[Recommendation]:
        report = await self.scan(address)
        return list(report.recommendations)
