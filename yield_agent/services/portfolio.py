"""Cross-protocol portfolio aggregation."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Sequence
from dataclasses import replace

from ..interfaces.price_oracle import PriceOracle
from ..interfaces.protocol_adapter import ProtocolAdapter
from ..models import (
    NO_DEBT_HEALTH_FACTOR,
    PortfolioSummary,
    Position,
    PositionKind,
    ProtocolId,
)
from ..protocols.rates import saturate_health_factor

logger = logging.getLogger(__name__)


def weighted_apy(positions: Sequence[Position]) -> float:
    """Σ(apy · usd) / Σusd, 0 for an empty or zero-valued set."""
    total = sum(p.amount_usd for p in positions)
    if total <= 0:
        return 0.0
    return sum(p.apy * p.amount_usd for p in positions) / total


def aggregate_health_factor(values: Iterable[float]) -> float:
    """Minimum of the known health factors.

    A 0 means the protocol could not be read and is left out; with nothing
    known the no-debt sentinel is returned.
    """
    known = [saturate_health_factor(v) for v in values if v > 0]
    return min(known) if known else NO_DEBT_HEALTH_FACTOR


def summarize(
    positions: Sequence[Position], protocol_health: dict[ProtocolId, float]
) -> PortfolioSummary:
    """Build the summary from USD-priced positions. Pure."""
    supplies = [p for p in positions if p.kind is PositionKind.SUPPLY]
    borrows = [p for p in positions if p.kind is PositionKind.BORROW]

    total_supplied = sum(p.amount_usd for p in supplies)
    total_borrowed = sum(p.amount_usd for p in borrows)
    supply_apy = weighted_apy(supplies)
    borrow_apy = weighted_apy(borrows)

    if total_borrowed > 0 and total_supplied > 0:
        net_apy = supply_apy - borrow_apy * (total_borrowed / total_supplied)
    else:
        net_apy = supply_apy

    return PortfolioSummary(
        total_supplied_usd=total_supplied,
        total_borrowed_usd=total_borrowed,
        net_worth_usd=total_supplied - total_borrowed,
        weighted_supply_apy=supply_apy,
        weighted_borrow_apy=borrow_apy,
        net_apy=net_apy,
        health_factor=aggregate_health_factor(protocol_health.values()),
        protocol_health=dict(protocol_health),
        positions=tuple(positions),
    )


class PortfolioAggregator:
    """Merge positions and health factors from every adapter into one summary."""

    def __init__(
        self, adapters: Sequence[ProtocolAdapter], price_oracle: PriceOracle
    ) -> None:
        self._adapters = list(adapters)
        self._oracle = price_oracle

    async def get_portfolio(self, address: str) -> PortfolioSummary:
        position_groups, health_factors = await asyncio.gather(
            asyncio.gather(*(a.get_positions(address) for a in self._adapters)),
            asyncio.gather(*(a.get_health_factor(address) for a in self._adapters)),
        )
        positions = [p for group in position_groups for p in group]

        symbols = sorted({p.token.symbol for p in positions})
        prices = await self._oracle.fetch_prices(symbols) if symbols else {}
        for symbol in symbols:
            if prices.get(symbol, 0.0) <= 0:
                logger.warning("No USD price for %s; valuing its positions at 0", symbol)

        priced = [
            replace(p, amount_usd=p.amount * prices.get(p.token.symbol, 0.0))
            for p in positions
        ]
        protocol_health = {
            a.protocol: hf for a, hf in zip(self._adapters, health_factors)
        }

        summary = summarize(priced, protocol_health)
        logger.info(
            "Portfolio %s — supplied $%.2f  borrowed $%.2f  net APY %.2f%%  HF %.2f",
            address,
            summary.total_supplied_usd,
            summary.total_borrowed_usd,
            summary.net_apy,
            summary.health_factor,
        )
        return summary
