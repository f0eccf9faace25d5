"""Recommendation generators. Pure functions of rates and portfolio."""
from __future__ import annotations

from collections.abc import Sequence
from functools import reduce

from ..models import (
    ActionKind,
    ActionRequest,
    NormalizedRate,
    PortfolioSummary,
    PositionKind,
    Recommendation,
    RiskTier,
)

BEST_YIELD = "best-yield"
STABLE_YIELD = "stable-yield"
RATE_ARBITRAGE = "rate-arbitrage"
REBALANCE = "rebalance"


def group_by_token(rates: Sequence[NormalizedRate]) -> dict[str, list[NormalizedRate]]:
    """Group rates by token symbol, keeping first-seen order."""
    groups: dict[str, list[NormalizedRate]] = {}
    for rate in rates:
        groups.setdefault(rate.token.symbol, []).append(rate)
    return groups


def best_supply_rate(rates: Sequence[NormalizedRate]) -> NormalizedRate | None:
    """Highest net supply APY; the later rate wins a tie."""
    if not rates:
        return None
    return reduce(lambda a, b: a if a.net_supply_apy > b.net_supply_apy else b, rates)


def best_borrow_rate(rates: Sequence[NormalizedRate]) -> NormalizedRate | None:
    """Lowest net borrow APY; the later rate wins a tie."""
    if not rates:
        return None
    return reduce(lambda a, b: a if a.net_borrow_apy < b.net_borrow_apy else b, rates)


def best_yield(
    rates: Sequence[NormalizedRate], min_apy: float = 0.5
) -> list[Recommendation]:
    recs: list[Recommendation] = []
    for symbol, token_rates in group_by_token(rates).items():
        best = best_supply_rate(token_rates)
        if best is None or best.net_supply_apy <= min_apy:
            continue
        recs.append(
            Recommendation(
                strategy=BEST_YIELD,
                reasoning=(
                    f"{symbol} has best supply APY of {best.net_supply_apy:.2f}% "
                    f"on {best.protocol.value}"
                ),
                actions=(ActionRequest(best.protocol, ActionKind.SUPPLY, symbol),),
                expected_apy=best.net_supply_apy,
                risk=RiskTier.LOW if best.token.is_stablecoin else RiskTier.MEDIUM,
            )
        )
    return recs


def stable_yield(rates: Sequence[NormalizedRate]) -> list[Recommendation]:
    best = best_supply_rate([r for r in rates if r.token.is_stablecoin])
    if best is None:
        return []
    return [
        Recommendation(
            strategy=STABLE_YIELD,
            reasoning=(
                f"Best stablecoin yield: {best.token.symbol} at "
                f"{best.net_supply_apy:.2f}% APY on {best.protocol.value}"
            ),
            actions=(
                ActionRequest(best.protocol, ActionKind.SUPPLY, best.token.symbol),
            ),
            expected_apy=best.net_supply_apy,
            risk=RiskTier.LOW,
        )
    ]


def rate_arbitrage(
    rates: Sequence[NormalizedRate], min_spread: float = 1.0
) -> list[Recommendation]:
    """Supply where it pays most and borrow where it costs least, per token."""
    recs: list[Recommendation] = []
    for symbol, token_rates in group_by_token(rates).items():
        if len(token_rates) < 2:
            continue
        supply = best_supply_rate(token_rates)
        borrow = best_borrow_rate(token_rates)
        if supply is None or borrow is None or supply.protocol == borrow.protocol:
            continue

        spread = supply.net_supply_apy - borrow.net_borrow_apy
        if spread <= min_spread:
            continue
        recs.append(
            Recommendation(
                strategy=RATE_ARBITRAGE,
                reasoning=(
                    f"Supply {symbol} on {supply.protocol.value} "
                    f"({supply.net_supply_apy:.2f}%) and borrow on "
                    f"{borrow.protocol.value} ({borrow.net_borrow_apy:.2f}%). "
                    f"Spread: {spread:.2f}%"
                ),
                actions=(
                    ActionRequest(supply.protocol, ActionKind.SUPPLY, symbol),
                    ActionRequest(borrow.protocol, ActionKind.BORROW, symbol),
                ),
                expected_apy=spread,
                risk=RiskTier.HIGH,
            )
        )
    return recs


def rebalance(
    rates: Sequence[NormalizedRate],
    portfolio: PortfolioSummary,
    threshold: float = 0.5,
) -> list[Recommendation]:
    """Move supply positions to a better protocol.

    ``threshold`` is in percentage points (50 bps = 0.5).
    """
    groups = group_by_token(rates)
    recs: list[Recommendation] = []
    for position in portfolio.positions:
        if position.kind is not PositionKind.SUPPLY:
            continue
        symbol = position.token.symbol
        best = best_supply_rate(groups.get(symbol, []))
        if best is None or best.protocol == position.protocol:
            continue

        improvement = best.net_supply_apy - position.apy
        if improvement <= threshold:
            continue
        recs.append(
            Recommendation(
                strategy=REBALANCE,
                reasoning=(
                    f"Move {symbol} from {position.protocol.value} "
                    f"({position.apy:.2f}%) to {best.protocol.value} "
                    f"({best.net_supply_apy:.2f}%). Improvement: +{improvement:.2f}%"
                ),
                actions=(
                    ActionRequest(
                        position.protocol, ActionKind.WITHDRAW, symbol, position.amount
                    ),
                    ActionRequest(best.protocol, ActionKind.SUPPLY, symbol, position.amount),
                ),
                expected_apy=best.net_supply_apy,
                risk=RiskTier.LOW,
            )
        )
    return recs


def rank(recommendations: Sequence[Recommendation]) -> list[Recommendation]:
    """Sort by expected APY, highest first; equal APYs keep their order."""
    return sorted(recommendations, key=lambda r: r.expected_apy, reverse=True)
