"""Integration tests for PortfolioAggregator with mocked adapters and oracle."""
from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from yield_agent.models import Position, PositionKind, ProtocolId, Token
from yield_agent.services import PortfolioAggregator

USDT = Token("USDT", "Tether USD", "0x55d398326f99059fF775485246999027B3197955", 18, True)
BNB = Token("BNB", "BNB", "0xbb4CdB9CBd36B01bD1cBaEBF2De08d9173bc095c", 18)


def _adapter(protocol: ProtocolId, positions: list[Position], health: float) -> MagicMock:
    adapter = MagicMock()
    adapter.protocol = protocol
    adapter.get_positions = AsyncMock(return_value=positions)
    adapter.get_health_factor = AsyncMock(return_value=health)
    return adapter


def _oracle(prices: dict[str, float]) -> MagicMock:
    oracle = MagicMock()
    oracle.fetch_prices = AsyncMock(return_value=prices)
    return oracle


class TestGetPortfolio:
    @pytest.mark.asyncio
    async def test_merges_protocols(self) -> None:
        venus = _adapter(
            ProtocolId.VENUS,
            [Position(ProtocolId.VENUS, BNB, PositionKind.SUPPLY, 2.0, 3.0)],
            2.0,
        )
        aave = _adapter(
            ProtocolId.AAVE,
            [Position(ProtocolId.AAVE, USDT, PositionKind.BORROW, 300.0, 6.0)],
            999.0,
        )
        aggregator = PortfolioAggregator([venus, aave], _oracle({"BNB": 600.0, "USDT": 1.0}))

        summary = await aggregator.get_portfolio("0xuser")

        assert summary.total_supplied_usd == pytest.approx(1200.0)
        assert summary.total_borrowed_usd == pytest.approx(300.0)
        assert summary.net_worth_usd == pytest.approx(900.0)
        assert summary.health_factor == pytest.approx(2.0)
        assert summary.protocol_health == {ProtocolId.VENUS: 2.0, ProtocolId.AAVE: 999.0}
        # 3% on 1200 less 6% on 300, relative to the supplied side
        assert summary.net_apy == pytest.approx(3.0 - 6.0 * 0.25)
        assert [p.amount_usd for p in summary.positions] == [
            pytest.approx(1200.0),
            pytest.approx(300.0),
        ]
        venus.get_positions.assert_awaited_once_with("0xuser")
        aave.get_health_factor.assert_awaited_once_with("0xuser")

    @pytest.mark.asyncio
    async def test_missing_price_values_position_at_zero(self) -> None:
        venus = _adapter(
            ProtocolId.VENUS,
            [
                Position(ProtocolId.VENUS, BNB, PositionKind.SUPPLY, 2.0, 3.0),
                Position(ProtocolId.VENUS, USDT, PositionKind.SUPPLY, 100.0, 5.0),
            ],
            999.0,
        )
        aggregator = PortfolioAggregator([venus], _oracle({"USDT": 1.0}))

        summary = await aggregator.get_portfolio("0xuser")

        assert summary.total_supplied_usd == pytest.approx(100.0)
        assert summary.weighted_supply_apy == pytest.approx(5.0)
        bnb = summary.positions[0]
        assert bnb.amount == 2.0
        assert bnb.amount_usd == 0.0

    @pytest.mark.asyncio
    async def test_unreadable_health_factor_ignored(self) -> None:
        venus = _adapter(ProtocolId.VENUS, [], 0.0)
        aave = _adapter(ProtocolId.AAVE, [], 1.4)
        aggregator = PortfolioAggregator([venus, aave], _oracle({}))

        summary = await aggregator.get_portfolio("0xuser")

        assert summary.health_factor == pytest.approx(1.4)
        assert summary.protocol_health[ProtocolId.VENUS] == 0.0

    @pytest.mark.asyncio
    async def test_empty_account_skips_oracle(self) -> None:
        oracle = _oracle({})
        aggregator = PortfolioAggregator([_adapter(ProtocolId.AAVE, [], 999.0)], oracle)

        summary = await aggregator.get_portfolio("0xuser")

        assert summary.positions == ()
        assert summary.net_apy == 0.0
        assert summary.health_factor == 999.0
        oracle.fetch_prices.assert_not_awaited()
