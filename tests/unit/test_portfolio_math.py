"""Unit tests for pure portfolio aggregation math."""
from __future__ import annotations

import pytest

from yield_agent.models import Position, PositionKind, ProtocolId
from yield_agent.services.portfolio import aggregate_health_factor, summarize, weighted_apy

VENUS, AAVE = ProtocolId.VENUS, ProtocolId.AAVE


def _pos(tokens, kind, apy, usd, protocol=VENUS) -> Position:
    return Position(protocol, tokens["USDT"], kind, usd, apy, amount_usd=usd)


class TestAggregateHealthFactor:
    def test_minimum_of_known(self) -> None:
        assert aggregate_health_factor([2.0, 999.0]) == pytest.approx(2.0)

    def test_failed_reads_ignored(self) -> None:
        assert aggregate_health_factor([0.0, 1.4]) == pytest.approx(1.4)

    def test_nothing_known(self) -> None:
        assert aggregate_health_factor([0.0, 0.0]) == 999.0
        assert aggregate_health_factor([]) == 999.0


class TestWeightedApy:
    def test_weighted(self, tokens) -> None:
        positions = [
            _pos(tokens, PositionKind.SUPPLY, 2.0, 100.0),
            _pos(tokens, PositionKind.SUPPLY, 5.0, 300.0),
        ]
        assert weighted_apy(positions) == pytest.approx(4.25)

    def test_empty(self) -> None:
        assert weighted_apy([]) == 0.0


class TestSummarize:
    def test_supply_only(self, tokens) -> None:
        summary = summarize([_pos(tokens, PositionKind.SUPPLY, 4.0, 1000.0)], {VENUS: 999.0})
        assert summary.total_supplied_usd == pytest.approx(1000.0)
        assert summary.total_borrowed_usd == 0.0
        assert summary.net_worth_usd == pytest.approx(1000.0)
        assert summary.net_apy == pytest.approx(4.0)
        assert summary.health_factor == 999.0

    def test_leveraged_net_apy(self, tokens) -> None:
        positions = [
            _pos(tokens, PositionKind.SUPPLY, 4.0, 1000.0),
            _pos(tokens, PositionKind.BORROW, 6.0, 500.0, protocol=AAVE),
        ]
        summary = summarize(positions, {VENUS: 999.0, AAVE: 2.0})
        assert summary.net_worth_usd == pytest.approx(500.0)
        assert summary.weighted_borrow_apy == pytest.approx(6.0)
        # 4.0 - 6.0 * (500 / 1000)
        assert summary.net_apy == pytest.approx(1.0)
        assert summary.health_factor == pytest.approx(2.0)
        assert summary.protocol_health == {VENUS: 999.0, AAVE: 2.0}

    def test_empty(self) -> None:
        summary = summarize([], {})
        assert summary.net_apy == 0.0
        assert summary.health_factor == 999.0
        assert summary.positions == ()
