"""Integration tests for the Aave V3 adapter against a mocked chain client."""
from __future__ import annotations

import pytest

from yield_agent.models import FailureKind, PositionKind, ProtocolId, TxReceipt, TxStatus
from yield_agent.protocols.aave import AaveAdapter
from yield_agent.protocols.aave.abi import VARIABLE_RATE_MODE
from yield_agent.protocols.rates import RAY

E18 = 10**18


def _reserve_responses(chain) -> None:
    chain.responses.update(
        {
            "getReserveData": (
                0, 0, 1000 * E18, 0, 300 * E18, 4 * RAY // 100, 6 * RAY // 100,
                0, 0, 0, 0, 0,
            ),
            "getReserveConfigurationData": (
                18, 7500, 8000, 10500, 1000, True, True, True, True, False,
            ),
        }
    )


@pytest.fixture()
def adapter(mock_chain, aave_config, tokens, wallet) -> AaveAdapter:
    return AaveAdapter(mock_chain, aave_config, tokens, wallet)


def _transacted(chain) -> list[str]:
    return [c.args[2] for c in chain.transact.await_args_list]


class TestRates:
    def test_supported_tokens(self, adapter: AaveAdapter) -> None:
        assert adapter.protocol is ProtocolId.AAVE
        assert adapter.supported_tokens() == ["USDT", "USDC"]

    @pytest.mark.asyncio
    async def test_get_rate(self, adapter: AaveAdapter, mock_chain, tokens) -> None:
        _reserve_responses(mock_chain)
        rate = await adapter.get_rate("USDC")
        assert rate.protocol is ProtocolId.AAVE
        assert rate.supply_apr == pytest.approx(4.0)
        assert rate.borrow_apr == pytest.approx(6.0)
        assert rate.total_supply == pytest.approx(1000.0)
        assert rate.total_borrow == pytest.approx(300.0)
        assert rate.utilization == pytest.approx(30.0)
        assert rate.collateral_factor == pytest.approx(0.75)
        assert rate.liquidation_threshold == pytest.approx(0.80)
        call = mock_chain.call.await_args_list[0]
        assert call.args[0] == "0xdataprovider"
        assert call.args[3] == tokens["USDC"].address

    @pytest.mark.asyncio
    async def test_get_rates_reports_failures(self, adapter: AaveAdapter, mock_chain, tokens) -> None:
        _reserve_responses(mock_chain)
        good = mock_chain.responses["getReserveData"]

        def _reserve(provider, underlying):
            if underlying == tokens["USDT"].address:
                raise TimeoutError("slow rpc")
            return good

        mock_chain.responses["getReserveData"] = _reserve
        scan = await adapter.get_rates()
        assert [r.token.symbol for r in scan.rates] == ["USDC"]
        assert [d.token for d in scan.diagnostics] == ["USDT"]


class TestAccountReads:
    @pytest.mark.asyncio
    async def test_get_positions(self, adapter: AaveAdapter, mock_chain, tokens) -> None:
        _reserve_responses(mock_chain)
        balances = {
            tokens["USDT"].address: (250 * E18, 0, 0, 0, 0, 0, 0, 0, True),
            tokens["USDC"].address: (0, 0, 40 * E18, 0, 0, 0, 0, 0, False),
        }
        mock_chain.responses["getUserReserveData"] = (
            lambda provider, underlying, user: balances[underlying]
        )

        positions = await adapter.get_positions("0xuser")

        assert [(p.token.symbol, p.kind, p.amount) for p in positions] == [
            ("USDT", PositionKind.SUPPLY, pytest.approx(250.0)),
            ("USDC", PositionKind.BORROW, pytest.approx(40.0)),
        ]

    @pytest.mark.asyncio
    async def test_position_read_failure_skipped(self, adapter: AaveAdapter, mock_chain) -> None:
        mock_chain.responses["getUserReserveData"] = ConnectionError("down")
        assert await adapter.get_positions("0xuser") == []

    @pytest.mark.asyncio
    async def test_health_factor(self, adapter: AaveAdapter, mock_chain) -> None:
        mock_chain.responses["getUserAccountData"] = (0, 0, 0, 0, 0, 18 * 10**17)
        assert await adapter.get_health_factor("0xuser") == pytest.approx(1.8)

    @pytest.mark.asyncio
    async def test_health_factor_no_debt(self, adapter: AaveAdapter, mock_chain) -> None:
        mock_chain.responses["getUserAccountData"] = (0, 0, 0, 0, 0, 2**256 - 1)
        assert await adapter.get_health_factor("0xuser") == 999.0

    @pytest.mark.asyncio
    async def test_health_factor_failure_is_zero(self, adapter: AaveAdapter, mock_chain) -> None:
        mock_chain.responses["getUserAccountData"] = ConnectionError("down")
        assert await adapter.get_health_factor("0xuser") == 0.0


class TestWrites:
    @pytest.mark.asyncio
    async def test_supply_approves_and_enables_collateral(
        self, adapter: AaveAdapter, mock_chain, tokens, wallet
    ) -> None:
        mock_chain.responses["allowance"] = 0
        result = await adapter.supply("USDT", 10.0)

        assert result.ok
        assert _transacted(mock_chain) == [
            "approve", "supply", "setUserUseReserveAsCollateral",
        ]
        _, supply, collateral = mock_chain.transact.await_args_list
        assert supply.args[0] == "0xpool"
        assert supply.args[3:] == (tokens["USDT"].address, 10 * E18, wallet.address(), 0)
        assert collateral.args[3:] == (tokens["USDT"].address, True)

    @pytest.mark.asyncio
    async def test_collateral_toggle_failure_keeps_supply(
        self, adapter: AaveAdapter, mock_chain
    ) -> None:
        mock_chain.responses["allowance"] = 2**255
        mock_chain.transact.side_effect = [
            TxReceipt("0xsupply", 100),
            RuntimeError("already enabled"),
        ]
        result = await adapter.supply("USDT", 1.0)
        assert result.ok
        assert result.tx_hash == "0xsupply"

    @pytest.mark.asyncio
    async def test_borrow_uses_variable_rate(self, adapter: AaveAdapter, mock_chain, tokens, wallet) -> None:
        assert (await adapter.borrow("USDC", 5.0)).ok
        [borrow] = mock_chain.transact.await_args_list
        assert borrow.args[2:] == (
            "borrow", tokens["USDC"].address, 5 * E18, VARIABLE_RATE_MODE, 0, wallet.address(),
        )

    @pytest.mark.asyncio
    async def test_repay_checks_allowance(self, adapter: AaveAdapter, mock_chain, tokens, wallet) -> None:
        mock_chain.responses["allowance"] = 10 * E18
        assert (await adapter.repay("USDC", 5.0)).ok
        [repay] = mock_chain.transact.await_args_list
        assert repay.args[2:] == (
            "repay", tokens["USDC"].address, 5 * E18, VARIABLE_RATE_MODE, wallet.address(),
        )

    @pytest.mark.asyncio
    async def test_withdraw(self, adapter: AaveAdapter, mock_chain, tokens, wallet) -> None:
        assert (await adapter.withdraw("USDT", 3.0)).ok
        [withdraw] = mock_chain.transact.await_args_list
        assert withdraw.args[2:] == ("withdraw", tokens["USDT"].address, 3 * E18, wallet.address())

    @pytest.mark.asyncio
    async def test_claim_rewards_all_reserve_tokens(self, adapter: AaveAdapter, mock_chain) -> None:
        result = await adapter.claim_rewards()
        assert result.ok
        assert result.amount == 0.0
        [claim] = mock_chain.transact.await_args_list
        assert claim.args[0] == "0xincentives"
        assert claim.args[2] == "claimAllRewardsToSelf"
        assert claim.args[3] == ["0xausdt", "0xausdc", "0xdusdt", "0xdusdc"]

    @pytest.mark.asyncio
    async def test_no_wallet(self, mock_chain, aave_config, tokens, no_wallet) -> None:
        adapter = AaveAdapter(mock_chain, aave_config, tokens, no_wallet)
        result = await adapter.claim_rewards()
        assert result.status is TxStatus.FAILED
        assert result.failure is FailureKind.CONFIGURATION
        mock_chain.transact.assert_not_awaited()
