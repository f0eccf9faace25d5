"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from collections.abc import Callable
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from yield_agent.config import (
    AaveConfig,
    AppConfig,
    ChainConfig,
    ExecutorConfig,
    MonitorConfig,
    ProtocolsConfig,
    PythConfig,
    StrategyConfig,
    VenusConfig,
    WalletConfig,
)
from yield_agent.models import NormalizedRate, ProtocolId, Token, TxReceipt

OWNER = "0x00000000000000000000000000000000000000a1"

USDT = Token("USDT", "Tether USD", "0x55d398326f99059fF775485246999027B3197955", 18, True)
USDC = Token("USDC", "USD Coin", "0x8AC76a51cc950d9822D68b83fE1Ad97B32Cd580d", 18, True)
BNB = Token("BNB", "BNB", "0xbb4CdB9CBd36B01bD1cBaEBF2De08d9173bc095c", 18, False)


# ---------------------------------------------------------------------------
# Token / rate fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def tokens() -> dict[str, Token]:
    return {"USDT": USDT, "USDC": USDC, "BNB": BNB}


@pytest.fixture()
def make_rate() -> Callable[..., NormalizedRate]:
    """Factory for NormalizedRate with sensible defaults."""

    def _make(
        protocol: ProtocolId,
        token: Token,
        supply_apy: float = 0.0,
        borrow_apy: float = 0.0,
        reward_apy: float = 0.0,
    ) -> NormalizedRate:
        return NormalizedRate(
            protocol=protocol,
            token=token,
            supply_apr=supply_apy,
            supply_apy=supply_apy,
            borrow_apr=borrow_apy,
            borrow_apy=borrow_apy,
            reward_apy=reward_apy,
            reward_available=reward_apy > 0,
            timestamp=0.0,
        )

    return _make


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def venus_config() -> VenusConfig:
    return VenusConfig(
        comptroller="0xcomptroller",
        oracle="0xvenusoracle",
        vtokens={"USDT": "0xvusdt", "BNB": "0xvbnb"},
    )


@pytest.fixture()
def aave_config() -> AaveConfig:
    return AaveConfig(
        pool="0xpool",
        data_provider="0xdataprovider",
        oracle="0xaaveoracle",
        incentives_controller="0xincentives",
        underlyings={"USDT": USDT.address, "USDC": USDC.address},
        a_tokens={"USDT": "0xausdt", "USDC": "0xausdc"},
        debt_tokens={"USDT": "0xdusdt", "USDC": "0xdusdc"},
    )


@pytest.fixture()
def sample_app_config(
    tokens: dict[str, Token], venus_config: VenusConfig, aave_config: AaveConfig
) -> AppConfig:
    return AppConfig(
        chain=ChainConfig(
            rpc_endpoints=("https://rpc1.example.com", "https://rpc2.example.com"),
        ),
        wallet=WalletConfig(watch_address=OWNER),
        tokens=tokens,
        protocols=ProtocolsConfig(venus=venus_config, aave=aave_config),
        strategy=StrategyConfig(),
        executor=ExecutorConfig(step_delay_seconds=0.0),
        monitor=MonitorConfig(),
    )


@pytest.fixture()
def sample_pyth_config() -> PythConfig:
    return PythConfig(
        hermes_url="https://hermes.example.com/v2/updates/price/latest",
        feeds={"BNB": "aaa111", "USDT": "bbb222", "XVS": "0xCCC333"},
    )


# ---------------------------------------------------------------------------
# Mocked I/O
# ---------------------------------------------------------------------------


@pytest.fixture()
def wallet() -> MagicMock:
    w = MagicMock()
    w.address.return_value = OWNER
    return w


@pytest.fixture()
def no_wallet() -> MagicMock:
    w = MagicMock()
    w.address.return_value = None
    return w


@pytest.fixture()
def mock_chain() -> MagicMock:
    """Chain client whose reads are routed by function name.

    Tests fill ``chain.responses[function]`` with a value, a callable taking
    ``(address, *args)``, or an exception instance to raise.
    """
    chain = MagicMock()
    chain.responses = {}

    async def _call(address, abi, function, *args):
        response = chain.responses[function]
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(address, *args)
        return response

    chain.call = AsyncMock(side_effect=_call)
    chain.transact = AsyncMock(return_value=TxReceipt(tx_hash="0xhash", gas_used=21000))
    chain.gas_price_gwei = AsyncMock(return_value=3.0)
    return chain


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent("""\
    chain:
      rpc_endpoints: ["https://rpc1.example.com", "https://rpc2.example.com"]
      rpc_timeout: 10
    wallet:
      private_key: ""
      watch_address: "0xWATCH"
    tokens:
      USDT: {name: Tether USD, address: "0x55d3", decimals: 18, stablecoin: true}
      BNB: {name: BNB, address: "0xbb4c", decimals: 18}
    protocols:
      venus:
        comptroller: "0xcomp"
        oracle: "0xoracle"
        vtokens: {USDT: "0xvusdt", BNB: "0xvbnb"}
      aave:
        pool: "0xpool"
        data_provider: "0xdp"
        underlyings: {USDT: "0x55d3"}
        a_tokens: {USDT: "0xa"}
        debt_tokens: {USDT: "0xd"}
    strategy:
      min_supply_apy: 0.75
      rebalance_threshold_bps: 100
    executor:
      step_delay_seconds: 1.5
    monitor:
      check_interval_minutes: 10
      emergency_health_factor: 1.2
    price_oracle:
      provider: pyth
      pyth:
        hermes_url: "https://hermes.example.com"
        feeds: {BNB: "aaa", USDT: "bbb"}
    notifications:
      telegram:
        enabled: true
        alert_bot_token: "tok1"
        log_bot_token: "tok2"
        chat_id: 999
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
