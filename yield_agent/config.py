"""Configuration loader. Reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .models import Token

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChainConfig:
    chain_id: int = 56
    rpc_endpoints: tuple[str, ...] = ()
    rpc_timeout: int = 30
    max_retries: int = 3
    retry_base_delay: float = 1.0
    receipt_timeout: int = 120


@dataclass(frozen=True)
class WalletConfig:
    private_key: str = ""
    watch_address: str = ""


@dataclass(frozen=True)
class VenusConfig:
    enabled: bool = True
    comptroller: str = ""
    oracle: str = ""
    xvs_symbol: str = "XVS"
    native_symbol: str = "BNB"
    blocks_per_year: int = 10_512_000
    vtokens: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class AaveConfig:
    enabled: bool = True
    pool: str = ""
    data_provider: str = ""
    oracle: str = ""
    incentives_controller: str = ""
    underlyings: dict[str, str] = field(default_factory=dict)
    a_tokens: dict[str, str] = field(default_factory=dict)
    debt_tokens: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ProtocolsConfig:
    venus: VenusConfig = field(default_factory=VenusConfig)
    aave: AaveConfig = field(default_factory=AaveConfig)


@dataclass(frozen=True)
class StrategyConfig:
    min_supply_apy: float = 0.5
    arbitrage_min_spread: float = 1.0
    rebalance_threshold_bps: float = 50.0
    max_gas_price_gwei: float = 5.0
    active_strategies: tuple[str, ...] = ("best-yield", "stable-yield")

    @property
    def rebalance_threshold(self) -> float:
        """Rebalance threshold in percentage points."""
        return self.rebalance_threshold_bps / 100


@dataclass(frozen=True)
class ExecutorConfig:
    step_delay_seconds: float = 2.0


@dataclass(frozen=True)
class MonitorConfig:
    check_interval_minutes: float = 5
    emergency_health_factor: float = 1.1
    auto_execute: bool = False
    error_log_size: int = 10


@dataclass(frozen=True)
class PythConfig:
    hermes_url: str = "https://hermes.pyth.network/v2/updates/price/latest"
    feeds: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PriceOracleConfig:
    provider: str = "pyth"
    pyth: PythConfig = field(default_factory=PythConfig)


@dataclass(frozen=True)
class TelegramConfig:
    enabled: bool = False
    alert_bot_token: str = ""
    log_bot_token: str = ""
    chat_id: str = ""


@dataclass(frozen=True)
class NotificationsConfig:
    telegram: TelegramConfig = field(default_factory=TelegramConfig)


@dataclass(frozen=True)
class AppConfig:
    chain: ChainConfig = field(default_factory=ChainConfig)
    wallet: WalletConfig = field(default_factory=WalletConfig)
    tokens: dict[str, Token] = field(default_factory=dict)
    protocols: ProtocolsConfig = field(default_factory=ProtocolsConfig)
    strategy: StrategyConfig = field(default_factory=StrategyConfig)
    executor: ExecutorConfig = field(default_factory=ExecutorConfig)
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    price_oracle: PriceOracleConfig = field(default_factory=PriceOracleConfig)
    notifications: NotificationsConfig = field(default_factory=NotificationsConfig)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_chain(raw: dict[str, Any]) -> ChainConfig:
    return ChainConfig(
        chain_id=int(raw.get("chain_id", 56)),
        rpc_endpoints=tuple(raw.get("rpc_endpoints", [])),
        rpc_timeout=int(raw.get("rpc_timeout", 30)),
        max_retries=int(raw.get("max_retries", 3)),
        retry_base_delay=float(raw.get("retry_base_delay", 1.0)),
        receipt_timeout=int(raw.get("receipt_timeout", 120)),
    )


def _build_wallet(raw: dict[str, Any]) -> WalletConfig:
    return WalletConfig(
        private_key=raw.get("private_key", "") or "",
        watch_address=raw.get("watch_address", "") or "",
    )


def _build_tokens(raw: dict[str, Any]) -> dict[str, Token]:
    tokens: dict[str, Token] = {}
    for symbol, cfg in raw.items():
        tokens[symbol] = Token(
            symbol=symbol,
            name=cfg.get("name", symbol),
            address=cfg.get("address", ""),
            decimals=int(cfg.get("decimals", 18)),
            is_stablecoin=bool(cfg.get("stablecoin", False)),
        )
    return tokens


def _build_protocols(raw: dict[str, Any]) -> ProtocolsConfig:
    venus = raw.get("venus", {})
    aave = raw.get("aave", {})
    return ProtocolsConfig(
        venus=VenusConfig(
            enabled=bool(venus.get("enabled", bool(venus))),
            comptroller=venus.get("comptroller", ""),
            oracle=venus.get("oracle", ""),
            xvs_symbol=venus.get("xvs_symbol", "XVS"),
            native_symbol=venus.get("native_symbol", "BNB"),
            blocks_per_year=int(venus.get("blocks_per_year", 10_512_000)),
            vtokens=dict(venus.get("vtokens", {})),
        ),
        aave=AaveConfig(
            enabled=bool(aave.get("enabled", bool(aave))),
            pool=aave.get("pool", ""),
            data_provider=aave.get("data_provider", ""),
            oracle=aave.get("oracle", ""),
            incentives_controller=aave.get("incentives_controller", ""),
            underlyings=dict(aave.get("underlyings", {})),
            a_tokens=dict(aave.get("a_tokens", {})),
            debt_tokens=dict(aave.get("debt_tokens", {})),
        ),
    )


def _build_strategy(raw: dict[str, Any]) -> StrategyConfig:
    return StrategyConfig(
        min_supply_apy=float(raw.get("min_supply_apy", 0.5)),
        arbitrage_min_spread=float(raw.get("arbitrage_min_spread", 1.0)),
        rebalance_threshold_bps=float(raw.get("rebalance_threshold_bps", 50.0)),
        max_gas_price_gwei=float(raw.get("max_gas_price_gwei", 5.0)),
        active_strategies=tuple(
            raw.get("active_strategies", ["best-yield", "stable-yield"])
        ),
    )


def _build_monitor(raw: dict[str, Any]) -> MonitorConfig:
    return MonitorConfig(
        check_interval_minutes=float(raw.get("check_interval_minutes", 5)),
        emergency_health_factor=float(raw.get("emergency_health_factor", 1.1)),
        auto_execute=bool(raw.get("auto_execute", False)),
        error_log_size=int(raw.get("error_log_size", 10)),
    )


def _build_price_oracle(raw: dict[str, Any]) -> PriceOracleConfig:
    pyth_raw = raw.get("pyth", {})
    return PriceOracleConfig(
        provider=raw.get("provider", "pyth"),
        pyth=PythConfig(
            hermes_url=pyth_raw.get("hermes_url", PythConfig.hermes_url),
            feeds=dict(pyth_raw.get("feeds", {})),
        ),
    )


def _build_notifications(raw: dict[str, Any]) -> NotificationsConfig:
    tg = raw.get("telegram", {})
    return NotificationsConfig(
        telegram=TelegramConfig(
            enabled=bool(tg.get("enabled", False)),
            alert_bot_token=tg.get("alert_bot_token", ""),
            log_bot_token=tg.get("log_bot_token", ""),
            chat_id=str(tg.get("chat_id", "")),
        ),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from this package).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        chain=_build_chain(raw.get("chain", {})),
        wallet=_build_wallet(raw.get("wallet", {})),
        tokens=_build_tokens(raw.get("tokens", {})),
        protocols=_build_protocols(raw.get("protocols", {})),
        strategy=_build_strategy(raw.get("strategy", {})),
        executor=ExecutorConfig(
            step_delay_seconds=float(
                raw.get("executor", {}).get("step_delay_seconds", 2.0)
            )
        ),
        monitor=_build_monitor(raw.get("monitor", {})),
        price_oracle=_build_price_oracle(raw.get("price_oracle", {})),
        notifications=_build_notifications(raw.get("notifications", {})),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.chain.rpc_endpoints:
        raise ValueError("At least one RPC endpoint must be configured")
    if cfg.chain.max_retries < 1:
        raise ValueError("chain.max_retries must be at least 1")

    venus, aave = cfg.protocols.venus, cfg.protocols.aave
    if not venus.enabled and not aave.enabled:
        raise ValueError("At least one protocol must be enabled")

    markets = {"venus": venus.vtokens, "aave": aave.underlyings}
    for proto, table in markets.items():
        for symbol in table:
            if symbol not in cfg.tokens:
                raise ValueError(
                    f"Protocol '{proto}' references unknown token '{symbol}'"
                )

    if cfg.monitor.emergency_health_factor <= 0:
        raise ValueError("monitor.emergency_health_factor must be positive")
    if cfg.monitor.check_interval_minutes <= 0:
        raise ValueError("monitor.check_interval_minutes must be positive")
    if cfg.price_oracle.provider not in ("pyth", "aave"):
        raise ValueError(
            f"Unknown price oracle provider '{cfg.price_oracle.provider}'"
        )
