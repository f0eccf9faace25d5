"""Data models. Frozen value objects plus the one mutable AgentStatus."""
from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field, replace
from enum import Enum

# Health factor reported when an account carries no debt.
NO_DEBT_HEALTH_FACTOR = 999.0


class ProtocolId(str, Enum):
    VENUS = "venus"
    AAVE = "aave"


class ActionKind(str, Enum):
    SUPPLY = "supply"
    WITHDRAW = "withdraw"
    BORROW = "borrow"
    REPAY = "repay"
    CLAIM = "claim"


class PositionKind(str, Enum):
    SUPPLY = "supply"
    BORROW = "borrow"


class TxStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class RiskTier(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class FailureKind(str, Enum):
    CONFIGURATION = "configuration"
    ADMISSION = "admission"
    EXECUTION = "execution"


@dataclass(frozen=True)
class Token:
    """ERC-20 token as loaded from configuration."""

    symbol: str
    name: str
    address: str
    decimals: int
    is_stablecoin: bool = False


@dataclass(frozen=True)
class NormalizedRate:
    """One market's rates converted to annualized percentages."""

    protocol: ProtocolId
    token: Token
    supply_apr: float
    supply_apy: float
    borrow_apr: float
    borrow_apy: float
    reward_apy: float = 0.0
    reward_available: bool = False
    total_supply: float = 0.0
    total_borrow: float = 0.0
    utilization: float = 0.0
    liquidity: float = 0.0
    collateral_factor: float = 0.0
    liquidation_threshold: float = 0.0
    timestamp: float = field(default_factory=time.time)

    @property
    def net_supply_apy(self) -> float:
        return self.supply_apy + self.reward_apy

    @property
    def net_borrow_apy(self) -> float:
        return self.borrow_apy - self.reward_apy


@dataclass(frozen=True)
class ReadDiagnostic:
    """A per-token read that failed and was skipped."""

    protocol: ProtocolId
    token: str
    operation: str
    error: str


@dataclass(frozen=True)
class RateScan:
    """Result of sweeping every configured market of one or more protocols."""

    rates: tuple[NormalizedRate, ...] = ()
    diagnostics: tuple[ReadDiagnostic, ...] = ()

    def merge(self, other: RateScan) -> RateScan:
        return RateScan(
            rates=self.rates + other.rates,
            diagnostics=self.diagnostics + other.diagnostics,
        )


@dataclass(frozen=True)
class Position:
    """A supply or borrow balance in one market."""

    protocol: ProtocolId
    token: Token
    kind: PositionKind
    amount: float
    apy: float
    amount_usd: float = 0.0
    earned_rewards: float = 0.0


@dataclass(frozen=True)
class PortfolioSummary:
    total_supplied_usd: float
    total_borrowed_usd: float
    net_worth_usd: float
    weighted_supply_apy: float
    weighted_borrow_apy: float
    net_apy: float
    health_factor: float
    protocol_health: dict[ProtocolId, float] = field(default_factory=dict)
    positions: tuple[Position, ...] = ()


@dataclass(frozen=True)
class ActionRequest:
    """A single state change to apply. ``amount == 0`` means "not chosen yet"."""

    protocol: ProtocolId
    action: ActionKind
    token: str
    amount: float = 0.0


@dataclass(frozen=True)
class Recommendation:
    strategy: str
    reasoning: str
    actions: tuple[ActionRequest, ...]
    expected_apy: float
    risk: RiskTier

    def with_amount(self, amount: float) -> Recommendation:
        """Return a copy with ``amount`` bound into every action."""
        return replace(
            self,
            actions=tuple(replace(a, amount=amount) for a in self.actions),
        )


@dataclass(frozen=True)
class TxReceipt:
    tx_hash: str
    gas_used: int


@dataclass(frozen=True)
class ActionResult:
    tx_hash: str
    status: TxStatus
    action: ActionKind
    token: str
    amount: float
    protocol: ProtocolId
    gas_used: int | None = None
    error: str | None = None
    failure: FailureKind | None = None
    timestamp: float = field(default_factory=time.time)

    @property
    def ok(self) -> bool:
        return self.status is TxStatus.CONFIRMED

    @classmethod
    def confirmed(
        cls, request: ActionRequest, receipt: TxReceipt
    ) -> ActionResult:
        return cls(
            tx_hash=receipt.tx_hash,
            status=TxStatus.CONFIRMED,
            action=request.action,
            token=request.token,
            amount=request.amount,
            protocol=request.protocol,
            gas_used=receipt.gas_used,
        )

    @classmethod
    def failed(
        cls,
        request: ActionRequest,
        error: str,
        failure: FailureKind = FailureKind.EXECUTION,
    ) -> ActionResult:
        return cls(
            tx_hash="",
            status=TxStatus.FAILED,
            action=request.action,
            token=request.token,
            amount=request.amount,
            protocol=request.protocol,
            error=error,
            failure=failure,
        )


@dataclass(frozen=True)
class AgentAction:
    """One executed batch. ``results`` may be shorter than ``actions``."""

    id: str
    timestamp: float
    strategy: str
    actions: tuple[ActionRequest, ...]
    results: tuple[ActionResult, ...]
    reasoning: str


@dataclass(frozen=True)
class ControlResult:
    success: bool
    message: str


def _default_health() -> dict[ProtocolId, float]:
    return {p: NO_DEBT_HEALTH_FACTOR for p in ProtocolId}


@dataclass
class AgentStatus:
    """Monitor state. Mutated only by the Monitor; readers get ``snapshot()``."""

    running: bool = False
    last_check: float | None = None
    last_action: float | None = None
    health_factors: dict[ProtocolId, float] = field(default_factory=_default_health)
    total_value_usd: float = 0.0
    active_strategies: list[str] = field(
        default_factory=lambda: ["best-yield", "stable-yield"]
    )
    recommendations: list[Recommendation] = field(default_factory=list)
    errors: deque[str] = field(default_factory=lambda: deque(maxlen=10))
    diagnostics: list[ReadDiagnostic] = field(default_factory=list)

    def add_error(self, message: str) -> None:
        self.errors.append(message)

    def snapshot(self) -> AgentStatus:
        return replace(
            self,
            health_factors=dict(self.health_factors),
            active_strategies=list(self.active_strategies),
            recommendations=list(self.recommendations),
            errors=deque(self.errors, maxlen=self.errors.maxlen),
            diagnostics=list(self.diagnostics),
        )
