"""Pure conversion functions for Aave V3 reserve data."""
from __future__ import annotations

from collections.abc import Sequence

from ...models import NO_DEBT_HEALTH_FACTOR, NormalizedRate, ProtocolId, Token
from ..rates import (
    calc_utilization,
    from_mantissa,
    ray_apr,
    ray_apy,
    saturate_health_factor,
    to_units,
)

# getUserAccountData reports type(uint256).max when the account has no debt.
NO_DEBT_RAW_THRESHOLD = 1e10


def bps_to_fraction(value: int) -> float:
    """Aave reserve configuration values are in basis points (10000 = 100%)."""
    return value / 10_000


def build_rate(
    token: Token,
    reserve_data: Sequence[int],
    config_data: Sequence[int | bool],
    timestamp: float | None = None,
) -> NormalizedRate:
    """Build a NormalizedRate from PoolDataProvider reserve/config tuples."""
    total_a_token = to_units(reserve_data[2], token.decimals)
    total_borrow = to_units(reserve_data[3] + reserve_data[4], token.decimals)
    liquidity_rate = reserve_data[5]
    variable_borrow_rate = reserve_data[6]
    available = max(total_a_token - total_borrow, 0.0)

    extra = {} if timestamp is None else {"timestamp": timestamp}
    return NormalizedRate(
        protocol=ProtocolId.AAVE,
        token=token,
        supply_apr=ray_apr(liquidity_rate),
        supply_apy=ray_apy(liquidity_rate),
        borrow_apr=ray_apr(variable_borrow_rate),
        borrow_apy=ray_apy(variable_borrow_rate),
        reward_apy=0.0,
        reward_available=False,
        total_supply=total_a_token,
        total_borrow=total_borrow,
        utilization=calc_utilization(available, total_borrow),
        liquidity=available,
        collateral_factor=bps_to_fraction(int(config_data[1])),
        liquidation_threshold=bps_to_fraction(int(config_data[2])),
        **extra,
    )


def parse_health_factor(raw: int) -> float:
    health_factor = from_mantissa(raw)
    if health_factor > NO_DEBT_RAW_THRESHOLD:
        return NO_DEBT_HEALTH_FACTOR
    return saturate_health_factor(health_factor)


def user_balances(user_reserve: Sequence[int], decimals: int) -> tuple[float, float]:
    """(supplied, borrowed) token units from getUserReserveData."""
    supplied = to_units(user_reserve[0], decimals)
    borrowed = to_units(user_reserve[1] + user_reserve[2], decimals)
    return supplied, borrowed
