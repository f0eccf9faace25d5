"""Pure conversion functions for Venus market data, no I/O."""
from __future__ import annotations

from ...models import NormalizedRate, ProtocolId, Token
from ..rates import (
    calc_utilization,
    from_mantissa,
    per_block_apr,
    per_block_apy,
    to_units,
)


def underlying_amount(vtoken_balance: int, exchange_rate: int, decimals: int) -> float:
    """vToken shares → underlying token units.

    The exchange rate is a mantissa, so:
        amount = shares * exchange_rate / 10^18 / 10^decimals
    """
    return vtoken_balance * exchange_rate / 10**18 / 10**decimals


def oracle_price(raw_price: int, decimals: int) -> float:
    """Venus oracle prices are scaled by 10^(36 - decimals)."""
    return raw_price / 10 ** (36 - decimals)


def calc_reward_apy(
    supply_speed: int,
    blocks_per_year: int,
    reward_price: float,
    total_supply_units: float,
    token_price: float,
) -> float | None:
    """XVS emitted to suppliers per year as a percentage of the market's USD size.

    Returns None when a price is missing, i.e. the reward cannot be valued.
    """
    if reward_price <= 0 or token_price <= 0:
        return None
    supply_usd = total_supply_units * token_price
    if supply_usd <= 0:
        return 0.0
    rewards_per_year = from_mantissa(supply_speed) * blocks_per_year
    return rewards_per_year * reward_price / supply_usd * 100


def build_rate(
    token: Token,
    *,
    supply_rate_per_block: int,
    borrow_rate_per_block: int,
    total_supply: int,
    total_borrows: int,
    cash: int,
    exchange_rate: int,
    collateral_factor_mantissa: int,
    blocks_per_year: int,
    reward_apy: float | None = None,
    timestamp: float | None = None,
) -> NormalizedRate:
    supply_rate = from_mantissa(supply_rate_per_block)
    borrow_rate = from_mantissa(borrow_rate_per_block)

    total_borrow_units = to_units(total_borrows, token.decimals)
    liquidity_units = to_units(cash, token.decimals)
    collateral_factor = from_mantissa(collateral_factor_mantissa)

    extra = {} if timestamp is None else {"timestamp": timestamp}
    return NormalizedRate(
        protocol=ProtocolId.VENUS,
        token=token,
        supply_apr=per_block_apr(supply_rate, blocks_per_year),
        supply_apy=per_block_apy(supply_rate, blocks_per_year),
        borrow_apr=per_block_apr(borrow_rate, blocks_per_year),
        borrow_apy=per_block_apy(borrow_rate, blocks_per_year),
        reward_apy=reward_apy or 0.0,
        reward_available=reward_apy is not None,
        total_supply=underlying_amount(total_supply, exchange_rate, token.decimals),
        total_borrow=total_borrow_units,
        utilization=calc_utilization(liquidity_units, total_borrow_units),
        liquidity=liquidity_units,
        collateral_factor=collateral_factor,
        # Venus liquidates at the collateral factor itself
        liquidation_threshold=collateral_factor,
        **extra,
    )
