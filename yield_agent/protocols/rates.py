"""Pure rate-normalization math shared by the protocol adapters. No I/O.

Two compounding models are supported and they are not interchangeable:

* per-block (Compound/Venus style): a fractional rate accrues once per block,
  ``APR = r * B * 100`` and ``APY = ((1 + r)^B - 1) * 100``;
* per-second with a RAY fixed-point annual rate (Aave style):
  ``r = R / 1e27``, ``APR = r * 100`` and
  ``APY = ((1 + r / SECONDS_PER_YEAR)^SECONDS_PER_YEAR - 1) * 100``.

All results are percentages.
"""
from __future__ import annotations

import math

from ..models import NO_DEBT_HEALTH_FACTOR

MANTISSA = 10**18
RAY = 10**27
SECONDS_PER_YEAR = 31_536_000
# ~3s blocks on BNB Smart Chain
BLOCKS_PER_YEAR = 10_512_000


def _compound(rate: float, periods: int) -> float:
    # (1 + rate)^periods - 1, accurate for the tiny per-period rates involved
    return math.expm1(periods * math.log1p(rate))


def per_block_apr(rate_per_block: float, blocks_per_year: int = BLOCKS_PER_YEAR) -> float:
    return rate_per_block * blocks_per_year * 100


def per_block_apy(rate_per_block: float, blocks_per_year: int = BLOCKS_PER_YEAR) -> float:
    return _compound(rate_per_block, blocks_per_year) * 100


def ray_apr(rate_ray: int | float) -> float:
    return rate_ray / RAY * 100


def ray_apy(rate_ray: int | float) -> float:
    rate = rate_ray / RAY
    return _compound(rate / SECONDS_PER_YEAR, SECONDS_PER_YEAR) * 100


def from_mantissa(value: int | float) -> float:
    return value / MANTISSA


def to_units(raw: int | float, decimals: int) -> float:
    """Convert a raw integer token amount to token units."""
    return raw / 10**decimals


def calc_utilization(available: float, borrowed: float) -> float:
    """Borrowed share of the market as a percentage, 0 for an empty market."""
    total = available + borrowed
    if total <= 0:
        return 0.0
    return borrowed / total * 100


def saturate_health_factor(health_factor: float) -> float:
    """Clamp to the no-debt sentinel so downstream comparisons stay finite."""
    if math.isnan(health_factor):
        return 0.0
    return min(health_factor, NO_DEBT_HEALTH_FACTOR)


def calc_health_factor(risk_adjusted_collateral: float, debt: float) -> float:
    """health_factor = risk-adjusted collateral / debt, sentinel when debt-free."""
    if debt <= 0:
        return NO_DEBT_HEALTH_FACTOR
    return saturate_health_factor(risk_adjusted_collateral / debt)
