"""On-chain Aave V3 price oracle (USD, 8 decimals)."""
from __future__ import annotations

import asyncio
import logging

from ..config import AaveConfig
from ..interfaces.chain import ChainClient
from ..protocols.aave.abi import ORACLE_ABI

logger = logging.getLogger(__name__)

PRICE_DECIMALS = 8


class AaveOracle:
    """USD prices for tokens listed as Aave reserves."""

    def __init__(self, chain_client: ChainClient, config: AaveConfig) -> None:
        self._chain = chain_client
        self._oracle = config.oracle
        self._underlyings = dict(config.underlyings)

    async def get_price(self, symbol: str) -> float:
        underlying = self._underlyings.get(symbol)
        if not underlying or not self._oracle:
            return 0.0
        try:
            raw = await self._chain.call(self._oracle, ORACLE_ABI, "getAssetPrice", underlying)
        except Exception as e:
            logger.error("Error fetching Aave oracle price for %s: %s", symbol, e)
            return 0.0
        return int(raw) / 10**PRICE_DECIMALS

    async def fetch_prices(self, symbols: list[str] | None = None) -> dict[str, float]:
        wanted = list(self._underlyings) if symbols is None else list(symbols)
        prices = await asyncio.gather(*(self.get_price(s) for s in wanted))
        return {s: p for s, p in zip(wanted, prices) if p > 0}
