"""Price oracle protocol."""
from typing import Protocol


class PriceOracle(Protocol):
    """Abstract interface for fetching asset prices.

    Implementations never raise; an unavailable price is reported as 0.
    """

    async def fetch_prices(self, symbols: list[str] | None = None) -> dict[str, float]: ...

    async def get_price(self, symbol: str) -> float: ...
