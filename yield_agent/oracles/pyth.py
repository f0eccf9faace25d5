"""Pyth Network price oracle backed by the Hermes REST API."""
import logging
import ssl
from typing import Any

import aiohttp
import certifi

from ..config import PythConfig

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = aiohttp.ClientTimeout(total=10)


def feed_key(feed_id: str) -> str:
    """Hermes returns ids lower-case without the 0x prefix."""
    return feed_id.lower().removeprefix("0x")


def parse_hermes_prices(data: dict[str, Any], feeds: dict[str, str]) -> dict[str, float]:
    """Map a ``/v2/updates/price/latest`` body onto the symbols in ``feeds``.

    Several symbols may share one feed (e.g. BNB and WBNB); each gets the price.
    """
    symbols_by_feed: dict[str, list[str]] = {}
    for symbol, feed_id in feeds.items():
        symbols_by_feed.setdefault(feed_key(feed_id), []).append(symbol)

    prices: dict[str, float] = {}
    for item in data.get("parsed", []):
        symbols = symbols_by_feed.get(feed_key(str(item.get("id", ""))))
        if not symbols:
            continue
        quote = item.get("price", {})
        price = int(quote.get("price", 0)) * 10 ** int(quote.get("expo", 0))
        for symbol in symbols:
            prices[symbol] = price
    return prices


class PythOracle:
    """USD prices for configured symbols, fetched in a single Hermes request."""

    def __init__(self, config: PythConfig) -> None:
        self.hermes_url = config.hermes_url
        self.price_feeds = dict(config.feeds)

    async def get_price(self, symbol: str) -> float:
        prices = await self.fetch_prices([symbol])
        return prices.get(symbol, 0.0)

    async def fetch_prices(self, symbols: list[str] | None = None) -> dict[str, float]:
        """Fetch current prices; symbols without a feed or a quote are omitted.

        Args:
            symbols: Symbols to price. ``None`` prices every configured feed.
        """
        if symbols is None:
            feeds = self.price_feeds
        else:
            feeds = {s: f for s, f in self.price_feeds.items() if s in symbols}
        if not feeds:
            return {}

        params = [("ids[]", feed_id) for feed_id in sorted(set(feeds.values()))]
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(
                connector=connector, timeout=REQUEST_TIMEOUT
            ) as session:
                async with session.get(self.hermes_url, params=params) as response:
                    if response.status != 200:
                        logger.error(
                            "Error fetching prices from Pyth: HTTP %s", response.status
                        )
                        return {}
                    data = await response.json()
            prices = parse_hermes_prices(data, feeds)
        except Exception as e:
            logger.error("Error fetching prices from Pyth: %s", e)
            return {}

        logger.debug("Fetched %d prices from Pyth Network", len(prices))
        return prices
