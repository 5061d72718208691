"""Binance REST ticker collector.

Polls the public ticker endpoint on each call. Interchangeable with the
streaming collector as a secondary source; no persistent connection.

Endpoint: https://api.binance.com/api/v3/ticker/price?symbol=ETHUSDC
Rate Limit: High (no key required for public endpoints)
"""

import logging

from ..PriceSample import PriceSample
from .base import BaseCollector, CollectorDataError, CollectorProtocolError, register_collector

logger = logging.getLogger(__name__)


@register_collector
class BinanceRestCollector(BaseCollector):
    """Request/response collector for the Binance ticker price."""

    name = "binance-rest"
    source = "BinanceREST"
    BASE_URL = "https://api.binance.com/api/v3"

    def __init__(
        self,
        symbol: str = "ethusdc",
        base_url: str | None = None,
        timeout: float | None = None,
    ) -> None:
        """Initialize the collector.

        :param symbol: Trading symbol (e.g., "ethusdc").
        :param base_url: REST API base URL (default: Binance v3 API).
        :param timeout: Request timeout in seconds (default: 10).
        """
        self.symbol = symbol.upper()
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.timeout = timeout or self.DEFAULT_TIMEOUT

    async def get_latest_price(self) -> PriceSample:
        """Fetch the current ticker price.

        :returns: PriceSample timestamped now.
        :raises CollectorConnectionError: On HTTP or network failure.
        :raises CollectorProtocolError: If the response has no price.
        :raises CollectorDataError: If the price is unusable.
        """
        url = f"{self.base_url}/ticker/price"
        response = await self._get(url, params={"symbol": self.symbol}, timeout=self.timeout)

        try:
            data = response.json()
        except ValueError as e:
            raise CollectorProtocolError(f"[binance-rest] Response is not JSON: {e}") from e

        if not isinstance(data, dict) or "price" not in data:
            logger.warning(f"[binance-rest] No price for {self.symbol}: {data}")
            raise CollectorProtocolError(f"[binance-rest] No price in response for {self.symbol}")

        try:
            return self._make_sample(data["price"])
        except CollectorDataError:
            logger.warning(f"[binance-rest] Unusable price for {self.symbol}: {data['price']!r}")
            raise

    async def close(self) -> None:
        """Close the shared HTTP client."""
        await self.close_shared_client()
