"""PriceAggregator: Combines a primary and an optional secondary collector.

Policy (availability over freshness; any live source is enough):
    1. Primary only: delegate, errors propagate unchanged
    2. Both succeed: mean of the two prices, timestamp now, source "Aggregated"
    3. Only one succeeds: return that sample unchanged, log the other failure
    4. Both fail: raise the primary's error

.. code-block:: python

    >>> aggregator = PriceAggregator(binance, secondary=uniswap)
    >>> sample = await aggregator.get_aggregated_price()
    >>> sample.source
    'Aggregated'
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from .collectors import BaseCollector, CollectorError
from .PriceSample import PriceSample

logger = logging.getLogger(__name__)

AGGREGATED_SOURCE = "Aggregated"


class PriceAggregator:
    """Presents one or two collectors as a single logical price source.

    :ivar primary: Collector whose errors win when everything fails.
    :ivar secondary: Optional collector averaged with the primary.
    """

    def __init__(
        self,
        primary: BaseCollector,
        secondary: BaseCollector | None = None,
    ) -> None:
        """Initialize the aggregator.

        :param primary: Primary collector (always queried).
        :param secondary: Optional secondary collector.
        """
        self.primary = primary
        self.secondary = secondary

    @property
    def collectors(self) -> list[BaseCollector]:
        """All configured collectors, primary first."""
        if self.secondary is None:
            return [self.primary]
        return [self.primary, self.secondary]

    async def get_aggregated_price(self) -> PriceSample:
        """Fetch a price from the configured collectors.

        :returns: Combined or single-source PriceSample.
        :raises CollectorError: The primary's error, if no collector succeeds.
        """
        if self.secondary is None:
            return await self.primary.get_latest_price()

        primary_result, secondary_result = await asyncio.gather(
            self.primary.get_latest_price(),
            self.secondary.get_latest_price(),
            return_exceptions=True,
        )

        # Only collector failures are handled here; anything else is a bug
        for result in (primary_result, secondary_result):
            if isinstance(result, BaseException) and not isinstance(result, CollectorError):
                raise result

        if isinstance(primary_result, CollectorError):
            if isinstance(secondary_result, CollectorError):
                logger.error(
                    f"All price sources failed: primary={primary_result}, "
                    f"secondary={secondary_result}"
                )
                raise primary_result
            logger.warning(
                f"[{self.primary.name}] Price collection failed: {primary_result}; "
                f"using {secondary_result.source}"
            )
            return secondary_result

        if isinstance(secondary_result, CollectorError):
            logger.warning(
                f"[{self.secondary.name}] Price collection failed: {secondary_result}; "
                f"using {primary_result.source}"
            )
            return primary_result

        price = (primary_result.price + secondary_result.price) / 2.0
        logger.debug(
            f"Aggregated {primary_result.source}=${primary_result.price:.6f} and "
            f"{secondary_result.source}=${secondary_result.price:.6f} -> ${price:.6f}"
        )
        return PriceSample(
            timestamp=datetime.now(timezone.utc),
            price=price,
            source=AGGREGATED_SOURCE,
        )

    async def close(self) -> None:
        """Close all configured collectors."""
        for collector in self.collectors:
            await collector.close()
