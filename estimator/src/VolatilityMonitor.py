"""VolatilityMonitor: Periodic driver for the volatility estimator.

Each cycle:
    - Fetches one aggregated price sample
    - Feeds it into the sliding-window estimator
    - Logs the price and the current annualized volatility

Collector failures are logged and the cycle is skipped; the loop never
exits on them. Reconnection happens on the next cycle.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta

from .collectors import BaseCollector, CollectorError
from .PriceAggregator import PriceAggregator
from .VolatilityEstimator import VolatilityEstimator

logger = logging.getLogger(__name__)


class VolatilityMonitor:
    """Polls the aggregator on a fixed cadence and reports volatility.

    :ivar aggregator: Price source for each cycle.
    :ivar estimator: Sliding-window volatility estimator.
    :ivar update_interval: Seconds to sleep between cycles.
    """

    def __init__(
        self,
        primary: BaseCollector,
        secondary: BaseCollector | None = None,
        update_interval: int = 5,
        volatility_window: timedelta = timedelta(hours=6),
    ) -> None:
        """Initialize the monitor.

        :param primary: Primary collector.
        :param secondary: Optional secondary collector averaged with the primary.
        :param update_interval: Seconds between cycles (default: 5, minimum: 1).
        :param volatility_window: Estimator window (default: 6 hours).
        """
        self.aggregator = PriceAggregator(primary, secondary=secondary)
        self.estimator = VolatilityEstimator(volatility_window)
        self.update_interval = max(1, update_interval)

        logger.info(
            f"VolatilityMonitor initialized: sources="
            f"{[c.name for c in self.aggregator.collectors]}, "
            f"interval={self.update_interval}s, window={volatility_window}"
        )

    async def run_once(self) -> float | None:
        """Run a single fetch/estimate cycle.

        :returns: Current annualized volatility, or None if the fetch failed
            or there is not enough data yet.
        """
        logger.info("Fetching latest price...")
        try:
            sample = await self.aggregator.get_aggregated_price()
        except CollectorError as e:
            logger.error(f"Error fetching price: {e}")
            return None
        except Exception as e:  # Defensive: misbehaving collector
            logger.exception(f"Unexpected error fetching price: {e}")
            return None

        logger.info(
            f"Received price: ${sample.price:.2f} from {sample.source} "
            f"at {sample.timestamp.strftime('%Y-%m-%d %H:%M:%S UTC')}"
        )

        self.estimator.add_price(sample)
        volatility = self.estimator.calculate_volatility()
        if volatility is None:
            logger.info("Not enough data points for volatility calculation yet")
        else:
            logger.info(
                f"Current annualized volatility estimate: {volatility * 100:.2f}% "
                f"({len(self.estimator)} samples)"
            )
        return volatility

    async def run(self) -> None:
        """Run cycles forever, sleeping update_interval seconds between them."""
        logger.info(f"Starting main loop with {self.update_interval} second intervals...")

        try:
            while True:
                await self.run_once()
                logger.debug("Waiting for next update...")
                await asyncio.sleep(self.update_interval)
        finally:
            await self.aggregator.close()
