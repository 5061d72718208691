"""VolatilityEstimator: Annualized volatility over a sliding time window.

Algorithm:
    1. Keep samples in arrival order; on each insert evict those older
       than now - window
    2. Log returns r_i = ln(p_i / p_{i-1}) over consecutive samples
    3. Sample variance of the returns (n - 1 denominator)
    4. Observed interval = (t_last - t_first) / (samples - 1)
    5. Annualized volatility = sqrt(variance) * sqrt(SECONDS_PER_YEAR / interval)

The annualization uses the observed average spacing of the samples, not
the configured polling interval.

.. code-block:: python

    >>> estimator = VolatilityEstimator(timedelta(hours=6))
    >>> for sample in samples:
    ...     estimator.add_price(sample)
    >>> estimator.calculate_volatility()  # None until three samples are in the window
"""

from __future__ import annotations

import logging
import math
from collections import deque
from datetime import datetime, timedelta, timezone
from statistics import variance as _variance

from .PriceSample import PriceSample

logger = logging.getLogger(__name__)

SECONDS_PER_YEAR = 365 * 24 * 60 * 60

# Two returns are needed for a sample variance
MIN_SAMPLES = 3


class VolatilityEstimator:
    """Sliding-window volatility estimator.

    :ivar window: Maximum age of retained samples.
    """

    def __init__(self, window: timedelta) -> None:
        """Initialize the estimator.

        :param window: Maximum age of samples kept in the window.
        :raises ValueError: If window is not positive.
        """
        if window <= timedelta(0):
            raise ValueError("window must be positive")

        self.window = window
        self._samples: deque[PriceSample] = deque()

    def __len__(self) -> int:
        return len(self._samples)

    @property
    def samples(self) -> tuple[PriceSample, ...]:
        """Snapshot of the samples currently in the window, in arrival order."""
        return tuple(self._samples)

    def add_price(self, sample: PriceSample, now: datetime | None = None) -> None:
        """Append a sample and evict everything older than the window.

        :param sample: New price observation.
        :param now: Reference time for eviction (default: current UTC time).
        """
        self._samples.append(sample)

        cutoff = (now or datetime.now(timezone.utc)) - self.window
        while self._samples and self._samples[0].timestamp < cutoff:
            self._samples.popleft()

        # Samples from different sources may arrive out of timestamp order
        if any(s.timestamp < cutoff for s in self._samples):
            self._samples = deque(s for s in self._samples if s.timestamp >= cutoff)

    def calculate_volatility(self) -> float | None:
        """Compute the annualized volatility of the samples in the window.

        :returns: Annualized volatility as a fraction (multiply by 100 for
            percent), or None while there is not enough data.
        """
        if len(self._samples) < MIN_SAMPLES:
            return None

        prices = [s.price for s in self._samples]
        returns = [math.log(cur / prev) for prev, cur in zip(prices, prices[1:])]
        var = _variance(returns)

        first, last = self._samples[0], self._samples[-1]
        elapsed = (last.timestamp - first.timestamp).total_seconds()
        actual_interval = elapsed / (len(self._samples) - 1)
        if actual_interval <= 0:
            logger.debug(
                f"Observed sample interval is {actual_interval:.3f}s, "
                "cannot annualize yet"
            )
            return None

        samples_per_year = SECONDS_PER_YEAR / actual_interval
        return math.sqrt(var) * math.sqrt(samples_per_year)
