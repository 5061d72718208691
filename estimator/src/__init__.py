"""
Rolling Volatility Estimator

This module provides short-term volatility estimation for a trading pair:
- PriceSample: Immutable timestamped price observation
- collectors: Streaming, REST and on-chain price collectors
- PriceAggregator: Primary/secondary combination with fallback
- VolatilityEstimator: Sliding-window annualized volatility
- VolatilityMonitor: Periodic driver loop
"""

from .PriceAggregator import PriceAggregator
from .PriceSample import PriceSample
from .ReconnectBackoff import ReconnectBackoff
from .VolatilityEstimator import SECONDS_PER_YEAR, VolatilityEstimator
from .VolatilityMonitor import VolatilityMonitor

__all__ = [
    "PriceAggregator",
    "PriceSample",
    "ReconnectBackoff",
    "SECONDS_PER_YEAR",
    "VolatilityEstimator",
    "VolatilityMonitor",
]
