"""
Price collectors for the volatility estimator.

This module provides a unified interface for collecting price samples
from streaming exchange feeds, REST tickers and on-chain pools.

Usage:
    from estimator.src.collectors import get_collector, get_available_collectors

    # Get list of available collectors
    available = get_available_collectors()
    # ['binance', 'binance-rest', 'uniswap']

    # Create a collector instance
    collector = get_collector("binance", websocket_url="wss://stream.binance.com:9443/ws")
    sample = await collector.get_latest_price()
"""

# Import base classes and utilities
from .base import (
    COLLECTOR_REGISTRY,
    BaseCollector,
    CollectorConnectionError,
    CollectorDataError,
    CollectorError,
    CollectorProtocolError,
    get_available_collectors,
    get_collector,
    register_collector,
)

# Import all collector implementations to trigger registration
from .binance import BinanceStreamCollector, ConnectionState
from .binance_rest import BinanceRestCollector
from .uniswap import UniswapPoolCollector

__all__ = [
    # Base classes
    "BaseCollector",
    "CollectorError",
    "CollectorConnectionError",
    "CollectorProtocolError",
    "CollectorDataError",
    # Registry functions
    "register_collector",
    "get_collector",
    "get_available_collectors",
    "COLLECTOR_REGISTRY",
    # Collector implementations
    "BinanceStreamCollector",
    "BinanceRestCollector",
    "ConnectionState",
    "UniswapPoolCollector",
]
