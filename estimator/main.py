#!/usr/bin/env python3
"""Rolling Volatility Estimator.

Streams trades for one trading pair, optionally averages them with a
secondary price source, and logs an annualized volatility estimate over
a sliding time window.

Start with env vars or CLI flags. BINANCE_WS_URL is required.
"""

import argparse
import asyncio
import logging
import os
import sys
from datetime import timedelta

from .src.collectors import BaseCollector, BinanceStreamCollector, get_collector
from .src.ReconnectBackoff import ReconnectBackoff
from .src.VolatilityMonitor import VolatilityMonitor

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

SECONDARY_SOURCES = ["binance-rest", "uniswap"]


def parse_bool(value: str | None) -> bool:
    """Parse a boolean environment value ("1", "true", "yes", "on")."""
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


def build_secondary(args: argparse.Namespace) -> BaseCollector | None:
    """Create the configured secondary collector, if any.

    :param args: Parsed CLI arguments.
    :returns: Collector instance or None when no secondary is configured.
    """
    if not args.secondary:
        return None
    if args.secondary == "uniswap":
        return get_collector(
            "uniswap",
            rpc_url=args.rpc_url,
            pool_address=args.pool_address,
            token0_decimals=args.token0_decimals,
            token1_decimals=args.token1_decimals,
            invert=args.invert_price,
        )
    return get_collector("binance-rest", symbol=args.symbol, base_url=args.rest_url)


def create_parser() -> argparse.ArgumentParser:
    """Build the CLI parser with environment-variable defaults."""
    parser = argparse.ArgumentParser(
        description="Rolling annualized volatility estimator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Secondary price sources:
  {', '.join(SECONDARY_SOURCES)}

Examples:
  # ETH/USDC from the Binance trade stream
  python -m estimator.main --ws-url wss://stream.binance.com:9443/ws

  # Averaged with a Uniswap V3 pool (USDC/WETH 0.05%)
  python -m estimator.main --ws-url wss://stream.binance.com:9443/ws \\
      --secondary uniswap --rpc-url https://eth.llamarpc.com \\
      --pool-address 0x88e6A0c2dDD26FEEb64F039a2c41296FcB3f5640 \\
      --token0-decimals 6 --token1-decimals 18 --invert-price

Environment variables (CLI args take precedence):
  BINANCE_WS_URL, SYMBOL, UPDATE_INTERVAL_SECONDS, VOLATILITY_WINDOW_HOURS,
  READ_TIMEOUT_SECONDS, DRAIN_TIMEOUT_SECONDS, SECONDARY_SOURCE, ETH_RPC_URL,
  UNISWAP_POOL_ADDRESS, TOKEN0_DECIMALS, TOKEN1_DECIMALS, INVERT_PRICE, BINANCE_REST_URL
""",
    )

    parser.add_argument(
        "--ws-url",
        dest="ws_url",
        type=str,
        help="Binance WebSocket endpoint URL (required)",
        default=os.environ.get("BINANCE_WS_URL"),
    )

    parser.add_argument(
        "--symbol",
        type=str,
        help="Trading symbol to follow (default: ethusdc)",
        default=os.environ.get("SYMBOL") or BinanceStreamCollector.DEFAULT_SYMBOL,
    )

    parser.add_argument(
        "--interval",
        type=int,
        help="Seconds between price fetches (minimum: 1, default: 5)",
        default=int(os.environ.get("UPDATE_INTERVAL_SECONDS") or "5"),
    )

    parser.add_argument(
        "--window-hours",
        dest="window_hours",
        type=float,
        help="Volatility window in hours (default: 6)",
        default=float(os.environ.get("VOLATILITY_WINDOW_HOURS") or "6"),
    )

    parser.add_argument(
        "--read-timeout",
        dest="read_timeout",
        type=float,
        help="Seconds to wait for a trade before reconnecting (default: 60, 0 to disable)",
        default=float(os.environ.get("READ_TIMEOUT_SECONDS") or "60"),
    )

    parser.add_argument(
        "--drain-timeout",
        dest="drain_timeout",
        type=float,
        help="Seconds spent skipping to the newest queued trade (default: 0.25, 0 to disable)",
        default=float(os.environ.get("DRAIN_TIMEOUT_SECONDS") or "0.25"),
    )

    parser.add_argument(
        "--secondary",
        type=str,
        choices=SECONDARY_SOURCES,
        help="Optional secondary price source averaged with the stream",
        default=os.environ.get("SECONDARY_SOURCE") or None,
    )

    parser.add_argument(
        "--rpc-url",
        dest="rpc_url",
        type=str,
        help="Ethereum JSON-RPC URL (required for --secondary uniswap)",
        default=os.environ.get("ETH_RPC_URL"),
    )

    parser.add_argument(
        "--pool-address",
        dest="pool_address",
        type=str,
        help="Uniswap V3 pool address (required for --secondary uniswap)",
        default=os.environ.get("UNISWAP_POOL_ADDRESS"),
    )

    parser.add_argument(
        "--token0-decimals",
        dest="token0_decimals",
        type=int,
        help="Decimals of the pool's token0 (default: 18)",
        default=int(os.environ.get("TOKEN0_DECIMALS") or "18"),
    )

    parser.add_argument(
        "--token1-decimals",
        dest="token1_decimals",
        type=int,
        help="Decimals of the pool's token1 (default: 18)",
        default=int(os.environ.get("TOKEN1_DECIMALS") or "18"),
    )

    parser.add_argument(
        "--invert-price",
        dest="invert_price",
        action="store_true",
        help="Report token0 per token1 for the pool price",
        default=parse_bool(os.environ.get("INVERT_PRICE")),
    )

    parser.add_argument(
        "--rest-url",
        dest="rest_url",
        type=str,
        help="Binance REST API base URL for --secondary binance-rest",
        default=os.environ.get("BINANCE_REST_URL"),
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    return parser


def main() -> None:
    """Main entry point for the volatility estimator CLI."""
    parser = create_parser()
    args = parser.parse_args()

    # Configure logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # Validate arguments
    if not args.ws_url:
        parser.error("BINANCE_WS_URL (or --ws-url) must be set")

    if args.interval < 1:
        parser.error("--interval must be at least 1 second")

    if args.window_hours <= 0:
        parser.error("--window-hours must be positive")

    if args.read_timeout < 0:
        parser.error("--read-timeout must not be negative")
    if args.drain_timeout < 0:
        parser.error("--drain-timeout must not be negative")

    if args.secondary and args.secondary not in SECONDARY_SOURCES:
        parser.error(
            f"Unknown secondary source: {args.secondary}. "
            f"Available: {', '.join(SECONDARY_SOURCES)}"
        )

    if args.secondary == "uniswap" and not (args.rpc_url and args.pool_address):
        parser.error("--secondary uniswap requires --rpc-url and --pool-address")

    read_timeout = args.read_timeout if args.read_timeout > 0 else None
    drain_timeout = args.drain_timeout if args.drain_timeout > 0 else None
    window = timedelta(hours=args.window_hours)

    # Log configuration
    logger.info("=" * 60)
    logger.info("Rolling Volatility Estimator")
    logger.info("=" * 60)
    logger.info(f"WebSocket URL:     {args.ws_url}")
    logger.info(f"Symbol:            {args.symbol.lower()}")
    logger.info(f"Update Interval:   {args.interval}s")
    logger.info(f"Window:            {window}")
    logger.info(f"Read Timeout:      {read_timeout}s" if read_timeout else "Read Timeout:      disabled")
    logger.info(f"Drain Timeout:     {drain_timeout}s" if drain_timeout else "Drain Timeout:     disabled")
    logger.info(f"Secondary Source:  {args.secondary or 'none'}")
    if args.secondary == "uniswap":
        logger.info(f"Pool Address:      {args.pool_address}")
    logger.info("=" * 60)

    try:
        primary = BinanceStreamCollector(
            websocket_url=args.ws_url,
            symbol=args.symbol,
            read_timeout=read_timeout,
            drain_timeout=drain_timeout,
            backoff=ReconnectBackoff(),
        )
        monitor = VolatilityMonitor(
            primary,
            secondary=build_secondary(args),
            update_interval=args.interval,
            volatility_window=window,
        )
        asyncio.run(monitor.run())
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
