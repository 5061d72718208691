"""Uniswap V3 pool collector.

Reads the current pool price from ``slot0().sqrtPriceX96`` over JSON-RPC:

    price(token1 per token0) = (sqrtPriceX96 / 2**96) ** 2 * 10 ** (dec0 - dec1)

With invert=True the reciprocal (token0 per token1) is reported. For the
mainnet ETH/USDC 0.05% pool (token0=USDC, token1=WETH) use
token0_decimals=6, token1_decimals=18, invert=True to get USDC per ETH.
"""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Any

from web3.exceptions import Web3Exception

from ..ContractUtility import ContractUtility
from ..PriceSample import PriceSample
from .base import (
    BaseCollector,
    CollectorConnectionError,
    CollectorDataError,
    CollectorProtocolError,
    register_collector,
)

logger = logging.getLogger(__name__)

Q96 = 2**96


@register_collector
class UniswapPoolCollector(BaseCollector):
    """On-chain collector reading a Uniswap V3 pool's spot price.

    Each call performs one ``slot0`` eth_call; the timestamp of the sample
    is the local time of the call.

    :ivar pool_address: Pool contract address.
    :ivar token0_decimals: Decimals of the pool's token0.
    :ivar token1_decimals: Decimals of the pool's token1.
    :ivar invert: Report token0 per token1 instead of token1 per token0.
    """

    name = "uniswap"
    source = "Uniswap"

    def __init__(
        self,
        rpc_url: str | None = None,
        pool_address: str | None = None,
        token0_decimals: int = 18,
        token1_decimals: int = 18,
        invert: bool = False,
        contract: Any = None,
    ) -> None:
        """Initialize the collector.

        :param rpc_url: Ethereum JSON-RPC endpoint.
        :param pool_address: Uniswap V3 pool address.
        :param token0_decimals: Decimals of token0 (default: 18).
        :param token1_decimals: Decimals of token1 (default: 18).
        :param invert: Report the reciprocal price (default: False).
        :param contract: Pre-built pool contract; skips RPC setup when given.
        :raises ValueError: If neither a contract nor rpc_url and pool_address are given.
        """
        self.pool_address = pool_address
        self.token0_decimals = token0_decimals
        self.token1_decimals = token1_decimals
        self.invert = invert

        if contract is None:
            if not rpc_url or not pool_address:
                raise ValueError("uniswap collector requires rpc_url and pool_address")
            contract = ContractUtility(rpc_url).get_contract("UniswapV3Pool", pool_address)
        self.contract = contract

    async def get_latest_price(self) -> PriceSample:
        """Read the pool price.

        :returns: PriceSample with the current pool price.
        :raises CollectorConnectionError: If the RPC call fails.
        :raises CollectorProtocolError: If slot0 has an unexpected shape.
        :raises CollectorDataError: If the pool price is zero or not finite.
        """
        try:
            slot0 = await asyncio.to_thread(self.contract.functions.slot0().call)
        except (Web3Exception, ValueError, OSError) as e:
            raise CollectorConnectionError(f"[uniswap] slot0 call failed: {e}") from e

        sqrt_price_x96 = self._sqrt_price(slot0)
        return self._make_sample(self.price_from_sqrt(sqrt_price_x96))

    def price_from_sqrt(self, sqrt_price_x96: int) -> float:
        """Convert a sqrtPriceX96 value into a decimal-adjusted price.

        :param sqrt_price_x96: Raw slot0 sqrtPriceX96.
        :returns: Price in the configured orientation.
        :raises CollectorDataError: If the price is zero or not finite.
        """
        price = (sqrt_price_x96 / Q96) ** 2 * 10 ** (
            self.token0_decimals - self.token1_decimals
        )
        if price <= 0 or not math.isfinite(price):
            raise CollectorDataError(f"[uniswap] Invalid pool price from sqrtPriceX96={sqrt_price_x96}")
        if self.invert:
            price = 1 / price
        return price

    @staticmethod
    def _sqrt_price(slot0: Any) -> int:
        if (
            not isinstance(slot0, (list, tuple))
            or not slot0
            or not isinstance(slot0[0], int)
            or isinstance(slot0[0], bool)
        ):
            raise CollectorProtocolError(f"[uniswap] Unexpected slot0 result: {slot0!r}")
        return slot0[0]
