"""Binance trade-stream collector.

Holds one persistent WebSocket connection to a Binance market-data
endpoint and answers each get_latest_price() with the next trade seen on
the ``<symbol>@trade`` stream.

Connection lifecycle:
    1. DISCONNECTED -> connect, send SUBSCRIBE, wait for one ack frame
    2. CONNECTED    -> read frames until a trade event parses, then (when
       drain_timeout is set) skip ahead to the newest trade already queued
    3. Any transport error while reading drops back to DISCONNECTED, so the
       next call dials again. The failing call is not retried.

Frames that are not trade events (acks, control frames, garbage) are
discarded and reading continues.

Endpoint: wss://stream.binance.com:9443/ws
Trade frame: {"e": "trade", "p": "2301.55", "T": 1700000000123, ...}
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any

import websockets
from websockets.exceptions import WebSocketException

from ..PriceSample import PriceSample
from ..ReconnectBackoff import ReconnectBackoff
from .base import (
    BaseCollector,
    CollectorConnectionError,
    CollectorDataError,
    register_collector,
)

logger = logging.getLogger(__name__)

# Transport-level failures of a websocket connection
TRANSPORT_ERRORS = (WebSocketException, OSError, asyncio.TimeoutError)


class ConnectionState(Enum):
    """Connection state of a streaming collector."""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


@register_collector
class BinanceStreamCollector(BaseCollector):
    """Streaming collector for the Binance trade feed.

    The socket is owned exclusively by this instance and guarded by an
    asyncio.Lock held across connection setup and the read loop, so
    concurrent callers are served one after another.

    :ivar websocket_url: WebSocket endpoint URL.
    :ivar symbol: Lowercase trading symbol (e.g., "ethusdc").
    :ivar read_timeout: Max seconds to wait for a frame, or None to wait forever.
    :ivar connect_timeout: Max seconds for connect and subscription handshake.
    :ivar drain_timeout: Max seconds spent skipping to the newest queued trade,
        or None to return the first trade read.
    :ivar backoff: Reconnect backoff applied after failed connects.
    """

    name = "binance"
    source = "Binance"

    DEFAULT_SYMBOL = "ethusdc"
    SUBSCRIBE_ID = 1

    def __init__(
        self,
        websocket_url: str,
        symbol: str = DEFAULT_SYMBOL,
        read_timeout: float | None = None,
        connect_timeout: float | None = None,
        drain_timeout: float | None = None,
        backoff: ReconnectBackoff | None = None,
    ) -> None:
        """Initialize the collector. No connection is opened until first use.

        :param websocket_url: WebSocket endpoint URL.
        :param symbol: Trading symbol to subscribe to (default: "ethusdc").
        :param read_timeout: Max seconds to wait for a frame (None disables).
        :param connect_timeout: Max seconds for connect + handshake (default: 10).
        :param drain_timeout: Budget for skipping queued trades (None disables).
        :param backoff: Reconnect backoff tracker (default: 1s doubling to 60s).
        """
        self.websocket_url = websocket_url
        self.symbol = symbol.lower()
        self.read_timeout = read_timeout
        self.connect_timeout = (
            connect_timeout if connect_timeout is not None else self.DEFAULT_TIMEOUT
        )
        self.drain_timeout = drain_timeout
        self.backoff = backoff or ReconnectBackoff()

        self._ws: Any = None
        self._lock = asyncio.Lock()

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        if self._ws is None:
            return ConnectionState.DISCONNECTED
        return ConnectionState.CONNECTED

    @property
    def stream_name(self) -> str:
        """Name of the subscribed trade stream."""
        return f"{self.symbol}@trade"

    async def ensure_connection(self) -> None:
        """Connect and subscribe if currently disconnected.

        :raises CollectorConnectionError: If connect or handshake fails.
        """
        async with self._lock:
            await self._ensure_connection()

    async def get_latest_price(self) -> PriceSample:
        """Read frames until the next trade event arrives.

        With drain_timeout set, trades already queued behind it are skipped
        so the newest one is returned.

        :returns: PriceSample for the trade.
        :raises CollectorConnectionError: If connecting or reading fails.
        :raises CollectorDataError: If the trade carries an invalid price.
        """
        async with self._lock:
            await self._ensure_connection()

            while True:
                try:
                    message = await self._recv()
                except TRANSPORT_ERRORS as e:
                    logger.error(f"[binance] WebSocket error: {type(e).__name__}: {e}")
                    await self._disconnect()
                    raise CollectorConnectionError(
                        f"[binance] Read failed: {type(e).__name__}: {e}"
                    ) from e

                if not isinstance(message, str):
                    logger.debug(f"[binance] Ignoring non-text frame ({len(message)} bytes)")
                    continue

                logger.debug(f"[binance] Received message: {message[:200]}")
                sample = self._parse_trade(message)
                if sample is not None:
                    logger.debug(f"[binance] Parsed price sample: {sample}")
                    if self.drain_timeout:
                        sample = await self._drain(sample)
                    return sample

    async def close(self) -> None:
        """Close the connection, if any, and return to DISCONNECTED."""
        async with self._lock:
            await self._disconnect()

    async def _ensure_connection(self) -> None:
        """Connection setup; caller must hold the lock."""
        if self._ws is not None:
            return

        if self.backoff.is_active():
            raise CollectorConnectionError(
                f"[binance] Reconnect backoff active, "
                f"{self.backoff.remaining():.1f}s remaining"
            )

        logger.info(f"[binance] Establishing new WebSocket connection to {self.websocket_url}")
        try:
            ws = await websockets.connect(
                self.websocket_url, open_timeout=self.connect_timeout
            )
        except TRANSPORT_ERRORS as e:
            self._record_connect_failure()
            raise CollectorConnectionError(
                f"[binance] Connection failed: {type(e).__name__}: {e}"
            ) from e

        try:
            await self._subscribe(ws)
        except CollectorConnectionError:
            self._record_connect_failure()
            await self._close_quietly(ws)
            raise
        except BaseException:
            # Cancelled mid-handshake: the socket was never stored.
            await self._close_quietly(ws)
            raise

        self._ws = ws
        self.backoff.record_success()
        logger.info(f"[binance] Subscribed to {self.stream_name}")

    async def _subscribe(self, ws: Any) -> None:
        """Send the SUBSCRIBE request and consume its acknowledgment.

        :param ws: Freshly opened websocket connection.
        :raises CollectorConnectionError: If the handshake fails or is rejected.
        """
        request = json.dumps(
            {"method": "SUBSCRIBE", "params": [self.stream_name], "id": self.SUBSCRIBE_ID}
        )
        logger.debug(f"[binance] Sending subscription message: {request}")
        try:
            await ws.send(request)
            ack = await asyncio.wait_for(ws.recv(), timeout=self.connect_timeout)
        except TRANSPORT_ERRORS as e:
            raise CollectorConnectionError(
                f"[binance] Subscription failed: {type(e).__name__}: {e}"
            ) from e

        logger.debug(f"[binance] Received subscription confirmation: {ack!r}")
        error = self._ack_error(ack)
        if error is not None:
            raise CollectorConnectionError(f"[binance] Subscription rejected: {error}")

    @staticmethod
    def _ack_error(ack: Any) -> Any:
        """Return the error member of a rejected ack, or None."""
        if not isinstance(ack, str):
            return None
        try:
            data = json.loads(ack)
        except ValueError:
            return None
        if isinstance(data, dict) and data.get("error") is not None:
            return data["error"]
        return None

    async def _recv(self) -> str | bytes:
        if self.read_timeout:
            return await asyncio.wait_for(self._ws.recv(), timeout=self.read_timeout)
        return await self._ws.recv()

    async def _drain(self, sample: PriceSample) -> PriceSample:
        """Consume trades already queued behind ``sample`` and keep the newest.

        Reading stops once the drain_timeout budget is spent, so a busy
        stream cannot hold the call open indefinitely.
        A transport error ends the drain and drops the connection, but the
        trade already read is still returned. Caller must hold the lock.

        :param sample: First trade read by this call.
        :returns: The newest trade seen within the budget.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.drain_timeout
        skipped = 0

        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            try:
                message = await asyncio.wait_for(self._ws.recv(), timeout=remaining)
            except asyncio.TimeoutError:
                break
            except TRANSPORT_ERRORS as e:
                logger.warning(
                    f"[binance] WebSocket error while draining: {type(e).__name__}: {e}"
                )
                await self._disconnect()
                break

            if not isinstance(message, str):
                continue
            try:
                newer = self._parse_trade(message)
            except CollectorDataError as e:
                logger.warning(f"[binance] Skipping queued trade: {e}")
                continue
            if newer is not None:
                sample = newer
                skipped += 1

        if skipped:
            logger.debug(f"[binance] Skipped {skipped} queued trades, latest {sample}")
        return sample

    def _parse_trade(self, message: str) -> PriceSample | None:
        """Parse a text frame into a PriceSample.

        :param message: Raw text frame.
        :returns: PriceSample, or None if the frame is not a usable trade event.
        :raises CollectorDataError: If the price parses but is not positive and finite.
        """
        try:
            data = json.loads(message)
        except ValueError:
            logger.debug("[binance] Discarding non-JSON frame")
            return None

        # Combined-stream envelope: {"stream": "...", "data": {...}}
        if isinstance(data, dict) and isinstance(data.get("data"), dict):
            data = data["data"]

        if not isinstance(data, dict):
            logger.debug("[binance] Discarding non-object frame")
            return None

        price = data.get("p")
        trade_time_ms = data.get("T")
        if (
            not isinstance(price, str)
            or not isinstance(trade_time_ms, int)
            or isinstance(trade_time_ms, bool)
        ):
            logger.debug("[binance] Discarding frame without trade fields")
            return None

        try:
            value = float(price)
        except ValueError:
            # Skip the frame instead of failing the fetch; keep reading the stream.
            logger.warning(f"[binance] Discarding trade with non-numeric price {price!r}")
            return None

        return self._make_sample(value, self._trade_time(trade_time_ms))

    @staticmethod
    def _trade_time(trade_time_ms: int) -> datetime:
        """Convert epoch milliseconds to a UTC datetime truncated to seconds."""
        try:
            return datetime.fromtimestamp(trade_time_ms // 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            logger.warning(f"[binance] Trade time {trade_time_ms} out of range, using now")
            return datetime.now(timezone.utc).replace(microsecond=0)

    def _record_connect_failure(self) -> None:
        backoff = self.backoff.record_failure()
        logger.warning(f"[binance] Connect failed, next attempt allowed in {backoff:.1f}s")

    async def _disconnect(self) -> None:
        """Drop the connection; caller must hold the lock."""
        ws, self._ws = self._ws, None
        if ws is not None:
            await self._close_quietly(ws)
            logger.info("[binance] Disconnected")

    @staticmethod
    async def _close_quietly(ws: Any) -> None:
        try:
            await ws.close()
        except TRANSPORT_ERRORS as e:
            logger.debug(f"[binance] Error while closing websocket: {e}")
