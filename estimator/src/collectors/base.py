"""Base collector interface, error hierarchy and collector registry.

All price collectors inherit from BaseCollector and implement
get_latest_price(). Each call returns one fresh PriceSample or raises a
CollectorError subclass. Collectors own their connection lifecycle and
recover from broken connections transparently on the next call.

.. code-block:: python

    @register_collector
    class MyCollector(BaseCollector):
        name = "mycollector"
        source = "MyExchange"

        async def get_latest_price(self) -> PriceSample:
            response = await self._get("https://api.example.com/price")
            return self._make_sample(response.json()["price"])
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, ClassVar

import httpx

from ..PriceSample import PriceSample

logger = logging.getLogger(__name__)


class CollectorError(Exception):
    """Base exception for collector errors."""

    pass


class CollectorConnectionError(CollectorError):
    """Raised when the transport cannot be established, the handshake is
    rejected, or an established connection fails while reading."""

    pass


class CollectorProtocolError(CollectorError):
    """Raised when the upstream answers with an unexpected message shape."""

    pass


class CollectorDataError(CollectorError):
    """Raised when a price field cannot be turned into a valid price."""

    pass


class BaseCollector(ABC):
    """Abstract base class for price collectors.

    Subclasses must implement:
        - name: Class variable identifying the collector in the registry
        - get_latest_price(): Async method returning one fresh PriceSample

    :cvar name: Unique registry identifier for this collector.
    :cvar source: Tag written to the ``source`` field of produced samples.
    :cvar DEFAULT_TIMEOUT: Default network timeout in seconds.
    """

    # Class-level shared HTTP client for request/response collectors
    _shared_client: ClassVar[httpx.AsyncClient | None] = None

    name: ClassVar[str] = ""
    source: ClassVar[str] = ""

    DEFAULT_TIMEOUT = 10.0

    @classmethod
    def get_shared_client(cls) -> httpx.AsyncClient:
        """Get or create the shared HTTP client.

        :returns: Shared httpx.AsyncClient instance.
        """
        if cls._shared_client is None or cls._shared_client.is_closed:
            cls._shared_client = httpx.AsyncClient(
                timeout=httpx.Timeout(30.0, connect=10.0),
                limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
                follow_redirects=True,
            )
        return cls._shared_client

    @classmethod
    async def close_shared_client(cls) -> None:
        """Close the shared HTTP client."""
        if cls._shared_client is not None and not cls._shared_client.is_closed:
            await cls._shared_client.aclose()
            cls._shared_client = None

    @abstractmethod
    async def get_latest_price(self) -> PriceSample:
        """Fetch one fresh price observation.

        Safe to call again right after a failure; a broken connection is
        re-established on the next call.

        :returns: A new PriceSample tagged with this collector's source.
        :raises CollectorConnectionError: On transport or handshake failure.
        :raises CollectorProtocolError: On an unexpected response shape.
        :raises CollectorDataError: On an unusable price value.
        """
        pass

    async def close(self) -> None:
        """Release any network resources held by this collector."""
        pass

    def _make_sample(self, price: Any, timestamp: datetime | None = None) -> PriceSample:
        """Build a PriceSample from a raw price value.

        :param price: Raw price (string or number).
        :param timestamp: Observation time; defaults to now (UTC).
        :returns: PriceSample tagged with this collector's source.
        :raises CollectorDataError: If price is not a positive finite number.
        """
        try:
            value = float(price)
        except (TypeError, ValueError) as e:
            raise CollectorDataError(f"[{self.name}] Unparseable price {price!r}") from e
        if not math.isfinite(value) or value <= 0:
            raise CollectorDataError(f"[{self.name}] Invalid price {value!r}")
        return PriceSample(
            timestamp=timestamp or datetime.now(timezone.utc),
            price=value,
            source=self.source,
        )

    async def _get(
        self,
        url: str,
        *,
        params: dict | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """Make an HTTP GET request using the shared client.

        :param url: Request URL.
        :param params: Optional query parameters.
        :param timeout: Request timeout in seconds.
        :returns: httpx.Response object.
        :raises CollectorConnectionError: On non-2xx response or network/timeout errors.
        """
        client = self.get_shared_client()
        try:
            response = await client.get(
                url,
                params=params,
                timeout=timeout or self.DEFAULT_TIMEOUT,
            )
        except httpx.TimeoutException as e:
            raise CollectorConnectionError(f"Request timeout: {e}") from e
        except httpx.RequestError as e:
            raise CollectorConnectionError(f"Request failed: {e}") from e

        if not response.is_success:
            logger.debug(
                "HTTP GET %s failed with status %s: %s",
                url,
                response.status_code,
                response.text[:200],
            )
            raise CollectorConnectionError(
                f"HTTP {response.status_code}: {response.text[:200]}"
            )
        return response


# Registry of available collectors (populated by subclass imports)
COLLECTOR_REGISTRY: dict[str, type[BaseCollector]] = {}


def register_collector(cls: type[BaseCollector]) -> type[BaseCollector]:
    """Decorator to register a collector class in the global registry.

    :param cls: Collector class to register.
    :returns: The registered class (unchanged).
    :raises ValueError: If collector has no name defined.
    """
    if not cls.name:
        raise ValueError(f"Collector {cls.__name__} must define a 'name' class variable")
    COLLECTOR_REGISTRY[cls.name] = cls
    return cls


def get_collector(name: str, **kwargs: Any) -> BaseCollector:
    """Get a collector instance by name.

    :param name: Collector name (e.g., "binance", "uniswap").
    :param kwargs: Constructor arguments for the collector.
    :returns: Collector instance.
    :raises ValueError: If collector name is unknown.
    """
    if name not in COLLECTOR_REGISTRY:
        available = ", ".join(sorted(COLLECTOR_REGISTRY.keys()))
        raise ValueError(f"Unknown collector '{name}'. Available: {available}")
    return COLLECTOR_REGISTRY[name](**kwargs)


def get_available_collectors() -> list[str]:
    """Get list of available collector names.

    :returns: Sorted list of registered collector names.
    """
    return sorted(COLLECTOR_REGISTRY.keys())
