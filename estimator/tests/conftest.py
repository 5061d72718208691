"""Shared test helpers."""

from datetime import datetime, timezone

import pytest

from estimator.src.collectors import BaseCollector
from estimator.src.PriceSample import PriceSample


class FakeCollector(BaseCollector):
    """Collector returning scripted results; exceptions are raised."""

    name = "fake"

    def __init__(self, *results, source: str = "Fake") -> None:
        self.results = list(results)
        self.source = source
        self.calls = 0
        self.closed = False

    async def get_latest_price(self) -> PriceSample:
        self.calls += 1
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, BaseException):
            raise result
        return result

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def make_sample():
    """Factory for PriceSamples stamped at the current time by default."""

    def _make(price: float, source: str = "Fake", timestamp: datetime | None = None) -> PriceSample:
        return PriceSample(
            timestamp=timestamp or datetime.now(timezone.utc),
            price=price,
            source=source,
        )

    return _make


@pytest.fixture
def fake_collector():
    """The FakeCollector class, for building scripted collectors."""
    return FakeCollector
