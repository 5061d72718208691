"""PriceSample: Immutable price observation produced by collectors.

.. code-block:: python

    >>> from datetime import datetime, timezone
    >>> sample = PriceSample(datetime(2024, 1, 1, tzinfo=timezone.utc), 2300.5, "Binance")
    >>> sample.price
    2300.5
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class PriceSample:
    """A single timestamped price observation.

    :ivar timestamp: Timezone-aware observation time (UTC).
    :ivar price: Positive finite price.
    :ivar source: Tag identifying where the price came from.
    """

    timestamp: datetime
    price: float
    source: str

    def __post_init__(self) -> None:
        if self.timestamp is None or self.timestamp.tzinfo is None:
            raise ValueError("timestamp must be a timezone-aware datetime")
        if not math.isfinite(self.price) or self.price <= 0:
            raise ValueError(f"price must be positive and finite, got {self.price!r}")
