"""ReconnectBackoff: Exponential backoff between failed connection attempts.

When a connect or subscription handshake fails, further attempts are
refused until the backoff period ends. The backoff duration doubles with
each consecutive failure, up to a maximum. A successful connect resets
the counter.

.. code-block:: python

    >>> backoff = ReconnectBackoff(base_backoff_seconds=1.0, max_backoff_seconds=60.0)
    >>> backoff.record_failure()
    1.0
    >>> backoff.record_failure()
    2.0
    >>> backoff.record_success()
    >>> backoff.consecutive_failures
    0
"""

from __future__ import annotations

import time


class ReconnectBackoff:
    """Tracks consecutive connection failures of one collector.

    Backoff schedule with the defaults:
        - First failure: 1 second
        - Second failure: 2 seconds
        - Third failure: 4 seconds
        - ... up to max_backoff_seconds (default 60)

    A base_backoff_seconds of 0 disables backoff entirely.

    :ivar base_backoff_seconds: Backoff duration after the first failure.
    :ivar max_backoff_seconds: Maximum backoff duration.
    :ivar consecutive_failures: Failures since the last successful connect.
    :ivar total_failures: Failures since tracking began.
    :ivar backoff_until: Unix timestamp when the backoff period ends.
    """

    DEFAULT_BASE_BACKOFF_SECONDS = 1.0
    DEFAULT_MAX_BACKOFF_SECONDS = 60.0

    def __init__(
        self,
        base_backoff_seconds: float = DEFAULT_BASE_BACKOFF_SECONDS,
        max_backoff_seconds: float = DEFAULT_MAX_BACKOFF_SECONDS,
    ) -> None:
        """Initialize the backoff tracker.

        :param base_backoff_seconds: Backoff after the first failure (0 disables).
        :param max_backoff_seconds: Maximum backoff duration (caps exponential growth).
        :raises ValueError: If durations are negative.
        """
        if base_backoff_seconds < 0 or max_backoff_seconds < 0:
            raise ValueError("backoff durations must not be negative")

        self.base_backoff_seconds = base_backoff_seconds
        self.max_backoff_seconds = max_backoff_seconds
        self.consecutive_failures = 0
        self.total_failures = 0
        self.backoff_until = 0.0

    def record_failure(self) -> float:
        """Record a failed connection attempt and start a backoff period.

        :returns: The backoff duration in seconds.
        """
        self.consecutive_failures += 1
        self.total_failures += 1

        # Exponential backoff: base * 2^(failures-1), capped at max
        backoff_seconds = min(
            self.base_backoff_seconds * (2 ** (self.consecutive_failures - 1)),
            self.max_backoff_seconds,
        )
        self.backoff_until = time.time() + backoff_seconds

        return backoff_seconds

    def record_success(self) -> None:
        """Record a successful connect, clearing any backoff."""
        self.consecutive_failures = 0
        self.backoff_until = 0.0

    def remaining(self) -> float:
        """Get remaining backoff time.

        :returns: Seconds remaining in backoff, or 0 if not in backoff.
        """
        return max(0.0, self.backoff_until - time.time())

    def is_active(self) -> bool:
        """Check whether a new connection attempt must still wait."""
        return self.remaining() > 0
