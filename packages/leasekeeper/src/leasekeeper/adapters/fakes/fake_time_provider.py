"""Fake time provider for deterministic lease expiry in tests."""

from __future__ import annotations

import threading


class FakeTimeProvider:
    """Manually driven clock implementing TimeProvider.

    Several candidates may share one instance to model perfectly
    synchronized clocks.

    Example:
        >>> clock = FakeTimeProvider(start=100.0)
        >>> clock.advance(5)
        >>> clock.get_time_seconds()
        105.0
    """

    def __init__(self, start: float = 1000.0) -> None:
        self._lock = threading.Lock()
        self._now = float(start)

    def get_time_seconds(self) -> float:
        with self._lock:
            return self._now

    def advance(self, seconds: float) -> None:
        """Move the clock forward.

        Raises:
            ValueError: If seconds is negative.
        """
        if seconds < 0:
            raise ValueError("cannot move the clock backwards")
        with self._lock:
            self._now += seconds

    def set_time(self, now: float) -> None:
        """Jump to an absolute time (may go backwards, for skew tests)."""
        with self._lock:
            self._now = float(now)
