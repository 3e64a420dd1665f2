"""Fake metrics adapter for testing.

Provides a test double for MetricsPort that records all metric updates
for assertion in tests.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class MetricCall:
    """Record of a single metric update.

    Attributes:
        metric_name: Name of the metric that was updated.
        value: Value that was set or recorded.
    """

    metric_name: str
    value: float | int | bool | str


class FakeMetricsAdapter:
    """Fake implementation of MetricsPort for testing.

    Records all metric updates for later assertion.

    Example:
        >>> fake = FakeMetricsAdapter()
        >>> fake.set_is_leader(True)
        >>> fake.current_is_leader
        True
        >>> fake.calls
        [MetricCall(metric_name='is_leader', value=True)]
    """

    def __init__(self) -> None:
        """Initialize with no recorded state."""
        self._is_leader: bool | None = None
        self._transitions: dict[str, int] = {}
        self._store_errors: dict[str, int] = {}
        self._tick_durations: list[float] = []
        self._calls: list[MetricCall] = []

    @property
    def calls(self) -> list[MetricCall]:
        """Return a copy of all metric update calls, in order."""
        return list(self._calls)

    @property
    def current_is_leader(self) -> bool | None:
        """Return last set leadership gauge, or None if never set."""
        return self._is_leader

    @property
    def tick_durations(self) -> list[float]:
        """Return every observed tick duration."""
        return list(self._tick_durations)

    def transition_count(self, event_type: str) -> int:
        """Return how often event_type was recorded."""
        return self._transitions.get(event_type, 0)

    def store_error_count(self, kind: str) -> int:
        """Return how often a store error of kind was recorded."""
        return self._store_errors.get(kind, 0)

    def set_is_leader(self, is_leader: bool) -> None:
        self._is_leader = is_leader
        self._calls.append(MetricCall("is_leader", is_leader))

    def record_transition(self, event_type: str) -> None:
        self._transitions[event_type] = self._transitions.get(event_type, 0) + 1
        self._calls.append(MetricCall("transition", event_type))

    def record_store_error(self, kind: str) -> None:
        self._store_errors[kind] = self._store_errors.get(kind, 0) + 1
        self._calls.append(MetricCall("store_error", kind))

    def observe_tick_duration(self, seconds: float) -> None:
        self._tick_durations.append(seconds)
        self._calls.append(MetricCall("tick_duration", seconds))

    def clear_calls(self) -> None:
        """Clear the recorded calls list without resetting counters."""
        self._calls.clear()

    def reset(self) -> None:
        """Reset all state and calls."""
        self._is_leader = None
        self._transitions.clear()
        self._store_errors.clear()
        self._tick_durations.clear()
        self._calls.clear()
