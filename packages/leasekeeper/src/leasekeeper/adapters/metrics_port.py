"""Port interface and no-op implementation for metrics collection.

Metrics ports follow fire-and-forget semantics: implementations may
buffer, sample, or drop metrics as needed. No exceptions should propagate.
"""

from __future__ import annotations

from typing import Literal, Protocol, runtime_checkable

StoreErrorKind = Literal["transient", "conflict", "malformed", "permanent"]


@runtime_checkable
class MetricsPort(Protocol):
    """Port interface for metrics collection.

    Implementations handle metrics recording to various backends
    (Prometheus, StatsD, etc.). Abstracts the metrics mechanism from
    use cases that need to emit metrics.

    Contract:
        - All methods are fire-and-forget (no return value, no exceptions)
        - set_* methods update gauges to specific values
        - record_* methods increment counters
        - Thread safety is implementation-defined
        - Implementations may no-op if metrics are disabled
    """

    def set_is_leader(self, is_leader: bool) -> None:
        """Set the leadership gauge.

        Args:
            is_leader: True if this candidate believes it is leader
                       (sets gauge to 1), False otherwise (sets gauge to 0).
        """
        ...

    def record_transition(self, event_type: str) -> None:
        """Count one leadership transition.

        Args:
            event_type: Value of the LeadershipEventType that occurred.
        """
        ...

    def record_store_error(self, kind: StoreErrorKind) -> None:
        """Count one failed store interaction.

        Args:
            kind: Failure category: transient, conflict, malformed or permanent.
        """
        ...

    def observe_tick_duration(self, seconds: float) -> None:
        """Record how long one election tick took.

        Args:
            seconds: Wall time spent in the tick.
        """
        ...


class NoOpMetricsAdapter:
    """No-operation metrics adapter for when metrics are disabled.

    All methods are no-ops. This allows use cases to unconditionally
    call metrics methods without checking if metrics are enabled.

    Example:
        >>> adapter = NoOpMetricsAdapter()
        >>> adapter.set_is_leader(True)  # Does nothing
    """

    def set_is_leader(self, is_leader: bool) -> None:
        """No-op."""
        pass

    def record_transition(self, event_type: str) -> None:
        """No-op."""
        pass

    def record_store_error(self, kind: StoreErrorKind) -> None:
        """No-op."""
        pass

    def observe_tick_duration(self, seconds: float) -> None:
        """No-op."""
        pass
