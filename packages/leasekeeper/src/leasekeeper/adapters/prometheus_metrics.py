"""Prometheus metrics adapter for leasekeeper.

Implements MetricsPort using prometheus-client library.
Gracefully handles missing prometheus-client (raises ImportError at init).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

    from leasekeeper.adapters.metrics_port import StoreErrorKind


class PrometheusMetricsAdapter:
    """Prometheus implementation of MetricsPort.

    Creates and manages Prometheus collectors for election state.
    All metric names use a configurable prefix (default 'leasekeeper_')
    for namespace clarity, and every sample carries the election key.

    This adapter requires prometheus-client to be installed:
        pip install leasekeeper[metrics]

    Example:
        >>> adapter = PrometheusMetricsAdapter(election_key="orders")
        >>> adapter.set_is_leader(True)  # Sets leasekeeper_is_leader{election="orders"} to 1

    Raises:
        ImportError: If prometheus-client is not installed.
    """

    def __init__(
        self,
        election_key: str = "default",
        prefix: str = "leasekeeper",
        registry: CollectorRegistry | None = None,
    ) -> None:
        """Initialize Prometheus collectors.

        Args:
            election_key: Value of the 'election' label on every sample.
            prefix: Metric name prefix. Defaults to "leasekeeper".
                   All metric names will be {prefix}_<metric_name>.
            registry: Registry to register collectors in. Defaults to the
                     global prometheus_client registry.

        Raises:
            ImportError: If prometheus-client is not installed.
        """
        # Import here to make prometheus-client optional
        from prometheus_client import REGISTRY, Counter, Gauge, Histogram

        target = registry if registry is not None else REGISTRY
        self._election_key = election_key

        self._is_leader: Gauge = Gauge(
            f"{prefix}_is_leader",
            "Leadership belief: 1=LEADER, 0=FOLLOWER",
            ["election"],
            registry=target,
        )
        self._transitions: Counter = Counter(
            f"{prefix}_transitions",
            "Leadership transitions by event type",
            ["election", "event_type"],
            registry=target,
        )
        self._store_errors: Counter = Counter(
            f"{prefix}_store_errors",
            "Failed lease store interactions by kind",
            ["election", "kind"],
            registry=target,
        )
        self._tick_duration: Histogram = Histogram(
            f"{prefix}_tick_duration_seconds",
            "Time spent in one election tick",
            ["election"],
            registry=target,
        )

    def set_is_leader(self, is_leader: bool) -> None:
        """Set leadership gauge.

        Args:
            is_leader: True for LEADER (1), False for FOLLOWER (0).
        """
        self._is_leader.labels(election=self._election_key).set(1 if is_leader else 0)

    def record_transition(self, event_type: str) -> None:
        """Increment the transition counter for event_type."""
        self._transitions.labels(
            election=self._election_key, event_type=event_type
        ).inc()

    def record_store_error(self, kind: StoreErrorKind) -> None:
        """Increment the store error counter for kind."""
        self._store_errors.labels(election=self._election_key, kind=kind).inc()

    def observe_tick_duration(self, seconds: float) -> None:
        """Observe one tick duration in the histogram."""
        self._tick_duration.labels(election=self._election_key).observe(seconds)
