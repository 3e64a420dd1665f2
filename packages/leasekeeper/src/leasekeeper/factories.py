"""Factory functions for assembling lease stores and candidates.

Provides factory methods to instantiate adapters from settings. Handles
optional dependency imports gracefully.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from leasekeeper.adapters.in_memory_lease_store import InMemoryLeaseStore
from leasekeeper.adapters.metrics_port import MetricsPort, NoOpMetricsAdapter
from leasekeeper.domain.exceptions import LeaseConfigError
from leasekeeper.usecases.lease_candidate import LeaseCandidate

if TYPE_CHECKING:
    from prometheus_client import CollectorRegistry

    from leasekeeper.adapters.ports import LeaseStorePort, TimeProvider
    from leasekeeper.domain.settings import (
        LeaseKeeperConfig,
        MetricsSettings,
        StoreSettings,
    )


class RaftLeaseStoreNotInstalledError(ImportError):
    """Raised when raft-lease-store is required but not installed.

    Install with: pip install leasekeeper[raft]
    """

    def __init__(self) -> None:
        super().__init__(
            "raft-lease-store is not installed. "
            "Install with: pip install leasekeeper[raft]"
        )


def create_lease_store(settings: StoreSettings) -> LeaseStorePort:
    """Create the lease store selected by settings.backend.

    Args:
        settings: Store settings. backend='memory' gives a process-local
                 store, useful only when every candidate shares the process.

    Returns:
        A LeaseStorePort implementation.

    Raises:
        RaftLeaseStoreNotInstalledError: If backend='raft' and
            raft-lease-store is not installed.
        LeaseConfigError: If the backend is unknown.
    """
    if settings.backend == "memory":
        return InMemoryLeaseStore()

    if settings.backend == "consul":
        from leasekeeper.adapters.consul_lease_store import ConsulLeaseStore

        return ConsulLeaseStore(settings.consul)

    if settings.backend == "raft":
        # Import raft-lease-store (optional dependency)
        try:
            from raft_lease_store import RaftLeaseStore  # type: ignore[import-not-found]
        except ImportError as exc:
            raise RaftLeaseStoreNotInstalledError() from exc

        result: LeaseStorePort = RaftLeaseStore(settings.raft)
        return result

    raise LeaseConfigError(f"Unknown store backend: {settings.backend}")


def create_metrics(
    settings: MetricsSettings,
    election_key: str = "default",
    registry: CollectorRegistry | None = None,
) -> MetricsPort:
    """Create a Prometheus adapter when enabled, else a no-op adapter.

    Raises:
        ImportError: If metrics are enabled and prometheus-client is missing.
    """
    if not settings.enabled:
        return NoOpMetricsAdapter()

    from leasekeeper.adapters.prometheus_metrics import PrometheusMetricsAdapter

    return PrometheusMetricsAdapter(
        election_key=election_key, prefix=settings.prefix, registry=registry
    )


def create_lease_candidate(
    config: LeaseKeeperConfig,
    store: LeaseStorePort | None = None,
    clock: TimeProvider | None = None,
    metrics: MetricsPort | None = None,
) -> LeaseCandidate:
    """Assemble a ready-to-start LeaseCandidate from configuration.

    Args:
        config: Parsed configuration.
        store: Store to use instead of the one config.store describes.
              A store passed in is not closed when the candidate stops.
        clock: Time source. Defaults to wall-clock time.
        metrics: Metrics sink instead of the one config.metrics describes.

    Returns:
        A stopped LeaseCandidate; call start() or use it as a context manager.

    Example:
        >>> config = ConfigParser().parse(open("leasekeeper.yaml").read())
        >>> with create_lease_candidate(config) as candidate:
        ...     run_until_signalled(candidate)
    """
    owns_store = store is None
    if store is None:
        store = create_lease_store(config.store)
    if metrics is None:
        metrics = create_metrics(config.metrics, election_key=config.election.election_key)
    return LeaseCandidate(
        config.election,
        store,
        clock=clock,
        metrics=metrics,
        close_store=owns_store,
    )
