"""Adapters: port interfaces and their implementations."""

from leasekeeper.adapters.in_memory_lease_store import InMemoryLeaseStore
from leasekeeper.adapters.metrics_port import MetricsPort, NoOpMetricsAdapter
from leasekeeper.adapters.ports import (
    CandidateIDResolverPort,
    EnvironmentCandidateIDResolver,
    EventEmitterPort,
    HostnameCandidateIDResolver,
    LeaseStorePort,
    RealTimeProvider,
    TimeProvider,
    WatchHandle,
)

__all__ = [
    "CandidateIDResolverPort",
    "EnvironmentCandidateIDResolver",
    "EventEmitterPort",
    "HostnameCandidateIDResolver",
    "InMemoryLeaseStore",
    "LeaseStorePort",
    "MetricsPort",
    "NoOpMetricsAdapter",
    "RealTimeProvider",
    "TimeProvider",
    "WatchHandle",
]
