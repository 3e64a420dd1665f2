"""Test doubles for leasekeeper ports."""

from leasekeeper.adapters.fakes.fake_lease_store import FakeLeaseStore, StoreCall
from leasekeeper.adapters.fakes.fake_metrics import FakeMetricsAdapter, MetricCall
from leasekeeper.adapters.fakes.fake_time_provider import FakeTimeProvider

__all__ = [
    "FakeLeaseStore",
    "StoreCall",
    "FakeMetricsAdapter",
    "MetricCall",
    "FakeTimeProvider",
]
