"""Pytest configuration and shared fixtures for leasekeeper core unit tests."""

from typing import Any

import pytest

from leasekeeper.adapters.fakes import FakeLeaseStore, FakeMetricsAdapter, FakeTimeProvider
from leasekeeper.domain.settings import ElectionSettings


def pytest_configure(config: Any) -> None:
    """Register custom markers for unit tests."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line("markers", "concurrency: Concurrency tests with threading")
    config.addinivalue_line(
        "markers", "property: Property-based tests using Hypothesis"
    )


@pytest.fixture
def clock() -> FakeTimeProvider:
    """Shared manual clock starting at t=1000."""
    return FakeTimeProvider(start=1000.0)


@pytest.fixture
def store() -> FakeLeaseStore:
    """Fake lease store with manual watch delivery."""
    return FakeLeaseStore()


@pytest.fixture
def metrics() -> FakeMetricsAdapter:
    return FakeMetricsAdapter()


@pytest.fixture
def election_settings() -> ElectionSettings:
    """Settings for candidate 'pod-a': 15s lease renewed every 5s."""
    return ElectionSettings(
        election_key="orders",
        candidate_id="pod-a",
        lease_duration=15.0,
        renew_interval=5.0,
        store_timeout=2.0,
        shutdown_timeout=1.0,
    )
