"""Shared fixtures for BDD tests."""

from typing import Any

import pytest

from leasekeeper.adapters.fakes import FakeLeaseStore, FakeTimeProvider


@pytest.fixture
def shared_store() -> FakeLeaseStore:
    """Lease store shared by every candidate of a scenario."""
    return FakeLeaseStore()


@pytest.fixture
def scenario_clock() -> FakeTimeProvider:
    """Clock shared by every candidate of a scenario, starting at t=0."""
    return FakeTimeProvider(start=1000.0)


@pytest.fixture
def context(shared_store: FakeLeaseStore, scenario_clock: FakeTimeProvider) -> dict[str, Any]:
    """Shared context for passing state between steps."""
    return {
        "store": shared_store,
        "clock": scenario_clock,
        "candidates": {},
    }
