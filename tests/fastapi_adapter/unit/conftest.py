"""Fixtures for FastAPI adapter unit tests."""

from typing import Any

import pytest

from leasekeeper.adapters.fakes import FakeLeaseStore, FakeTimeProvider
from leasekeeper.domain.settings import ElectionSettings
from leasekeeper.usecases.lease_candidate import LeaseCandidate


@pytest.fixture
def pydantic_settings_dict() -> dict[str, Any]:
    """Example Pydantic settings dict (snake_case keys)."""
    return {
        "election_key": "orders",
        "candidate_id": "pod-a",
        "lease_duration": 30.0,
        "renew_interval": 10.0,
        "store_backend": "consul",
        "consul_url": "http://consul:8500",
        "consul_token": "secret",
        "metrics_enabled": True,
    }


@pytest.fixture
def fake_store() -> FakeLeaseStore:
    return FakeLeaseStore()


@pytest.fixture
def fake_clock() -> FakeTimeProvider:
    return FakeTimeProvider(start=1000.0)


@pytest.fixture
def candidate(fake_store: FakeLeaseStore, fake_clock: FakeTimeProvider) -> LeaseCandidate:
    """A candidate that is never started; tests tick its state machine directly."""
    return LeaseCandidate(
        ElectionSettings(election_key="orders", candidate_id="pod-a"),
        fake_store,
        clock=fake_clock,
    )
