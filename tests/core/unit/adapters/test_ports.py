"""Tests for port protocols and their small default implementations."""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest

from leasekeeper.adapters.fakes import FakeTimeProvider
from leasekeeper.adapters.ports import (
    CandidateIDResolverPort,
    EnvironmentCandidateIDResolver,
    HostnameCandidateIDResolver,
    RealTimeProvider,
    TimeProvider,
)


@pytest.mark.unit
@pytest.mark.tier(1)
@pytest.mark.tra("Port.CandidateIDResolverPort")
class TestEnvironmentCandidateIDResolver:
    """Tests for the LEASEKEEPER_CANDIDATE_ID resolver."""

    def test_implements_port(self) -> None:
        assert isinstance(EnvironmentCandidateIDResolver(), CandidateIDResolverPort)

    def test_reads_and_strips_variable(self) -> None:
        with patch.dict(os.environ, {"LEASEKEEPER_CANDIDATE_ID": "  pod-a \n"}):
            assert EnvironmentCandidateIDResolver().resolve_candidate_id() == "pod-a"

    def test_missing_variable_raises_key_error(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(KeyError):
                EnvironmentCandidateIDResolver().resolve_candidate_id()

    def test_blank_variable_raises_value_error(self) -> None:
        with patch.dict(os.environ, {"LEASEKEEPER_CANDIDATE_ID": "   "}):
            with pytest.raises(ValueError, match="cannot be empty"):
                EnvironmentCandidateIDResolver().resolve_candidate_id()


@pytest.mark.unit
@pytest.mark.tier(1)
@pytest.mark.tra("Port.CandidateIDResolverPort")
class TestHostnameCandidateIDResolver:
    """Tests for the hostname-derived candidate identity."""

    def test_uses_hostname_and_pid(self) -> None:
        with patch.dict(os.environ, {"HOSTNAME": "web-1"}):
            candidate_id = HostnameCandidateIDResolver().resolve_candidate_id()
        assert candidate_id.startswith(f"web-1-{os.getpid()}-")

    def test_unique_per_call(self) -> None:
        resolver = HostnameCandidateIDResolver()
        assert resolver.resolve_candidate_id() != resolver.resolve_candidate_id()


@pytest.mark.unit
@pytest.mark.tier(1)
@pytest.mark.tra("Port.TimeProvider")
class TestTimeProviders:
    """Tests for the real and fake clocks."""

    def test_real_time_provider_is_wall_clock(self) -> None:
        provider = RealTimeProvider()
        assert isinstance(provider, TimeProvider)
        with patch("leasekeeper.adapters.ports.time.time", return_value=1234.5):
            assert provider.get_time_seconds() == 1234.5

    def test_real_time_provider_never_goes_backwards(self) -> None:
        provider = RealTimeProvider()
        with patch("leasekeeper.adapters.ports.time.time", return_value=2000.0):
            provider.get_time_seconds()
        with patch("leasekeeper.adapters.ports.time.time", return_value=1990.0):
            assert provider.get_time_seconds() == 2000.0

    def test_fake_time_provider_advances(self) -> None:
        clock = FakeTimeProvider(start=100.0)
        assert isinstance(clock, TimeProvider)
        clock.advance(2.5)
        assert clock.get_time_seconds() == 102.5

    def test_fake_time_provider_rejects_negative_advance(self) -> None:
        with pytest.raises(ValueError, match="backwards"):
            FakeTimeProvider().advance(-1)

    def test_fake_time_provider_set_time(self) -> None:
        clock = FakeTimeProvider(start=100.0)
        clock.set_time(50.0)
        assert clock.get_time_seconds() == 50.0
