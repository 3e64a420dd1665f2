"""BDD step definitions for leader_failover.feature.

Drives several ElectionStateMachine candidates over one shared FakeLeaseStore
and one FakeTimeProvider, so every scenario is deterministic.
"""

from __future__ import annotations

from typing import Any

import pytest
from pytest_bdd import given, parsers, scenario, then, when

from leasekeeper.adapters.fakes import FakeLeaseStore
from leasekeeper.domain.candidate import Belief
from leasekeeper.domain.events import LeadershipEvent
from leasekeeper.domain.exceptions import TransientStoreError
from leasekeeper.domain.lease import LeaseRecord, StoredValue
from leasekeeper.domain.settings import ElectionSettings
from leasekeeper.usecases.election_state_machine import ElectionStateMachine

# Type alias for BDD context dict
Context = dict[str, Any]

EPOCH = 1000.0
FEATURE = "../../features/core/leader_failover.feature"


# ----- Test doubles -----


class CandidateLink:
    """One candidate's connection to the shared store; can be cut."""

    def __init__(self, store: FakeLeaseStore) -> None:
        self._store = store
        self.connected = True

    def _check(self) -> None:
        if not self.connected:
            raise TransientStoreError("network partition")

    def read(self, key: str, timeout: float) -> StoredValue | None:
        self._check()
        return self._store.read(key, timeout)

    def create_if_absent(self, key: str, value: bytes, timeout: float) -> int:
        self._check()
        return self._store.create_if_absent(key, value, timeout)

    def update_if_version(
        self, key: str, value: bytes, expected_version: int, timeout: float
    ) -> int:
        self._check()
        return self._store.update_if_version(key, value, expected_version, timeout)


class MockEventEmitter:
    """Mock implementation of EventEmitterPort for testing."""

    def __init__(self) -> None:
        self.events: list[LeadershipEvent] = []

    def emit(self, event: LeadershipEvent) -> None:
        self.events.append(event)


# ----- Scenarios (linked to feature file) -----


@pytest.mark.tier(1)
@pytest.mark.tra("UseCase.ElectionStateMachine")
@scenario(FEATURE, "First candidate to reach the store becomes leader")
def test_first_candidate_becomes_leader() -> None:
    """Test the first candidate to create the record leads."""
    pass


@pytest.mark.tier(1)
@pytest.mark.tra("UseCase.ElectionStateMachine")
@scenario(FEATURE, "Follower takes over after the leader stops renewing")
def test_follower_takes_over_expired_lease() -> None:
    """Test takeover once the leader's lease expires."""
    pass


@pytest.mark.tier(1)
@pytest.mark.tra("UseCase.ElectionStateMachine")
@scenario(FEATURE, "Partitioned leader keeps its belief until it reaches the store")
def test_partitioned_leader_demotes_on_reconnect() -> None:
    """Test transient failures never flip belief."""
    pass


@pytest.mark.tier(1)
@pytest.mark.tra("UseCase.ElectionStateMachine")
@scenario(FEATURE, "Released lease is taken over without waiting for expiry")
def test_released_lease_taken_over() -> None:
    """Test graceful handoff through release()."""
    pass


@pytest.mark.tier(1)
@pytest.mark.tra("UseCase.ElectionStateMachine")
@scenario(FEATURE, "Watch events never demote a leader")
def test_watch_events_never_demote() -> None:
    """Test watch events are advisory only."""
    pass


# ----- Helpers -----


def _candidate(context: Context, name: str) -> ElectionStateMachine:
    return context["candidates"][name]["machine"]


def _tick_at(context: Context, name: str, t: float) -> None:
    context["clock"].set_time(EPOCH + t)
    _candidate(context, name).tick()


# ----- Background steps -----


@given(
    parsers.parse(
        'an election "{key}" with a {lease:d} second lease renewed every {renew:d} seconds'
    )
)
def given_election(context: Context, key: str, lease: int, renew: int) -> None:
    """Record election timing used by every candidate."""
    context["key"] = key
    context["lease"] = float(lease)
    context["renew"] = float(renew)


@given(parsers.parse('candidates "{first}" and "{second}" sharing one lease store'))
def given_candidates(context: Context, first: str, second: str) -> None:
    """Create candidates wired to the shared store and clock."""
    store: FakeLeaseStore = context["store"]
    for name in (first, second):
        link = CandidateLink(store)
        emitter = MockEventEmitter()
        machine = ElectionStateMachine(
            ElectionSettings(
                election_key=context["key"],
                candidate_id=name,
                lease_duration=context["lease"],
                renew_interval=context["renew"],
            ),
            link,
            clock=context["clock"],
            emitter=emitter,
        )
        store.watch(context["key"], machine.on_watch_event)
        context["candidates"][name] = {
            "machine": machine,
            "link": link,
            "emitter": emitter,
        }


# ----- Given steps -----


@given(parsers.parse('"{name}" is leader at t={t:d}'))
def given_leader(context: Context, name: str, t: int) -> None:
    """Elect the named candidate."""
    _tick_at(context, name, t)
    assert _candidate(context, name).is_leader()


# ----- When steps -----


@when(parsers.parse('"{name}" ticks at t={t:d}'))
def when_ticks(context: Context, name: str, t: int) -> None:
    """Run one tick of the named candidate at time t."""
    _tick_at(context, name, t)


@when(parsers.parse('"{name}" ticks every {interval:d} seconds until t={end:d}'))
def when_ticks_repeatedly(context: Context, name: str, interval: int, end: int) -> None:
    """Tick the named candidate on its schedule."""
    for t in range(0, end + 1, interval):
        _tick_at(context, name, t)


@when(parsers.parse('"{name}" stops renewing'))
def when_stops_renewing(context: Context, name: str) -> None:
    """A stalled leader simply never ticks again."""
    context["candidates"][name]["stalled"] = True


@when(parsers.parse('"{name}" is partitioned from the store'))
def when_partitioned(context: Context, name: str) -> None:
    context["candidates"][name]["link"].connected = False


@when(parsers.parse('"{name}" is reconnected to the store'))
def when_reconnected(context: Context, name: str) -> None:
    context["candidates"][name]["link"].connected = True


@when(parsers.parse('"{name}" releases the lease at t={t:d}'))
def when_releases(context: Context, name: str, t: int) -> None:
    context["clock"].set_time(EPOCH + t)
    assert _candidate(context, name).release() is True


@when(parsers.parse('an operator overwrites the lease record naming "{holder}" as holder'))
def when_operator_overwrites(context: Context, holder: str) -> None:
    """Write a foreign record unconditionally."""
    record = LeaseRecord(holder_id=holder, expires_at=EPOCH + 60.0)
    context["store"].put(context["key"], record.to_bytes())


@when("watch events are delivered")
def when_watch_events_delivered(context: Context) -> None:
    context["store"].deliver_watch_events()


# ----- Then steps -----


@then(parsers.parse('"{name}" believes it is {belief}'))
def then_believes(context: Context, name: str, belief: str) -> None:
    """Check the named candidate's belief."""
    assert _candidate(context, name).current_belief() is Belief(belief)


@then(parsers.parse('the lease record names "{name}" as holder'))
def then_record_holder(context: Context, name: str) -> None:
    stored = context["store"].read(context["key"], timeout=1.0)
    assert stored is not None
    assert LeaseRecord.from_bytes(stored.value).holder_id == name


@then(parsers.parse('"{name}" emitted exactly one "{event_type}" event'))
def then_emitted_once(context: Context, name: str, event_type: str) -> None:
    events = context["candidates"][name]["emitter"].events
    assert [e.event_type.value for e in events].count(event_type) == 1
