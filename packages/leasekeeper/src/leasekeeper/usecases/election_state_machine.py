"""ElectionStateMachine use case: lease acquisition, renewal and demotion."""

from __future__ import annotations

import logging
import threading
import time
from typing import TYPE_CHECKING

from leasekeeper.adapters.metrics_port import NoOpMetricsAdapter
from leasekeeper.adapters.ports import RealTimeProvider
from leasekeeper.domain.candidate import Belief, CandidateState
from leasekeeper.domain.events import LeadershipEvent, LeadershipEventType
from leasekeeper.domain.exceptions import (
    LeaseStoreError,
    MalformedRecordError,
    TransientStoreError,
    VersionConflictError,
)
from leasekeeper.domain.lease import LeaseRecord, StoredValue

if TYPE_CHECKING:
    from leasekeeper.adapters.metrics_port import MetricsPort
    from leasekeeper.adapters.ports import EventEmitterPort, LeaseStorePort, TimeProvider
    from leasekeeper.domain.settings import ElectionSettings

logger = logging.getLogger(__name__)


class ElectionStateMachine:
    """Drives one candidate's belief from the shared lease record.

    The store's conditional write is the only ordering authority: every
    decision here is either a read or a write keyed on the version observed
    last, so at most one candidate can hold a valid lease at any instant.

    Transition rules (evaluated by tick()):
        - Record absent -> create it. Success: FOLLOWER -> LEADER.
        - LEADER -> renew keyed on last_known_version. A version conflict
          demotes to FOLLOWER (unless a re-read shows the lease is still ours).
        - FOLLOWER, record expired or undecodable -> take it over keyed on
          its version. Success: FOLLOWER -> LEADER.
        - FOLLOWER, record valid and held by another -> no-op.

    Transient store failures never change belief: the attempt is simply
    repeated on the next tick. Watch events are advisory and never demote.

    Thread safety:
        tick(), on_watch_event() and release() serialize on one lock.
        current_belief() and is_leader() read a single attribute without
        locking and never block.
    """

    def __init__(
        self,
        settings: ElectionSettings,
        store: LeaseStorePort,
        clock: TimeProvider | None = None,
        emitter: EventEmitterPort | None = None,
        metrics: MetricsPort | None = None,
    ) -> None:
        """Initialize the state machine as FOLLOWER.

        Args:
            settings: Validated election identity and timing.
            store: Lease store holding the coordination record.
            clock: Time source for lease expiry. Defaults to wall-clock time.
            emitter: Receives a LeadershipEvent on every belief change.
            metrics: Metrics sink. Defaults to no-op.
        """
        self._settings = settings
        self._store = store
        self._clock = clock or RealTimeProvider()
        self._emitter = emitter
        self._metrics = metrics or NoOpMetricsAdapter()
        self._lock = threading.Lock()
        self._state = CandidateState(candidate_id=settings.candidate_id)
        self._belief = Belief.FOLLOWER

        if not settings.is_renewal_ratio_safe():
            logger.warning(
                "lease_duration %.1fs is less than 3x renew_interval %.1fs for %r; "
                "a single slow renewal may lose the lease",
                settings.lease_duration,
                settings.renew_interval,
                settings.election_key,
            )
        self._metrics.set_is_leader(False)

    @property
    def settings(self) -> ElectionSettings:
        return self._settings

    @property
    def candidate_id(self) -> str:
        return self._settings.candidate_id

    @property
    def election_key(self) -> str:
        return self._settings.election_key

    def current_belief(self) -> Belief:
        """Return the belief set by the last tick, watch event or release."""
        return self._belief

    def is_leader(self) -> bool:
        return self._belief is Belief.LEADER

    def current_holder(self) -> LeaseRecord | None:
        """Return the last lease record observed, or None if unknown or absent."""
        return self._state.cached_record

    def snapshot(self) -> CandidateState:
        """Return a detached copy of the candidate state."""
        with self._lock:
            return self._state.copy()

    def tick(self, now: float | None = None) -> Belief:
        """Run one acquisition or renewal attempt.

        Never raises for store failures; they are logged, counted and
        retried on the next tick.

        Args:
            now: Current time in seconds. Defaults to the clock.

        Returns:
            The belief after the attempt.
        """
        started = time.perf_counter()
        with self._lock:
            try:
                if now is None:
                    now = self._clock.get_time_seconds()
                if self._belief is Belief.LEADER:
                    self._renew(now)
                else:
                    self._try_acquire(now)
            except TransientStoreError as e:
                self._metrics.record_store_error("transient")
                logger.warning(
                    "Lease store unavailable for %r, retrying next tick: %s",
                    self.election_key,
                    e,
                )
            except LeaseStoreError as e:
                self._metrics.record_store_error("permanent")
                logger.error("Lease store rejected %r: %s", self.election_key, e)
            except Exception:
                self._metrics.record_store_error("transient")
                logger.exception("Unexpected error during tick for %r", self.election_key)
            finally:
                if now is not None:
                    self._state.next_deadline = now + self._settings.renew_interval
            belief = self._belief
        self._metrics.observe_tick_duration(time.perf_counter() - started)
        return belief

    def on_watch_event(self, value: StoredValue | None) -> None:
        """Reconcile a change event from the store's watch stream.

        Advisory only: a follower refreshes its cache for the next tick, a
        leader only adopts a newer version of its own record. Never emits.

        Args:
            value: New stored value, or None when the record was deleted.
        """
        with self._lock:
            if value is None:
                if self._belief is Belief.FOLLOWER:
                    self._state.cached_record = None
                    self._state.last_known_version = None
                else:
                    logger.debug(
                        "Lease record %r deleted while leading; recreated on next tick",
                        self.election_key,
                    )
                return

            known = self._state.last_known_version
            if known is not None and value.version < known:
                logger.debug(
                    "Ignoring stale watch event for %r (version %d < %d)",
                    self.election_key,
                    value.version,
                    known,
                )
                return

            record = self._decode(value)
            if self._belief is Belief.LEADER:
                if (
                    record is not None
                    and record.holder_id == self.candidate_id
                    and (known is None or value.version > known)
                ):
                    self._state.held_record = record
                    self._state.cached_record = record
                    self._state.last_known_version = value.version
                return

            self._state.cached_record = record
            self._state.last_known_version = value.version

    def release(self, timeout: float | None = None) -> bool:
        """Give up the lease early so a successor need not wait for expiry.

        Best effort: if leader, conditionally writes expires_at = now, then
        demotes and emits LOST_LEADERSHIP. Write failures are logged only.

        Args:
            timeout: Upper bound for waiting on an in-flight tick and, separately,
                     for the store call (capped at store_timeout). None waits
                     for the tick without limit.

        Returns:
            True if the expired record was written.
        """
        # A tick abandoned by the scheduler may still hold the lock inside a
        # hung store call
        wait = -1 if timeout is None else max(timeout, 0.0)
        if not self._lock.acquire(timeout=wait):
            logger.warning(
                "Skipping release of %r: a tick is still in progress after %.1fs",
                self.election_key,
                timeout,
            )
            return False
        try:
            return self._release_locked(timeout)
        finally:
            self._lock.release()

    def _release_locked(self, timeout: float | None) -> bool:
        if self._belief is not Belief.LEADER:
            return False

        store_timeout = self._settings.store_timeout
        if timeout is not None:
            store_timeout = min(store_timeout, timeout)
        now = self._clock.get_time_seconds()
        released = False
        held = self._state.held_record
        expected = self._state.last_known_version

        if held is not None and expected is not None:
            record = held.release(now)
            try:
                version = self._store.update_if_version(
                    self.election_key, record.to_bytes(), expected, store_timeout
                )
            except VersionConflictError:
                self._metrics.record_store_error("conflict")
                logger.warning(
                    "Lease %r was taken over before release", self.election_key
                )
            except LeaseStoreError as e:
                self._metrics.record_store_error(
                    "transient" if isinstance(e, TransientStoreError) else "permanent"
                )
                logger.warning("Failed to release lease %r: %s", self.election_key, e)
            except Exception:
                logger.exception("Unexpected error releasing %r", self.election_key)
            else:
                self._state.cached_record = record
                self._state.last_known_version = version
                released = True
                logger.info("Released lease %r", self.election_key)

        self._demote(now, "released")
        return released

    def _try_acquire(self, now: float) -> None:
        """Follower path: create, take over or observe the record."""
        stored = self._store.read(self.election_key, self._settings.store_timeout)
        if stored is None:
            self._state.cached_record = None
            self._create(now)
            return

        record = self._decode(stored)
        self._state.cached_record = record
        self._state.last_known_version = stored.version

        if record is not None and not record.is_expired(now):
            if record.holder_id != self.candidate_id:
                return
            # Our own valid lease from an earlier incarnation: reclaim it
            claim = record.renew(now, self._settings.lease_duration)
        else:
            claim = LeaseRecord.acquire(
                self.candidate_id, now, self._settings.lease_duration, previous=record
            )

        try:
            version = self._store.update_if_version(
                self.election_key,
                claim.to_bytes(),
                stored.version,
                self._settings.store_timeout,
            )
        except VersionConflictError:
            self._metrics.record_store_error("conflict")
            logger.info("Lost the race for %r; staying follower", self.election_key)
            self._refresh_cache()
            return
        self._become_leader(now, claim, version, "took over expired lease")

    def _create(self, now: float) -> None:
        """Create the absent record, becoming leader on success."""
        claim = LeaseRecord.acquire(
            self.candidate_id, now, self._settings.lease_duration
        )
        try:
            version = self._store.create_if_absent(
                self.election_key, claim.to_bytes(), self._settings.store_timeout
            )
        except VersionConflictError:
            self._metrics.record_store_error("conflict")
            logger.info(
                "Lease %r was created concurrently; staying follower", self.election_key
            )
            self._refresh_cache()
            return
        self._become_leader(now, claim, version, "created lease")

    def _renew(self, now: float) -> None:
        """Leader path: extend the lease keyed on the last known version."""
        held = self._state.held_record
        expected = self._state.last_known_version
        if held is None or expected is None:
            self._demote(now, "no held lease to renew")
            return

        renewed = held.renew(now, self._settings.lease_duration)
        try:
            version = self._store.update_if_version(
                self.election_key,
                renewed.to_bytes(),
                expected,
                self._settings.store_timeout,
            )
        except VersionConflictError:
            self._metrics.record_store_error("conflict")
            self._recover_from_conflict(now)
            return
        self._record_renewal(now, renewed, version)
        logger.debug("Renewed lease %r at version %d", self.election_key, version)

    def _recover_from_conflict(self, now: float) -> None:
        """Decide between demotion and keeping a lease that is still ours.

        A renewal can conflict with our own earlier write whose
        acknowledgement was lost; only a re-read can tell that apart from a
        real takeover.
        """
        try:
            stored = self._store.read(self.election_key, self._settings.store_timeout)
        except LeaseStoreError as e:
            logger.warning(
                "Could not re-read %r after a conflict (%s); stepping down",
                self.election_key,
                e,
            )
            self._demote(now, "version conflict on renewal")
            return

        if stored is None:
            claim = LeaseRecord.acquire(
                self.candidate_id, now, self._settings.lease_duration
            )
            try:
                version = self._store.create_if_absent(
                    self.election_key, claim.to_bytes(), self._settings.store_timeout
                )
            except VersionConflictError:
                self._refresh_cache()
                self._demote(now, "lease recreated by another candidate")
                return
            logger.warning("Lease record %r was deleted; recreated it", self.election_key)
            self._record_renewal(now, claim, version)
            return

        record = self._decode(stored)
        self._state.cached_record = record
        self._state.last_known_version = stored.version
        if record is None or not record.is_held_by(self.candidate_id, now):
            self._demote(now, "version conflict on renewal")
            return

        renewed = record.renew(now, self._settings.lease_duration)
        try:
            version = self._store.update_if_version(
                self.election_key,
                renewed.to_bytes(),
                stored.version,
                self._settings.store_timeout,
            )
        except VersionConflictError:
            self._refresh_cache()
            self._demote(now, "version conflict on renewal")
            return
        logger.info(
            "Adopted version %d of our own lease %r after a conflict",
            stored.version,
            self.election_key,
        )
        self._record_renewal(now, renewed, version)

    def _refresh_cache(self) -> None:
        """Re-read the record after losing a race; failures leave the cache as is."""
        try:
            stored = self._store.read(self.election_key, self._settings.store_timeout)
        except LeaseStoreError as e:
            logger.debug("Could not refresh %r after a conflict: %s", self.election_key, e)
            return
        if stored is None:
            self._state.cached_record = None
            self._state.last_known_version = None
            return
        self._state.cached_record = self._decode(stored)
        self._state.last_known_version = stored.version

    def _decode(self, stored: StoredValue) -> LeaseRecord | None:
        """Decode a stored value; malformed records count as unheld."""
        try:
            return LeaseRecord.from_bytes(stored.value, key=self.election_key)
        except MalformedRecordError as e:
            self._metrics.record_store_error("malformed")
            logger.warning(
                "Malformed lease record %r at version %d treated as unheld: %s",
                self.election_key,
                stored.version,
                e,
            )
            return None

    def _record_renewal(self, now: float, record: LeaseRecord, version: int) -> None:
        self._state.held_record = record
        self._state.cached_record = record
        self._state.last_known_version = version
        self._state.last_renewal_at = now

    def _become_leader(
        self, now: float, record: LeaseRecord, version: int, reason: str
    ) -> None:
        self._record_renewal(now, record, version)
        logger.info(
            "Candidate %r acquired lease %r at version %d (%s)",
            self.candidate_id,
            self.election_key,
            version,
            reason,
        )
        self._set_belief(Belief.LEADER, now, version, reason)

    def _demote(self, now: float, reason: str) -> None:
        self._state.held_record = None
        self._state.last_renewal_at = None
        if self._belief is Belief.LEADER:
            logger.warning(
                "Candidate %r lost lease %r: %s",
                self.candidate_id,
                self.election_key,
                reason,
            )
        self._set_belief(Belief.FOLLOWER, now, self._state.last_known_version, reason)

    def _set_belief(
        self, belief: Belief, now: float, version: int | None, reason: str
    ) -> None:
        """Change belief and emit exactly one event per actual transition."""
        if belief is self._belief:
            return
        self._belief = belief
        self._state.belief = belief

        event_type = (
            LeadershipEventType.BECAME_LEADER
            if belief is Belief.LEADER
            else LeadershipEventType.LOST_LEADERSHIP
        )
        self._metrics.set_is_leader(belief is Belief.LEADER)
        self._metrics.record_transition(event_type.value)
        if self._emitter is not None:
            self._emitter.emit(
                LeadershipEvent(
                    event_type=event_type,
                    election_key=self.election_key,
                    candidate_id=self.candidate_id,
                    occurred_at=now,
                    version=version,
                    reason=reason,
                )
            )
