"""LeaseCandidate: one process's participation in one election domain.

Wires an ElectionStateMachine to its RenewalScheduler, the store's watch
stream and a TransitionNotifier, and owns their start/stop order.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from leasekeeper.domain.exceptions import LeaseStoreError
from leasekeeper.usecases.election_state_machine import ElectionStateMachine
from leasekeeper.usecases.renewal_scheduler import RenewalScheduler
from leasekeeper.usecases.transition_notifier import (
    LeadershipCallback,
    SubscriptionHandle,
    TransitionNotifier,
)

if TYPE_CHECKING:
    from types import TracebackType

    from leasekeeper.adapters.metrics_port import MetricsPort
    from leasekeeper.adapters.ports import LeaseStorePort, TimeProvider, WatchHandle
    from leasekeeper.domain.candidate import Belief, CandidateState
    from leasekeeper.domain.lease import LeaseRecord
    from leasekeeper.domain.settings import ElectionSettings

logger = logging.getLogger(__name__)


class LeaseCandidate:
    """Facade running one candidate until stopped.

    Example:
        >>> settings = ElectionSettings(election_key="orders", candidate_id="pod-a")
        >>> with LeaseCandidate(settings, store) as candidate:
        ...     candidate.subscribe(on_transition)
        ...     serve_forever()

    Stop order: scheduler, watch, lease release, notifier. Each step is
    bounded by settings.shutdown_timeout.
    """

    def __init__(
        self,
        settings: ElectionSettings,
        store: LeaseStorePort,
        clock: TimeProvider | None = None,
        metrics: MetricsPort | None = None,
        notifier: TransitionNotifier | None = None,
        close_store: bool = False,
    ) -> None:
        """Initialize a stopped candidate.

        Args:
            settings: Validated election identity and timing.
            store: Lease store holding the coordination record.
            clock: Time source. Defaults to wall-clock time.
            metrics: Metrics sink. Defaults to no-op.
            notifier: Event fan-out. A private one is created if omitted.
            close_store: Call store.close() on stop (for stores the candidate owns).
        """
        self._settings = settings
        self._store = store
        self._close_store = close_store
        self._notifier = notifier or TransitionNotifier(
            name=f"leasekeeper-notifier-{settings.election_key}"
        )
        self._machine = ElectionStateMachine(
            settings, store, clock=clock, emitter=self._notifier, metrics=metrics
        )
        self._scheduler = RenewalScheduler(
            self._machine.tick,
            settings.renew_interval,
            name=f"leasekeeper-renewal-{settings.election_key}",
        )
        self._watch: WatchHandle | None = None
        self._started = False
        self._stopped = False

    @property
    def settings(self) -> ElectionSettings:
        return self._settings

    @property
    def state_machine(self) -> ElectionStateMachine:
        return self._machine

    @property
    def notifier(self) -> TransitionNotifier:
        return self._notifier

    @property
    def running(self) -> bool:
        return self._started and not self._stopped

    def start(self) -> None:
        """Begin participating: open the watch and start ticking.

        Raises:
            RuntimeError: If the candidate was already started.
        """
        if self._started:
            raise RuntimeError("candidate can only be started once")
        self._started = True
        self._notifier.start()
        try:
            self._watch = self._store.watch(
                self._settings.election_key, self._machine.on_watch_event
            )
        except LeaseStoreError as e:
            # Ticks alone still converge; the watch only shortens reaction time
            logger.warning(
                "Could not watch %r, relying on polling: %s",
                self._settings.election_key,
                e,
            )
        self._scheduler.start()
        logger.info(
            "Candidate %r joined election %r",
            self._settings.candidate_id,
            self._settings.election_key,
        )

    def stop(self) -> bool:
        """Leave the election, releasing the lease if held.

        Returns:
            True if every background thread exited in time.
        """
        if not self._started or self._stopped:
            return True
        self._stopped = True
        timeout = self._settings.shutdown_timeout

        clean = self._scheduler.stop(timeout)
        if self._watch is not None:
            self._watch.cancel()
        self._machine.release(timeout)
        clean = self._notifier.stop(timeout) and clean
        if self._close_store:
            close = getattr(self._store, "close", None)
            if close is not None:
                close()
        logger.info(
            "Candidate %r left election %r",
            self._settings.candidate_id,
            self._settings.election_key,
        )
        return clean

    def current_belief(self) -> Belief:
        return self._machine.current_belief()

    def is_leader(self) -> bool:
        return self._machine.is_leader()

    def current_holder(self) -> LeaseRecord | None:
        return self._machine.current_holder()

    def snapshot(self) -> CandidateState:
        return self._machine.snapshot()

    def subscribe(self, callback: LeadershipCallback) -> SubscriptionHandle:
        """Register callback for BECAME_LEADER / LOST_LEADERSHIP events."""
        return self._notifier.subscribe(callback)

    def unsubscribe(self, handle: SubscriptionHandle) -> bool:
        return self._notifier.unsubscribe(handle)

    def __enter__(self) -> LeaseCandidate:
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.stop()
