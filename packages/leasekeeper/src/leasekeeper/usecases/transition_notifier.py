"""TransitionNotifier use case: ordered delivery of leadership events."""

from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from leasekeeper.domain.events import LeadershipEvent

logger = logging.getLogger(__name__)

LeadershipCallback = Callable[["LeadershipEvent"], None]


@dataclass(frozen=True, eq=False)
class SubscriptionHandle:
    """Token returned by subscribe(); pass it to unsubscribe()."""

    callback: LeadershipCallback


class TransitionNotifier:
    """Fan leadership events out to subscribers on a dispatch thread.

    Implements EventEmitterPort. emit() only enqueues, so the state machine
    never waits on subscriber code. Each event is delivered once to every
    subscriber registered when the event is dispatched, in emission order.
    A subscriber that raises is logged and skipped; the others still run.

    Without start(), events stay queued until deliver_pending() is called,
    which is how tests drive delivery deterministically.
    """

    def __init__(self, name: str = "leasekeeper-notifier") -> None:
        self._name = name
        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._subscribers: list[SubscriptionHandle] = []
        self._queue: queue.Queue[LeadershipEvent | None] = queue.Queue()
        self._pending = 0
        self._thread: threading.Thread | None = None

    def subscribe(self, callback: LeadershipCallback) -> SubscriptionHandle:
        """Register callback for all future events."""
        handle = SubscriptionHandle(callback)
        with self._lock:
            self._subscribers.append(handle)
        return handle

    def unsubscribe(self, handle: SubscriptionHandle) -> bool:
        """Remove a subscription.

        Returns:
            True if the handle was registered.
        """
        with self._lock:
            if handle in self._subscribers:
                self._subscribers.remove(handle)
                return True
            return False

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def emit(self, event: LeadershipEvent) -> None:
        """Queue event for delivery. Never blocks."""
        with self._lock:
            self._pending += 1
        self._queue.put(event)

    def start(self) -> None:
        """Start the dispatch thread.

        Raises:
            RuntimeError: If already started.
        """
        with self._lock:
            if self._thread is not None:
                raise RuntimeError("notifier can only be started once")
            self._thread = threading.Thread(
                target=self._dispatch_forever, name=self._name, daemon=True
            )
            self._thread.start()

    def stop(self, timeout: float | None = None) -> bool:
        """Deliver what is queued, then stop the dispatch thread.

        Returns:
            True if the thread exited within timeout (or was never started).
        """
        thread = self._thread
        if thread is None or not thread.is_alive():
            return True
        self._queue.put(None)
        thread.join(timeout)
        if thread.is_alive():
            logger.warning("%s did not stop within %.1fs", self._name, timeout or 0.0)
            return False
        return True

    def flush(self, timeout: float | None = None) -> bool:
        """Wait until every emitted event has been delivered.

        Returns:
            True if the queue drained within timeout.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._idle:
            while self._pending:
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    return False
                self._idle.wait(remaining)
            return True

    def deliver_pending(self) -> int:
        """Deliver queued events on the calling thread.

        Only valid while the dispatch thread is not running; two consumers
        could otherwise reorder events.

        Returns:
            Number of events delivered.

        Raises:
            RuntimeError: If the dispatch thread is running.
        """
        thread = self._thread
        if thread is not None and thread.is_alive():
            raise RuntimeError("deliver_pending() cannot run beside the dispatcher")
        delivered = 0
        while True:
            try:
                event = self._queue.get_nowait()
            except queue.Empty:
                return delivered
            if event is not None:
                self._deliver(event)
                delivered += 1

    def _dispatch_forever(self) -> None:
        while True:
            event = self._queue.get()
            if event is None:
                return
            self._deliver(event)

    def _deliver(self, event: LeadershipEvent) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        try:
            for handle in subscribers:
                try:
                    handle.callback(event)
                except Exception:
                    logger.exception(
                        "Subscriber %r raised on %s", handle.callback, event.event_type.value
                    )
        finally:
            with self._idle:
                self._pending -= 1
                if not self._pending:
                    self._idle.notify_all()


class LeadershipFlag:
    """Idempotent subscriber tracking whether this candidate leads.

    Safe to receive the same event twice: it only ever sets or clears a flag.

    Example:
        >>> flag = LeadershipFlag()
        >>> notifier.subscribe(flag)
        >>> flag.wait_until_active(timeout=20.0)
    """

    def __init__(self) -> None:
        self._active = threading.Event()
        self._inactive = threading.Event()
        self._inactive.set()

    @property
    def active(self) -> bool:
        return self._active.is_set()

    def __call__(self, event: LeadershipEvent) -> None:
        if event.is_leader:
            self._inactive.clear()
            self._active.set()
        else:
            self._active.clear()
            self._inactive.set()

    def wait_until_active(self, timeout: float | None = None) -> bool:
        """Block until leadership is gained; True if it was within timeout."""
        return self._active.wait(timeout)

    def wait_until_inactive(self, timeout: float | None = None) -> bool:
        """Block until leadership is lost; True if it was within timeout."""
        return self._inactive.wait(timeout)
