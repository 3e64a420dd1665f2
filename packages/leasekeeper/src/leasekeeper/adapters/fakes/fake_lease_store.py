"""Fake lease store for testing.

In-memory LeaseStorePort with failure injection and manually delivered
watch events, so tests control exactly when a candidate observes a change.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass

from leasekeeper.adapters.in_memory_lease_store import (
    InMemoryLeaseStore,
    InMemoryWatchHandle,
)
from leasekeeper.domain.exceptions import TransientStoreError
from leasekeeper.domain.lease import StoredValue

_OPERATIONS = ("read", "create_if_absent", "update_if_version")


@dataclass(frozen=True)
class StoreCall:
    """Record of a single store operation.

    Attributes:
        operation: Name of the port method that was called.
        key: Key the call addressed.
        expected_version: Version passed to update_if_version, else None.
    """

    operation: str
    key: str
    expected_version: int | None = None


class FakeLeaseStore(InMemoryLeaseStore):
    """Fake implementation of LeaseStorePort for testing.

    Behaves like InMemoryLeaseStore except that:
        - failures can be injected per operation or for every operation
        - watch events are queued until deliver_watch_events() is called
        - every port call is recorded in calls

    Example:
        >>> store = FakeLeaseStore()
        >>> store.partition()
        >>> store.read("orders", timeout=1.0)
        Traceback (most recent call last):
        ...
        leasekeeper.domain.exceptions.TransientStoreError: ...
    """

    def __init__(self) -> None:
        super().__init__()
        self._fault_lock = threading.Lock()
        self._next_failures: dict[str, list[BaseException]] = {}
        self._persistent_failure: BaseException | None = None
        self._pending: list[tuple[str, StoredValue | None]] = []
        self._calls: list[StoreCall] = []

    @property
    def calls(self) -> list[StoreCall]:
        """Return a copy of all recorded port calls, in order."""
        with self._fault_lock:
            return list(self._calls)

    @property
    def pending_watch_events(self) -> int:
        """Number of change events waiting for deliver_watch_events()."""
        with self._fault_lock:
            return len(self._pending)

    def fail_next(self, operation: str, error: BaseException, count: int = 1) -> None:
        """Make the next count calls of operation raise error.

        Raises:
            ValueError: If operation is not a port method name.
        """
        if operation not in _OPERATIONS:
            raise ValueError(f"unknown operation: {operation}")
        with self._fault_lock:
            self._next_failures.setdefault(operation, []).extend([error] * count)

    def fail_with(self, error: BaseException | None) -> None:
        """Make every call raise error until cleared with None."""
        with self._fault_lock:
            self._persistent_failure = error

    def partition(self) -> None:
        """Simulate losing connectivity to the store."""
        self.fail_with(TransientStoreError("store unreachable (partitioned)"))

    def heal(self) -> None:
        """Restore connectivity and drop any queued one-shot failures."""
        with self._fault_lock:
            self._persistent_failure = None
            self._next_failures.clear()

    def put(self, key: str, value: bytes) -> int:
        """Write unconditionally, as a foreign writer or an operator would.

        Not affected by injected failures.
        """
        with self._lock:
            stored = self._write(key, value)
            self._notify(key, stored)
        return stored.version

    def clear_calls(self) -> None:
        with self._fault_lock:
            self._calls.clear()

    def read(self, key: str, timeout: float) -> StoredValue | None:
        self._before("read", key)
        return super().read(key, timeout)

    def create_if_absent(self, key: str, value: bytes, timeout: float) -> int:
        self._before("create_if_absent", key)
        return super().create_if_absent(key, value, timeout)

    def update_if_version(
        self, key: str, value: bytes, expected_version: int, timeout: float
    ) -> int:
        self._before("update_if_version", key, expected_version)
        return super().update_if_version(key, value, expected_version, timeout)

    def deliver_watch_events(self) -> int:
        """Deliver every queued change event on the calling thread.

        Returns:
            Number of events delivered.
        """
        with self._fault_lock:
            pending, self._pending = self._pending, []
        for key, stored in pending:
            self._deliver(key, stored)
        return len(pending)

    def watchers(self, key: str) -> list[InMemoryWatchHandle]:
        """Return the live watch registrations for key."""
        return self._watchers_for(key)

    def _before(
        self, operation: str, key: str, expected_version: int | None = None
    ) -> None:
        """Record the call and raise an injected failure, if any."""
        with self._fault_lock:
            self._calls.append(StoreCall(operation, key, expected_version))
            if self._persistent_failure is not None:
                raise self._persistent_failure
            queued = self._next_failures.get(operation)
            if queued:
                raise queued.pop(0)

    def _notify(self, key: str, stored: StoredValue | None) -> None:
        with self._fault_lock:
            self._pending.append((key, stored))
