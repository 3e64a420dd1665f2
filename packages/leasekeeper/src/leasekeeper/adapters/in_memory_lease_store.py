"""In-process implementation of LeaseStorePort.

Linearizable by construction (one lock guards every key), so it is a valid
coordination medium for candidates that live in the same process, and the
reference backing for tests. Watch callbacks run on a dedicated delivery
thread, never on the writer's thread, the same way a networked store
delivers them.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from leasekeeper.domain.exceptions import VersionConflictError
from leasekeeper.domain.lease import StoredValue

if TYPE_CHECKING:
    from leasekeeper.adapters.ports import WatchCallback

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class InMemoryWatchHandle:
    """Watch registration returned by InMemoryLeaseStore.watch()."""

    key: str
    callback: WatchCallback
    _store: InMemoryLeaseStore = field(repr=False)
    cancelled: bool = False

    def cancel(self) -> None:
        """Stop delivering events to this watcher. Idempotent."""
        if not self.cancelled:
            self.cancelled = True
            self._store._remove_watch(self)


class InMemoryLeaseStore:
    """Thread-safe dict-backed lease store.

    Versions come from a single store-wide revision counter, so each write
    gets a version strictly greater than every earlier one. Timeouts are
    accepted for interface compatibility; operations never block.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, StoredValue] = {}
        self._revision = 0
        self._watches: list[InMemoryWatchHandle] = []
        self._events: queue.Queue[tuple[str, StoredValue | None]] = queue.Queue()
        self._delivery_lock = threading.Lock()
        self._delivery_thread: threading.Thread | None = None

    def read(self, key: str, timeout: float) -> StoredValue | None:
        """Return the current value of key, or None if absent."""
        with self._lock:
            return self._entries.get(key)

    def create_if_absent(self, key: str, value: bytes, timeout: float) -> int:
        """Create key if it does not exist.

        Raises:
            VersionConflictError: If the key already exists.
        """
        with self._lock:
            if key in self._entries:
                raise VersionConflictError(
                    f"Key {key!r} already exists", key=key, expected_version=None
                )
            stored = self._write(key, value)
            self._notify(key, stored)
        return stored.version

    def update_if_version(
        self, key: str, value: bytes, expected_version: int, timeout: float
    ) -> int:
        """Replace key if its version equals expected_version.

        Raises:
            VersionConflictError: On version mismatch or absent key.
        """
        with self._lock:
            current = self._entries.get(key)
            if current is None or current.version != expected_version:
                found = None if current is None else current.version
                raise VersionConflictError(
                    f"Version conflict on {key!r}: expected {expected_version}, "
                    f"found {found}",
                    key=key,
                    expected_version=expected_version,
                )
            stored = self._write(key, value)
            self._notify(key, stored)
        return stored.version

    def delete(self, key: str) -> bool:
        """Remove key unconditionally (operator action, never used by elections).

        Returns:
            True if the key existed.
        """
        with self._lock:
            existed = self._entries.pop(key, None) is not None
            if existed:
                self._notify(key, None)
        return existed

    def watch(self, key: str, callback: WatchCallback) -> InMemoryWatchHandle:
        """Register callback for changes of key."""
        handle = InMemoryWatchHandle(key=key, callback=callback, _store=self)
        with self._lock:
            self._watches.append(handle)
        return handle

    def _write(self, key: str, value: bytes) -> StoredValue:
        """Store value under key with the next revision. Caller holds the lock."""
        self._revision += 1
        stored = StoredValue(value=bytes(value), version=self._revision)
        self._entries[key] = stored
        return stored

    def _remove_watch(self, handle: InMemoryWatchHandle) -> None:
        with self._lock:
            if handle in self._watches:
                self._watches.remove(handle)

    def _watchers_for(self, key: str) -> list[InMemoryWatchHandle]:
        with self._lock:
            return [w for w in self._watches if w.key == key and not w.cancelled]

    def _notify(self, key: str, stored: StoredValue | None) -> None:
        """Queue a change event for the delivery thread.

        Caller holds the lock, so events queue in version order.
        """
        self._events.put((key, stored))
        self._ensure_delivery_thread()

    def _ensure_delivery_thread(self) -> None:
        with self._delivery_lock:
            if self._delivery_thread is not None:
                return
            self._delivery_thread = threading.Thread(
                target=self._deliver_forever,
                name="in-memory-lease-store-watch",
                daemon=True,
            )
            self._delivery_thread.start()

    def _deliver_forever(self) -> None:
        while True:
            key, stored = self._events.get()
            self._deliver(key, stored)

    def _deliver(self, key: str, stored: StoredValue | None) -> None:
        """Invoke every live watcher of key with stored."""
        for handle in self._watchers_for(key):
            try:
                handle.callback(stored)
            except Exception:
                logger.exception("Watch callback for %r raised", key)
