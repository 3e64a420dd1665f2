"""Port interfaces for the leasekeeper core package.

Ports define the contracts that adapters must implement.
These are Protocol classes (structural subtyping) for flexible testing.
"""

from __future__ import annotations

import os
import socket
import time
from typing import TYPE_CHECKING, Callable, Protocol, runtime_checkable
from uuid import uuid4

if TYPE_CHECKING:
    from leasekeeper.domain.events import LeadershipEvent
    from leasekeeper.domain.lease import StoredValue

WatchCallback = Callable[["StoredValue | None"], None]


@runtime_checkable
class WatchHandle(Protocol):
    """Handle to an open watch stream.

    Contract:
        - cancel() closes the stream; no callbacks are started afterwards
        - cancel() is idempotent and never blocks on in-flight store calls
    """

    def cancel(self) -> None:
        """Stop delivering change events."""
        ...


@runtime_checkable
class LeaseStorePort(Protocol):
    """Port interface for the shared, strongly-consistent lease store.

    Implementations wrap a key/value service offering linearizable
    conditional writes and a change-notification stream. The election
    engine is polymorphic over this capability and never writes
    unconditionally once a key exists.

    Contract:
        - Every successful write returns a new version, strictly greater
          than any version previously returned for that key
        - create_if_absent() raises VersionConflictError if the key exists
        - update_if_version() raises VersionConflictError unless the stored
          version equals expected_version (including when the key is absent)
        - Calls that exceed timeout or cannot reach the store raise
          TransientStoreError
        - watch() callbacks receive the new StoredValue, or None on delete,
          in the store's own order, on a thread owned by the adapter
    """

    def read(self, key: str, timeout: float) -> StoredValue | None:
        """Read the value and version stored under key.

        Args:
            key: The election key.
            timeout: Upper bound for the call in seconds.

        Returns:
            The stored value and its version, or None if the key is absent.

        Raises:
            TransientStoreError: On timeout or connectivity loss.
        """
        ...

    def create_if_absent(self, key: str, value: bytes, timeout: float) -> int:
        """Create key with value only if it does not exist yet.

        Returns:
            The version of the newly created entry.

        Raises:
            VersionConflictError: If the key already exists.
            TransientStoreError: On timeout or connectivity loss.
        """
        ...

    def update_if_version(
        self, key: str, value: bytes, expected_version: int, timeout: float
    ) -> int:
        """Replace the value under key only if its version matches.

        Returns:
            The new version of the entry.

        Raises:
            VersionConflictError: If the stored version differs from
                expected_version or the key is absent.
            TransientStoreError: On timeout or connectivity loss.
        """
        ...

    def watch(self, key: str, callback: WatchCallback) -> WatchHandle:
        """Subscribe to changes of key.

        Args:
            key: The election key.
            callback: Invoked with the new StoredValue, or None when the
                      key is deleted.

        Returns:
            A WatchHandle that closes the stream when cancelled.
        """
        ...


@runtime_checkable
class EventEmitterPort(Protocol):
    """Port interface for emitting leadership events.

    Implementations handle event delivery to observers (callbacks, logging).
    Abstracts the delivery mechanism from the state machine that emits events.

    Contract:
        - emit(event) hands the event to all registered observers
        - emit() is fire-and-forget and must not block on observers
        - Implementations preserve emission order
    """

    def emit(self, event: LeadershipEvent) -> None:
        """Emit a leadership event to observers.

        Args:
            event: The LeadershipEvent to emit.
        """
        ...


@runtime_checkable
class CandidateIDResolverPort(Protocol):
    """Port interface for resolving this process's candidate identity.

    Contract:
        - resolve_candidate_id() returns a non-empty string
        - The returned string is stable for the life of the process
        - May raise KeyError if required configuration is missing
        - May raise ValueError if the resolved ID is blank
    """

    def resolve_candidate_id(self) -> str:
        """Resolve the candidate identity.

        Returns:
            A non-empty string uniquely identifying this candidate.
        """
        ...


class EnvironmentCandidateIDResolver:
    """Resolve candidate ID from the LEASEKEEPER_CANDIDATE_ID environment variable.

    This is the standard way to pin identity in containerized deployments,
    typically to the pod name.
    """

    ENV_VAR = "LEASEKEEPER_CANDIDATE_ID"

    def resolve_candidate_id(self) -> str:
        """Resolve candidate ID from LEASEKEEPER_CANDIDATE_ID.

        Returns:
            The value of LEASEKEEPER_CANDIDATE_ID after stripping whitespace.

        Raises:
            KeyError: If LEASEKEEPER_CANDIDATE_ID is not set.
            ValueError: If it is empty or whitespace-only after stripping.
        """
        candidate_id = os.environ[self.ENV_VAR].strip()

        if not candidate_id:
            raise ValueError("candidate ID cannot be empty or whitespace-only")

        return candidate_id


class HostnameCandidateIDResolver:
    """Derive a unique candidate ID from hostname, pid and a random suffix.

    Unique per process start, so a restarted process never mistakes the
    previous incarnation's lease for its own.
    """

    def resolve_candidate_id(self) -> str:
        """Return '<hostname>-<pid>-<random>'."""
        hostname = os.environ.get(
            "HOSTNAME", os.environ.get("POD_NAME", socket.gethostname())
        )
        return f"{hostname or 'unknown'}-{os.getpid()}-{uuid4().hex[:8]}"


@runtime_checkable
class TimeProvider(Protocol):
    """Port interface for time operations.

    Implementations provide the current time used for lease expiry. Lease
    records are compared across processes, so every candidate of an
    election domain must use comparable clocks.

    Contract:
        - get_time_seconds() returns current time in seconds as float
        - Returned value must be non-negative
        - Successive calls must return non-decreasing values
    """

    def get_time_seconds(self) -> float:
        """Return current time in seconds."""
        ...


class RealTimeProvider:
    """Default implementation: provides real wall-clock time.

    Uses time.time() so that expires_at written by one host can be
    compared by another. Successive values are clamped so they never go
    backwards within one process, even if the system clock is stepped.
    """

    def __init__(self) -> None:
        self._last = 0.0

    def get_time_seconds(self) -> float:
        """Return current Unix timestamp in seconds (never decreasing)."""
        now = time.time()
        if now < self._last:
            return self._last
        self._last = now
        return now
