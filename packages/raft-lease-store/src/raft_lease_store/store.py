"""LeaseStorePort implementation replicated with PySyncObj.

RaftLeaseStore lets a cluster elect a workload leader without an external
key/value service: each candidate process also runs a Raft node, and the
lease record lives in the replicated LeaseTable.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any

from pysyncobj.syncobj import SyncObjException

from leasekeeper.domain.exceptions import TransientStoreError, VersionConflictError
from leasekeeper.domain.lease import StoredValue

from ._raft_node import LeaseTableNode

if TYPE_CHECKING:
    from leasekeeper.adapters.ports import WatchCallback
    from leasekeeper.domain.settings import RaftStoreSettings

logger = logging.getLogger(__name__)


class RaftWatchHandle:
    """Handle for one polling watch loop."""

    def __init__(self, key: str) -> None:
        self.key = key
        self._stopped = threading.Event()
        self.thread: threading.Thread | None = None

    @property
    def cancelled(self) -> bool:
        return self._stopped.is_set()

    def cancel(self) -> None:
        self._stopped.set()

    def wait(self, seconds: float) -> bool:
        return self._stopped.wait(seconds)


class RaftLeaseStore:
    """Raft-replicated lease store.

    Reads and conditional writes are both replicated commands, so they are
    linearizable. They need a Raft leader: while the cluster has no quorum
    every call fails with TransientStoreError. Watch events come from
    polling this node's applied state and are only advisory.

    Attributes:
        settings: The Raft cluster settings this store was built from.
    """

    def __init__(self, settings: RaftStoreSettings, node: Any = None) -> None:
        """Initialize the store and join the Raft cluster.

        Args:
            settings: Raft cluster settings.
            node: Optional pre-built node for dependency injection (testing).
                 Must offer create_if_absent, update_if_version,
                 read_committed, read_local and destroy.
        """
        self.settings = settings
        if node is None:
            node = LeaseTableNode(
                settings.self_addr,
                list(settings.peers),
                election_timeout_ms=int(settings.election_timeout * 1000),
                heartbeat_interval_ms=int(settings.heartbeat_interval * 1000),
            )
        self._node = node

    def close(self) -> None:
        """Leave the cluster and stop the Raft thread."""
        self._node.destroy()

    def read(self, key: str, timeout: float) -> StoredValue | None:
        entry = self._call("read_committed", key, timeout, key)
        return None if entry is None else StoredValue(value=entry[0], version=entry[1])

    def create_if_absent(self, key: str, value: bytes, timeout: float) -> int:
        version = self._call("create_if_absent", key, timeout, key, value)
        if version is None:
            raise VersionConflictError(
                f"Key {key!r} already exists", key=key, expected_version=None
            )
        return int(version)

    def update_if_version(
        self, key: str, value: bytes, expected_version: int, timeout: float
    ) -> int:
        version = self._call(
            "update_if_version", key, timeout, key, value, expected_version
        )
        if version is None:
            raise VersionConflictError(
                f"Version conflict on {key!r}: expected {expected_version}",
                key=key,
                expected_version=expected_version,
            )
        return int(version)

    def watch(self, key: str, callback: WatchCallback) -> RaftWatchHandle:
        """Poll the locally applied state of key and report changes."""
        handle = RaftWatchHandle(key)
        handle.thread = threading.Thread(
            target=self._poll_loop,
            args=(handle, callback),
            name=f"raft-lease-watch-{key}",
            daemon=True,
        )
        handle.thread.start()
        return handle

    def _call(self, method: str, key: str, timeout: float, *args: Any) -> Any:
        """Run a replicated command synchronously, translating Raft failures."""
        try:
            return getattr(self._node, method)(*args, sync=True, timeout=timeout)
        except SyncObjException as e:
            raise TransientStoreError(
                f"Raft command {method} on {key!r} failed: {e.errorCode}",
                key=key,
                original_error=e,
            ) from e

    def _poll_loop(self, handle: RaftWatchHandle, callback: WatchCallback) -> None:
        last = self._node.read_local(handle.key)
        while not handle.wait(self.settings.poll_interval):
            current = self._node.read_local(handle.key)
            if current == last:
                continue
            last = current
            value = None if current is None else StoredValue(current[0], current[1])
            try:
                callback(value)
            except Exception:
                logger.exception("Watch callback for %r raised", handle.key)
