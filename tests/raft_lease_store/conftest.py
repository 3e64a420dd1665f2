"""pytest configuration and fixtures for raft_lease_store tests."""

from __future__ import annotations

import threading
from typing import Any

import pytest
from pysyncobj.syncobj import SyncObjException

from leasekeeper.domain.settings import RaftStoreSettings
from raft_lease_store._raft_node import LeaseTable


class FakeRaftNode:
    """In-process stand-in for LeaseTableNode.

    Applies commands to a LeaseTable immediately, as a single healthy node
    would. Set unavailable to make every replicated command fail the way
    PySyncObj does when there is no quorum.
    """

    def __init__(self) -> None:
        self.table = LeaseTable()
        self.unavailable = False
        self.destroyed = False
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self._lock = threading.Lock()

    def _replicated(self, name: str, kwargs: dict[str, Any]) -> None:
        self.calls.append((name, kwargs))
        if self.unavailable:
            raise SyncObjException("timeout")

    def create_if_absent(self, key: str, value: bytes, **kwargs: Any) -> int | None:
        self._replicated("create_if_absent", kwargs)
        with self._lock:
            return self.table.create_if_absent(key, value)

    def update_if_version(
        self, key: str, value: bytes, expected_version: int, **kwargs: Any
    ) -> int | None:
        self._replicated("update_if_version", kwargs)
        with self._lock:
            return self.table.update_if_version(key, value, expected_version)

    def read_committed(self, key: str, **kwargs: Any) -> tuple[bytes, int] | None:
        self._replicated("read_committed", kwargs)
        with self._lock:
            return self.table.get(key)

    def read_local(self, key: str) -> tuple[bytes, int] | None:
        with self._lock:
            return self.table.get(key)

    def destroy(self) -> None:
        self.destroyed = True


@pytest.fixture
def raft_settings() -> RaftStoreSettings:
    return RaftStoreSettings(
        self_addr="127.0.0.1:20202",
        peers=["127.0.0.1:20203", "127.0.0.1:20204"],
        poll_interval=0.01,
    )


@pytest.fixture
def fake_node() -> FakeRaftNode:
    return FakeRaftNode()
