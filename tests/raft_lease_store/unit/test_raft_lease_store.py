"""Unit tests for RaftLeaseStore over an injected node."""

from __future__ import annotations

import socket
import threading
import time

import pytest

from leasekeeper.adapters.ports import LeaseStorePort
from leasekeeper.domain.exceptions import TransientStoreError, VersionConflictError
from leasekeeper.domain.lease import StoredValue
from leasekeeper.domain.settings import RaftStoreSettings
from raft_lease_store import RaftLeaseStore
from raft_lease_store._raft_node import LeaseTableNode


@pytest.fixture
def store(raft_settings: RaftStoreSettings, fake_node) -> RaftLeaseStore:
    return RaftLeaseStore(raft_settings, node=fake_node)


@pytest.mark.unit
@pytest.mark.tier(1)
@pytest.mark.tra("Adapter.RaftLeaseStore")
class TestRaftLeaseStoreOperations:
    """Port semantics over the replicated table."""

    def test_implements_port(self, store: RaftLeaseStore) -> None:
        assert isinstance(store, LeaseStorePort)

    def test_read_absent(self, store: RaftLeaseStore) -> None:
        assert store.read("orders", timeout=1.0) is None

    def test_create_then_read(self, store: RaftLeaseStore) -> None:
        version = store.create_if_absent("orders", b"v1", timeout=1.0)
        assert store.read("orders", timeout=1.0) == StoredValue(b"v1", version)

    def test_create_existing_conflicts(self, store: RaftLeaseStore) -> None:
        store.create_if_absent("orders", b"v1", timeout=1.0)
        with pytest.raises(VersionConflictError) as exc_info:
            store.create_if_absent("orders", b"v2", timeout=1.0)
        assert exc_info.value.expected_version is None

    def test_update_keyed_on_version(self, store: RaftLeaseStore) -> None:
        v1 = store.create_if_absent("orders", b"v1", timeout=1.0)
        v2 = store.update_if_version("orders", b"v2", v1, timeout=1.0)
        assert v2 > v1
        with pytest.raises(VersionConflictError) as exc_info:
            store.update_if_version("orders", b"v3", v1, timeout=1.0)
        assert exc_info.value.expected_version == v1

    def test_commands_are_synchronous_with_timeout(self, store: RaftLeaseStore, fake_node) -> None:
        store.read("orders", timeout=0.7)
        store.create_if_absent("orders", b"v1", timeout=0.8)
        assert fake_node.calls == [
            ("read_committed", {"sync": True, "timeout": 0.7}),
            ("create_if_absent", {"sync": True, "timeout": 0.8}),
        ]

    def test_no_quorum_is_transient(self, store: RaftLeaseStore, fake_node) -> None:
        fake_node.unavailable = True
        with pytest.raises(TransientStoreError, match="timeout") as exc_info:
            store.update_if_version("orders", b"v1", 1, timeout=1.0)
        assert exc_info.value.key == "orders"
        assert exc_info.value.original_error is not None

    def test_close_destroys_node(self, store: RaftLeaseStore, fake_node) -> None:
        store.close()
        assert fake_node.destroyed is True


@pytest.mark.unit
@pytest.mark.tier(2)
@pytest.mark.tra("Adapter.RaftLeaseStore")
class TestRaftLeaseStoreWatch:
    """Polling watch over the locally applied table."""

    def test_watch_reports_changes(self, store: RaftLeaseStore) -> None:
        received: list[StoredValue | None] = []
        changed = threading.Event()

        def on_change(value: StoredValue | None) -> None:
            received.append(value)
            changed.set()

        handle = store.watch("orders", on_change)
        try:
            version = store.create_if_absent("orders", b"v1", timeout=1.0)
            assert changed.wait(2.0)
        finally:
            handle.cancel()
        assert received == [StoredValue(b"v1", version)]

    def test_watch_callback_errors_are_contained(self, store: RaftLeaseStore) -> None:
        calls: list[StoredValue | None] = []

        def broken(value: StoredValue | None) -> None:
            calls.append(value)
            raise RuntimeError("subscriber bug")

        handle = store.watch("orders", broken)
        try:
            v1 = store.create_if_absent("orders", b"v1", timeout=1.0)
            deadline = time.monotonic() + 2.0
            while not calls and time.monotonic() < deadline:
                time.sleep(0.01)
            store.update_if_version("orders", b"v2", v1, timeout=1.0)
            while len(calls) < 2 and time.monotonic() < deadline:
                time.sleep(0.01)
        finally:
            handle.cancel()
        assert len(calls) == 2

    def test_cancel_stops_polling(self, store: RaftLeaseStore) -> None:
        handle = store.watch("orders", lambda value: None)
        handle.cancel()
        handle.thread.join(1.0)
        assert not handle.thread.is_alive()
        assert handle.cancelled


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.mark.tier(3)
@pytest.mark.tra("Adapter.RaftLeaseStore")
def test_single_node_cluster_round_trip(raft_settings: RaftStoreSettings) -> None:
    """A real one-node PySyncObj cluster elects itself and applies CAS writes."""
    node = LeaseTableNode(
        f"127.0.0.1:{_free_port()}",
        [],
        election_timeout_ms=300,
        heartbeat_interval_ms=50,
    )
    store = RaftLeaseStore(raft_settings, node=node)
    try:
        deadline = time.monotonic() + 15.0
        while True:
            try:
                version = store.create_if_absent("orders", b"v1", timeout=1.0)
                break
            except TransientStoreError:
                if time.monotonic() > deadline:
                    raise
                time.sleep(0.1)

        assert store.read("orders", timeout=1.0) == StoredValue(b"v1", version)
        with pytest.raises(VersionConflictError):
            store.update_if_version("orders", b"v2", version + 1, timeout=1.0)
        assert store.update_if_version("orders", b"v2", version, timeout=1.0) > version
    finally:
        store.close()
