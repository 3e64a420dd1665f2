"""Internal PySyncObj wrapper replicating the lease table."""

from __future__ import annotations

from pysyncobj import SyncObj, SyncObjConf, replicated


class LeaseTable:
    """Versioned key/value table with compare-and-swap writes.

    Plain data so PySyncObj can pickle it into snapshots. Every mutation
    runs on the Raft apply thread in log order, so no locking is needed.
    Versions come from one table-wide revision counter.
    """

    def __init__(self) -> None:
        self.entries: dict[str, tuple[bytes, int]] = {}
        self.revision = 0

    def get(self, key: str) -> tuple[bytes, int] | None:
        return self.entries.get(key)

    def create_if_absent(self, key: str, value: bytes) -> int | None:
        """Store value under key; None if the key exists."""
        if key in self.entries:
            return None
        return self._put(key, value)

    def update_if_version(
        self, key: str, value: bytes, expected_version: int
    ) -> int | None:
        """Replace key if its version matches; None on mismatch or absent key."""
        current = self.entries.get(key)
        if current is None or current[1] != expected_version:
            return None
        return self._put(key, value)

    def _put(self, key: str, value: bytes) -> int:
        self.revision += 1
        self.entries[key] = (value, self.revision)
        return self.revision


class LeaseTableNode(SyncObj):
    """SyncObj whose replicated state is a single LeaseTable.

    Conditional writes are replicated commands: they are decided on the
    Raft leader's log and applied on every node in the same order, so the
    compare-and-swap outcome is identical everywhere.
    """

    def __init__(
        self,
        self_address: str,
        partners: list[str],
        *,
        election_timeout_ms: int = 5000,
        heartbeat_interval_ms: int = 1000,
    ) -> None:
        """Initialize the node and join the cluster.

        Args:
            self_address: This node's address in "host:port" format.
            partners: List of partner node addresses in "host:port" format.
            election_timeout_ms: Election timeout in milliseconds.
            heartbeat_interval_ms: Heartbeat interval in milliseconds.
        """
        self._table = LeaseTable()

        conf = SyncObjConf(
            appendEntriesPeriod=heartbeat_interval_ms / 1000.0,
            raftMinTimeout=election_timeout_ms / 1000.0,
            raftMaxTimeout=(election_timeout_ms * 1.5) / 1000.0,
            autoTick=True,
            dynamicMembershipChange=False,  # Static membership for simplicity
        )

        super().__init__(self_address, partners, conf=conf)

    @replicated
    def create_if_absent(self, key: str, value: bytes) -> int | None:
        return self._table.create_if_absent(key, value)

    @replicated
    def update_if_version(
        self, key: str, value: bytes, expected_version: int
    ) -> int | None:
        return self._table.update_if_version(key, value, expected_version)

    @replicated
    def read_committed(self, key: str) -> tuple[bytes, int] | None:
        """Read key after every earlier log entry is applied (linearizable)."""
        return self._table.get(key)

    def read_local(self, key: str) -> tuple[bytes, int] | None:
        """Read this node's applied state without a log round trip (may be stale)."""
        return self._table.get(key)
