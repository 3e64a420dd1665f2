"""Election and store settings domain value objects."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from leasekeeper.domain.exceptions import LeaseConfigError

# Renewals that can fail before the lease lapses; below this the
# configuration is accepted but flagged as fragile.
RECOMMENDED_RENEWAL_RATIO = 3.0

StoreBackend = Literal["consul", "raft", "memory"]
_STORE_BACKENDS = ("consul", "raft", "memory")


def _require_text(name: str, value: str | None) -> None:
    """Raise LeaseConfigError unless value is a non-blank string."""
    if value is not None and not isinstance(value, str):
        raise LeaseConfigError(f"{name} must be a string, got: {type(value).__name__}")

    if not value:
        raise LeaseConfigError(f"{name} cannot be empty")

    if not value.strip():
        raise LeaseConfigError(f"{name} cannot be whitespace-only")


def _require_positive(name: str, value: float) -> None:
    """Raise LeaseConfigError unless value is strictly positive."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise LeaseConfigError(f"{name} must be a number, got: {type(value).__name__}")
    if value <= 0:
        raise LeaseConfigError(f"{name} must be positive, got: {value}")


@dataclass(frozen=True)
class ElectionSettings:
    """Timing and identity of one candidate in one election domain.

    Value object validated at construction. An invalid configuration is
    fatal: the ordering renew_interval < lease_duration is what lets a
    leader renew before its lease lapses, so it is never silently tolerated.

    Attributes:
        election_key: Store key of the coordination record.
                      Must be non-empty and non-whitespace.
        candidate_id: This process's identity. Must be unique among the
                      candidates of the election domain.
        lease_duration: Seconds a lease stays valid after each acquisition
                        or renewal. Must be positive.
        renew_interval: Seconds between ticks. Must be positive and
                        strictly smaller than lease_duration.
        store_timeout: Upper bound in seconds for a single store call.
                       Must be positive and smaller than lease_duration.
        shutdown_timeout: Upper bound in seconds for each step of stopping
                          a candidate. Must be positive.

    Invariants:
        - renew_interval < lease_duration
        - store_timeout < lease_duration
        - lease_duration >= 3 * renew_interval is recommended (see
          is_renewal_ratio_safe)
    """

    election_key: str
    candidate_id: str
    lease_duration: float = 15.0
    renew_interval: float = 5.0
    store_timeout: float = 2.0
    shutdown_timeout: float = 5.0

    def __post_init__(self) -> None:
        """Validate election settings."""
        self._validate_identity()
        self._validate_durations()
        self._validate_interval_relationship()

    def _validate_identity(self) -> None:
        """Validate election_key and candidate_id are non-blank."""
        _require_text("election_key", self.election_key)
        _require_text("candidate_id", self.candidate_id)

    def _validate_durations(self) -> None:
        """Validate every duration is positive."""
        _require_positive("lease_duration", self.lease_duration)
        _require_positive("renew_interval", self.renew_interval)
        _require_positive("store_timeout", self.store_timeout)
        _require_positive("shutdown_timeout", self.shutdown_timeout)

    def _validate_interval_relationship(self) -> None:
        """Validate renew_interval and store_timeout against lease_duration."""
        if self.renew_interval >= self.lease_duration:
            raise LeaseConfigError(
                "renew_interval must be less than lease_duration, "
                f"got: {self.renew_interval}s vs {self.lease_duration}s"
            )

        if self.store_timeout >= self.lease_duration:
            raise LeaseConfigError(
                "store_timeout must be less than lease_duration, "
                f"got: {self.store_timeout}s vs {self.lease_duration}s"
            )

    @property
    def renewal_ratio(self) -> float:
        """How many renewal intervals fit in one lease duration."""
        return self.lease_duration / self.renew_interval

    def is_renewal_ratio_safe(self) -> bool:
        """Check that at least two renewals can fail before the lease lapses."""
        return self.renewal_ratio >= RECOMMENDED_RENEWAL_RATIO


@dataclass(frozen=True)
class ConsulStoreSettings:
    """Connection settings for the Consul KV lease store.

    Attributes:
        url: Base URL of the Consul HTTP API (e.g., 'http://127.0.0.1:8500').
        token: Optional ACL token sent as X-Consul-Token.
        key_prefix: Prefix prepended to every election key.
        datacenter: Optional datacenter to address.
        watch_wait: Seconds a blocking watch query waits for a change.
    """

    url: str = "http://127.0.0.1:8500"
    token: str | None = None
    key_prefix: str = "leasekeeper/"
    datacenter: str | None = None
    watch_wait: float = 30.0

    def __post_init__(self) -> None:
        """Validate Consul settings."""
        _require_text("url", self.url)
        if not self.url.startswith(("http://", "https://")):
            raise LeaseConfigError(
                f"url must start with http:// or https://, got: {self.url}"
            )
        _require_positive("watch_wait", self.watch_wait)


@dataclass(frozen=True)
class RaftStoreSettings:
    """Cluster settings for the PySyncObj-replicated lease store.

    Attributes:
        self_addr: This node's address in 'host:port' format.
        peers: Addresses of the other nodes in 'host:port' format.
        election_timeout: Raft election timeout in seconds.
        heartbeat_interval: Raft heartbeat interval in seconds.
                            Must be less than election_timeout.
        poll_interval: Seconds between local checks for watch events.
    """

    self_addr: str
    peers: tuple[str, ...] | list[str]
    election_timeout: float = 5.0
    heartbeat_interval: float = 1.0
    poll_interval: float = 0.5

    def __post_init__(self) -> None:
        """Validate Raft store settings."""
        self._validate_addresses()
        self._normalize_peers()
        self._validate_timing()

    def _validate_addresses(self) -> None:
        """Validate self_addr and peers are 'host:port' addresses."""
        _require_text("self_addr", self.self_addr)
        if ":" not in self.self_addr:
            raise LeaseConfigError(
                f"self_addr must be in 'host:port' format, got: {self.self_addr!r}"
            )

        if not self.peers:
            raise LeaseConfigError("peers list cannot be empty")

        for peer in self.peers:
            if not isinstance(peer, str) or ":" not in peer:
                raise LeaseConfigError(
                    f"Invalid peer address: {peer!r}. Expected format: 'host:port'"
                )

        if self.self_addr in self.peers:
            raise LeaseConfigError("peers must not include self_addr")

        if len(set(self.peers)) != len(self.peers):
            raise LeaseConfigError("peers contains duplicate addresses")

    def _normalize_peers(self) -> None:
        """Convert peers to tuple for immutability and hashing."""
        if isinstance(self.peers, list):
            object.__setattr__(self, "peers", tuple(self.peers))

    def _validate_timing(self) -> None:
        """Validate heartbeat_interval < election_timeout (Raft invariant)."""
        _require_positive("election_timeout", self.election_timeout)
        _require_positive("heartbeat_interval", self.heartbeat_interval)
        _require_positive("poll_interval", self.poll_interval)
        if self.heartbeat_interval >= self.election_timeout:
            raise LeaseConfigError(
                "heartbeat_interval must be less than election_timeout, "
                f"got: {self.heartbeat_interval}s vs {self.election_timeout}s"
            )


@dataclass(frozen=True)
class StoreSettings:
    """Which lease store backend to use and how to reach it.

    Attributes:
        backend: One of 'consul', 'raft' or 'memory'.
        consul: Consul settings. Defaults are used when backend='consul'
                and none are given.
        raft: Raft settings. Required when backend='raft'.
    """

    backend: StoreBackend = "memory"
    consul: ConsulStoreSettings | None = None
    raft: RaftStoreSettings | None = None

    def __post_init__(self) -> None:
        """Validate backend selection."""
        if self.backend not in _STORE_BACKENDS:
            raise LeaseConfigError(
                f"store backend must be one of {', '.join(_STORE_BACKENDS)}, "
                f"got: {self.backend}"
            )

        if self.backend == "raft" and self.raft is None:
            raise LeaseConfigError("raft settings are required when backend='raft'")

        if self.backend == "consul" and self.consul is None:
            object.__setattr__(self, "consul", ConsulStoreSettings())


@dataclass(frozen=True)
class MetricsSettings:
    """Metrics export configuration.

    Attributes:
        enabled: Whether to export Prometheus metrics.
        prefix: Metric name prefix.
    """

    enabled: bool = False
    prefix: str = "leasekeeper"

    def __post_init__(self) -> None:
        """Validate metrics settings."""
        _require_text("prefix", self.prefix)


@dataclass(frozen=True)
class LeaseKeeperConfig:
    """Complete configuration of one candidate process.

    Attributes:
        election: Election identity and timing.
        store: Lease store backend selection.
        metrics: Metrics export configuration.
    """

    election: ElectionSettings
    store: StoreSettings = field(default_factory=StoreSettings)
    metrics: MetricsSettings = field(default_factory=MetricsSettings)
