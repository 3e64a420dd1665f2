"""Settings reader for FastAPI leasekeeper adapter."""

from typing import Any

from leasekeeper.adapters.ports import (
    EnvironmentCandidateIDResolver,
    HostnameCandidateIDResolver,
)
from leasekeeper.domain.exceptions import LeaseConfigError
from leasekeeper.domain.settings import (
    ConsulStoreSettings,
    ElectionSettings,
    LeaseKeeperConfig,
    MetricsSettings,
    RaftStoreSettings,
    StoreSettings,
)

# Required fields that must be present in Pydantic settings
_REQUIRED_FIELDS = ("election_key",)

# Optional election timing fields, passed through when present
_ELECTION_FIELDS = (
    "lease_duration",
    "renew_interval",
    "store_timeout",
    "shutdown_timeout",
)

# Flat consul_* keys -> ConsulStoreSettings fields
_CONSUL_FIELDS = {
    "consul_url": "url",
    "consul_token": "token",
    "consul_key_prefix": "key_prefix",
    "consul_datacenter": "datacenter",
    "consul_watch_wait": "watch_wait",
}


def _resolve_candidate_id(pydantic_settings: dict[str, Any]) -> str:
    """Use candidate_id if set, else the environment, else the hostname."""
    candidate_id = pydantic_settings.get("candidate_id")
    if candidate_id is not None:
        return str(candidate_id)
    try:
        return EnvironmentCandidateIDResolver().resolve_candidate_id()
    except KeyError:
        return HostnameCandidateIDResolver().resolve_candidate_id()
    except ValueError as e:
        raise LeaseConfigError(str(e)) from e


def get_leasekeeper_config(pydantic_settings: dict[str, Any]) -> LeaseKeeperConfig:
    """Convert Pydantic settings dict to LeaseKeeperConfig domain object.

    Keys are flat snake_case: election_key, candidate_id, the election
    timings, store_backend, consul_* and raft_* store settings, and
    metrics_enabled / metrics_prefix.

    Args:
        pydantic_settings: Pydantic settings dict with snake_case keys

    Returns:
        LeaseKeeperConfig domain object

    Raises:
        LeaseConfigError: If required settings are missing or invalid
    """
    missing = [key for key in _REQUIRED_FIELDS if key not in pydantic_settings]
    if missing:
        raise LeaseConfigError(
            f"Missing required leasekeeper settings: {', '.join(sorted(missing))}"
        )

    election_kwargs: dict[str, Any] = {
        "election_key": pydantic_settings["election_key"],
        "candidate_id": _resolve_candidate_id(pydantic_settings),
    }
    for field in _ELECTION_FIELDS:
        if pydantic_settings.get(field) is not None:
            election_kwargs[field] = pydantic_settings[field]

    backend = pydantic_settings.get("store_backend", "memory")

    consul = None
    consul_kwargs = {
        target: pydantic_settings[source]
        for source, target in _CONSUL_FIELDS.items()
        if pydantic_settings.get(source) is not None
    }
    if consul_kwargs:
        consul = ConsulStoreSettings(**consul_kwargs)

    raft = None
    if pydantic_settings.get("raft_self_addr") is not None:
        raft = RaftStoreSettings(
            self_addr=pydantic_settings["raft_self_addr"],
            peers=pydantic_settings.get("raft_peers") or [],
        )

    metrics_kwargs: dict[str, Any] = {
        "enabled": bool(pydantic_settings.get("metrics_enabled", False))
    }
    if pydantic_settings.get("metrics_prefix") is not None:
        metrics_kwargs["prefix"] = pydantic_settings["metrics_prefix"]

    # Domain objects validate in __post_init__
    return LeaseKeeperConfig(
        election=ElectionSettings(**election_kwargs),
        store=StoreSettings(backend=backend, consul=consul, raft=raft),
        metrics=MetricsSettings(**metrics_kwargs),
    )
