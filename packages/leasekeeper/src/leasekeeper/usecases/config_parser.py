"""Config parser use case for leasekeeper."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from leasekeeper.domain.exceptions import LeaseConfigError
from leasekeeper.domain.settings import (
    ConsulStoreSettings,
    ElectionSettings,
    LeaseKeeperConfig,
    MetricsSettings,
    RaftStoreSettings,
    StoreSettings,
)

if TYPE_CHECKING:
    from leasekeeper.adapters.ports import CandidateIDResolverPort

# YAML key -> ElectionSettings field
_ELECTION_FIELDS = {
    "key": "election_key",
    "candidate_id": "candidate_id",
    "lease_duration": "lease_duration",
    "renew_interval": "renew_interval",
    "store_timeout": "store_timeout",
    "shutdown_timeout": "shutdown_timeout",
}


class ConfigParser:
    """Parses leasekeeper YAML configuration to LeaseKeeperConfig.

    When election.candidate_id is absent, the identity comes from the
    resolver given at construction, if any.
    """

    def __init__(self, resolver: CandidateIDResolverPort | None = None) -> None:
        self._resolver = resolver

    def load(self, path: str | Path) -> LeaseKeeperConfig:
        """Read and parse a YAML file.

        Raises:
            LeaseConfigError: If the file cannot be read or is invalid.
        """
        try:
            text = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise LeaseConfigError(f"Cannot read config file {path}: {e}") from e
        return self.parse(text)

    def parse(self, yaml_str: str) -> LeaseKeeperConfig:
        """Parse leasekeeper YAML config to settings.

        Args:
            yaml_str: YAML string with election, store and metrics sections.

        Returns:
            LeaseKeeperConfig domain object

        Raises:
            LeaseConfigError: If YAML is invalid, required fields are missing
                or a value fails validation.
        """
        try:
            config = yaml.safe_load(yaml_str)
        except yaml.YAMLError as e:
            raise LeaseConfigError(f"Invalid YAML: {e}") from e

        if not isinstance(config, dict):
            raise LeaseConfigError("Config must be a dictionary")

        election = self._parse_election(_section(config, "election", required=True))
        store = self._parse_store(_section(config, "store"))
        metrics = self._parse_metrics(_section(config, "metrics"))
        return LeaseKeeperConfig(election=election, store=store, metrics=metrics)

    def _parse_election(self, section: dict[str, Any]) -> ElectionSettings:
        unknown = set(section) - set(_ELECTION_FIELDS)
        if unknown:
            raise LeaseConfigError(
                f"Unknown election settings: {', '.join(sorted(unknown))}"
            )
        if "key" not in section:
            raise LeaseConfigError("Missing required field in config: election.key")

        kwargs = {_ELECTION_FIELDS[name]: value for name, value in section.items()}
        if kwargs.get("candidate_id") is None:
            kwargs["candidate_id"] = self._resolve_candidate_id()

        try:
            return ElectionSettings(**kwargs)
        except TypeError as e:
            raise LeaseConfigError(f"Invalid election settings: {e}") from e

    def _resolve_candidate_id(self) -> str:
        if self._resolver is None:
            raise LeaseConfigError(
                "election.candidate_id is required when no resolver is configured"
            )
        try:
            return self._resolver.resolve_candidate_id()
        except (KeyError, ValueError) as e:
            raise LeaseConfigError(f"Cannot resolve candidate ID: {e}") from e

    def _parse_store(self, section: dict[str, Any]) -> StoreSettings:
        backend = section.get("type", "memory")
        consul = None
        raft = None
        try:
            if "consul" in section:
                consul = ConsulStoreSettings(**_section(section, "consul"))
            if "raft" in section:
                raft = RaftStoreSettings(**_section(section, "raft"))
        except TypeError as e:
            raise LeaseConfigError(f"Invalid store settings: {e}") from e
        return StoreSettings(backend=backend, consul=consul, raft=raft)

    def _parse_metrics(self, section: dict[str, Any]) -> MetricsSettings:
        try:
            return MetricsSettings(**section)
        except TypeError as e:
            raise LeaseConfigError(f"Invalid metrics settings: {e}") from e


def _section(
    config: dict[str, Any], name: str, required: bool = False
) -> dict[str, Any]:
    """Return config[name] as a dict, {} when optional and absent."""
    value = config.get(name)
    if value is None:
        if required:
            raise LeaseConfigError(f"Missing required section in config: {name}")
        return {}
    if not isinstance(value, dict):
        raise LeaseConfigError(f"Config section {name} must be a dictionary")
    return value
