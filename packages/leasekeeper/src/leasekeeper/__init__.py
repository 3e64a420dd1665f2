"""leasekeeper: Lease-based leader election over a strongly-consistent store."""

__version__ = "0.1.0"

from leasekeeper.domain.candidate import Belief
from leasekeeper.domain.events import LeadershipEvent, LeadershipEventType
from leasekeeper.domain.exceptions import (
    LeaseConfigError,
    LeaseKeeperError,
    LeaseStoreError,
    MalformedRecordError,
    TransientStoreError,
    VersionConflictError,
)
from leasekeeper.domain.lease import LeaseRecord, StoredValue
from leasekeeper.domain.settings import ElectionSettings, LeaseKeeperConfig
from leasekeeper.factories import (
    RaftLeaseStoreNotInstalledError,
    create_lease_candidate,
    create_lease_store,
    create_metrics,
)
from leasekeeper.usecases.config_parser import ConfigParser
from leasekeeper.usecases.election_state_machine import ElectionStateMachine
from leasekeeper.usecases.lease_candidate import LeaseCandidate
from leasekeeper.usecases.transition_notifier import LeadershipFlag

__all__ = [
    "Belief",
    "LeadershipEvent",
    "LeadershipEventType",
    "LeaseConfigError",
    "LeaseKeeperError",
    "LeaseStoreError",
    "MalformedRecordError",
    "TransientStoreError",
    "VersionConflictError",
    "LeaseRecord",
    "StoredValue",
    "ElectionSettings",
    "LeaseKeeperConfig",
    "RaftLeaseStoreNotInstalledError",
    "create_lease_candidate",
    "create_lease_store",
    "create_metrics",
    "ConfigParser",
    "ElectionStateMachine",
    "LeaseCandidate",
    "LeadershipFlag",
]
