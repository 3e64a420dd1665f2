"""Domain layer: Entities with zero external dependencies."""

from leasekeeper.domain.candidate import Belief, CandidateState
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
from leasekeeper.domain.retry import RetryPolicy
from leasekeeper.domain.settings import (
    ConsulStoreSettings,
    ElectionSettings,
    LeaseKeeperConfig,
    MetricsSettings,
    RaftStoreSettings,
    StoreSettings,
)

__all__ = [
    "Belief",
    "CandidateState",
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
    "RetryPolicy",
    "ConsulStoreSettings",
    "ElectionSettings",
    "LeaseKeeperConfig",
    "MetricsSettings",
    "RaftStoreSettings",
    "StoreSettings",
]
