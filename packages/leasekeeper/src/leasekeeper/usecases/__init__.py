"""Use cases: election orchestration on top of the ports."""

from leasekeeper.usecases.config_parser import ConfigParser
from leasekeeper.usecases.election_state_machine import ElectionStateMachine
from leasekeeper.usecases.lease_candidate import LeaseCandidate
from leasekeeper.usecases.renewal_scheduler import RenewalScheduler
from leasekeeper.usecases.transition_notifier import (
    LeadershipFlag,
    SubscriptionHandle,
    TransitionNotifier,
)

__all__ = [
    "ConfigParser",
    "ElectionStateMachine",
    "LeaseCandidate",
    "LeadershipFlag",
    "RenewalScheduler",
    "SubscriptionHandle",
    "TransitionNotifier",
]
