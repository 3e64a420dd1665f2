"""Candidate local state.

Per-process view of the election. Never shared with other processes and
never persisted: a restarted candidate re-derives its belief from the store.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from leasekeeper.domain.lease import LeaseRecord


class Belief(Enum):
    """A candidate's opinion of its own role.

    Attributes:
        FOLLOWER: Not holding the lease.
        LEADER: Believes it holds a currently valid lease.
    """

    FOLLOWER = "follower"
    LEADER = "leader"


@dataclass
class CandidateState:
    """Mutable bookkeeping owned by one ElectionStateMachine.

    Attributes:
        candidate_id: This process's identity, stable for its lifetime.
        belief: Current role opinion. Starts as FOLLOWER.
        last_known_version: Last fencing token observed or written. Used to
                            build the next conditional write.
        cached_record: Last record observed in the store (None when absent
                       or undecodable).
        held_record: Last record this candidate wrote while leader.
        last_renewal_at: Time of the last successful acquisition or renewal.
        next_deadline: Time the next tick is due.
    """

    candidate_id: str
    belief: Belief = Belief.FOLLOWER
    last_known_version: int | None = None
    cached_record: LeaseRecord | None = None
    held_record: LeaseRecord | None = None
    last_renewal_at: float | None = None
    next_deadline: float | None = None

    def copy(self) -> CandidateState:
        """Return a detached copy safe to hand to other threads."""
        return replace(self)
