"""Domain events for leadership transitions.

Events are immutable value objects representing a change of this
candidate's belief. They follow the frozen dataclass pattern used
throughout the domain layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class LeadershipEventType(Enum):
    """Types of leadership events that can be emitted.

    Attributes:
        BECAME_LEADER: Candidate transitioned from FOLLOWER to LEADER.
        LOST_LEADERSHIP: Candidate transitioned from LEADER to FOLLOWER.
    """

    BECAME_LEADER = "became_leader"
    LOST_LEADERSHIP = "lost_leadership"


@dataclass(frozen=True)
class LeadershipEvent:
    """Immutable event representing a leadership transition.

    Value object emitted by ElectionStateMachine when its belief changes.

    Attributes:
        event_type: The type of transition that occurred.
        election_key: Key of the election domain.
        candidate_id: Identity of the candidate whose belief changed.
        occurred_at: Time of the transition, in seconds.
        version: Store version of the record involved, if known.
        reason: Optional human-readable reason for the event.
    """

    event_type: LeadershipEventType
    election_key: str
    candidate_id: str
    occurred_at: float
    version: int | None = None
    reason: str | None = None

    @property
    def is_leader(self) -> bool:
        """True for BECAME_LEADER events."""
        return self.event_type is LeadershipEventType.BECAME_LEADER
