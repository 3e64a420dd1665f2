"""Lease record domain value objects.

The lease record is the single piece of shared state in an election domain.
It is stored as JSON under one well-known key and is only ever mutated with
conditional writes keyed on the store-supplied version.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, replace

from leasekeeper.domain.exceptions import LeaseConfigError, MalformedRecordError

_REQUIRED_FIELDS = ("holder_id", "expires_at")


@dataclass(frozen=True)
class StoredValue:
    """A value as held by the lease store, together with its version.

    Attributes:
        value: Raw bytes stored under the key.
        version: Store-supplied fencing token. Increases on every write to
                 the key and must be passed back for conditional updates.
    """

    value: bytes
    version: int


@dataclass(frozen=True)
class LeaseRecord:
    """Time-bounded claim of leadership for one election domain.

    Value object describing who holds the lease and until when. Only
    holder_id and expires_at drive election decisions; the remaining fields
    are bookkeeping for operators and status endpoints.

    Attributes:
        holder_id: Identity of the candidate holding the lease.
                   Must be non-empty and non-whitespace.
        expires_at: Absolute timestamp (seconds) after which the lease is stale.
        acquired_at: When the current holder took the lease.
        renewed_at: When the current holder last renewed the lease.
        lease_duration: Lease duration configured by the holder, in seconds.
        leader_transitions: Number of times the lease changed hands.

    Invariants:
        - A record with expires_at <= now is unheld regardless of holder_id.
        - leader_transitions is never negative.
    """

    holder_id: str
    expires_at: float
    acquired_at: float | None = None
    renewed_at: float | None = None
    lease_duration: float | None = None
    leader_transitions: int = 0

    def __post_init__(self) -> None:
        """Validate lease record."""
        self._validate_holder_id()
        self._validate_leader_transitions()

    def _validate_holder_id(self) -> None:
        """Validate holder_id is non-empty and non-whitespace."""
        if not self.holder_id or not self.holder_id.strip():
            raise LeaseConfigError("holder_id cannot be empty or whitespace-only")

    def _validate_leader_transitions(self) -> None:
        """Validate leader_transitions is non-negative."""
        if self.leader_transitions < 0:
            raise LeaseConfigError("leader_transitions cannot be negative")

    @classmethod
    def acquire(
        cls,
        holder_id: str,
        now: float,
        lease_duration: float,
        previous: LeaseRecord | None = None,
    ) -> LeaseRecord:
        """Build the record a candidate writes when taking the lease.

        Args:
            holder_id: Identity of the acquiring candidate.
            now: Current time in seconds.
            lease_duration: How long the lease stays valid, in seconds.
            previous: The record being replaced, if any. Used to carry the
                      transition count forward.

        Returns:
            A new LeaseRecord held by holder_id until now + lease_duration.
        """
        transitions = 0
        if previous is not None:
            transitions = previous.leader_transitions
            if previous.holder_id != holder_id:
                transitions += 1
        return cls(
            holder_id=holder_id,
            expires_at=now + lease_duration,
            acquired_at=now,
            renewed_at=now,
            lease_duration=lease_duration,
            leader_transitions=transitions,
        )

    def renew(self, now: float, lease_duration: float) -> LeaseRecord:
        """Return a copy extended to now + lease_duration."""
        return replace(
            self,
            expires_at=now + lease_duration,
            renewed_at=now,
            lease_duration=lease_duration,
        )

    def release(self, now: float) -> LeaseRecord:
        """Return a copy that expires immediately so a successor can take over."""
        return replace(self, expires_at=now, renewed_at=now)

    def is_expired(self, now: float) -> bool:
        """Check whether the lease is stale at the given time."""
        return self.expires_at <= now

    def is_held_by(self, candidate_id: str, now: float) -> bool:
        """Check whether candidate_id holds a currently valid lease."""
        return self.holder_id == candidate_id and not self.is_expired(now)

    def remaining(self, now: float) -> float:
        """Seconds left before expiry (never negative)."""
        return max(0.0, self.expires_at - now)

    def to_bytes(self) -> bytes:
        """Encode the record as UTF-8 JSON for storage."""
        payload = {
            "holder_id": self.holder_id,
            "expires_at": self.expires_at,
            "acquired_at": self.acquired_at,
            "renewed_at": self.renewed_at,
            "lease_duration": self.lease_duration,
            "leader_transitions": self.leader_transitions,
        }
        return json.dumps(payload, sort_keys=True).encode("utf-8")

    @classmethod
    def from_bytes(cls, raw: bytes, key: str | None = None) -> LeaseRecord:
        """Decode a stored record.

        Unknown fields are ignored so that newer candidates can add fields
        without breaking older ones.

        Args:
            raw: Bytes read from the store.
            key: Store key, used only for error reporting.

        Returns:
            The decoded LeaseRecord.

        Raises:
            MalformedRecordError: If the bytes are not a JSON object with a
                                  valid holder_id and numeric expires_at.
        """
        try:
            payload = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            raise MalformedRecordError(
                f"Lease record is not valid JSON: {e}", key=key, raw=raw
            ) from e

        if not isinstance(payload, dict):
            raise MalformedRecordError(
                "Lease record must be a JSON object", key=key, raw=raw
            )

        missing = [name for name in _REQUIRED_FIELDS if name not in payload]
        if missing:
            raise MalformedRecordError(
                f"Lease record missing required fields: {', '.join(missing)}",
                key=key,
                raw=raw,
            )

        try:
            return cls(
                holder_id=str(payload["holder_id"]),
                expires_at=_as_float(payload["expires_at"]),
                acquired_at=_as_optional_float(payload.get("acquired_at")),
                renewed_at=_as_optional_float(payload.get("renewed_at")),
                lease_duration=_as_optional_float(payload.get("lease_duration")),
                leader_transitions=int(payload.get("leader_transitions") or 0),
            )
        except (TypeError, ValueError, OverflowError, LeaseConfigError) as e:
            raise MalformedRecordError(
                f"Lease record has invalid field values: {e}", key=key, raw=raw
            ) from e


def _as_float(value: object) -> float:
    # bool is an int subclass; a boolean timestamp is a schema mismatch
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"expected a number, got {type(value).__name__}")
    # JSON admits NaN and Infinity; neither is a usable timestamp
    if not math.isfinite(value):
        raise ValueError(f"expected a finite number, got {value}")
    return float(value)


def _as_optional_float(value: object) -> float | None:
    if value is None:
        return None
    return _as_float(value)
