"""Reconnect backoff for long-lived store streams."""

from __future__ import annotations

import random
from dataclasses import dataclass

from leasekeeper.domain.exceptions import LeaseConfigError, TransientStoreError


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff policy for watch loops that reconnect for the candidate's lifetime.

    Election ticks never retry inside a tick; a failed attempt waits for the
    next tick. Only the watch streams use this policy.

    Attributes:
        backoff_base: Delay in seconds before the first reconnect. Doubles on
                      every consecutive failure. Must be positive.
        max_backoff: Ceiling for the delay. Must be at least backoff_base.
        max_retries: Consecutive failures tolerated before the stream gives
                     up, or None to keep reconnecting forever.
        jitter: Fraction of each delay that is randomised, in [0, 1]. Spreads
                reconnects of many candidates after a store outage.
    """

    backoff_base: float = 0.5
    max_backoff: float = 30.0
    max_retries: int | None = None
    jitter: float = 0.0

    def __post_init__(self) -> None:
        if self.backoff_base <= 0:
            raise LeaseConfigError("backoff_base must be positive")
        if self.max_backoff < self.backoff_base:
            raise LeaseConfigError("max_backoff cannot be smaller than backoff_base")
        if self.max_retries is not None and self.max_retries < 0:
            raise LeaseConfigError("max_retries cannot be negative")
        if not 0.0 <= self.jitter <= 1.0:
            raise LeaseConfigError("jitter must be between 0 and 1")

    def calculate_backoff(self, attempt: int, rng: random.Random | None = None) -> float:
        """Return the delay before reconnect number ``attempt`` (0-indexed).

        The exponential delay is capped at max_backoff. With jitter, up to
        that fraction of the delay is removed at random, so the result lies in
        ``[delay * (1 - jitter), delay]``.
        """
        # Exponent capped so large attempt counts cannot overflow
        delay = min(self.backoff_base * (2 ** min(attempt, 32)), self.max_backoff)
        if self.jitter:
            delay -= delay * self.jitter * (rng or random).random()
        return float(delay)

    def should_retry(self, attempt: int) -> bool:
        """True while fewer than max_retries consecutive failures occurred."""
        return self.max_retries is None or attempt < self.max_retries

    def is_retryable(self, error: BaseException) -> bool:
        """Whether reconnecting can help.

        Adapters translate timeouts, connection failures and server-side
        unavailability into TransientStoreError. Anything else (rejected
        credentials, a response the adapter cannot parse) will fail the same
        way again.
        """
        return isinstance(error, TransientStoreError)
