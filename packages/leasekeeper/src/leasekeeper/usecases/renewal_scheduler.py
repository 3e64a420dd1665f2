"""RenewalScheduler use case: periodic driver for election ticks."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

logger = logging.getLogger(__name__)


class RenewalScheduler:
    """Invoke a tick callable every interval seconds on one daemon thread.

    The first tick runs immediately on start(). Ticks never overlap: the
    loop waits for each tick to return, then sleeps for what remains of the
    interval (no sleep at all if the tick overran).

    Example:
        >>> scheduler = RenewalScheduler(machine.tick, interval=5.0)
        >>> scheduler.start()
        >>> scheduler.stop(timeout=5.0)
        True
    """

    def __init__(
        self,
        tick: Callable[[], object],
        interval: float,
        name: str = "leasekeeper-renewal",
    ) -> None:
        """Initialize the scheduler.

        Args:
            tick: Zero-argument callable run once per interval.
            interval: Seconds between the starts of consecutive ticks.
                     Must be positive.
            name: Thread name, for diagnostics.

        Raises:
            ValueError: If interval is not positive.
        """
        if interval <= 0:
            raise ValueError(f"interval must be positive, got: {interval}")
        self._tick = tick
        self._interval = interval
        self._name = name
        self._stopped = threading.Event()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    @property
    def interval(self) -> float:
        return self._interval

    def is_running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive() and not self._stopped.is_set()

    def start(self) -> None:
        """Start the tick loop.

        Raises:
            RuntimeError: If already started.
        """
        with self._lock:
            if self._thread is not None:
                raise RuntimeError("scheduler can only be started once")
            self._thread = threading.Thread(
                target=self._run, name=self._name, daemon=True
            )
            self._thread.start()

    def stop(self, timeout: float | None = None) -> bool:
        """Cancel the loop and wait at most timeout for it to exit.

        No tick starts after stop() is called. A tick already in progress is
        not interrupted; if it outlives timeout the daemon thread finishes
        it on its own.

        Returns:
            True if the loop thread exited within timeout.
        """
        self._stopped.set()
        thread = self._thread
        if thread is None:
            return True
        if thread is threading.current_thread():
            return False
        thread.join(timeout)
        if thread.is_alive():
            logger.warning(
                "%s did not stop within %.1fs; abandoning in-flight tick",
                self._name,
                timeout or 0.0,
            )
            return False
        return True

    def _run(self) -> None:
        while not self._stopped.is_set():
            started = time.monotonic()
            try:
                self._tick()
            except Exception:
                logger.exception("Tick raised in %s", self._name)
            elapsed = time.monotonic() - started
            if self._stopped.wait(max(0.0, self._interval - elapsed)):
                return
