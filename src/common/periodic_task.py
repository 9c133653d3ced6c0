#!/usr/bin/env python3
"""
A cancellable periodic task driven by the host loop.

The task never owns a thread. The host calls `run()` at a fixed rate
(typically from its UI clock) and the task invokes its callback when
its period has elapsed. `start()` and `stop()` give the host a handle
to acquire the timer when a view becomes active and to release it when
the view goes away.

    task = PeriodicTask("poller", 30.0, poller.check)
    task.start()
    while running:
        task.run()
    task.stop()

---
ShiftBridge - An open-source shift scheduling and time-tracking engine

Author: Bastian Cerf
Copyright (C) 2025 Mecacerf SA
License: AGPL-3.0 <https://www.gnu.org/licenses/>
"""

# Standard libraries
import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicTask:
    """
    Run a callback every `interval` seconds while started.

    Exceptions raised by the callback are logged and swallowed: a timer
    callback must never break the host loop.
    """

    def __init__(
        self,
        name: str,
        interval: float,
        callback: Callable[[], None],
        clock: Callable[[], float] = time.monotonic,
        run_immediately: bool = True,
    ):
        """
        Args:
            name (str): Task name used in logs.
            interval (float): Period in seconds, strictly positive.
            callback (Callable[[], None]): Work to execute.
            clock (Callable[[], float]): Monotonic time source.
            run_immediately (bool): Fire on the first `run()` after
                `start()` instead of waiting a full period.
        """
        if interval <= 0:
            raise ValueError(f"Interval must be positive, got {interval}.")

        self._name = name
        self._interval = interval
        self._callback = callback
        self._clock = clock
        self._run_immediately = run_immediately
        self._next_run: Optional[float] = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def active(self) -> bool:
        return self._next_run is not None

    def start(self):
        """Acquire the timer. Starting an active task does nothing."""
        if self.active:
            return
        now = self._clock()
        self._next_run = now if self._run_immediately else now + self._interval
        logger.debug(f"Periodic task '{self._name}' started ({self._interval}s).")

    def stop(self):
        """Release the timer. The callback is never invoked afterwards."""
        if self.active:
            self._next_run = None
            logger.debug(f"Periodic task '{self._name}' stopped.")

    def due(self) -> bool:
        return self._next_run is not None and self._clock() >= self._next_run

    def run(self) -> bool:
        """
        Invoke the callback if the period has elapsed.

        Returns:
            bool: `True` if the callback has been invoked.
        """
        if not self.due():
            return False

        assert self._next_run is not None
        # Schedule from the theoretical run time to avoid drifting, but
        # never queue up missed runs after a long pause
        now = self._clock()
        self._next_run += self._interval
        if self._next_run <= now:
            self._next_run = now + self._interval

        try:
            self._callback()
        except Exception:
            logger.error(
                f"Periodic task '{self._name}' raised an exception.", exc_info=True
            )
        return True

    def __str__(self) -> str:
        return f"PeriodicTask[{self._name}, {self._interval}s]"
