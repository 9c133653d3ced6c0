#!/usr/bin/env python3
"""
File: shift_poller.py
Author: Bastian Cerf
Date: 17/09/2025
Description:
    Evaluates the shifts of the signed-in employee against the current
    time and decides when a "clock in" prompt must be surfaced.

    For each cycle, the shifts of the day are scanned by ascending start
    time. The first actionable shift starting within the window
    [-grace_after, imminent_before] minutes becomes the upcoming shift.
    If it starts within [0, imminent_before] minutes and its alert was
    neither shown today nor dismissed, the one-time alert fires and is
    recorded immediately in the notification log.

    Nothing is signaled while the employee is clocked in.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
import datetime as dt
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

# Internal libraries
from common.live_data import LiveData
from common.local_store import LocalStoreError
from core.clock_session import ClockSessionStore
from core.entities import Shift
from core.notification_log import NotificationLog, alerted_key, dismissed_key
from core.shift_repository import ShiftRepository, RepositoryException

logger = logging.getLogger(__name__)

# Called with the shift and the minutes until its start
ShiftAlertListener = Callable[[Shift, int], None]


@dataclass(frozen=True)
class AlertWindow:
    """
    Attributes:
        imminent_before (int): Minutes before the start from which a shift
            is alerted.
        grace_after (int): Minutes after the start during which a shift is
            still shown as upcoming.
    """

    imminent_before: int = 5
    grace_after: int = 10

    def __post_init__(self):
        if self.imminent_before < 0 or self.grace_after < 0:
            raise ValueError(f"Window bounds must be positive, got {self}.")

    def is_upcoming(self, minutes: int) -> bool:
        return -self.grace_after <= minutes <= self.imminent_before

    def is_imminent(self, minutes: int) -> bool:
        return 0 <= minutes <= self.imminent_before


@dataclass(frozen=True)
class PollResult:
    """
    Outcome of a poll cycle.

    Attributes:
        upcoming_shift (Optional[Shift]): Shift inside the window.
        minutes_until_start (Optional[int]): Minutes until its start.
        alerted (bool): `True` if the one-time alert fired this cycle.
    """

    upcoming_shift: Optional[Shift] = None
    minutes_until_start: Optional[int] = None
    alerted: bool = False


class ShiftPoller:
    """
    Shift schedule evaluation for one employee.

    The poller only reads the clock session, it never changes it.
    """

    def __init__(
        self,
        repository: ShiftRepository,
        session: ClockSessionStore,
        notification_log: NotificationLog,
        window: AlertWindow = AlertWindow(),
        clock: Callable[[], dt.datetime] = dt.datetime.now,
    ):
        self._repository = repository
        self._session = session
        self._log = notification_log
        self._window = window
        self._clock = clock
        self._listeners: list[ShiftAlertListener] = []
        # Makes the check-then-record of the alert key atomic
        self._alert_lock = threading.Lock()

        self._upcoming_shift = LiveData[Optional[Shift]](None)

    @property
    def window(self) -> AlertWindow:
        return self._window

    @property
    def upcoming_shift(self) -> LiveData[Optional[Shift]]:
        """Observable shift currently inside the window."""
        return self._upcoming_shift

    def add_alert_listener(self, listener: ShiftAlertListener):
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_alert_listener(self, listener: ShiftAlertListener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def fetch(self, day: dt.date) -> list[Shift]:
        """
        Read the shifts of the employee for the given day. Safe to call
        from a worker thread.

        Raises:
            RepositoryException: The remote store cannot be read.
        """
        return self._repository.list_shifts_for_employee_on_date(
            self._session.employee_id, day
        )

    def check_upcoming_shifts(self, now: Optional[dt.datetime] = None) -> PollResult:
        """
        Run a complete poll cycle synchronously.

        A failed fetch is logged and handled as a day without shifts, the
        next cycle retries.
        """
        now = now or self._clock()

        if self._session.is_clocked_in:
            return self.evaluate([], now)

        try:
            shifts = self.fetch(now.date())
        except RepositoryException:
            logger.error(
                f"Unable to fetch the shifts of employee "
                f"'{self._session.employee_id}'.",
                exc_info=True,
            )
            shifts = []
        return self.evaluate(shifts, now)

    def evaluate(self, shifts: Iterable[Shift], now: dt.datetime) -> PollResult:
        """
        Classify the given shifts at `now` and publish the outcome.

        Args:
            shifts (Iterable[Shift]): Shifts ordered by ascending start.
            now (datetime.datetime): Evaluation time.

        Returns:
            PollResult: The cycle outcome.
        """
        if self._session.is_clocked_in:
            self.clear()
            return PollResult()

        for shift in shifts:
            if not shift.status.actionable:
                continue

            minutes = shift.minutes_until_start(now)
            if not self._window.is_upcoming(minutes):
                continue

            self._upcoming_shift.value = shift
            alerted = self._window.is_imminent(minutes) and self.__try_alert(
                shift, now
            )
            if alerted:
                self.__notify(shift, minutes)
            return PollResult(shift, minutes, alerted)

        self.clear()
        return PollResult()

    def clear(self):
        self._upcoming_shift.value = None

    def __try_alert(self, shift: Shift, now: dt.datetime) -> bool:
        """Record the alert key, `False` if the alert is already known."""
        key = alerted_key(shift.id, now.date())
        with self._alert_lock:
            if self._log.has_been_shown(key) or self._log.has_been_shown(
                dismissed_key(shift.id)
            ):
                return False
            try:
                self._log.record_shown(key)
            except LocalStoreError:
                logger.warning(
                    f"Alert of {shift!s} recorded in memory only.", exc_info=True
                )
        logger.info(f"Alert raised for {shift!s}.")
        return True

    def __notify(self, shift: Shift, minutes: int):
        for listener in list(self._listeners):
            try:
                listener(shift, minutes)
            except Exception:
                logger.error(
                    f"Alert listener {listener!r} failed for {shift!s}.",
                    exc_info=True,
                )
