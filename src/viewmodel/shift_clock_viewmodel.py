#!/usr/bin/env python3
"""
File: shift_clock_viewmodel.py
Author: Bastian Cerf
Date: 22/09/2025
Description:
    The ViewModel serves as the intermediary between the view and the
    engine. It owns the poll and elapsed time timers, forwards the user
    actions to the time clock and exposes everything the view renders as
    observable live data.

    The host must call `run()` at fixed interval from its main loop. All
    the state changes happen in this thread; the remote reads of the poll
    cycles are executed by the scheduler thread pool and collected on a
    later `run()`.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
import logging
import datetime as dt
import time
from typing import Callable, Optional

# Import internal modules
from common.live_data import LiveData  # For view communication
from common.local_store import LocalStoreError
from common.periodic_task import PeriodicTask
from core.clock_session import ClockSessionStore
from core.entities import Shift, TimeClockEntry
from core.notification_log import NotificationLog, DismissedShiftStore, dismissed_key
from core.shift_poller import ShiftPoller
from core.shift_repository import RepositoryException, OpenEntryConflictError
from core.time_clock import TimeClock, ClockState, InvalidTransitionError, format_elapsed
from model import ShiftScheduler, PollSnapshot, ModelError

__all__ = ["ShiftClockViewModel"]

logger = logging.getLogger(__name__)

# Default timer periods [s]
DEFAULT_POLL_INTERVAL = 30.0
DEFAULT_TICK_INTERVAL = 1.0

# Messages shown to the user
MSG_ALREADY_CLOCKED_IN = "You are already clocked in."
MSG_NO_UPCOMING_SHIFT = "There is no shift to start."
MSG_STORE_UNAVAILABLE = "The time clock is unavailable, please try again."


class ShiftClockViewModel:
    """
    View model of the shift alert banner and of the time clock panel.
    """

    def __init__(
        self,
        session: ClockSessionStore,
        poller: ShiftPoller,
        time_clock: TimeClock,
        notification_log: NotificationLog,
        dismissed_store: DismissedShiftStore,
        scheduler: ShiftScheduler,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        tick_interval: float = DEFAULT_TICK_INTERVAL,
        clock: Callable[[], dt.datetime] = dt.datetime.now,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            session (ClockSessionStore): Open entry of the employee.
            poller (ShiftPoller): Shift schedule evaluation.
            time_clock (TimeClock): Clock session state machine.
            notification_log (NotificationLog): Shown notifications.
            dismissed_store (DismissedShiftStore): Last dismissed shift.
            scheduler (ShiftScheduler): Runs the poll reads.
            poll_interval (float): Seconds between two poll cycles.
            tick_interval (float): Seconds between two elapsed time
                refreshes.
            clock (Callable[[], datetime.datetime]): Wall clock.
            monotonic (Callable[[], float]): Timers clock.
        """
        self._session = session
        self._poller = poller
        self._time_clock = time_clock
        self._log = notification_log
        self._dismissed_store = dismissed_store
        self._scheduler = scheduler
        self._clock = clock

        self._poll_task = PeriodicTask(
            "shift-poller", poll_interval, self.__start_poll, clock=monotonic
        )
        self._tick_task = PeriodicTask(
            "elapsed-time", tick_interval, self.__tick, clock=monotonic
        )
        self._poll_handle: Optional[int] = None
        # Incremented on every local change of the session, a poll started
        # with an older generation is outdated
        self._generation = 0
        self._poll_generation = 0
        self._active = False

        # Live data are observed by the view
        self._show_alert = LiveData[bool](False)
        self._alert_shift = LiveData[Optional[Shift]](None)
        self._dismissed_shift = LiveData[Optional[Shift]](None)
        self._elapsed_time = LiveData[str](format_elapsed(dt.timedelta(0)))
        self._last_error = LiveData[Optional[str]](None)

        self._poller.add_alert_listener(self.__on_alert)

    ### Lifecycle

    @property
    def active(self) -> bool:
        return self._active

    def activate(self):
        """
        Acquire the timers. The session is synchronized and a dismissed
        shift still valid is restored before the first poll.
        """
        if self._active:
            return
        self._active = True
        now = self._clock()

        self._dismissed_shift.value = self.__safe_restore(now)
        self._session.refresh()
        self.__sync_time_clock(self._session.active_entry)
        self.__update_elapsed(now)

        self._poll_task.start()
        self._tick_task.start()
        logger.info(f"View model activated for employee '{self._session.employee_id}'.")

    def deactivate(self):
        """Release the timers. An in-flight poll is dropped."""
        if not self._active:
            return
        self._active = False
        self._poll_task.stop()
        self._tick_task.stop()
        self.__drop_poll()
        logger.info("View model deactivated.")

    def close(self):
        """
        Close the viewmodel. It will automatically close the scheduler in
        use.
        """
        self.deactivate()
        self._poller.remove_alert_listener(self.__on_alert)
        self._scheduler.close()

    def run(self):
        """
        Run the view model. Must be called at fixed interval.
        """
        if not self._active:
            return

        self.__collect_poll()
        self._poll_task.run()
        self._tick_task.run()
        self.__expire_dismissal(self._clock())

    ### Get UI information as observables ###

    @property
    def upcoming_shift(self) -> LiveData[Optional[Shift]]:
        """Shift to show in the banner, starting soon or just started."""
        return self._poller.upcoming_shift

    @property
    def show_alert(self) -> LiveData[bool]:
        """`True` while the blocking clock-in prompt must be shown."""
        return self._show_alert

    @property
    def alert_shift(self) -> LiveData[Optional[Shift]]:
        return self._alert_shift

    @property
    def dismissed_shift(self) -> LiveData[Optional[Shift]]:
        """Shift whose prompt was dismissed, shown as a reminder."""
        return self._dismissed_shift

    @property
    def active_entry(self) -> LiveData[Optional[TimeClockEntry]]:
        return self._session.entry

    @property
    def elapsed_time_formatted(self) -> LiveData[str]:
        """Worked time of the current session as `H:MM:SS`."""
        return self._elapsed_time

    @property
    def clock_state(self) -> LiveData[ClockState]:
        return self._time_clock.clock_state

    @property
    def last_error(self) -> LiveData[Optional[str]]:
        """Message of the last failed action, `None` after a success."""
        return self._last_error

    ### User actions

    def start_shift(self) -> bool:
        """
        Clock in for the alerted shift. Falls back to the upcoming shift,
        then to the dismissed shift still shown as a reminder.

        Returns:
            bool: `True` on success.
        """
        shift = (
            self._alert_shift.value
            or self._poller.upcoming_shift.value
            or self._dismissed_shift.value
        )
        if shift is None:
            self._last_error.value = MSG_NO_UPCOMING_SHIFT
            return False
        return self.clock_in(shift.id)

    def clock_in(self, shift_id: Optional[str] = None) -> bool:
        """
        Clock in, optionally for a shift. An unscheduled session is opened
        when `shift_id` is `None`.
        """
        if self._time_clock.current_state is ClockState.CLOCKED_OUT:
            # A new session starts
            self._time_clock.load(None)

        try:
            entry = self._time_clock.clock_in(shift_id, self._clock())
        except OpenEntryConflictError:
            logger.warning(
                f"Employee '{self._session.employee_id}' is already clocked in."
            )
            self._last_error.value = MSG_ALREADY_CLOCKED_IN
            self.__resync()
            return False
        except (InvalidTransitionError, RepositoryException) as e:
            return self.__fail("clock in", e)

        self.__on_entry_changed(entry)
        self.__clear_signals()
        self._dismissed_shift.value = None
        try:
            self._dismissed_store.clear()
        except LocalStoreError:
            logger.warning("Unable to clear the dismissed shift.", exc_info=True)
        return True

    def start_break(self) -> bool:
        try:
            entry = self._time_clock.start_break(self._clock())
        except (InvalidTransitionError, RepositoryException) as e:
            return self.__fail("start break", e)
        self.__on_entry_changed(entry)
        return True

    def end_break(self) -> bool:
        try:
            entry = self._time_clock.end_break(self._clock())
        except (InvalidTransitionError, RepositoryException) as e:
            return self.__fail("end break", e)
        self.__on_entry_changed(entry)
        return True

    def clock_out(self) -> bool:
        try:
            entry = self._time_clock.clock_out(self._clock())
        except (InvalidTransitionError, RepositoryException) as e:
            return self.__fail("clock out", e)
        self.__on_entry_changed(entry)
        return True

    def dismiss_alert(self):
        """
        Hide the prompt. The shift is remembered as dismissed so it is
        never prompted again, and shown as a reminder until it expires.
        """
        shift = self._alert_shift.value
        self._show_alert.value = False
        self._alert_shift.value = None
        if shift is None:
            return

        now = self._clock()
        try:
            self._log.record_shown(dismissed_key(shift.id))
            self._dismissed_store.save(shift, now)
        except LocalStoreError:
            logger.warning(f"Unable to persist the dismissal of {shift!s}.", exc_info=True)
        self._dismissed_shift.value = shift
        logger.info(f"Alert of {shift!s} dismissed.")

    def refresh(self):
        """
        Synchronize with the remote store and evaluate the shifts now,
        without waiting for the next poll cycle.
        """
        self.__drop_poll()
        self._generation += 1
        now = self._clock()

        self._session.refresh()
        self.__sync_time_clock(self._session.active_entry)
        self._poller.check_upcoming_shifts(now)
        self.__update_signals()
        self.__update_elapsed(now)

    ### Internal

    def __start_poll(self):
        """Poll timer callback, a single poll is in flight at a time."""
        if self._poll_handle is not None:
            return
        self._poll_generation = self._generation
        self._poll_handle = self._scheduler.start_poll_task(
            self._session.employee_id, self._clock()
        )

    def __collect_poll(self):
        if self._poll_handle is None or not self._scheduler.available(
            self._poll_handle
        ):
            return

        result = self._scheduler.get_result(self._poll_handle)
        self._poll_handle = None
        if self._poll_generation != self._generation:
            logger.debug("Outdated poll result discarded.")
            return

        now = self._clock()
        if isinstance(result, PollSnapshot):
            self._session.update(result.open_entry)
            self.__sync_time_clock(self._session.active_entry)
            self._poller.evaluate(result.shifts, now)
        else:
            if isinstance(result, ModelError):
                logger.warning(f"Poll failed: {result.message}")
            self._poller.evaluate([], now)
        self.__update_signals()

    def __drop_poll(self):
        if self._poll_handle is not None:
            self._scheduler.drop(self._poll_handle)
            self._poll_handle = None

    def __tick(self):
        self.__update_elapsed(self._clock())

    def __update_elapsed(self, now: dt.datetime):
        entry = self._time_clock.entry
        if entry is None:
            self._elapsed_time.value = format_elapsed(dt.timedelta(0))
        else:
            self._elapsed_time.value = self._time_clock.elapsed_formatted(now)

    def __on_alert(self, shift: Shift, minutes: int):
        self._alert_shift.value = shift
        self._show_alert.value = True

    def __on_entry_changed(self, entry: TimeClockEntry):
        self._generation += 1
        self._session.update(entry)
        self._last_error.value = None
        self.__update_elapsed(self._clock())

    def __update_signals(self):
        """Drop the alert once clocked in or once its shift is gone."""
        if self._session.is_clocked_in:
            self.__clear_signals()
        elif self._poller.upcoming_shift.value is None:
            self._show_alert.value = False
            self._alert_shift.value = None

    def __clear_signals(self):
        self._poller.clear()
        self._show_alert.value = False
        self._alert_shift.value = None

    def __sync_time_clock(self, entry: Optional[TimeClockEntry]):
        """Rebuild the time clock when the remote session differs."""
        if entry == self._time_clock.entry:
            return
        if entry is None and self._time_clock.current_state is ClockState.CLOCKED_OUT:
            # Keep showing the closed session
            return
        self._time_clock.load(entry)

    def __resync(self):
        self._generation += 1
        self._session.refresh()
        self.__sync_time_clock(self._session.active_entry)
        self.__update_signals()
        self.__update_elapsed(self._clock())

    def __fail(self, action: str, error: Exception) -> bool:
        if isinstance(error, InvalidTransitionError):
            logger.warning(f"Rejected {action}: {error}")
            self._last_error.value = str(error)
        else:
            logger.error(f"Unable to {action}.", exc_info=True)
            self._last_error.value = MSG_STORE_UNAVAILABLE
        return False

    def __expire_dismissal(self, now: dt.datetime):
        shift = self._dismissed_shift.value
        if shift is None or now <= self._dismissed_store.expires_at(shift):
            return
        self._dismissed_shift.value = None
        try:
            self._dismissed_store.clear()
        except LocalStoreError:
            logger.warning("Unable to clear the dismissed shift.", exc_info=True)
        logger.debug(f"Dismissed {shift!s} expired.")

    def __safe_restore(self, now: dt.datetime) -> Optional[Shift]:
        try:
            return self._dismissed_store.restore(now)
        except LocalStoreError:
            logger.warning("Unable to restore the dismissed shift.", exc_info=True)
            return None
