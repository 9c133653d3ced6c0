#!/usr/bin/env python3
"""
File: time_clock.py
Author: Bastian Cerf
Date: 18/09/2025
Description:
    State machine of a time clock session.

        NOT_CLOCKED_IN -> CLOCKED_IN <-> ON_BREAK -> CLOCKED_OUT

    Each transition writes to the remote store first and only changes
    state once the write succeeded. A rejected event raises an
    `InvalidTransitionError` and leaves the entry untouched. An entry
    carries a single break: a second break in the same session is
    rejected.

    The worked hours are computed at clock-out by subtracting the break
    from the session length, overtime being everything above a daily
    threshold (8 hours by default).

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
import datetime as dt
import logging
from enum import Enum
from typing import Any, Callable, Optional

# Internal libraries
from common.live_data import LiveData
from common.state_machine import IStateBehavior, IStateMachine, TransitionRejected
from core.entities import Location, TimeClockEntry
from core.shift_repository import ShiftRepository, RepositoryException
from local_config import FeatureFlags

logger = logging.getLogger(__name__)

DEFAULT_OVERTIME_THRESHOLD = 8.0

# Returns the current device location, or None if unknown
LocationProvider = Callable[[], Optional[Location]]


class TimeClockException(Exception):
    """Base type of the time clock errors."""

    pass


class InvalidTransitionError(TimeClockException):
    """The requested action is not allowed in the current state."""

    def __init__(self, state: "ClockState", action: str):
        super().__init__(f"Cannot {action.replace('_', ' ')} while {state}.")
        self.state = state
        self.action = action


class ClockState(Enum):
    NOT_CLOCKED_IN = "not_clocked_in"
    CLOCKED_IN = "clocked_in"
    ON_BREAK = "on_break"
    CLOCKED_OUT = "clocked_out"

    def __str__(self):
        return self.value.replace("_", " ")


def overtime_hours(
    total_hours: float, threshold: float = DEFAULT_OVERTIME_THRESHOLD
) -> float:
    """Hours above the threshold, rounded to 2 decimals."""
    return round(max(0.0, total_hours - threshold), 2)


def compute_hours(
    clock_in: dt.datetime,
    clock_out: dt.datetime,
    break_start: Optional[dt.datetime] = None,
    break_end: Optional[dt.datetime] = None,
    threshold: float = DEFAULT_OVERTIME_THRESHOLD,
) -> tuple[float, float]:
    """
    Compute the worked and overtime hours of a closed session.

    The break is subtracted only when both of its bounds are known.
    A negative break or session length counts as zero.

    Returns:
        tuple[float, float]: Total hours and overtime hours, both rounded
            to 2 decimals.
    """
    worked = clock_out - clock_in
    if break_start is not None and break_end is not None:
        worked -= max(dt.timedelta(0), break_end - break_start)

    total = round(max(0.0, worked.total_seconds() / 3600), 2)
    return total, overtime_hours(total, threshold)


def elapsed(entry: TimeClockEntry, now: dt.datetime) -> dt.timedelta:
    """
    Worked time of a session at `now`: the session length minus the
    completed break and minus the part of an ongoing break.
    """
    end = entry.clock_out or now
    worked = end - entry.clock_in - entry.break_duration
    if entry.on_break:
        assert entry.break_start is not None
        worked -= max(dt.timedelta(0), end - entry.break_start)
    return max(dt.timedelta(0), worked)


def format_elapsed(duration: dt.timedelta) -> str:
    """Format a duration as `H:MM:SS`, hours are not padded."""
    total = max(0, int(duration.total_seconds()))
    hours, remainder = divmod(total, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours}:{minutes:02d}:{seconds:02d}"


########################################################################
#                          States declaration                          #
########################################################################


class _TimeClockState(IStateBehavior["TimeClock"]):
    """Base of the time clock states."""

    clock_state: ClockState


class NotClockedInState(_TimeClockState):
    clock_state = ClockState.NOT_CLOCKED_IN

    def on_clock_in(self, shift_id: Optional[str], now: dt.datetime):
        self.fsm._open_entry(shift_id, now)
        return ClockedInState()


class ClockedInState(_TimeClockState):
    clock_state = ClockState.CLOCKED_IN

    def on_start_break(self, now: dt.datetime):
        if self.fsm.entry is None or self.fsm.entry.break_start is not None:
            raise TransitionRejected(self, "start_break")
        self.fsm._update_entry(break_start=now)
        return OnBreakState()

    def on_clock_out(self, now: dt.datetime):
        self.fsm._close_entry(now)
        return ClockedOutState()


class OnBreakState(_TimeClockState):
    clock_state = ClockState.ON_BREAK

    def on_end_break(self, now: dt.datetime):
        self.fsm._update_entry(break_end=now)
        return ClockedInState()

    def on_clock_out(self, now: dt.datetime):
        # The break ends with the session
        self.fsm._close_entry(now, break_end=now)
        return ClockedOutState()


class ClockedOutState(_TimeClockState):
    clock_state = ClockState.CLOCKED_OUT


def _state_for(entry: Optional[TimeClockEntry]) -> _TimeClockState:
    if entry is None:
        return NotClockedInState()
    if not entry.is_open:
        return ClockedOutState()
    if entry.on_break:
        return OnBreakState()
    return ClockedInState()


########################################################################
#                          Time clock machine                          #
########################################################################


class TimeClock(IStateMachine):
    """
    Clock-in, break and clock-out of one employee.

    The current state is published by the `clock_state` live data.
    """

    def __init__(
        self,
        repository: ShiftRepository,
        employee_id: str,
        overtime_threshold: float = DEFAULT_OVERTIME_THRESHOLD,
        clock: Callable[[], dt.datetime] = dt.datetime.now,
        features: FeatureFlags = FeatureFlags(),
        location_provider: Optional[LocationProvider] = None,
        entry: Optional[TimeClockEntry] = None,
    ):
        """
        Args:
            repository (ShiftRepository): Remote store.
            employee_id (str): Employee using the clock.
            overtime_threshold (float): Daily hours before overtime.
            clock (Callable[[], datetime.datetime]): Current time source.
            features (FeatureFlags): Feature toggles.
            location_provider (Optional[LocationProvider]): Captures the
                device location when location tracking is enabled.
            entry (Optional[TimeClockEntry]): Entry to resume.
        """
        self._repository = repository
        self._employee_id = employee_id
        self._threshold = overtime_threshold
        self._clock = clock
        self._features = features
        self._location_provider = location_provider
        self._entry = entry

        state = _state_for(entry)
        self._clock_state = LiveData[ClockState](state.clock_state)
        super().__init__(state)

    @property
    def employee_id(self) -> str:
        return self._employee_id

    @property
    def entry(self) -> Optional[TimeClockEntry]:
        """Entry of the current session, if any."""
        return self._entry

    @property
    def clock_state(self) -> LiveData[ClockState]:
        return self._clock_state

    @property
    def current_state(self) -> ClockState:
        return self._clock_state.value

    def load(self, entry: Optional[TimeClockEntry]):
        """
        Rebuild the machine from an entry of the remote store, `None`
        to wait for a new clock-in.
        """
        self._entry = entry
        state = _state_for(entry)
        if type(state) is not type(self.state):
            self._make_transition(state)
        logger.debug(f"Time clock loaded in state '{self.current_state}'.")

    def can(self, action: str) -> bool:
        """Check if an action is accepted in the current state."""
        return self.state.accepts(action)

    ### Actions

    def clock_in(
        self, shift_id: Optional[str] = None, now: Optional[dt.datetime] = None
    ) -> TimeClockEntry:
        """
        Open a new entry, optionally linked to a shift.

        Raises:
            InvalidTransitionError: Not allowed in the current state.
            OpenEntryConflictError: The employee is already clocked in.
            RepositoryException: The remote store cannot be written.
        """
        return self.__trigger("clock_in", shift_id, now or self._clock())

    def start_break(self, now: Optional[dt.datetime] = None) -> TimeClockEntry:
        return self.__trigger("start_break", now or self._clock())

    def end_break(self, now: Optional[dt.datetime] = None) -> TimeClockEntry:
        return self.__trigger("end_break", now or self._clock())

    def clock_out(self, now: Optional[dt.datetime] = None) -> TimeClockEntry:
        """
        Close the session and compute its worked and overtime hours.
        An ongoing break is closed at the same time.
        """
        return self.__trigger("clock_out", now or self._clock())

    def elapsed(self, now: Optional[dt.datetime] = None) -> dt.timedelta:
        if self._entry is None:
            return dt.timedelta(0)
        return elapsed(self._entry, now or self._clock())

    def elapsed_formatted(self, now: Optional[dt.datetime] = None) -> str:
        return format_elapsed(self.elapsed(now))

    def on_state_changed(self, old_state, new_state):
        logger.info(
            f"Time clock of employee '{self._employee_id}' moved from "
            f"'{old_state.clock_state}' to '{new_state.clock_state}'."
        )
        self._clock_state.value = new_state.clock_state

    def __trigger(self, action: str, *args: Any) -> TimeClockEntry:
        try:
            self.dispatch(action, *args)
        except TransitionRejected as e:
            raise InvalidTransitionError(self.current_state, action) from e
        assert self._entry is not None
        return self._entry

    ### Remote store writes, called by the states

    def _open_entry(self, shift_id: Optional[str], now: dt.datetime):
        entry = self._repository.create_time_clock_entry(
            shift_id, self._employee_id, now
        )
        logger.info(f"Clocked in {entry!s} at {now:%H:%M:%S}.")
        self._entry = entry

        location = self.__locate()
        if location is not None:
            try:
                self._entry = self._repository.update_time_clock_entry(
                    entry.id, clock_in_location=location
                )
            except RepositoryException:
                logger.warning(
                    f"Unable to save the clock-in location of {entry!s}.",
                    exc_info=True,
                )

    def _update_entry(self, **fields: Any):
        assert self._entry is not None
        self._entry = self._repository.update_time_clock_entry(self._entry.id, **fields)

    def _close_entry(self, now: dt.datetime, **fields: Any):
        assert self._entry is not None
        break_start = fields.get("break_start", self._entry.break_start)
        break_end = fields.get("break_end", self._entry.break_end)
        total, overtime = compute_hours(
            self._entry.clock_in, now, break_start, break_end, self._threshold
        )

        location = self.__locate()
        if location is not None:
            fields["clock_out_location"] = location

        self._update_entry(
            clock_out=now, total_hours=total, overtime_hours=overtime, **fields
        )
        logger.info(f"Clocked out {self._entry!s}, overtime {overtime}h.")

    def __locate(self) -> Optional[Location]:
        if not self._features.location_tracking or self._location_provider is None:
            return None
        try:
            return self._location_provider()
        except Exception:
            logger.warning("Unable to get the device location.", exc_info=True)
            return None
