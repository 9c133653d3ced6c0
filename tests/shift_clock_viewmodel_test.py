#!/usr/bin/env python3
"""
File: shift_clock_viewmodel_test.py
Author: Bastian Cerf
Date: 22/09/2025
Description:
    Test the view model from the user perspective: the alert raised by a
    poll cycle, the start shift and dismiss actions and the time clock
    panel.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
import pytest
import time
import datetime as dt
from typing import Callable

# Internal libraries
from .test_constants import *
from .classes_mocks import FakeClock, FakeMonotonic, FlakyRepository
from .classes_mocks import make_shift, make_entry
from core.entities import Shift
from core.notification_log import NotificationLog, DismissedShiftStore, dismissed_key
from core.time_clock import ClockState
from model import ShiftScheduler
from viewmodel.shift_clock_viewmodel import (
    ShiftClockViewModel,
    MSG_ALREADY_CLOCKED_IN,
    MSG_NO_UPCOMING_SHIFT,
    MSG_STORE_UNAVAILABLE,
)


def run_until(
    viewmodel: ShiftClockViewModel, predicate: Callable[[], bool], timeout: float = 10
):
    """
    Run the view model until the predicate is satisfied.
    """
    deadline = time.time() + timeout
    while not predicate():
        assert time.time() < deadline, "Timeout while running the view model"
        viewmodel.run()
        time.sleep(0.01)


def run_poll_cycle(viewmodel: ShiftClockViewModel, scheduler: ShiftScheduler):
    """
    Start a poll cycle and wait until its result is collected.
    """
    viewmodel.run()
    assert scheduler.pending == 1
    run_until(viewmodel, lambda: scheduler.pending == 0)


@pytest.fixture
def shift(repository: FlakyRepository) -> Shift:
    shift = make_shift(TEST_SHIFT_START)
    repository.add_shift(shift)
    return shift


@pytest.fixture
def alerted(viewmodel: ShiftClockViewModel, shift: Shift) -> ShiftClockViewModel:
    """
    Get an active view model showing the alert of the test shift.
    """
    viewmodel.activate()
    run_until(viewmodel, lambda: viewmodel.show_alert.value)
    return viewmodel


########################################################################
#                              Alert tests                             #
########################################################################


def test_alert_raised_by_poll(alerted: ShiftClockViewModel, shift: Shift):
    assert alerted.alert_shift.value == shift
    assert alerted.upcoming_shift.value == shift
    assert alerted.clock_state.value == ClockState.NOT_CLOCKED_IN


def test_alert_not_raised_twice(
    alerted: ShiftClockViewModel,
    scheduler: ShiftScheduler,
    monotonic: FakeMonotonic,
):
    alerted.dismiss_alert()

    monotonic.advance(30.0)
    run_poll_cycle(alerted, scheduler)

    assert not alerted.show_alert.value
    assert alerted.upcoming_shift.value is not None


def test_start_shift(
    alerted: ShiftClockViewModel,
    shift: Shift,
    repository: FlakyRepository,
    scheduler: ShiftScheduler,
    monotonic: FakeMonotonic,
):
    assert alerted.start_shift()

    assert not alerted.show_alert.value
    assert alerted.alert_shift.value is None
    assert alerted.upcoming_shift.value is None
    assert alerted.clock_state.value == ClockState.CLOCKED_IN
    assert alerted.active_entry.value.shift_id == shift.id
    assert alerted.last_error.value is None
    assert repository.get_open_time_clock_entry(TEST_EMPLOYEE_ID) is not None

    # Nothing is signaled while clocked in
    monotonic.advance(30.0)
    run_poll_cycle(alerted, scheduler)
    assert not alerted.show_alert.value
    assert alerted.upcoming_shift.value is None
    assert alerted.clock_state.value == ClockState.CLOCKED_IN


def test_start_shift_without_shift(viewmodel: ShiftClockViewModel):
    viewmodel.activate()

    assert not viewmodel.start_shift()
    assert viewmodel.last_error.value == MSG_NO_UPCOMING_SHIFT


def test_dismiss_alert(
    alerted: ShiftClockViewModel,
    shift: Shift,
    clock: FakeClock,
    notification_log: NotificationLog,
    dismissed_store: DismissedShiftStore,
):
    alerted.dismiss_alert()

    assert not alerted.show_alert.value
    assert alerted.alert_shift.value is None
    assert alerted.dismissed_shift.value == shift
    assert notification_log.has_been_shown(dismissed_key(shift.id))
    assert dismissed_store.restore(clock()) == shift

    # The reminder lasts until 30 minutes after the shift start
    clock.now = TEST_SHIFT_START + dt.timedelta(minutes=30)
    alerted.run()
    assert alerted.dismissed_shift.value == shift

    clock.now = TEST_SHIFT_START + dt.timedelta(minutes=31)
    alerted.run()
    assert alerted.dismissed_shift.value is None
    assert dismissed_store.restore(TEST_NOW) is None


def test_dismissed_shift_restored(
    viewmodel: ShiftClockViewModel,
    dismissed_store: DismissedShiftStore,
):
    shift = make_shift(TEST_SHIFT_START)
    dismissed_store.save(shift, TEST_NOW)

    viewmodel.activate()

    assert viewmodel.dismissed_shift.value == shift


def test_clock_in_clears_dismissed_shift(alerted: ShiftClockViewModel):
    alerted.dismiss_alert()

    assert alerted.clock_in()
    assert alerted.dismissed_shift.value is None


def test_start_dismissed_shift_after_window(
    alerted: ShiftClockViewModel,
    shift: Shift,
    clock: FakeClock,
    scheduler: ShiftScheduler,
    monotonic: FakeMonotonic,
    dismissed_store: DismissedShiftStore,
):
    """
    A dismissed shift still shown as a reminder can be started after it
    left the upcoming window.
    """
    alerted.dismiss_alert()

    clock.now = TEST_SHIFT_START + dt.timedelta(minutes=15)
    monotonic.advance(30.0)
    run_poll_cycle(alerted, scheduler)
    assert alerted.upcoming_shift.value is None
    assert alerted.dismissed_shift.value == shift

    assert alerted.start_shift()

    assert alerted.active_entry.value.shift_id == shift.id
    assert alerted.clock_state.value == ClockState.CLOCKED_IN
    assert alerted.dismissed_shift.value is None
    assert dismissed_store.restore(clock()) is None


def test_outdated_poll_discarded(
    viewmodel: ShiftClockViewModel,
    shift: Shift,
    repository: FlakyRepository,
    scheduler: ShiftScheduler,
):
    """
    A poll started before a clock-in must not revert the session.
    """
    viewmodel.activate()
    repository.reads = 0
    viewmodel.run()

    # Wait until the poll has read the open entry and the shifts
    deadline = time.time() + 10.0
    while repository.reads < 2:
        assert time.time() < deadline
        time.sleep(0.01)

    assert viewmodel.clock_in(shift.id)
    run_until(viewmodel, lambda: scheduler.pending == 0)

    assert viewmodel.clock_state.value == ClockState.CLOCKED_IN
    assert viewmodel.active_entry.value is not None
    assert not viewmodel.show_alert.value


########################################################################
#                           Time clock tests                           #
########################################################################


def test_session_actions(
    viewmodel: ShiftClockViewModel, clock: FakeClock, repository: FlakyRepository
):
    viewmodel.activate()

    assert viewmodel.clock_in()
    clock.advance(hours=3)
    assert viewmodel.start_break()
    assert viewmodel.clock_state.value == ClockState.ON_BREAK
    clock.advance(minutes=30)
    assert viewmodel.end_break()
    clock.advance(hours=5)
    assert viewmodel.clock_out()

    assert viewmodel.clock_state.value == ClockState.CLOCKED_OUT
    assert viewmodel.active_entry.value is None
    entries = repository.list_time_clock_entries(employee_id=TEST_EMPLOYEE_ID)
    assert len(entries) == 1
    assert entries[0].total_hours == 8.0
    assert entries[0].overtime_hours == 0.0
    assert viewmodel.elapsed_time_formatted.value == "8:00:00"

    # A new session can be opened
    clock.advance(hours=1)
    assert viewmodel.clock_in()
    assert viewmodel.clock_state.value == ClockState.CLOCKED_IN


def test_elapsed_time_ticks(
    viewmodel: ShiftClockViewModel, clock: FakeClock, monotonic: FakeMonotonic
):
    viewmodel.activate()
    viewmodel.run()
    assert viewmodel.clock_in()
    assert viewmodel.elapsed_time_formatted.value == "0:00:00"

    clock.advance(minutes=1, seconds=5)
    monotonic.advance(1.0)
    viewmodel.run()

    assert viewmodel.elapsed_time_formatted.value == "0:01:05"


def test_invalid_action(viewmodel: ShiftClockViewModel):
    viewmodel.activate()

    assert not viewmodel.end_break()
    assert viewmodel.last_error.value == "Cannot end break while not clocked in."


def test_store_offline(viewmodel: ShiftClockViewModel, repository: FlakyRepository):
    viewmodel.activate()
    repository.offline = True

    assert not viewmodel.clock_in()
    assert viewmodel.last_error.value == MSG_STORE_UNAVAILABLE
    assert viewmodel.clock_state.value == ClockState.NOT_CLOCKED_IN


def test_already_clocked_in(
    viewmodel: ShiftClockViewModel, repository: FlakyRepository
):
    """
    The employee clocked in from another device after the activation.
    """
    viewmodel.activate()
    entry = make_entry(TEST_NOW, id="other-device")
    repository.add_entry(entry)

    assert not viewmodel.clock_in()

    assert viewmodel.last_error.value == MSG_ALREADY_CLOCKED_IN
    assert viewmodel.active_entry.value == entry
    assert viewmodel.clock_state.value == ClockState.CLOCKED_IN


def test_remote_session_picked_up_by_poll(
    viewmodel: ShiftClockViewModel,
    repository: FlakyRepository,
    scheduler: ShiftScheduler,
    monotonic: FakeMonotonic,
):
    viewmodel.activate()
    run_poll_cycle(viewmodel, scheduler)
    assert viewmodel.active_entry.value is None

    entry = make_entry(TEST_NOW, break_start=TEST_NOW)
    repository.add_entry(entry)
    monotonic.advance(30.0)
    run_poll_cycle(viewmodel, scheduler)

    assert viewmodel.active_entry.value == entry
    assert viewmodel.clock_state.value == ClockState.ON_BREAK


def test_deactivated_does_nothing(
    viewmodel: ShiftClockViewModel,
    scheduler: ShiftScheduler,
    monotonic: FakeMonotonic,
):
    viewmodel.activate()
    viewmodel.deactivate()

    monotonic.advance(60.0)
    viewmodel.run()

    assert not viewmodel.active
    assert scheduler.pending == 0
