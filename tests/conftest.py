#!/usr/bin/env python3
"""
File: conftest.py
Author: Bastian Cerf
Date: 13/04/2025
Description:
    Declaration of shared fixtures across unit test modules.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
import pytest
from typing import Generator

# Internal libraries
from tests.test_constants import *
from tests.classes_mocks import FakeClock, FakeMonotonic, FlakyRepository
from common.local_store import LocalStore
from core.entities import Employee, EmployeeRole
from core.clock_session import ClockSessionStore
from core.notification_log import NotificationLog, DismissedShiftStore
from core.shift_poller import ShiftPoller
from core.time_clock import TimeClock
from model.shift_scheduler import ShiftScheduler
from viewmodel.shift_clock_viewmodel import ShiftClockViewModel

########################################################################
#                           Engine components                          #
########################################################################


@pytest.fixture
def clock() -> FakeClock:
    """
    Get a wall clock set 5 minutes before the test shift start.
    """
    return FakeClock(TEST_NOW)


@pytest.fixture
def monotonic() -> FakeMonotonic:
    return FakeMonotonic()


@pytest.fixture
def employee() -> Employee:
    return Employee(
        id=TEST_EMPLOYEE_ID,
        company_id=TEST_COMPANY_ID,
        first_name=TEST_EMPLOYEE_FIRSTNAME,
        last_name=TEST_EMPLOYEE_NAME,
        email="meca.cerf@mecacerf.ch",
        role=EmployeeRole.EMPLOYEE,
        position="Operator",
        department="Production",
        hourly_rate=30.0,
    )


@pytest.fixture
def repository(employee: Employee) -> FlakyRepository:
    """
    Get an in-memory remote store holding the test employee.
    """
    return FlakyRepository(employees=[employee])


@pytest.fixture
def store() -> LocalStore:
    return LocalStore()


@pytest.fixture
def session(repository: FlakyRepository, store: LocalStore) -> ClockSessionStore:
    return ClockSessionStore(repository, TEST_EMPLOYEE_ID, store)


@pytest.fixture
def notification_log(store: LocalStore) -> NotificationLog:
    return NotificationLog(store)


@pytest.fixture
def dismissed_store(store: LocalStore) -> DismissedShiftStore:
    return DismissedShiftStore(store)


@pytest.fixture
def poller(
    repository: FlakyRepository,
    session: ClockSessionStore,
    notification_log: NotificationLog,
    clock: FakeClock,
) -> ShiftPoller:
    return ShiftPoller(repository, session, notification_log, clock=clock)


@pytest.fixture
def time_clock(repository: FlakyRepository, clock: FakeClock) -> TimeClock:
    return TimeClock(repository, TEST_EMPLOYEE_ID, clock=clock)


@pytest.fixture
def scheduler(repository: FlakyRepository) -> Generator[ShiftScheduler, None, None]:
    """
    Get a configured model scheduler.
    """
    with ShiftScheduler(repository) as scheduler:
        yield scheduler


@pytest.fixture
def viewmodel(
    session: ClockSessionStore,
    poller: ShiftPoller,
    time_clock: TimeClock,
    notification_log: NotificationLog,
    dismissed_store: DismissedShiftStore,
    scheduler: ShiftScheduler,
    clock: FakeClock,
    monotonic: FakeMonotonic,
) -> Generator[ShiftClockViewModel, None, None]:
    """
    Get a configured view model, driven by the fake clocks.
    """
    viewmodel = ShiftClockViewModel(
        session,
        poller,
        time_clock,
        notification_log,
        dismissed_store,
        scheduler,
        poll_interval=30.0,
        tick_interval=1.0,
        clock=clock,
        monotonic=monotonic,
    )
    yield viewmodel
    viewmodel.close()
