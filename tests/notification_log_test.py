#!/usr/bin/env python3
"""
File: notification_log_test.py
Author: Bastian Cerf
Date: 15/09/2025
Description:
    Unit test the notification log and the dismissed shift store.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
import pytest
import datetime as dt
from pathlib import Path

# Internal libraries
from .test_constants import *
from .classes_mocks import make_shift
from common.local_store import LocalStore
from core.notification_log import (
    NotificationLog,
    DismissedShiftStore,
    NOTIFICATION_SHOWN_KEY,
    DISMISSED_SHIFT_KEY,
    alerted_key,
    dismissed_key,
)

########################################################################
#                         Notification log test                        #
########################################################################


def test_keys_format():
    assert alerted_key("abc", dt.date(2025, 9, 15)) == "abc-2025-09-15"
    assert dismissed_key("abc") == "abc-dismissed"


def test_record_and_query(notification_log: NotificationLog):
    assert not notification_log.has_been_shown("s1-2025-09-15")

    notification_log.record_shown("s1-2025-09-15")

    assert notification_log.has_been_shown("s1-2025-09-15")
    assert not notification_log.has_been_shown("s1-dismissed")


def test_record_twice_is_noop(notification_log: NotificationLog):
    notification_log.record_shown("k")
    notification_log.record_shown("k")
    assert notification_log.keys() == ["k"]


def test_capacity_evicts_oldest():
    log = NotificationLog(LocalStore(), capacity=50)
    for i in range(51):
        log.record_shown(f"key-{i}")

    keys = log.keys()
    assert len(keys) == 50
    assert keys[0] == "key-1"
    assert keys[-1] == "key-50"
    assert not log.has_been_shown("key-0")


def test_keys_do_not_alter_the_log():
    log = NotificationLog(LocalStore(), capacity=2)
    log.record_shown("a")
    log.record_shown("b")

    log.keys().append("x")

    assert log.keys() == ["a", "b"]
    assert not log.has_been_shown("x")


def test_invalid_capacity_raises():
    with pytest.raises(ValueError):
        NotificationLog(LocalStore(), capacity=0)


def test_corrupted_log_is_empty(store: LocalStore):
    store.set(NOTIFICATION_SHOWN_KEY, {"not": "a list"})
    log = NotificationLog(store)

    assert log.keys() == []
    log.record_shown("k")
    assert store.get(NOTIFICATION_SHOWN_KEY) == ["k"]


def test_log_persisted(tmp_path: Path):
    path = tmp_path / "state.json"
    NotificationLog(LocalStore(path)).record_shown("k")
    assert NotificationLog(LocalStore(path)).has_been_shown("k")


def test_clear(notification_log: NotificationLog):
    notification_log.record_shown("k")
    notification_log.clear()
    assert notification_log.keys() == []


########################################################################
#                       Dismissed shift store test                     #
########################################################################


def test_dismissed_restore_valid(dismissed_store: DismissedShiftStore):
    shift = make_shift(TEST_SHIFT_START)
    dismissed_store.save(shift, TEST_NOW)

    restored = dismissed_store.restore(TEST_SHIFT_START + dt.timedelta(minutes=30))
    assert restored == shift


def test_dismissed_restore_expired(store: LocalStore):
    """
    Dismissed at T, reloaded 31 minutes past the shift start: the
    snapshot is purged.
    """
    dismissed_store = DismissedShiftStore(store)
    dismissed_store.save(make_shift(TEST_SHIFT_START), TEST_NOW)

    assert dismissed_store.restore(TEST_SHIFT_START + dt.timedelta(minutes=31)) is None
    assert DISMISSED_SHIFT_KEY not in store


def test_dismissed_overwritten(dismissed_store: DismissedShiftStore):
    dismissed_store.save(make_shift(TEST_SHIFT_START, id="first"), TEST_NOW)
    second = make_shift(TEST_SHIFT_START, id="second")
    dismissed_store.save(second, TEST_NOW)

    assert dismissed_store.restore(TEST_NOW) == second


def test_dismissed_corrupted(store: LocalStore):
    store.set(DISMISSED_SHIFT_KEY, {"shift": {"id": "x"}})
    dismissed_store = DismissedShiftStore(store)

    assert dismissed_store.restore(TEST_NOW) is None
    assert DISMISSED_SHIFT_KEY not in store


def test_dismissed_custom_validity(store: LocalStore):
    dismissed_store = DismissedShiftStore(store, validity=dt.timedelta(minutes=5))
    shift = make_shift(TEST_SHIFT_START)
    dismissed_store.save(shift, TEST_NOW)

    assert dismissed_store.expires_at(shift) == TEST_SHIFT_START + dt.timedelta(
        minutes=5
    )
    assert dismissed_store.restore(TEST_SHIFT_START + dt.timedelta(minutes=6)) is None
