#!/usr/bin/env python3
"""
File: notification_log.py
Author: Bastian Cerf
Date: 15/09/2025
Description:
    Device-local memory of the shift notifications already surfaced.

    The `NotificationLog` is a capped, persisted list of opaque keys. A
    key exists once a notification has been shown (`<shift>-<iso date>`)
    or dismissed (`<shift>-dismissed`). The oldest keys are evicted first
    once the capacity is reached.

    The `DismissedShiftStore` keeps a copy of the last shift the user
    dismissed a prompt for, so the banner can be restored after a
    restart. The copy stays valid until some minutes past the shift start.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
import datetime as dt
import logging
from typing import Optional

# Internal libraries
from common.local_store import LocalStore
from core.entities import Shift

logger = logging.getLogger(__name__)

# Local store keys
NOTIFICATION_SHOWN_KEY = "shift_notifications_shown"
DISMISSED_SHIFT_KEY = "dismissed_shift"

DEFAULT_LOG_CAPACITY = 50
DEFAULT_DISMISSAL_VALIDITY = dt.timedelta(minutes=30)


def alerted_key(shift_id: str, day: dt.date) -> str:
    """Key marking the alert of a shift as shown on the given day."""
    return f"{shift_id}-{day.isoformat()}"


def dismissed_key(shift_id: str) -> str:
    """Key marking the alert of a shift as dismissed by the user."""
    return f"{shift_id}-dismissed"


class NotificationLog:
    """
    Bounded FIFO of notification keys persisted in a `LocalStore`.
    """

    def __init__(
        self,
        store: LocalStore,
        capacity: int = DEFAULT_LOG_CAPACITY,
        store_key: str = NOTIFICATION_SHOWN_KEY,
    ):
        if capacity < 1:
            raise ValueError(f"Capacity must be at least 1, got {capacity}.")
        self._store = store
        self._capacity = capacity
        self._store_key = store_key

    @property
    def capacity(self) -> int:
        return self._capacity

    def keys(self) -> list[str]:
        """
        Returns:
            list[str]: Recorded keys, oldest first. Unparseable content is
                reported as an empty log.
        """
        stored = self._store.get(self._store_key, [])
        if not isinstance(stored, list) or not all(isinstance(k, str) for k in stored):
            logger.warning(
                f"Notification log in {self._store!s} is corrupted, resetting it."
            )
            return []
        return stored

    def has_been_shown(self, key: str) -> bool:
        return key in self.keys()

    def record_shown(self, key: str):
        """
        Append a key, evicting the oldest ones beyond the capacity.
        Recording an existing key does nothing.
        """
        keys = self.keys()
        if key in keys:
            return
        keys.append(key)
        self._store.set(self._store_key, keys[-self._capacity :])
        logger.debug(f"Notification key '{key}' recorded.")

    def clear(self):
        self._store.remove(self._store_key)


class DismissedShiftStore:
    """
    Persisted snapshot of the last dismissed shift.
    """

    def __init__(
        self,
        store: LocalStore,
        validity: dt.timedelta = DEFAULT_DISMISSAL_VALIDITY,
        store_key: str = DISMISSED_SHIFT_KEY,
    ):
        """
        Args:
            store (LocalStore): Backing store.
            validity (datetime.timedelta): How long past the shift start
                the snapshot can be restored.
            store_key (str): Key used in the store.
        """
        self._store = store
        self._validity = validity
        self._store_key = store_key

    def save(self, shift: Shift, dismissed_at: dt.datetime):
        """Overwrite the snapshot with the given shift."""
        self._store.set(
            self._store_key,
            {"shift": shift.to_dict(), "dismissed_at": dismissed_at.isoformat()},
        )
        logger.debug(f"Dismissed {shift!s} saved.")

    def expires_at(self, shift: Shift) -> dt.datetime:
        return shift.start_time + self._validity

    def restore(self, now: dt.datetime) -> Optional[Shift]:
        """
        Get the dismissed shift if still valid. An expired or unreadable
        snapshot is purged.

        Returns:
            Optional[Shift]: The dismissed shift or `None`.
        """
        stored = self._store.get(self._store_key)
        if stored is None:
            return None

        try:
            shift = Shift.from_dict(stored["shift"])
        except (TypeError, KeyError, ValueError):
            logger.warning("Dismissed shift snapshot is corrupted, purging it.")
            self.clear()
            return None

        if now > self.expires_at(shift):
            logger.debug(f"Dismissed {shift!s} expired, purging it.")
            self.clear()
            return None
        return shift

    def clear(self):
        self._store.remove(self._store_key)
