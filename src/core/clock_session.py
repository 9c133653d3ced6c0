#!/usr/bin/env python3
"""
File: clock_session.py
Author: Bastian Cerf
Date: 16/09/2025
Description:
    Authoritative answer to "is the employee clocked in, and on what
    shift". The open entry of the remote store is the source of truth;
    a snapshot is kept in the local store so a session survives a
    restart during which the remote store is unreachable.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
import logging
from typing import Optional

# Internal libraries
from common.live_data import LiveData
from common.local_store import LocalStore, LocalStoreError
from core.entities import TimeClockEntry
from core.shift_repository import (
    ShiftRepository,
    RepositoryException,
    EntryNotFoundError,
)

logger = logging.getLogger(__name__)

# Local store key of the active clock snapshot
ACTIVE_CLOCK_KEY = "active_time_clock"


class ClockSessionStore:
    """
    Holds the open time clock entry of one employee.

    The entry is published as a `LiveData` so the view and the other
    components can observe clock-in and clock-out.
    """

    def __init__(
        self,
        repository: ShiftRepository,
        employee_id: str,
        store: Optional[LocalStore] = None,
    ):
        """
        Args:
            repository (ShiftRepository): Remote store.
            employee_id (str): Signed-in employee.
            store (Optional[LocalStore]): Local store used to persist the
                active clock snapshot. `None` disables persistence.
        """
        self._repository = repository
        self._employee_id = employee_id
        self._store = store
        self._entry = LiveData[Optional[TimeClockEntry]](None)

    @property
    def employee_id(self) -> str:
        return self._employee_id

    @property
    def entry(self) -> LiveData[Optional[TimeClockEntry]]:
        """Observable open entry, `None` when clocked out."""
        return self._entry

    @property
    def active_entry(self) -> Optional[TimeClockEntry]:
        return self._entry.value

    @property
    def is_clocked_in(self) -> bool:
        return self._entry.value is not None

    def fetch(self) -> Optional[TimeClockEntry]:
        """
        Read the open entry from the remote store without changing the
        local state. Safe to call from a worker thread.

        Raises:
            RepositoryException: The remote store cannot be read.
        """
        return self._repository.get_open_time_clock_entry(self._employee_id)

    def update(self, entry: Optional[TimeClockEntry]):
        """
        Set the open entry (or `None` once clocked out) and keep the
        snapshot in sync.
        """
        if entry is not None and not entry.is_open:
            entry = None

        self._entry.value = entry
        self.__persist(entry)

    def clear(self):
        self.update(None)

    def refresh(self) -> Optional[TimeClockEntry]:
        """
        Synchronize with the remote store. When the remote store cannot
        be read and no entry is known yet, the persisted snapshot is used
        to recover the session.

        Returns:
            Optional[TimeClockEntry]: The open entry after refresh.
        """
        try:
            self.update(self.fetch())
        except RepositoryException:
            logger.error(
                f"Unable to fetch the open entry of employee '{self._employee_id}'.",
                exc_info=True,
            )
            if self._entry.value is None:
                self.__recover()
        return self._entry.value

    def __recover(self):
        """Restore the session from the persisted snapshot, if still open."""
        if self._store is None:
            return

        snapshot = self._store.get(ACTIVE_CLOCK_KEY)
        if not isinstance(snapshot, dict) or "entry_id" not in snapshot:
            return
        if snapshot.get("employee_id") != self._employee_id:
            return

        try:
            entry = self._repository.get_time_clock_entry(str(snapshot["entry_id"]))
        except EntryNotFoundError:
            logger.info("Persisted clock session no longer exists, dropping it.")
            self.update(None)
            return
        except RepositoryException:
            logger.warning("Unable to verify the persisted clock session.")
            return

        logger.info(f"Recovered clock session {entry!s} from the local snapshot.")
        self.update(entry)

    def __persist(self, entry: Optional[TimeClockEntry]):
        if self._store is None:
            return
        try:
            if entry is None:
                self._store.remove(ACTIVE_CLOCK_KEY)
            else:
                self._store.set(
                    ACTIVE_CLOCK_KEY,
                    {
                        "entry_id": entry.id,
                        "employee_id": entry.employee_id,
                        "shift_id": entry.shift_id,
                        "clock_in": entry.clock_in.isoformat(),
                    },
                )
        except LocalStoreError:
            logger.warning("Unable to persist the active clock snapshot.", exc_info=True)
