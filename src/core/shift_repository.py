#!/usr/bin/env python3
"""
File: shift_repository.py
Author: Bastian Cerf
Date: 09/09/2025
Description:
    Abstract access to the remote store holding employees, shifts and
    time clock entries. The engine only talks to the store through this
    interface, the concrete transport (database, spreadsheet, memory) is
    implementation dependent.

    Implementations must enforce the one-open-entry rule: creating an
    entry for an employee who already has an open entry raises an
    `OpenEntryConflictError`. Implementations are expected to be safe to
    call from the scheduler worker threads.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
from abc import ABC, abstractmethod
from typing import Any, Optional
import datetime as dt

# Internal libraries
from .entities import Employee, Shift, TimeClockEntry

########################################################################
#                Remote store related errors declaration               #
########################################################################


class RepositoryException(Exception):
    """Base type for all exceptions related to the remote store."""

    pass


class RepositoryReadException(RepositoryException):
    """Custom exception for failed read operations."""

    def __init__(self, message: str = "Unable to read from the remote store."):
        super().__init__(message)


class RepositoryWriteException(RepositoryException):
    """Custom exception for failed write operations."""

    def __init__(self, message: str = "Unable to write to the remote store."):
        super().__init__(message)


class EntryNotFoundError(RepositoryException):
    """Custom exception for unknown time clock entries."""

    def __init__(self, entry_id: str):
        super().__init__(f"Time clock entry '{entry_id}' doesn't exist.")
        self.entry_id = entry_id


class OpenEntryConflictError(RepositoryWriteException):
    """
    The employee already has an open time clock entry. Raised by the
    store when the one-open-entry constraint would be violated.
    """

    def __init__(self, employee_id: str, open_entry_id: Optional[str] = None):
        super().__init__(f"Employee '{employee_id}' is already clocked in.")
        self.employee_id = employee_id
        self.open_entry_id = open_entry_id


# Fields of a time clock entry that can be changed after creation
UPDATABLE_ENTRY_FIELDS = frozenset(
    {
        "clock_out",
        "break_start",
        "break_end",
        "total_hours",
        "overtime_hours",
        "notes",
        "clock_in_location",
        "clock_out_location",
    }
)


def check_update_fields(fields: dict[str, Any]):
    """
    Raises:
        ValueError: A field cannot be updated.
    """
    unknown = set(fields) - UPDATABLE_ENTRY_FIELDS
    if unknown:
        raise ValueError(f"Field(s) cannot be updated: {', '.join(sorted(unknown))}.")


class ShiftRepository(ABC):
    """
    Remote store interface consumed by the engine.
    """

    ### Operations used by the shift lifecycle engine

    @abstractmethod
    def list_shifts_for_employee_on_date(
        self, employee_id: str, day: dt.date
    ) -> list[Shift]:
        """
        List the shifts of an employee starting on the given calendar day.

        Returns:
            list[Shift]: Shifts ordered by ascending start time.

        Raises:
            RepositoryReadException: The store cannot be read.
        """
        pass

    @abstractmethod
    def get_open_time_clock_entry(self, employee_id: str) -> Optional[TimeClockEntry]:
        """
        Returns:
            Optional[TimeClockEntry]: The open entry of the employee, if
                any.

        Raises:
            RepositoryReadException: The store cannot be read.
        """
        pass

    @abstractmethod
    def create_time_clock_entry(
        self, shift_id: Optional[str], employee_id: str, clock_in: dt.datetime
    ) -> TimeClockEntry:
        """
        Create an open entry for the employee.

        Raises:
            OpenEntryConflictError: The employee already has an open entry.
            RepositoryWriteException: The store cannot be written.
        """
        pass

    @abstractmethod
    def update_time_clock_entry(self, entry_id: str, **fields: Any) -> TimeClockEntry:
        """
        Update some fields of an entry (see `UPDATABLE_ENTRY_FIELDS`).

        Returns:
            TimeClockEntry: The updated entry.

        Raises:
            EntryNotFoundError: Unknown entry.
            ValueError: A field cannot be updated.
            RepositoryWriteException: The store cannot be written.
        """
        pass

    ### Operations used by reporting and session recovery

    @abstractmethod
    def get_time_clock_entry(self, entry_id: str) -> TimeClockEntry:
        """
        Raises:
            EntryNotFoundError: Unknown entry.
            RepositoryReadException: The store cannot be read.
        """
        pass

    @abstractmethod
    def list_time_clock_entries(
        self,
        employee_id: Optional[str] = None,
        company_id: Optional[str] = None,
        start: Optional[dt.datetime] = None,
        end: Optional[dt.datetime] = None,
    ) -> list[TimeClockEntry]:
        """
        List entries, optionally filtered by employee, by the company of
        the employee and by an inclusive clock-in range.

        Returns:
            list[TimeClockEntry]: Entries ordered by ascending clock-in.

        Raises:
            RepositoryReadException: The store cannot be read.
        """
        pass

    @abstractmethod
    def get_employee(self, employee_id: str) -> Optional[Employee]:
        """
        Raises:
            RepositoryReadException: The store cannot be read.
        """
        pass

    @abstractmethod
    def list_employees(self, company_id: Optional[str] = None) -> list[Employee]:
        """
        Raises:
            RepositoryReadException: The store cannot be read.
        """
        pass

    def close(self):
        """Release the resources held by the store, if any."""
        pass
