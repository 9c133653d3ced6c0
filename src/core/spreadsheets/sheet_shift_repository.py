#!/usr/bin/env python3
"""
File: sheet_shift_repository.py
Author: Bastian Cerf
Date: 10/09/2025
Description:
    Implementation of the remote store interface on top of a single
    spreadsheet file (.xlsx). The workbook holds one sheet per table
    (employees, shifts, time clock entries) with a header row naming the
    columns. An info sheet carries the layout version.

    The workbook is kept in memory and saved after every write. When the
    file is modified by someone else (shared network drive), it is
    reloaded before the next operation.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
import dataclasses
import datetime as dt
import json
import logging
import threading
import time
import uuid
from pathlib import Path
from typing import Any, Iterator, Optional

# Third-party libraries
import openpyxl
from openpyxl.worksheet.worksheet import Worksheet

# Internal imports
from core.entities import Employee, Shift, TimeClockEntry
from core.shift_repository import (
    ShiftRepository,
    RepositoryReadException,
    RepositoryWriteException,
    EntryNotFoundError,
    OpenEntryConflictError,
    check_update_fields,
)

logger = logging.getLogger(__name__)

# Prevent PIL from spamming debug messages (seems used by openpyxl)
logging.getLogger("PIL").setLevel(logging.INFO)

########################################################################
#                   Spreadsheet constants declaration                  #
########################################################################

# Expected workbook layout version. Opening a workbook that uses another
# major version fails to prevent compatibility issues.
EXPECTED_MAJOR_VERSION = "v250910"

SHEET_INFO = "info"
CELL_VERSION = "B1"

SHEET_EMPLOYEES = "employees"
SHEET_SHIFTS = "shifts"
SHEET_ENTRIES = "time_clock"

EMPLOYEE_COLUMNS = (
    "id",
    "company_id",
    "first_name",
    "last_name",
    "email",
    "role",
    "position",
    "department",
    "hourly_rate",
)
SHIFT_COLUMNS = (
    "id",
    "employee_id",
    "company_id",
    "start_time",
    "end_time",
    "status",
    "notes",
)
ENTRY_COLUMNS = (
    "id",
    "employee_id",
    "shift_id",
    "clock_in",
    "clock_out",
    "break_start",
    "break_end",
    "total_hours",
    "overtime_hours",
    "notes",
    "clock_in_location",
    "clock_out_location",
)

# Location columns hold a JSON document
_LOCATION_COLUMNS = ("clock_in_location", "clock_out_location")

_TABLES = {
    SHEET_EMPLOYEES: EMPLOYEE_COLUMNS,
    SHEET_SHIFTS: SHIFT_COLUMNS,
    SHEET_ENTRIES: ENTRY_COLUMNS,
}


def create_workbook(path: str | Path) -> Path:
    """
    Create an empty workbook with the expected layout.

    Returns:
        Path: The workbook path.
    """
    path = Path(path)
    workbook = openpyxl.Workbook()
    info = workbook.active
    assert info is not None
    info.title = SHEET_INFO
    info["A1"] = "version"
    info[CELL_VERSION] = EXPECTED_MAJOR_VERSION

    for name, columns in _TABLES.items():
        sheet = workbook.create_sheet(name)
        sheet.append(list(columns))

    path.parent.mkdir(parents=True, exist_ok=True)
    workbook.save(path)
    logger.info(f"Created an empty shift workbook at '{path}'.")
    return path


class SheetShiftRepository(ShiftRepository):
    """
    Remote store backed by a spreadsheet file.
    """

    def __init__(self, file_path: str | Path, create: bool = True):
        """
        Open the workbook.

        Args:
            file_path (str | Path): Workbook path.
            create (bool): Create an empty workbook if the file doesn't
                exist.

        Raises:
            RepositoryReadException: The workbook cannot be opened or uses
                an unexpected layout.
        """
        self._path = Path(file_path)
        self._lock = threading.RLock()
        self._workbook: Optional[openpyxl.Workbook] = None
        self._mtime = 0.0

        if not self._path.exists():
            if not create:
                raise RepositoryReadException(f"Workbook '{self._path}' not found.")
            create_workbook(self._path)

        self.__load()

    @property
    def path(self) -> Path:
        return self._path

    ## Workbook loading and saving ##

    def __load(self):
        start_ts = time.time()
        try:
            workbook = openpyxl.load_workbook(self._path)
        except Exception as e:
            raise RepositoryReadException(
                f"Unable to open workbook '{self._path}'."
            ) from e

        if SHEET_INFO not in workbook.sheetnames:
            raise RepositoryReadException(f"'{self._path}' has no '{SHEET_INFO}' sheet.")

        version = workbook[SHEET_INFO][CELL_VERSION].value
        if version is None or not str(version).lower().startswith(
            EXPECTED_MAJOR_VERSION.lower()
        ):
            raise RepositoryReadException(
                f"Cannot load workbook '{self._path}' that uses version "
                f"'{version}'. The expected major version is "
                f"'{EXPECTED_MAJOR_VERSION}'."
            )

        for name, columns in _TABLES.items():
            if name not in workbook.sheetnames:
                raise RepositoryReadException(f"'{self._path}' has no '{name}' sheet.")
            header = tuple(c.value for c in workbook[name][1])
            if header[: len(columns)] != columns:
                raise RepositoryReadException(
                    f"Unexpected columns in sheet '{name}' of '{self._path}'."
                )

        self._workbook = workbook
        self._mtime = self._path.stat().st_mtime
        logger.debug(
            f"Workbook '{self._path}' loaded in {(time.time() - start_ts) * 1000:.0f}ms."
        )

    def __sync(self) -> openpyxl.Workbook:
        """Reload the workbook if the file changed since the last access."""
        try:
            mtime = self._path.stat().st_mtime
        except OSError as e:
            raise RepositoryReadException(f"Workbook '{self._path}' is gone.") from e

        if self._workbook is None or mtime != self._mtime:
            logger.info(f"Workbook '{self._path}' changed on disk, reloading.")
            self.__load()
        assert self._workbook is not None
        return self._workbook

    def __save(self):
        assert self._workbook is not None
        try:
            self._workbook.save(self._path)
            self._mtime = self._path.stat().st_mtime
        except Exception as e:
            # The in-memory copy may hold changes that are not on disk,
            # drop it so the next access reloads the file
            self._workbook = None
            raise RepositoryWriteException(
                f"Unable to save workbook '{self._path}'."
            ) from e

    ## Row helpers ##

    @staticmethod
    def __rows(sheet: Worksheet) -> Iterator[tuple[int, dict[str, Any]]]:
        """Iterate the data rows as (row index, column -> value)."""
        header = [c.value for c in sheet[1]]
        for index, values in enumerate(
            sheet.iter_rows(min_row=2, values_only=True), start=2
        ):
            if values[0] is None:
                continue  # Empty row
            yield index, dict(zip(header, values))

    @staticmethod
    def __parse_entry(row: dict[str, Any]) -> TimeClockEntry:
        data = dict(row)
        for column in _LOCATION_COLUMNS:
            raw = data.get(column)
            data[column] = json.loads(raw) if raw else None
        return TimeClockEntry.from_dict(data)

    @staticmethod
    def __entry_cells(entry: TimeClockEntry) -> list[Any]:
        data = entry.to_dict()
        cells = []
        for column in ENTRY_COLUMNS:
            if column in _LOCATION_COLUMNS:
                location = getattr(entry, column)
                cells.append(json.dumps(location.to_dict()) if location else None)
            elif column in ("clock_in", "clock_out", "break_start", "break_end"):
                cells.append(getattr(entry, column))
            else:
                cells.append(data[column])
        return cells

    def __find_entry_row(self, entry_id: str) -> tuple[int, TimeClockEntry]:
        sheet = self.__sync()[SHEET_ENTRIES]
        for index, row in self.__rows(sheet):
            if str(row["id"]) != entry_id:
                continue
            try:
                return index, self.__parse_entry(row)
            except (ValueError, KeyError) as e:
                raise RepositoryReadException(
                    f"Malformed time clock entry '{entry_id}' in '{self._path}'."
                ) from e
        raise EntryNotFoundError(entry_id)

    def __read(self, sheet_name: str) -> list[dict[str, Any]]:
        try:
            sheet = self.__sync()[sheet_name]
            return [row for _, row in self.__rows(sheet)]
        except RepositoryReadException:
            raise
        except Exception as e:
            raise RepositoryReadException(
                f"Unable to read sheet '{sheet_name}' of '{self._path}'."
            ) from e

    def __entries(self) -> list[TimeClockEntry]:
        try:
            return [self.__parse_entry(row) for row in self.__read(SHEET_ENTRIES)]
        except (ValueError, KeyError) as e:
            raise RepositoryReadException(
                f"Malformed time clock entry in '{self._path}'."
            ) from e

    ## Write helpers for other tools (imports, tests) ##

    def add_employee(self, employee: Employee):
        with self._lock:
            data = employee.to_dict()
            self.__sync()[SHEET_EMPLOYEES].append([data[c] for c in EMPLOYEE_COLUMNS])
            self.__save()

    def add_shift(self, shift: Shift):
        with self._lock:
            self.__sync()[SHEET_SHIFTS].append(
                [
                    shift.id,
                    shift.employee_id,
                    shift.company_id,
                    shift.start_time,
                    shift.end_time,
                    shift.status.value,
                    shift.notes,
                ]
            )
            self.__save()

    ## ShiftRepository implementation ##

    def list_shifts_for_employee_on_date(
        self, employee_id: str, day: dt.date
    ) -> list[Shift]:
        with self._lock:
            rows = self.__read(SHEET_SHIFTS)
        try:
            shifts = [Shift.from_dict(row) for row in rows]
        except (ValueError, KeyError) as e:
            raise RepositoryReadException(f"Malformed shift in '{self._path}'.") from e

        return sorted(
            (
                s
                for s in shifts
                if s.employee_id == employee_id and s.start_time.date() == day
            ),
            key=lambda s: s.start_time,
        )

    def get_open_time_clock_entry(self, employee_id: str) -> Optional[TimeClockEntry]:
        with self._lock:
            entries = self.__entries()
        return max(
            (e for e in entries if e.employee_id == employee_id and e.is_open),
            key=lambda e: e.clock_in,
            default=None,
        )

    def create_time_clock_entry(
        self, shift_id: Optional[str], employee_id: str, clock_in: dt.datetime
    ) -> TimeClockEntry:
        with self._lock:
            if existing := self.get_open_time_clock_entry(employee_id):
                raise OpenEntryConflictError(employee_id, existing.id)

            entry = TimeClockEntry(
                id=uuid.uuid4().hex,
                employee_id=employee_id,
                shift_id=shift_id,
                clock_in=clock_in,
            )
            self.__sync()[SHEET_ENTRIES].append(self.__entry_cells(entry))
            self.__save()

        logger.debug(f"Created {entry!s} in '{self._path}'.")
        return entry

    def update_time_clock_entry(self, entry_id: str, **fields: Any) -> TimeClockEntry:
        check_update_fields(fields)
        with self._lock:
            row_index, entry = self.__find_entry_row(entry_id)
            entry = dataclasses.replace(entry, **fields)

            sheet = self.__sync()[SHEET_ENTRIES]
            for col, value in enumerate(self.__entry_cells(entry), start=1):
                sheet.cell(row=row_index, column=col, value=value)
            self.__save()

        return entry

    def get_time_clock_entry(self, entry_id: str) -> TimeClockEntry:
        with self._lock:
            _, entry = self.__find_entry_row(entry_id)
            return entry

    def list_time_clock_entries(
        self,
        employee_id: Optional[str] = None,
        company_id: Optional[str] = None,
        start: Optional[dt.datetime] = None,
        end: Optional[dt.datetime] = None,
    ) -> list[TimeClockEntry]:
        with self._lock:
            entries = self.__entries()
            members = (
                {e.id for e in self.list_employees(company_id)}
                if company_id is not None
                else None
            )

        return sorted(
            (
                e
                for e in entries
                if (employee_id is None or e.employee_id == employee_id)
                and (members is None or e.employee_id in members)
                and (start is None or e.clock_in >= start)
                and (end is None or e.clock_in <= end)
            ),
            key=lambda e: e.clock_in,
        )

    def get_employee(self, employee_id: str) -> Optional[Employee]:
        return next(
            (e for e in self.list_employees() if e.id == employee_id),
            None,
        )

    def list_employees(self, company_id: Optional[str] = None) -> list[Employee]:
        with self._lock:
            rows = self.__read(SHEET_EMPLOYEES)
        try:
            employees = [Employee.from_dict(row) for row in rows]
        except (ValueError, KeyError) as e:
            raise RepositoryReadException(
                f"Malformed employee in '{self._path}'."
            ) from e
        return [e for e in employees if company_id is None or e.company_id == company_id]

    def close(self):
        with self._lock:
            if self._workbook is not None:
                self._workbook.close()
                self._workbook = None

    def __str__(self) -> str:
        return f"SheetShiftRepository[{self._path}]"
