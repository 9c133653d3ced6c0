#!/usr/bin/env python3
"""
File: hours_report.py
Author: Bastian Cerf
Date: 19/09/2025
Description:
    Aggregation of time clock entries into hour totals.

    The employee report sums the worked and overtime hours of the entries
    clocked in during a period (current ISO week, current month, previous
    month, all time or a custom range). The company report groups the
    entries of all the employees of a company and estimates the labor
    cost from their hourly rate.

    Both reports can be exported as CSV or as an Excel workbook.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
import csv
import datetime as dt
import logging
from dataclasses import dataclass, field
from enum import Enum
from io import StringIO
from pathlib import Path
from typing import Iterable, Optional, TextIO

# Third-party libraries
from openpyxl import Workbook
from openpyxl.styles import Font

# Internal libraries
from core.entities import Employee, TimeClockEntry
from core.shift_repository import ShiftRepository

logger = logging.getLogger(__name__)

# Placeholder for missing employee information
NOT_AVAILABLE = "N/A"

EMPLOYEE_CSV_HEADER = [
    "Date",
    "Clock In",
    "Clock Out",
    "Break Duration",
    "Total Hours",
    "Overtime",
]
COMPANY_CSV_HEADER = [
    "Employee",
    "Position",
    "Department",
    "Total Hours",
    "Overtime Hours",
    "Hourly Rate",
    "Total Cost",
    "Entries",
]
DETAILS_CSV_HEADER = [
    "Employee",
    "Date",
    "Clock In",
    "Clock Out",
    "Break (min)",
    "Total Hours",
    "Overtime",
    "Notes",
]


class Period(Enum):
    WEEK = "week"
    MONTH = "month"
    LAST_MONTH = "last_month"
    ALL = "all"
    CUSTOM = "custom"

    def __str__(self):
        return self.value


def _month_start(day: dt.date) -> dt.datetime:
    return dt.datetime(day.year, day.month, 1)


def _next_month_start(day: dt.date) -> dt.datetime:
    if day.month == 12:
        return dt.datetime(day.year + 1, 1, 1)
    return dt.datetime(day.year, day.month + 1, 1)


def period_bounds(
    period: Period,
    now: dt.datetime,
    start: Optional[dt.datetime] = None,
    end: Optional[dt.datetime] = None,
) -> tuple[Optional[dt.datetime], Optional[dt.datetime]]:
    """
    Get the half-open range [start, end) of a period. The week starts on
    Monday. Unbounded sides are `None`.

    Args:
        period (Period): Period selector.
        now (datetime.datetime): Reference time.
        start (Optional[datetime.datetime]): Custom range start.
        end (Optional[datetime.datetime]): Custom range end, exclusive.

    Raises:
        ValueError: Custom range without bounds or with inverted bounds.
    """
    if period is Period.WEEK:
        week_start = dt.datetime.combine(
            now.date() - dt.timedelta(days=now.weekday()), dt.time()
        )
        return week_start, week_start + dt.timedelta(days=7)
    if period is Period.MONTH:
        return _month_start(now), _next_month_start(now)
    if period is Period.LAST_MONTH:
        this_month = _month_start(now)
        return _month_start(this_month - dt.timedelta(days=1)), this_month
    if period is Period.ALL:
        return None, None

    if start is None and end is None:
        raise ValueError("A custom period requires at least one bound.")
    if start is not None and end is not None and end < start:
        raise ValueError(f"Custom period ends ({end}) before it starts ({start}).")
    return start, end


def filter_entries(
    entries: Iterable[TimeClockEntry],
    period: Period,
    now: dt.datetime,
    start: Optional[dt.datetime] = None,
    end: Optional[dt.datetime] = None,
) -> list[TimeClockEntry]:
    """Keep the entries clocked in during the period, in input order."""
    lower, upper = period_bounds(period, now, start, end)
    return [
        e
        for e in entries
        if (lower is None or e.clock_in >= lower)
        and (upper is None or e.clock_in < upper)
    ]


@dataclass(frozen=True)
class HoursSummary:
    """
    Attributes:
        total_hours (float): Sum of the worked hours, open entries count 0.
        overtime_hours (float): Sum of the overtime hours.
        avg_hours_per_day (float): Total hours per entry, 0 if no entry.
        entry_count (int): Number of entries.
    """

    total_hours: float = 0.0
    overtime_hours: float = 0.0
    avg_hours_per_day: float = 0.0
    entry_count: int = 0


def summarize(entries: Iterable[TimeClockEntry]) -> HoursSummary:
    entries = list(entries)
    if not entries:
        return HoursSummary()

    total = round(sum(e.total_hours or 0.0 for e in entries), 2)
    overtime = round(sum(e.overtime_hours or 0.0 for e in entries), 2)
    return HoursSummary(
        total_hours=total,
        overtime_hours=overtime,
        avg_hours_per_day=total / len(entries),
        entry_count=len(entries),
    )


########################################################################
#                           Employee report                            #
########################################################################


def _hhmm(value: Optional[dt.datetime], missing: str = "-") -> str:
    return value.strftime("%H:%M") if value is not None else missing


def write_employee_csv(entries: Iterable[TimeClockEntry], stream: TextIO):
    """
    Write the hours of an employee as CSV: one row per entry in input
    order, a blank line, then the totals line.
    """
    entries = list(entries)
    summary = summarize(entries)

    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(EMPLOYEE_CSV_HEADER)
    for entry in entries:
        writer.writerow(
            [
                entry.clock_in.strftime("%Y-%m-%d"),
                _hhmm(entry.clock_in),
                _hhmm(entry.clock_out),
                f"{entry.break_minutes}min",
                f"{entry.total_hours or 0.0:.2f}",
                f"{entry.overtime_hours or 0.0:.2f}",
            ]
        )
    writer.writerow([])
    writer.writerow(
        [
            "Total Hours",
            "",
            "",
            "",
            f"{summary.total_hours:.2f}",
            f"{summary.overtime_hours:.2f}",
        ]
    )


def employee_csv(entries: Iterable[TimeClockEntry]) -> str:
    """Get the employee CSV report as a string."""
    buffer = StringIO()
    write_employee_csv(entries, buffer)
    return buffer.getvalue()


def load_employee_entries(
    repository: ShiftRepository,
    employee_id: str,
    period: Period,
    now: dt.datetime,
    start: Optional[dt.datetime] = None,
    end: Optional[dt.datetime] = None,
) -> list[TimeClockEntry]:
    """
    Read the entries of an employee for a period.

    Raises:
        RepositoryException: The remote store cannot be read.
    """
    lower, upper = period_bounds(period, now, start, end)
    entries = repository.list_time_clock_entries(
        employee_id=employee_id, start=lower, end=upper
    )
    # The store bounds are inclusive
    return filter_entries(entries, period, now, start, end)


########################################################################
#                            Company report                            #
########################################################################


@dataclass
class EmployeeHoursRow:
    """Hours of one employee in the company report."""

    employee_id: str
    name: str
    position: str = NOT_AVAILABLE
    department: str = NOT_AVAILABLE
    hourly_rate: float = 0.0
    total_hours: float = 0.0
    overtime_hours: float = 0.0
    entries: int = 0

    @property
    def cost(self) -> float:
        return self.total_hours * self.hourly_rate


@dataclass
class CompanyHoursReport:
    """
    Attributes:
        rows (list[EmployeeHoursRow]): Per-employee summary, by total
            hours descending.
        entries (list[TimeClockEntry]): Entries of the report.
        employees (dict[str, Employee]): Known employees by identifier.
    """

    rows: list[EmployeeHoursRow] = field(default_factory=list)
    entries: list[TimeClockEntry] = field(default_factory=list)
    employees: dict[str, Employee] = field(default_factory=dict)

    @property
    def total_hours(self) -> float:
        return sum(r.total_hours for r in self.rows)

    @property
    def overtime_hours(self) -> float:
        return sum(r.overtime_hours for r in self.rows)

    @property
    def total_cost(self) -> float:
        return sum(r.cost for r in self.rows)

    @property
    def entry_count(self) -> int:
        return len(self.entries)

    def employee_name(self, employee_id: str) -> str:
        employee = self.employees.get(employee_id)
        return employee.full_name if employee else employee_id


def summarize_company(
    entries: Iterable[TimeClockEntry], employees: Iterable[Employee]
) -> CompanyHoursReport:
    """Group the entries by employee. Unknown employees are kept."""
    report = CompanyHoursReport(
        entries=list(entries), employees={e.id: e for e in employees}
    )

    rows: dict[str, EmployeeHoursRow] = {}
    for entry in report.entries:
        row = rows.get(entry.employee_id)
        if row is None:
            employee = report.employees.get(entry.employee_id)
            row = EmployeeHoursRow(
                employee_id=entry.employee_id,
                name=report.employee_name(entry.employee_id),
            )
            if employee is not None:
                row.position = employee.position or NOT_AVAILABLE
                row.department = employee.department or NOT_AVAILABLE
                row.hourly_rate = employee.hourly_rate
            rows[entry.employee_id] = row

        row.total_hours += entry.total_hours or 0.0
        row.overtime_hours += entry.overtime_hours or 0.0
        row.entries += 1

    report.rows = sorted(rows.values(), key=lambda r: r.total_hours, reverse=True)
    return report


def load_company_report(
    repository: ShiftRepository,
    company_id: str,
    period: Period,
    now: dt.datetime,
    start: Optional[dt.datetime] = None,
    end: Optional[dt.datetime] = None,
) -> CompanyHoursReport:
    """
    Raises:
        RepositoryException: The remote store cannot be read.
    """
    lower, upper = period_bounds(period, now, start, end)
    entries = repository.list_time_clock_entries(
        company_id=company_id, start=lower, end=upper
    )
    entries = filter_entries(entries, period, now, start, end)
    return summarize_company(entries, repository.list_employees(company_id))


def write_company_csv(report: CompanyHoursReport, stream: TextIO):
    """
    Write the company report as CSV: the per-employee summary, the totals
    line and the detailed entries.
    """
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(COMPANY_CSV_HEADER)
    for row in report.rows:
        writer.writerow(
            [
                row.name,
                row.position,
                row.department,
                f"{row.total_hours:.2f}",
                f"{row.overtime_hours:.2f}",
                f"{row.hourly_rate:.2f}",
                f"{row.cost:.2f}",
                row.entries,
            ]
        )
    writer.writerow([])
    writer.writerow(
        [
            "Totals",
            "",
            "",
            f"{report.total_hours:.2f}",
            f"{report.overtime_hours:.2f}",
            "",
            f"{report.total_cost:.2f}",
            report.entry_count,
        ]
    )

    writer.writerow([])
    writer.writerow([])
    writer.writerow(["Detailed Time Entries"])
    writer.writerow(DETAILS_CSV_HEADER)
    for entry in report.entries:
        writer.writerow(
            [
                report.employee_name(entry.employee_id),
                entry.clock_in.strftime("%Y-%m-%d"),
                _hhmm(entry.clock_in),
                _hhmm(entry.clock_out, missing="Active"),
                entry.break_minutes,
                f"{entry.total_hours or 0.0:.2f}",
                f"{entry.overtime_hours or 0.0:.2f}",
                entry.notes or "",
            ]
        )


########################################################################
#                             Excel export                             #
########################################################################


def _write_header(sheet, header: list[str]):
    sheet.append(header)
    for cell in sheet[sheet.max_row]:
        cell.font = Font(bold=True)


def save_employee_xlsx(entries: Iterable[TimeClockEntry], path: str | Path):
    """Save the employee report as an Excel workbook."""
    entries = list(entries)
    summary = summarize(entries)

    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Hours"
    _write_header(sheet, EMPLOYEE_CSV_HEADER)
    for entry in entries:
        sheet.append(
            [
                entry.clock_in.date(),
                _hhmm(entry.clock_in),
                _hhmm(entry.clock_out),
                entry.break_minutes,
                entry.total_hours or 0.0,
                entry.overtime_hours or 0.0,
            ]
        )
    sheet.append([])
    sheet.append(
        ["Total Hours", None, None, None, summary.total_hours, summary.overtime_hours]
    )
    sheet[sheet.max_row][0].font = Font(bold=True)

    workbook.save(path)
    logger.info(f"Employee hours report saved to '{path}'.")


def save_company_xlsx(report: CompanyHoursReport, path: str | Path):
    """Save the company report as an Excel workbook with two sheets."""
    workbook = Workbook()
    summary = workbook.active
    summary.title = "Summary"
    _write_header(summary, COMPANY_CSV_HEADER)
    for row in report.rows:
        summary.append(
            [
                row.name,
                row.position,
                row.department,
                round(row.total_hours, 2),
                round(row.overtime_hours, 2),
                row.hourly_rate,
                round(row.cost, 2),
                row.entries,
            ]
        )
    summary.append([])
    summary.append(
        [
            "Totals",
            None,
            None,
            round(report.total_hours, 2),
            round(report.overtime_hours, 2),
            None,
            round(report.total_cost, 2),
            report.entry_count,
        ]
    )
    summary[summary.max_row][0].font = Font(bold=True)

    details = workbook.create_sheet("Detailed Time Entries")
    _write_header(details, DETAILS_CSV_HEADER)
    for entry in report.entries:
        details.append(
            [
                report.employee_name(entry.employee_id),
                entry.clock_in.date(),
                _hhmm(entry.clock_in),
                _hhmm(entry.clock_out, missing="Active"),
                entry.break_minutes,
                entry.total_hours or 0.0,
                entry.overtime_hours or 0.0,
                entry.notes or "",
            ]
        )

    workbook.save(path)
    logger.info(f"Company hours report saved to '{path}'.")
