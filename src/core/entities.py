#!/usr/bin/env python3
"""
Domain entities shared by every component: employees, shifts and time
clock entries. Entities are immutable; updates produce new instances
with `dataclasses.replace()`.

All datetimes are naive local times. They are serialized as ISO-8601
strings by `to_dict()` and parsed back by `from_dict()`.

---
ShiftBridge - An open-source shift scheduling and time-tracking engine

Author: Bastian Cerf
Copyright (C) 2025 Mecacerf SA
License: AGPL-3.0 <https://www.gnu.org/licenses/>
"""

# Standard libraries
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Optional
import datetime as dt


def _to_iso(value: Optional[dt.datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _from_iso(value: Any) -> Optional[dt.datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, dt.datetime):
        return value
    return dt.datetime.fromisoformat(str(value))


def _to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


class EmployeeRole(Enum):
    """Roles gating the UI and the mutations, enforced by the backend."""

    EMPLOYEE = "employee"
    MANAGER = "manager"
    OPERATIONS_MANAGER = "operations_manager"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"

    @property
    def is_manager(self) -> bool:
        return self is not EmployeeRole.EMPLOYEE

    def __str__(self):
        return self.value


class ShiftStatus(Enum):
    """Shift lifecycle: scheduled -> active -> completed, or missed / cancelled."""

    SCHEDULED = "scheduled"
    ACTIVE = "active"
    COMPLETED = "completed"
    MISSED = "missed"
    CANCELLED = "cancelled"

    @property
    def actionable(self) -> bool:
        """An employee can still be prompted to clock in for this shift."""
        return self not in (ShiftStatus.COMPLETED, ShiftStatus.CANCELLED)

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class Employee:
    """
    Attributes:
        id (str): Employee identifier.
        company_id (str): The only company the employee belongs to.
        first_name (str): First name.
        last_name (str): Last name.
        email (str): Contact email.
        role (EmployeeRole): Access role.
        position (Optional[str]): Job title.
        department (Optional[str]): Department name.
        hourly_rate (float): Rate used to estimate labor cost.
    """

    id: str
    company_id: str
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    role: EmployeeRole = EmployeeRole.EMPLOYEE
    position: Optional[str] = None
    department: Optional[str] = None
    hourly_rate: float = 0.0

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["role"] = self.role.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Employee":
        return cls(
            id=str(data["id"]),
            company_id=str(data["company_id"]),
            first_name=data.get("first_name") or "",
            last_name=data.get("last_name") or "",
            email=data.get("email") or "",
            role=EmployeeRole(data.get("role") or EmployeeRole.EMPLOYEE.value),
            position=data.get("position") or None,
            department=data.get("department") or None,
            hourly_rate=_to_float(data.get("hourly_rate")) or 0.0,
        )


@dataclass(frozen=True)
class Shift:
    """
    A scheduled work interval assigned to one employee.

    Attributes:
        id (str): Shift identifier.
        employee_id (str): Owning employee.
        company_id (str): Company the shift is planned for.
        start_time (datetime.datetime): Scheduled start.
        end_time (datetime.datetime): Scheduled end.
        status (ShiftStatus): Lifecycle status.
        notes (Optional[str]): Free notes from the manager.
    """

    id: str
    employee_id: str
    company_id: str
    start_time: dt.datetime
    end_time: dt.datetime
    status: ShiftStatus = ShiftStatus.SCHEDULED
    notes: Optional[str] = None

    def minutes_until_start(self, now: dt.datetime) -> int:
        """
        Whole minutes between `now` and the shift start, truncated toward
        zero. Negative once the shift has started.
        """
        return int((self.start_time - now).total_seconds() / 60)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "company_id": self.company_id,
            "start_time": _to_iso(self.start_time),
            "end_time": _to_iso(self.end_time),
            "status": self.status.value,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Shift":
        start = _from_iso(data["start_time"])
        end = _from_iso(data["end_time"])
        if start is None or end is None:
            raise ValueError("A shift requires a start and an end time.")
        return cls(
            id=str(data["id"]),
            employee_id=str(data["employee_id"]),
            company_id=str(data.get("company_id") or ""),
            start_time=start,
            end_time=end,
            status=ShiftStatus(data.get("status") or ShiftStatus.SCHEDULED.value),
            notes=data.get("notes") or None,
        )

    def __str__(self):
        return (
            f"Shift[{self.id} {self.start_time:%Y-%m-%d %H:%M}-"
            f"{self.end_time:%H:%M} {self.status}]"
        )


@dataclass(frozen=True)
class Location:
    """Device location captured at a clock action."""

    lat: float
    lng: float
    address: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> Optional["Location"]:
        if not data:
            return None
        return cls(float(data["lat"]), float(data["lng"]), data.get("address"))


@dataclass(frozen=True)
class TimeClockEntry:
    """
    One clock session of an employee.

    The entry is open while it has a clock-in and no clock-out. At most
    one entry per employee can be open at a time.

    Attributes:
        id (str): Entry identifier.
        employee_id (str): Employee who clocked in.
        shift_id (Optional[str]): Related shift, `None` for an
            unscheduled session.
        clock_in (datetime.datetime): Session start.
        clock_out (Optional[datetime.datetime]): Session end.
        break_start (Optional[datetime.datetime]): Break start.
        break_end (Optional[datetime.datetime]): Break end.
        total_hours (Optional[float]): Worked hours, set at clock-out.
        overtime_hours (Optional[float]): Overtime hours, set at clock-out.
        notes (Optional[str]): Free notes.
        clock_in_location (Optional[Location]): Location at clock-in.
        clock_out_location (Optional[Location]): Location at clock-out.
    """

    id: str
    employee_id: str
    shift_id: Optional[str]
    clock_in: dt.datetime
    clock_out: Optional[dt.datetime] = None
    break_start: Optional[dt.datetime] = None
    break_end: Optional[dt.datetime] = None
    total_hours: Optional[float] = None
    overtime_hours: Optional[float] = None
    notes: Optional[str] = None
    clock_in_location: Optional[Location] = None
    clock_out_location: Optional[Location] = None

    @property
    def is_open(self) -> bool:
        return self.clock_out is None

    @property
    def on_break(self) -> bool:
        return self.break_start is not None and self.break_end is None

    @property
    def break_duration(self) -> dt.timedelta:
        """Length of the completed break, zero if none or inconsistent."""
        if self.break_start is None or self.break_end is None:
            return dt.timedelta(0)
        return max(dt.timedelta(0), self.break_end - self.break_start)

    @property
    def break_minutes(self) -> int:
        """Completed break length rounded to the nearest minute."""
        return round(self.break_duration.total_seconds() / 60)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "shift_id": self.shift_id,
            "clock_in": _to_iso(self.clock_in),
            "clock_out": _to_iso(self.clock_out),
            "break_start": _to_iso(self.break_start),
            "break_end": _to_iso(self.break_end),
            "total_hours": self.total_hours,
            "overtime_hours": self.overtime_hours,
            "notes": self.notes,
            "clock_in_location": (
                self.clock_in_location.to_dict() if self.clock_in_location else None
            ),
            "clock_out_location": (
                self.clock_out_location.to_dict() if self.clock_out_location else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TimeClockEntry":
        clock_in = _from_iso(data["clock_in"])
        if clock_in is None:
            raise ValueError("A time clock entry requires a clock-in time.")
        return cls(
            id=str(data["id"]),
            employee_id=str(data["employee_id"]),
            shift_id=(str(data["shift_id"]) if data.get("shift_id") else None),
            clock_in=clock_in,
            clock_out=_from_iso(data.get("clock_out")),
            break_start=_from_iso(data.get("break_start")),
            break_end=_from_iso(data.get("break_end")),
            total_hours=_to_float(data.get("total_hours")),
            overtime_hours=_to_float(data.get("overtime_hours")),
            notes=data.get("notes") or None,
            clock_in_location=Location.from_dict(data.get("clock_in_location")),
            clock_out_location=Location.from_dict(data.get("clock_out_location")),
        )

    def __str__(self):
        state = "open" if self.is_open else f"closed {self.total_hours}h"
        return f"TimeClockEntry[{self.id} emp={self.employee_id} {state}]"
