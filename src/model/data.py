#!/usr/bin/env python3
"""
Provides dataclasses to communicate the results of the asynchronous
tasks between the application components.

---
ShiftBridge - An open-source shift scheduling and time-tracking engine

Author: Bastian Cerf
Copyright (C) 2025 Mecacerf SA
License: AGPL-3.0 <https://www.gnu.org/licenses/>
"""

# Standard libraries
from dataclasses import dataclass, field
from typing import Optional
import datetime as dt
from abc import ABC

# Internal imports
from core.entities import Shift, TimeClockEntry


@dataclass(frozen=True)
class IModelMessage(ABC):
    """
    A generic asynchronous message sent by the model to upper layers.
    """

    pass


@dataclass(frozen=True)
class PollSnapshot(IModelMessage):
    """
    Remote state read by a poll task.

    Attributes:
        employee_id (str): Polled employee.
        polled_at (dt.datetime): Time the poll was requested for.
        open_entry (Optional[TimeClockEntry]): Open entry of the employee.
        shifts (tuple[Shift, ...]): Shifts of the day by ascending start.
            Not fetched while the employee is clocked in.
        shifts_fetched (bool): `False` if the shifts could not be read.
    """

    employee_id: str
    polled_at: dt.datetime
    open_entry: Optional[TimeClockEntry] = field(default=None)
    shifts: tuple[Shift, ...] = field(default=())
    shifts_fetched: bool = field(default=True)


@dataclass(frozen=True)
class ModelError(IModelMessage):
    """
    Error message container.

    Attributes:
        error_code (int): Error code.
        message (str): Error description.
        employee_id (Optional[str]): Employee id when related to an employee.
    """

    error_code: int
    message: str

    employee_id: Optional[str] = field(default=None)
