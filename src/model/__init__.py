#!/usr/bin/env python3
"""
ShiftBridge - An open-source shift scheduling and time-tracking engine

Author: Bastian Cerf
Copyright (C) 2025 Mecacerf SA
License: AGPL-3.0 <https://www.gnu.org/licenses/>
"""

# Expose everything from data and scheduler modules
from .data import IModelMessage, PollSnapshot, ModelError
from .shift_scheduler import ShiftScheduler

__all__ = [
    "IModelMessage",
    "PollSnapshot",
    "ModelError",
    "ShiftScheduler",
]
