#!/usr/bin/env python3
"""
Observable value holders used to publish the engine state to whatever
UI is attached to it.

---
ShiftBridge - An open-source shift scheduling and time-tracking engine

Author: Bastian Cerf
Copyright (C) 2025 Mecacerf SA
License: AGPL-3.0 <https://www.gnu.org/licenses/>
"""

from typing import Generic, TypeVar, Callable

T = TypeVar(name="T")  # Generic type declaration

Observer = Callable[[T], None]


class LiveData(Generic[T]):
    """
    Holds a value of type T and notifies its observers when the value
    changes.

    Observers are called in registration order. In bus mode, observers
    are notified on every assignment, even when the new value equals the
    old one. This is used for event-like fields.
    """

    def __init__(self, value: T, bus_mode: bool = False):
        """
        Args:
            value (T): Initial value.
            bus_mode (bool): Notify on every assignment instead of on
                change only.
        """
        self._value = value
        self._initial = value
        self._bus_mode = bus_mode
        self._observers: list[Observer[T]] = []

    def observe(
        self, observer: Observer[T], init_call: bool = False
    ) -> Callable[[], None]:
        """
        Register an observer.

        Args:
            observer (Callable[[T], None]): Called with the new value.
            init_call (bool): Call the observer immediately with the
                current value.

        Returns:
            Callable[[], None]: A function that removes the observer.
        """
        if observer not in self._observers:
            self._observers.append(observer)
        if init_call:
            observer(self._value)

        return lambda: self.remove(observer)

    def remove(self, observer: Observer[T]):
        """Remove an observer. Unknown observers are ignored."""
        if observer in self._observers:
            self._observers.remove(observer)

    @property
    def value(self) -> T:
        return self._value

    @value.setter
    def value(self, value: T):
        if not self._bus_mode and self._value == value:
            return

        self._value = value
        # Iterate a copy, observers may unsubscribe while being notified
        for observer in list(self._observers):
            observer(value)

    def reset(self):
        """Set the value back to the one given at construction."""
        self.value = self._initial

    def __repr__(self) -> str:
        return f"LiveData({self._value!r})"
