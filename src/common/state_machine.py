#!/usr/bin/env python3
"""
Base interfaces to build an event-driven finite state machine.

States are objects. The machine forwards each event to the current
state, which answers with the next state or rejects the event. The
entry() / exit() hooks are called around every transition.

---
ShiftBridge - An open-source shift scheduling and time-tracking engine

Author: Bastian Cerf
Copyright (C) 2025 Mecacerf SA
License: AGPL-3.0 <https://www.gnu.org/licenses/>
"""

from abc import ABC
from typing import Any, Generic, Optional, TypeVar


class TransitionRejected(Exception):
    """Raised by a state that cannot handle the given event."""

    def __init__(self, state: "IStateBehavior", event: str):
        super().__init__(f"Event '{event}' is not allowed in state {state}.")
        self.state = state
        self.event = event


M = TypeVar("M", bound="IStateMachine")


class IStateBehavior(ABC, Generic[M]):
    """
    Base interface that defines how a state behaves.

    A state holds a reference to its parent machine, available through
    the `fsm` property once the state has been entered. Events are
    dispatched to methods named `on_<event>`; a state that does not
    define the method rejects the event.
    """

    _fsm: Optional[M] = None

    def _set_fsm(self, value: M):
        """Internal use only: set the state machine reference"""
        self._fsm = value

    @property
    def fsm(self) -> M:
        assert self._fsm is not None, "State has not been entered"
        return self._fsm

    def entry(self):
        """State entry method."""
        pass

    def exit(self):
        """State exit method."""
        pass

    def handle(self, event: str, *args: Any, **kwargs: Any) -> "IStateBehavior[M]":
        """
        Handle an event.

        Returns:
            IStateBehavior: The next state, or `self` to stay.

        Raises:
            TransitionRejected: The state has no handler for the event.
        """
        handler = getattr(self, f"on_{event}", None)
        if handler is None:
            raise TransitionRejected(self, event)
        next_state = handler(*args, **kwargs)
        return self if next_state is None else next_state

    def accepts(self, event: str) -> bool:
        return callable(getattr(self, f"on_{event}", None))

    def __str__(self):
        return self.__class__.__name__


class IStateMachine(ABC):
    """
    Base class that runs an event-driven finite state machine.
    """

    def __init__(self, init_state: IStateBehavior):
        """
        Create the state machine and enter the given state.

        Args:
            init_state (IStateBehavior): Initial state.
        """
        self._state: IStateBehavior = init_state
        self._state._set_fsm(self)
        self._state.entry()

    @property
    def state(self) -> IStateBehavior:
        return self._state

    def dispatch(self, event: str, *args: Any, **kwargs: Any) -> IStateBehavior:
        """
        Dispatch an event to the current state and perform the resulting
        transition, if any.

        Raises:
            TransitionRejected: The current state refused the event. No
                transition happened.
        """
        next_state = self._state.handle(event, *args, **kwargs)
        if next_state is not self._state:
            self._make_transition(next_state)
        return self._state

    def _make_transition(self, state: IStateBehavior):
        """Exit the current state and enter the new one."""
        old_state = self._state
        old_state.exit()

        self._state = state
        self._state._set_fsm(self)
        self._state.entry()

        self.on_state_changed(old_state, self._state)

    def on_state_changed(self, old_state: IStateBehavior, new_state: IStateBehavior):
        """
        This method can be overriden to be notified on state transition.
        """
        pass
