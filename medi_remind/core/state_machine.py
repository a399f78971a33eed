"""States and transitions of the on-screen reminder slot."""
from enum import Enum
from typing import Callable, Dict, Optional, Tuple
from dataclasses import dataclass
import logging
import time

logger = logging.getLogger("medi_remind.state")


class ReminderState(Enum):
    IDLE = "idle"
    SHOWING = "showing"
    TAKEN = "taken"
    TIMED_OUT = "timed_out"


@dataclass
class StateTransition:
    from_state: ReminderState
    to_state: ReminderState
    condition: str
    action: Optional[Callable] = None


class StateMachine:
    def __init__(self, initial_state: ReminderState, clock: Callable[[], float] = time.time):
        self._state = initial_state
        self._transitions: Dict[Tuple[ReminderState, str], StateTransition] = {}
        self._clock = clock
        self._state_enter_time = clock()
        self.last_transition: Optional[StateTransition] = None

    @property
    def current_state(self) -> ReminderState:
        return self._state

    def register_transition(self, from_state: ReminderState, to_state: ReminderState, condition: str, action: Callable = None) -> None:
        key = (from_state, condition)
        if key in self._transitions:
            raise ValueError(f"'{condition}' already registered from {from_state.value}")
        self._transitions[key] = StateTransition(from_state, to_state, condition, action)

    def can_trigger(self, condition: str) -> bool:
        return (self._state, condition) in self._transitions

    def trigger(self, condition: str) -> bool:
        t = self._transitions.get((self._state, condition))
        if t is None:
            return False
        logger.debug(f"{t.from_state.value} -> {t.to_state.value} on '{condition}'")
        self._state = t.to_state
        self._state_enter_time = self._clock()
        self.last_transition = t
        if t.action:
            try:
                t.action()
            except Exception:
                logger.exception(f"Action for '{condition}' failed")
        return True

    def get_time_in_state(self) -> float:
        return self._clock() - self._state_enter_time
