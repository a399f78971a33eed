from .state_machine import StateMachine, StateTransition, ReminderState
from .models import Medicine, Schedule, DoseLog, DoseStatus, Account

__all__ = [
    "StateMachine", "StateTransition", "ReminderState",
    "Medicine", "Schedule", "DoseLog", "DoseStatus", "Account",
]
