"""Single-slot reminder lifecycle.

At most one medicine is shown at a time:

    IDLE --show--> SHOWING --confirm--> TAKEN --resolved--> IDLE
                           --expire---> TIMED_OUT --resolved--> IDLE
                           --dismiss--> IDLE   (resolved by another viewer)

The countdown is decremented once per scheduler tick, not measured against
the wall clock. Expiry logs the dose as missed and escalates to the
caretaker; the log is written even when the SMS fails.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Optional

from medi_remind.core.dispatcher import Dispatcher
from medi_remind.core.ledger import AdherenceLedger
from medi_remind.core.models import DoseLog, Medicine
from medi_remind.core.state_machine import ReminderState, StateMachine

logger = logging.getLogger("medi_remind.reminder")

COUNTDOWN_SECONDS = 120


@dataclass(frozen=True)
class ReminderSnapshot:
    state: ReminderState
    medicine: Optional[Medicine] = None
    remaining_seconds: int = 0

    def to_dict(self) -> Dict:
        return {
            "state": self.state.value,
            "medicine": self.medicine.to_dict() if self.medicine else None,
            "remaining_seconds": self.remaining_seconds,
        }


class ReminderEngine:
    def __init__(
        self,
        ledger: AdherenceLedger,
        dispatcher: Dispatcher,
        countdown_seconds: int = COUNTDOWN_SECONDS,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.ledger = ledger
        self.dispatcher = dispatcher
        self.countdown_seconds = countdown_seconds
        self.clock = clock

        self._lock = threading.RLock()
        self._medicine: Optional[Medicine] = None
        self._remaining = 0

        self.machine = StateMachine(ReminderState.IDLE, clock=lambda: self.clock().timestamp())
        self.machine.register_transition(ReminderState.IDLE, ReminderState.SHOWING, "show")
        self.machine.register_transition(ReminderState.SHOWING, ReminderState.TAKEN, "confirm")
        self.machine.register_transition(ReminderState.SHOWING, ReminderState.TIMED_OUT, "expire")
        self.machine.register_transition(ReminderState.SHOWING, ReminderState.IDLE, "dismiss", self._clear)
        self.machine.register_transition(ReminderState.TAKEN, ReminderState.IDLE, "resolved", self._clear)
        self.machine.register_transition(ReminderState.TIMED_OUT, ReminderState.IDLE, "resolved", self._clear)

    @property
    def state(self) -> ReminderState:
        return self.machine.current_state

    @property
    def active_medicine(self) -> Optional[Medicine]:
        return self._medicine

    def snapshot(self) -> ReminderSnapshot:
        with self._lock:
            return ReminderSnapshot(self.state, self._medicine, self._remaining)

    def _clear(self):
        self._medicine = None
        self._remaining = 0

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def offer(self, medicine: Medicine) -> bool:
        """Show ``medicine`` if nothing else is showing. Returns True if shown."""
        with self._lock:
            if not self.machine.can_trigger("show"):
                return False
            # Checked under the lock; confirm_taken may run on a request thread
            if self.ledger.has_resolved_today(medicine.id, self.clock()):
                return False
            self.machine.trigger("show")
            self._medicine = medicine
            self._remaining = self.countdown_seconds
            logger.info(f"Showing reminder for {medicine.name} ({self._remaining}s to confirm)")
            return True

    def confirm_taken(self) -> Optional[DoseLog]:
        """Patient pressed 'taken'. Returns the new log, or None if nothing was logged."""
        with self._lock:
            medicine = self._medicine
            shown_for = self.machine.get_time_in_state()
            if not self.machine.trigger("confirm"):
                return None
            logger.info(f"{medicine.name} confirmed after {shown_for:.0f}s")
            try:
                if self.ledger.has_resolved_today(medicine.id, self.clock()):
                    logger.info(f"{medicine.name} already resolved today; not logging again")
                    return None
                return self.ledger.record_taken(medicine.id, medicine.owner_id)
            finally:
                self.machine.trigger("resolved")

    def tick_countdown(self) -> None:
        with self._lock:
            if self.state is not ReminderState.SHOWING:
                return
            self._remaining -= 1
            if self._remaining <= 0:
                self.on_countdown_expired()

    def on_countdown_expired(self) -> Optional[DoseLog]:
        with self._lock:
            medicine = self._medicine
            if not self.machine.trigger("expire"):
                return None
            try:
                now = self.clock()
                if self.ledger.has_resolved_today(medicine.id, now):
                    logger.info(f"{medicine.name} resolved elsewhere before timeout")
                    return None
                log = self.ledger.record_missed(medicine.id, medicine.owner_id)
                logger.warning(f"Dose missed: {medicine.name}; alerting caretaker")
                self.dispatcher.escalate_missed(medicine, now)
                return log
            finally:
                self.machine.trigger("resolved")

    def dismiss_if_resolved(self, now: datetime) -> bool:
        """Close the reminder if another viewer already logged today's dose."""
        with self._lock:
            medicine = self._medicine
            if self.state is not ReminderState.SHOWING or medicine is None:
                return False
            if not self.ledger.has_resolved_today(medicine.id, now):
                return False
            logger.info(f"{medicine.name} resolved by another viewer; dismissing")
            return self.machine.trigger("dismiss")
