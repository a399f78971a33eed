"""SMS dispatch for dose reminders and missed-dose escalations.

Three paths:
  - ``maybe_notify``       automatic patient reminder, only at the exact
                           scheduled minute and never twice inside the cooldown
  - ``escalate_missed``    caretaker alert when a reminder times out; one-shot,
                           no cooldown
  - ``send_reminder_now``  manual patient reminder, always synchronous so the
                           caller can show the outcome

The cooldown entry is written before the send is attempted. Two processes
reading the cooldown at the same moment can both send; that window is
accepted rather than locked.
"""

import logging
from concurrent.futures import Executor, Future
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from medi_remind.core.models import Medicine
from medi_remind.core.schedule import format_time_12h, is_actionable
from medi_remind.modules.records import CooldownRegistry
from medi_remind.modules.sms_client import NotificationTransport

logger = logging.getLogger("medi_remind.dispatcher")

RecipientResolver = Callable[[str], Optional[str]]

COOLDOWN_MS = 120_000


class DispatchOutcome(Enum):
    SENT = "sent"
    FAILED = "failed"
    QUEUED = "queued"
    NO_RECIPIENT = "no_recipient"
    COOLDOWN = "cooldown"
    NOT_DUE = "not_due"


@dataclass
class SendResult:
    outcome: DispatchOutcome
    error_message: Optional[str] = None
    latency_ms: float = 0.0
    future: Optional[Future] = None

    @property
    def success(self) -> bool:
        return self.outcome is DispatchOutcome.SENT


@dataclass
class Notification:
    kind: str
    medicine: Medicine
    recipient: str
    message: str


def _food(medicine: Medicine) -> str:
    return "BEFORE" if medicine.before_food else "AFTER"


def reminder_message(medicine: Medicine) -> str:
    return (
        f"MediRemind Take {medicine.pill_count} pills of {medicine.name} "
        f"{medicine.dosage_mg}mg {_food(medicine)} food at "
        f"{format_time_12h(medicine.schedule.time)}"
    )


def escalation_message(medicine: Medicine, now: datetime) -> str:
    return (
        f"ALERT Patient MISSED medicine {medicine.name} {medicine.dosage_mg}mg "
        f"Quantity {medicine.pill_count} pills {_food(medicine)} food at "
        f"{format_time_12h(medicine.schedule.time)} {now.strftime('%H:%M:%S')}"
    )


def epoch_ms(now: datetime) -> int:
    return int(now.timestamp() * 1000)


class Dispatcher:
    def __init__(
        self,
        transport: NotificationTransport,
        cooldowns: CooldownRegistry,
        patient_recipient: RecipientResolver,
        caretaker_recipient: RecipientResolver,
        cooldown_ms: int = COOLDOWN_MS,
        executor: Optional[Executor] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.transport = transport
        self.cooldowns = cooldowns
        self.patient_recipient = patient_recipient
        self.caretaker_recipient = caretaker_recipient
        self.cooldown_ms = cooldown_ms
        # With an executor, automatic sends run off the caller's thread
        self.executor = executor
        self.clock = clock

    # ------------------------------------------------------------------
    # Automatic reminder
    # ------------------------------------------------------------------

    def maybe_notify(self, medicine: Medicine, now: datetime) -> SendResult:
        if not is_actionable(medicine.schedule, now).is_exact_trigger:
            return SendResult(DispatchOutcome.NOT_DUE)

        now_ms = epoch_ms(now)
        last = self.cooldowns.last_sent(medicine.id)
        if last is not None and now_ms - last < self.cooldown_ms:
            return SendResult(DispatchOutcome.COOLDOWN)

        self.cooldowns.mark(medicine.id, now_ms)

        recipient = self.patient_recipient(medicine.owner_id)
        if not recipient:
            logger.error(f"No patient phone for {medicine.owner_id}; reminder for {medicine.name} not sent")
            return SendResult(DispatchOutcome.NO_RECIPIENT, error_message="No patient phone number found")

        return self._deliver(Notification("reminder", medicine, recipient, reminder_message(medicine)))

    # ------------------------------------------------------------------
    # Escalation
    # ------------------------------------------------------------------

    def escalate_missed(self, medicine: Medicine, now: Optional[datetime] = None) -> SendResult:
        now = now or self.clock()
        recipient = self.caretaker_recipient(medicine.owner_id)
        if not recipient:
            logger.error(f"No caretaker phone for {medicine.owner_id}; missed-dose alert for {medicine.name} not sent")
            return SendResult(DispatchOutcome.NO_RECIPIENT, error_message="No caretaker phone number found")
        return self._deliver(Notification("escalation", medicine, recipient, escalation_message(medicine, now)))

    # ------------------------------------------------------------------
    # Manual trigger
    # ------------------------------------------------------------------

    def send_reminder_now(self, medicine: Medicine) -> SendResult:
        recipient = self.patient_recipient(medicine.owner_id)
        if not recipient:
            return SendResult(DispatchOutcome.NO_RECIPIENT, error_message="No patient phone number found")
        self.cooldowns.mark(medicine.id, epoch_ms(self.clock()))
        return self._send(Notification("manual", medicine, recipient, reminder_message(medicine)))

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def _deliver(self, notification: Notification) -> SendResult:
        if self.executor is None:
            return self._send(notification)
        future = self.executor.submit(self._send, notification)
        return SendResult(DispatchOutcome.QUEUED, future=future)

    def _send(self, notification: Notification) -> SendResult:
        name = notification.medicine.name
        try:
            report = self.transport.send(notification.recipient, notification.message)
        except Exception as e:
            logger.exception(f"Transport raised while sending {notification.kind} for {name}")
            return SendResult(DispatchOutcome.FAILED, error_message=str(e))

        if report.success:
            logger.info(f"{notification.kind.capitalize()} SMS sent for {name} ({report.latency_ms:.0f}ms)")
            return SendResult(DispatchOutcome.SENT, latency_ms=report.latency_ms)

        error = report.error_message or "Network Blocked"
        if notification.kind != "manual":
            logger.warning(f"Failed to send {notification.kind} SMS for {name}. Reason: {error}")
        return SendResult(DispatchOutcome.FAILED, error_message=error, latency_ms=report.latency_ms)
