"""Reminder controller: wires the store, ledger, engine, dispatcher and scheduler.

Architecture:
  SharedStore → Scheduler tick → schedule evaluation → Ledger check
              → Dispatcher (SMS) + ReminderEngine (single slot) → Ledger write

The web layer talks only to this class.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Callable, Dict, List, Optional

from medi_remind.config import ReminderConfig, StoreConfig, SmsConfig, MEDICINES_KEY
from medi_remind.core.dispatcher import Dispatcher, SendResult
from medi_remind.core.ledger import AdherenceLedger
from medi_remind.core.models import DoseLog, Medicine
from medi_remind.core.reminder import ReminderEngine, ReminderSnapshot
from medi_remind.core.schedule import is_scheduled_on
from medi_remind.core.scheduler import Scheduler
from medi_remind.modules.records import AccountDirectory, CooldownRegistry, MedicineCatalog
from medi_remind.modules.sms_client import NotificationTransport, build_transport
from medi_remind.modules.store import SharedStore

logger = logging.getLogger("medi_remind.controller")


class ReminderController:
    def __init__(
        self,
        reminder_config: ReminderConfig = None,
        store_config: StoreConfig = None,
        sms_config: SmsConfig = None,
        transport: NotificationTransport = None,
        clock: Callable[[], datetime] = datetime.now,
        owner_id: Optional[str] = None,
        background_sends: bool = True,
    ):
        self.reminder_config = reminder_config or ReminderConfig()
        self.store_config = store_config or StoreConfig()
        self.clock = clock

        # Shared state
        self.store = SharedStore(self.store_config.data_dir, self.store_config.watch_interval)
        self.medicines = MedicineCatalog(self.store)
        self.accounts = AccountDirectory(self.store)
        self.cooldowns = CooldownRegistry(self.store)
        self.ledger = AdherenceLedger(self.store, clock=clock)

        # Engine
        self._background_sends = background_sends
        self._executor = self._new_executor()
        self.dispatcher = Dispatcher(
            transport or build_transport(sms_config),
            self.cooldowns,
            patient_recipient=self.accounts.patient_phone,
            caretaker_recipient=self.accounts.caretaker_phone,
            cooldown_ms=self.reminder_config.cooldown_ms,
            executor=self._executor,
            clock=clock,
        )
        self.engine = ReminderEngine(
            self.ledger, self.dispatcher,
            countdown_seconds=self.reminder_config.countdown_seconds,
            clock=clock,
        )
        self.scheduler = Scheduler(
            self.medicines, self.ledger, self.engine, self.dispatcher,
            clock=clock,
            poll_interval=self.reminder_config.poll_interval,
            window_minutes=self.reminder_config.window_minutes,
            owner_id=owner_id,
        )

        self._running = False
        self.store.subscribe(MEDICINES_KEY, self._on_medicines_changed)

    # ==================================================================
    # Lifecycle
    # ==================================================================

    def _new_executor(self) -> Optional[ThreadPoolExecutor]:
        if not self._background_sends:
            return None
        return ThreadPoolExecutor(max_workers=2, thread_name_prefix="sms")

    def start(self):
        if self._executor is None and self._background_sends:
            self._executor = self._new_executor()
            self.dispatcher.executor = self._executor
        self._running = True
        self.store.start_watching()
        if not self.scheduler.start():
            logger.info("Waiting for medicines to be added")

    def stop(self):
        if not self._running:
            return
        self._running = False
        self.scheduler.stop()
        self.store.stop_watching()
        if self._executor:
            # Drain queued reminders and escalations
            logger.info("Waiting for queued SMS to finish")
            self._executor.shutdown(wait=True)
            self._executor = None
            self.dispatcher.executor = None

    def _on_medicines_changed(self, _key: str):
        if self._running:
            self.scheduler.refresh()

    # ==================================================================
    # Reminder slot
    # ==================================================================

    def reminder_state(self) -> ReminderSnapshot:
        return self.engine.snapshot()

    def confirm_taken(self) -> Optional[DoseLog]:
        return self.engine.confirm_taken()

    # ==================================================================
    # Caretaker actions
    # ==================================================================

    def add_medicine(self, owner_id: str, **fields) -> Medicine:
        medicine = self.medicines.add_medicine(owner_id, **fields)
        self._on_medicines_changed(MEDICINES_KEY)
        return medicine

    def send_reminder_now(self, medicine_id: str) -> Optional[SendResult]:
        medicine = self.medicines.get(medicine_id)
        if medicine is None:
            return None
        return self.dispatcher.send_reminder_now(medicine)

    # ==================================================================
    # Views
    # ==================================================================

    def today_schedule(self, owner_id: str) -> List[Dict]:
        """Today's medicines for ``owner_id`` in time order with their status."""
        now = self.clock()
        todays = sorted(
            (m for m in self.medicines.for_owner(owner_id) if is_scheduled_on(m.schedule, now)),
            key=lambda m: m.schedule.time,
        )
        result = []
        for med in todays:
            status = self.ledger.status_for_today(med.id, now)
            result.append({"medicine": med, "status": status.value if status else "pending"})
        return result

    def weekly_report(self, owner_id: str) -> List[Dict]:
        return self.ledger.weekly_report(owner_id, self.clock())
