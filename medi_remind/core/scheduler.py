"""Reminder scheduler.

Re-evaluates every medicine in the shared store once per tick. Runs a
background thread while at least one medicine exists and parks itself when
the list is empty; ``refresh`` starts it again once medicines appear.

Each tick:
  1. advances the active reminder's countdown
  2. dismisses the active reminder if another viewer resolved it
  3. for each medicine in its window and not yet resolved today:
     sends the automatic SMS at the exact minute and offers the reminder
"""
import logging
from threading import Thread, Event, Lock
from datetime import datetime
from typing import Callable, List, Optional

from medi_remind.core.dispatcher import Dispatcher
from medi_remind.core.ledger import AdherenceLedger
from medi_remind.core.models import Medicine
from medi_remind.core.reminder import ReminderEngine
from medi_remind.core.schedule import WINDOW_MINUTES, is_actionable
from medi_remind.core.state_machine import ReminderState
from medi_remind.modules.records import MedicineCatalog

logger = logging.getLogger("medi_remind.scheduler")


class Scheduler:
    def __init__(
        self,
        catalog: MedicineCatalog,
        ledger: AdherenceLedger,
        engine: ReminderEngine,
        dispatcher: Dispatcher,
        clock: Callable[[], datetime] = datetime.now,
        poll_interval: float = 1.0,
        window_minutes: int = WINDOW_MINUTES,
        owner_id: Optional[str] = None,
    ):
        self.catalog = catalog
        self.ledger = ledger
        self.engine = engine
        self.dispatcher = dispatcher
        self.clock = clock
        self.poll_interval = poll_interval
        self.window_minutes = window_minutes
        self.owner_id = owner_id
        self._stop = Event()
        self._start_lock = Lock()
        self._thread = None

    @property
    def is_running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    def start(self) -> bool:
        with self._start_lock:
            if self.is_running:
                return True
            # An explicit start re-arms refresh() even when nothing is scheduled yet
            self._stop.clear()
            if not self._medicines():
                logger.info("No medicines scheduled; not starting")
                return False
            self._thread = Thread(target=self._run, name="reminder-scheduler", daemon=True)
            self._thread.start()
        logger.info(f"Scheduler started ({self.poll_interval}s ticks)")
        return True

    def stop(self):
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=2.0)
            self._thread = None

    def refresh(self, _key: str = None) -> None:
        """Restart after medicines were added, here or in another process."""
        # An explicit stop() wins until start() is called again
        if self._stop.is_set():
            return
        self.start()

    def _medicines(self) -> List[Medicine]:
        if self.owner_id:
            return self.catalog.for_owner(self.owner_id)
        return self.catalog.all()

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def tick(self) -> int:
        """Run one evaluation pass. Returns the number of medicines seen."""
        now = self.clock()

        try:
            self.engine.tick_countdown()
            self.engine.dismiss_if_resolved(now)
        except Exception:
            logger.exception("Countdown step failed")

        medicines = self._medicines()
        for med in medicines:
            try:
                self._evaluate(med, now)
            except Exception:
                logger.exception(f"Evaluating {med.name} ({med.id}) failed")
        return len(medicines)

    def _evaluate(self, med: Medicine, now: datetime) -> None:
        actionable = is_actionable(med.schedule, now, self.window_minutes)
        if not actionable.in_window:
            return
        if self.ledger.has_resolved_today(med.id, now):
            return

        # The SMS goes out even when another reminder holds the slot
        if actionable.is_exact_trigger:
            self.dispatcher.maybe_notify(med, now)

        self.engine.offer(med)

    def _run(self):
        while not self._stop.is_set():
            try:
                count = self.tick()
            except Exception:
                logger.exception("Scheduler tick failed")
                count = -1
            if count == 0 and self.engine.state is ReminderState.IDLE:
                logger.info("Medicine list is empty; scheduler parked")
                break
            self._stop.wait(self.poll_interval)
