"""Adherence ledger: append-only record of dose outcomes.

A medicine counts as resolved for a calendar day as soon as at least one
log (taken or missed) exists for it on that day. The ledger never
deduplicates on write; callers check ``has_resolved_today`` first.
"""

import logging
import uuid
from datetime import date, datetime, timedelta
from typing import Callable, Dict, List, Optional

from medi_remind.config import LOGS_KEY, WEEKDAY_NAMES
from medi_remind.core.models import DoseLog, DoseStatus
from medi_remind.modules.store import SharedStore

logger = logging.getLogger("medi_remind.ledger")


class AdherenceLedger:
    def __init__(self, store: SharedStore, clock: Callable[[], datetime] = datetime.now):
        self.store = store
        self.clock = clock

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def logs(self) -> List[DoseLog]:
        raw = self.store.get(LOGS_KEY)
        if not isinstance(raw, list):
            return []
        logs = []
        for entry in raw:
            try:
                logs.append(DoseLog.from_dict(entry))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed log entry: {e}")
        return logs

    def logs_for_owner(self, owner_id: str) -> List[DoseLog]:
        return [log for log in self.logs() if log.owner_id == owner_id]

    def logs_on(self, medicine_id: str, day: date) -> List[DoseLog]:
        return [
            log for log in self.logs()
            if log.medicine_id == medicine_id and log.timestamp.date() == day
        ]

    def has_resolved_today(self, medicine_id: str, now: datetime) -> bool:
        return bool(self.logs_on(medicine_id, now.date()))

    def status_for_today(self, medicine_id: str, now: datetime) -> Optional[DoseStatus]:
        """Status of the first log for today, or None while still pending."""
        todays = self.logs_on(medicine_id, now.date())
        return todays[0].status if todays else None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def record_taken(self, medicine_id: str, owner_id: str) -> DoseLog:
        return self._append(medicine_id, owner_id, DoseStatus.TAKEN)

    def record_missed(self, medicine_id: str, owner_id: str) -> DoseLog:
        return self._append(medicine_id, owner_id, DoseStatus.MISSED)

    def _append(self, medicine_id: str, owner_id: str, status: DoseStatus) -> DoseLog:
        log = DoseLog(
            id=f"log-{uuid.uuid4().hex[:12]}",
            medicine_id=medicine_id,
            owner_id=owner_id,
            timestamp=self.clock(),
            status=status,
        )

        def _add(entries):
            entries = entries if isinstance(entries, list) else []
            return entries + [log.to_dict()]

        self.store.update(LOGS_KEY, _add, default=[])
        logger.info(f"Dose {status.value}: {medicine_id} at {log.timestamp.isoformat(timespec='seconds')}")
        return log

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def weekly_report(self, owner_id: str, now: Optional[datetime] = None) -> List[Dict]:
        """Taken/missed counts per weekday over the last seven days.

        Returns one entry per weekday (Monday first) with ``taken``,
        ``missed`` and the day's logs ordered by time.
        """
        now = now or self.clock()
        start = now.date() - timedelta(days=6)
        by_day: Dict[str, List[DoseLog]] = {name: [] for name in WEEKDAY_NAMES}
        for log in self.logs_for_owner(owner_id):
            if start <= log.timestamp.date() <= now.date():
                by_day[WEEKDAY_NAMES[log.timestamp.weekday()]].append(log)

        report = []
        for name in WEEKDAY_NAMES:
            day_logs = sorted(by_day[name], key=lambda l: l.timestamp)
            report.append({
                "day": name,
                "taken": sum(1 for l in day_logs if l.status is DoseStatus.TAKEN),
                "missed": sum(1 for l in day_logs if l.status is DoseStatus.MISSED),
                "logs": day_logs,
            })
        return report
