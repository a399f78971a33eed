"""Typed access to the records kept in the shared store.

Manages:
  - Medicines (caretaker-defined schedules)
  - Accounts (caretaker/patient phone pairs, used to resolve SMS recipients)
  - Cooldowns (last automatic SMS per medicine, epoch milliseconds)

Unreadable blobs and malformed entries are skipped with a warning rather
than raised, so a damaged file never stops the reminder loop.
"""

import logging
import uuid
from typing import Dict, List, Optional

from medi_remind.config import (
    MEDICINES_KEY, USERS_KEY, COOLDOWN_KEY,
    DEFAULT_IMAGE_URL, DEFAULT_AUDIO_URL,
)
from medi_remind.core.models import Account, Medicine, Schedule
from medi_remind.modules.store import SharedStore

logger = logging.getLogger("medi_remind.records")


def _as_list(value) -> List:
    return value if isinstance(value, list) else []


def _as_dict(value) -> Dict:
    return value if isinstance(value, dict) else {}


def _schedule_time(entry) -> str:
    schedule = _as_dict(_as_dict(entry).get("schedule"))
    return str(schedule.get("time", ""))


class MedicineCatalog:
    def __init__(self, store: SharedStore):
        self.store = store

    def all(self) -> List[Medicine]:
        medicines = []
        for entry in _as_list(self.store.get(MEDICINES_KEY)):
            try:
                medicines.append(Medicine.from_dict(entry))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Skipping malformed medicine entry: {e}")
        return medicines

    def for_owner(self, owner_id: str) -> List[Medicine]:
        return [m for m in self.all() if m.owner_id == owner_id]

    def get(self, medicine_id: str) -> Optional[Medicine]:
        for med in self.all():
            if med.id == medicine_id:
                return med
        return None

    def add_medicine(
        self,
        owner_id: str,
        name: str,
        dosage_mg: int,
        pill_count: int,
        before_food: bool,
        days: List[str],
        time: str,
        image_ref: str = "",
        audio_ref: str = "",
    ) -> Medicine:
        """Validate and persist a new medicine. Raises ValueError on bad input."""
        medicine = Medicine(
            id=f"med-{uuid.uuid4().hex[:8]}",
            owner_id=owner_id,
            name=name,
            dosage_mg=dosage_mg,
            pill_count=pill_count,
            before_food=before_food,
            schedule=Schedule(days=list(days), time=time),
            image_ref=image_ref or DEFAULT_IMAGE_URL.format(name=name.replace(" ", "+")),
            audio_ref=audio_ref or DEFAULT_AUDIO_URL,
        )

        def _append(entries):
            entries = _as_list(entries) + [medicine.to_dict()]
            # Keep the list ordered by time of day
            return sorted(entries, key=_schedule_time)

        self.store.update(MEDICINES_KEY, _append, default=[])
        logger.info(f"Added medicine {medicine.name} ({medicine.id}) for {owner_id}")
        return medicine


class AccountDirectory:
    """Accounts keyed by caretaker phone. Resolves both SMS recipient roles."""

    def __init__(self, store: SharedStore):
        self.store = store

    def all(self) -> List[Account]:
        accounts = []
        for entry in _as_list(self.store.get(USERS_KEY)):
            try:
                accounts.append(Account.from_dict(entry))
            except (KeyError, TypeError, AttributeError) as e:
                logger.warning(f"Skipping malformed account entry: {e}")
        return accounts

    def get(self, owner_id: str) -> Optional[Account]:
        for acc in self.all():
            if acc.id == owner_id:
                return acc
        return None

    def register(self, caretaker_phone: str, patient_phone: str, **extra) -> Account:
        if not caretaker_phone or not patient_phone:
            raise ValueError("both caretaker and patient phone numbers are required")
        if self.get(caretaker_phone):
            raise ValueError("an account with this caretaker phone number already exists")
        account = Account(caretaker_phone=caretaker_phone, patient_phone=patient_phone, extra=extra)
        self.store.update(USERS_KEY, lambda entries: _as_list(entries) + [account.to_dict()], default=[])
        return account

    def patient_phone(self, owner_id: str) -> Optional[str]:
        """Recipient for the patient's own dose reminders."""
        acc = self.get(owner_id)
        if acc is None:
            return None
        return acc.patient_phone or None

    def caretaker_phone(self, owner_id: str) -> Optional[str]:
        """Recipient for missed-dose escalations."""
        acc = self.get(owner_id)
        if acc is None:
            return None
        return acc.caretaker_phone or None


class CooldownRegistry:
    """Last automatic SMS instant per medicine. Entries are never pruned."""

    def __init__(self, store: SharedStore):
        self.store = store

    def all(self) -> Dict[str, int]:
        result = {}
        for medicine_id, value in _as_dict(self.store.get(COOLDOWN_KEY)).items():
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                result[medicine_id] = int(value)
        return result

    def last_sent(self, medicine_id: str) -> Optional[int]:
        return self.all().get(medicine_id)

    def mark(self, medicine_id: str, epoch_ms: int) -> None:
        def _set(entries):
            entries = dict(_as_dict(entries))
            entries[medicine_id] = int(epoch_ms)
            return entries

        self.store.update(COOLDOWN_KEY, _set, default={})
