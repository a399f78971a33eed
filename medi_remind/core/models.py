"""Domain records: medicines, their schedules, dose logs and accounts.

Every record round-trips through plain dicts so the shared store can keep
it as JSON. Timestamps are written as ISO-8601 strings and parsed back
into datetime objects on read.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
import re
from typing import Dict, List

from medi_remind.config import WEEKDAY_NAMES

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


class DoseStatus(Enum):
    TAKEN = "taken"
    MISSED = "missed"


@dataclass
class Schedule:
    """Weekday set plus one 24-hour time of day."""
    days: List[str]
    time: str

    def __post_init__(self):
        if not self.days:
            raise ValueError("schedule needs at least one day")
        unknown = [d for d in self.days if d not in WEEKDAY_NAMES]
        if unknown:
            raise ValueError(f"unknown weekday name(s): {', '.join(unknown)}")
        if not isinstance(self.time, str) or not _TIME_RE.match(self.time):
            raise ValueError(f"invalid schedule time {self.time!r}, expected HH:MM")

    @property
    def minutes(self) -> int:
        """Minutes since midnight of the scheduled time."""
        h, m = self.time.split(":")
        return int(h) * 60 + int(m)

    def to_dict(self) -> Dict:
        return {"days": list(self.days), "time": self.time}

    @classmethod
    def from_dict(cls, data: Dict) -> "Schedule":
        return cls(days=list(data.get("days") or []), time=data.get("time", ""))


@dataclass
class Medicine:
    id: str
    owner_id: str
    name: str
    dosage_mg: int
    pill_count: int
    before_food: bool
    schedule: Schedule
    image_ref: str = ""
    audio_ref: str = ""

    def __post_init__(self):
        if not self.name:
            raise ValueError("medicine name is required")
        for label, value in (("dosage_mg", self.dosage_mg), ("pill_count", self.pill_count)):
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValueError(f"{label} must be a positive integer")

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "dosage_mg": self.dosage_mg,
            "pill_count": self.pill_count,
            "before_food": self.before_food,
            "schedule": self.schedule.to_dict(),
            "image_ref": self.image_ref,
            "audio_ref": self.audio_ref,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "Medicine":
        return cls(
            id=str(data["id"]),
            owner_id=str(data["owner_id"]),
            name=data["name"],
            dosage_mg=data["dosage_mg"],
            pill_count=data["pill_count"],
            before_food=bool(data.get("before_food", False)),
            schedule=Schedule.from_dict(data.get("schedule") or {}),
            image_ref=data.get("image_ref", ""),
            audio_ref=data.get("audio_ref", ""),
        )


@dataclass
class DoseLog:
    id: str
    medicine_id: str
    owner_id: str
    timestamp: datetime
    status: DoseStatus

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "medicine_id": self.medicine_id,
            "owner_id": self.owner_id,
            "timestamp": self.timestamp.isoformat(),
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "DoseLog":
        return cls(
            id=str(data["id"]),
            medicine_id=str(data["medicine_id"]),
            owner_id=str(data["owner_id"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            status=DoseStatus(data["status"]),
        )


@dataclass
class Account:
    """A caretaker/patient pair. The caretaker phone is the account id."""
    caretaker_phone: str
    patient_phone: str
    extra: Dict = field(default_factory=dict)

    @property
    def id(self) -> str:
        return self.caretaker_phone

    def to_dict(self) -> Dict:
        data = dict(self.extra)
        data.update({"caretaker_phone": self.caretaker_phone, "patient_phone": self.patient_phone})
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> "Account":
        extra = {k: v for k, v in data.items() if k not in ("caretaker_phone", "patient_phone")}
        return cls(
            caretaker_phone=str(data["caretaker_phone"]),
            patient_phone=str(data.get("patient_phone") or ""),
            extra=extra,
        )
