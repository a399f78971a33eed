"""Shared fakes for the test modules."""
from datetime import datetime, timedelta

from medi_remind.core.models import Medicine, Schedule
from medi_remind.modules.sms_client import NotificationTransport, SendReport

# 2024-01-01 was a Monday
MONDAY_8AM = datetime(2024, 1, 1, 8, 0, 0)
CARETAKER = "9990001111"
PATIENT = "9990002222"


class FakeClock:
    def __init__(self, start: datetime = MONDAY_8AM):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 1) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now

    def set(self, when: datetime) -> None:
        self.now = when


class FakeTransport(NotificationTransport):
    name = "fake"

    def __init__(self, succeed: bool = True, error: str = "Network Blocked"):
        self.succeed = succeed
        self.error = error
        self.sent = []

    def send(self, phone, message):
        self.sent.append((phone, message))
        if self.succeed:
            return SendReport(success=True, channel=self.name)
        return SendReport(success=False, error_message=self.error, channel=self.name)


def make_medicine(med_id="med-1", owner_id=CARETAKER, name="Dolo", days=("Monday",), time="08:00",
                  dosage_mg=650, pill_count=1, before_food=False) -> Medicine:
    return Medicine(
        id=med_id,
        owner_id=owner_id,
        name=name,
        dosage_mg=dosage_mg,
        pill_count=pill_count,
        before_food=before_food,
        schedule=Schedule(days=list(days), time=time),
    )
