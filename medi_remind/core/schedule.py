"""Schedule evaluation against wall-clock time.

Pure functions only. Everything is rounded down to the minute, so calling
these once per second is fine.
"""

from dataclasses import dataclass
from datetime import datetime

from medi_remind.config import WEEKDAY_NAMES
from medi_remind.core.models import Schedule

WINDOW_MINUTES = 30


@dataclass(frozen=True)
class Actionability:
    in_window: bool
    is_exact_trigger: bool


def weekday_name(now: datetime) -> str:
    return WEEKDAY_NAMES[now.weekday()]


def minutes_since_midnight(now: datetime) -> int:
    return now.hour * 60 + now.minute


def is_actionable(schedule: Schedule, now: datetime, window_minutes: int = WINDOW_MINUTES) -> Actionability:
    """Decide whether ``now`` falls inside the reminder window for ``schedule``.

    The window opens at the scheduled minute and stays open for
    ``window_minutes`` more minutes so a late-opened app can still catch
    up. The exact trigger is the scheduled minute itself, the only minute
    at which an automatic SMS may go out.
    """
    if weekday_name(now) not in schedule.days:
        return Actionability(in_window=False, is_exact_trigger=False)
    diff = minutes_since_midnight(now) - schedule.minutes
    return Actionability(
        in_window=0 <= diff <= window_minutes,
        is_exact_trigger=diff == 0,
    )


def is_scheduled_on(schedule: Schedule, now: datetime) -> bool:
    return weekday_name(now) in schedule.days


def format_time_12h(time24: str) -> str:
    """'08:05' -> '8:05 AM', '00:30' -> '12:30 AM', '13:00' -> '1:00 PM'."""
    if not time24:
        return ""
    h, m = time24.split(":")
    hour = int(h)
    ampm = "PM" if hour >= 12 else "AM"
    hour = hour % 12 or 12
    return f"{hour}:{m} {ampm}"
