"""Configuration for the medicine reminder.

All tunable parameters live here. Environment variables are loaded
from .env at import time via python-dotenv.
"""

from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import List
from dotenv import load_dotenv

load_dotenv()


# ---------------------------------------------------------------------------
# Module configs
# ---------------------------------------------------------------------------

@dataclass
class ReminderConfig:
    """Reminder engine timings."""
    poll_interval: float = 1.0           # Seconds between scheduler ticks
    window_minutes: int = 30             # Catch-up window after the scheduled minute
    countdown_seconds: int = 120         # Time the patient has to confirm a dose
    cooldown_ms: int = 120_000           # Minimum spacing between automatic SMS per medicine


@dataclass
class StoreConfig:
    """Shared JSON store settings."""
    data_dir: str = field(
        default_factory=lambda: os.getenv(
            "MEDI_REMIND_DATA_DIR",
            str(Path(__file__).resolve().parent / "data"),
        )
    )
    watch_interval: float = 1.0          # Seconds between external-change checks


@dataclass
class SmsConfig:
    """Outbound SMS settings (Fast2SMS quick route)."""
    api_key: str = field(default_factory=lambda: os.getenv("FAST2SMS_API_KEY", ""))
    url: str = field(
        default_factory=lambda: os.getenv("FAST2SMS_URL", "https://www.fast2sms.com/dev/bulkV2")
    )
    route: str = "q"
    timeout: float = 10.0
    relay_urls: List[str] = field(
        default_factory=lambda: [
            u.strip() for u in os.getenv("SMS_RELAY_URLS", "").split(",") if u.strip()
        ]
    )


@dataclass
class ServerConfig:
    host: str = field(default_factory=lambda: os.getenv("MEDI_REMIND_HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: int(os.getenv("MEDI_REMIND_PORT", "5000")))


# ---------------------------------------------------------------------------
# Storage keys and calendar names
# ---------------------------------------------------------------------------

USERS_KEY = "users"
MEDICINES_KEY = "medicines"
LOGS_KEY = "logs"
COOLDOWN_KEY = "last_sms_time"

# Indexed by datetime.weekday()
WEEKDAY_NAMES = [
    "Monday", "Tuesday", "Wednesday", "Thursday",
    "Friday", "Saturday", "Sunday",
]

DEFAULT_IMAGE_URL = "https://via.placeholder.com/150?text={name}"
DEFAULT_AUDIO_URL = "https://www.soundhelix.com/examples/mp3/SoundHelix-Song-1.mp3"
