# modules/__init__.py
from .store import SharedStore
from .records import MedicineCatalog, AccountDirectory, CooldownRegistry
from .sms_client import NotificationTransport, SmsClient, ConsoleTransport, SendReport
