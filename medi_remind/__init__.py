"""Medicine reminder with missed-dose escalation to a caretaker."""

__version__ = "0.1.0"
