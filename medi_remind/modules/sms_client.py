"""Outbound SMS with prioritized channel fallback.

Channel priority:
  1. Direct  : Fast2SMS bulkV2 endpoint
  2. Relays  : optional relay URLs from SMS_RELAY_URLS, in order

Callers only see ``NotificationTransport.send``; how many channels sit
underneath is private to the client.
"""

import logging
import re
import time
from dataclasses import dataclass
from typing import Dict, List, Optional
from urllib.parse import quote

import requests

from medi_remind.config import SmsConfig

logger = logging.getLogger("medi_remind.sms")


# ---------------------------------------------------------------------------
# Result dataclass
# ---------------------------------------------------------------------------

@dataclass
class SendReport:
    success: bool
    error_message: Optional[str] = None
    latency_ms: float = 0.0
    channel: str = ""


# ---------------------------------------------------------------------------
# Transport interface
# ---------------------------------------------------------------------------

class NotificationTransport:
    name: str = "base"

    def send(self, phone: str, message: str) -> SendReport:
        raise NotImplementedError


class ConsoleTransport(NotificationTransport):
    """Logs messages instead of sending them. Used when no API key is set."""
    name = "console"

    def send(self, phone: str, message: str) -> SendReport:
        if not phone:
            return SendReport(success=False, error_message="Missing Phone", channel=self.name)
        logger.info(f"[SMS to {phone}] {message}")
        return SendReport(success=True, channel=self.name)


# ---------------------------------------------------------------------------
# Channels
# ---------------------------------------------------------------------------

class _BaseChannel:
    name: str = "base"

    def fetch(self, url: str, timeout: float) -> Dict:
        raise NotImplementedError


class _DirectChannel(_BaseChannel):
    name = "direct"

    def fetch(self, url: str, timeout: float) -> Dict:
        r = requests.get(url, timeout=timeout)
        return r.json()


class _RelayChannel(_BaseChannel):
    def __init__(self, template: str):
        self.template = template
        self.name = f"relay:{template.split('/')[2] if '//' in template else template}"

    def fetch(self, url: str, timeout: float) -> Dict:
        r = requests.get(self.template.format(url=quote(url, safe="")), timeout=timeout)
        return r.json()


# ---------------------------------------------------------------------------
# Main client
# ---------------------------------------------------------------------------

def normalize_phone(phone: str) -> str:
    """Strip formatting and keep the last 10 digits (Indian mobile numbers)."""
    digits = re.sub(r"[^\d]", "", phone or "")
    return digits[-10:] if len(digits) > 10 else digits


def _error_text(data: Dict) -> str:
    message = data.get("message") if isinstance(data, dict) else None
    if isinstance(message, list):
        return " ".join(str(m) for m in message)
    return str(message) if message else "Fast2SMS API Error"


class SmsClient(NotificationTransport):
    """Fast2SMS client trying each channel until one accepts the message."""
    name = "fast2sms"

    def __init__(self, config: SmsConfig = None):
        self.config = config or SmsConfig()
        self._channels: List[_BaseChannel] = []
        self._init_channels()
        logger.info(f"SMS channels: {[c.name for c in self._channels]}")

    def _init_channels(self):
        self._channels.append(_DirectChannel())
        for template in self.config.relay_urls:
            if "{url}" in template:
                self._channels.append(_RelayChannel(template))
            else:
                logger.warning(f"Ignoring relay URL without {{url}} placeholder: {template}")

    def build_url(self, number: str, message: str) -> str:
        params = {
            "authorization": self.config.api_key,
            "route": self.config.route,
            "message": message,
            "language": "english",
            "flash": "0",
            "numbers": number,
        }
        return requests.Request("GET", self.config.url, params=params).prepare().url

    def send(self, phone: str, message: str) -> SendReport:
        if not phone:
            return SendReport(success=False, error_message="Missing Phone")
        url = self.build_url(normalize_phone(phone), message)

        last_error = ""
        for channel in self._channels:
            t0 = time.time()
            try:
                data = channel.fetch(url, timeout=self.config.timeout)
                latency = (time.time() - t0) * 1000
                if isinstance(data, dict) and data.get("return") is True:
                    logger.info(f"{channel.name}: sent ({latency:.0f}ms)")
                    return SendReport(success=True, latency_ms=latency, channel=channel.name)
                last_error = _error_text(data)
                logger.warning(f"{channel.name}: rejected ({latency:.0f}ms): {last_error}")
                # Account-level rejections will not change on another channel
                if "DLT" in last_error or "blocked" in last_error:
                    return SendReport(
                        success=False, error_message=last_error,
                        latency_ms=latency, channel=channel.name,
                    )
            except (requests.RequestException, ValueError) as e:
                latency = (time.time() - t0) * 1000
                last_error = str(e)
                logger.warning(f"{channel.name} failed ({latency:.0f}ms): {e}")

        return SendReport(success=False, error_message=last_error or "Network Blocked")


def build_transport(config: SmsConfig = None) -> NotificationTransport:
    config = config or SmsConfig()
    if config.api_key:
        return SmsClient(config)
    logger.warning("FAST2SMS_API_KEY not set; SMS will be logged, not sent")
    return ConsoleTransport()
