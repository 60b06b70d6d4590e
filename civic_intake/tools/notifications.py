"""
Confirmation notifications.

Delivery is best effort: every notifier reports success as a bool and
never raises, so a mail outage cannot undo a request that was already
stored.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx

from civic_intake.config import settings

logger = logging.getLogger(__name__)

SENDGRID_SEND_URL = "https://api.sendgrid.com/v3/mail/send"


class Notifier(ABC):
    @abstractmethod
    def send(self, address: str, subject: str, body: str) -> bool:
        """Deliver a message. Returns False on failure."""


class SendGridNotifier(Notifier):
    """Plain-text mail through the SendGrid v3 API."""

    def __init__(
        self,
        api_key: str,
        from_email: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        cfg = settings.notification
        self._from_email = from_email or cfg.from_email
        self._client = client or httpx.Client(timeout=timeout or cfg.timeout_sec)
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    def send(self, address: str, subject: str, body: str) -> bool:
        payload = {
            "personalizations": [{"to": [{"email": address}]}],
            "from": {"email": self._from_email},
            "subject": subject,
            "content": [{"type": "text/plain", "value": body}],
        }
        try:
            response = self._client.post(SENDGRID_SEND_URL, json=payload, headers=self._headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "SendGrid rejected mail to %s: %s %s",
                address, exc.response.status_code, exc.response.text[:200],
            )
            return False
        except httpx.HTTPError as exc:
            logger.warning("SendGrid request failed for %s: %s", address, exc)
            return False
        logger.info("Confirmation mail sent to %s", address)
        return True


class LogNotifier(Notifier):
    """Development notifier: logs instead of sending."""

    def send(self, address: str, subject: str, body: str) -> bool:
        logger.info("Notification to %s: %s\n%s", address, subject, body)
        return True


@dataclass
class SentMessage:
    address: str
    subject: str
    body: str


class RecordingNotifier(Notifier):
    """Keeps messages in memory. Set ``fail=True`` to simulate an outage."""

    def __init__(self, fail: bool = False) -> None:
        self.sent: list[SentMessage] = []
        self.fail = fail

    def send(self, address: str, subject: str, body: str) -> bool:
        if self.fail:
            logger.warning("Simulated notification failure for %s", address)
            return False
        self.sent.append(SentMessage(address, subject, body))
        return True


def build_notifier() -> Notifier:
    """SendGrid when an API key is configured, otherwise log only."""
    cfg = settings.notification
    if cfg.sendgrid_api_key:
        return SendGridNotifier(api_key=cfg.sendgrid_api_key)
    logger.info("SENDGRID_API_KEY not set; confirmation mail will be logged only")
    return LogNotifier()
