"""Outbound notification transport.

The dispatcher only sees :class:`Notifier`: ``send`` returns True when the
message was accepted and False (or raises) otherwise.
"""

from __future__ import annotations

from typing import Optional, Protocol

import requests

from ..config import BaseConfig
from ..logging_config import get_logger

logger = get_logger("services.notifications")


class Notifier(Protocol):
    def send(self, recipient: str, subject: str, body: str) -> bool:
        """Deliver one message; True when the transport accepted it."""
        ...


class BrevoEmailNotifier:
    """Send plain-text email through Brevo's transactional API."""

    def __init__(
        self,
        api_key: str,
        sender_email: str,
        sender_name: str = "HabitEcho",
        *,
        api_url: str = BaseConfig.BREVO_API_URL,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.api_key = api_key
        self.sender_email = sender_email
        self.sender_name = sender_name
        self.api_url = api_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def send(self, recipient: str, subject: str, body: str) -> bool:
        payload = {
            "sender": {"name": self.sender_name, "email": self.sender_email},
            "to": [{"email": recipient}],
            "subject": subject,
            "textContent": body,
        }
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "api-key": self.api_key,
        }
        try:
            response = self.session.post(self.api_url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.error("Email request failed", extra={"recipient": recipient, "error": str(exc)})
            return False

        if not response.ok:
            logger.error(
                "Email API rejected message",
                extra={"recipient": recipient, "status": response.status_code, "body": response.text[:500]},
            )
            return False

        logger.info("Email accepted", extra={"recipient": recipient, "status": response.status_code})
        return True


class LogOnlyNotifier:
    """Development transport that logs the message instead of sending it."""

    def send(self, recipient: str, subject: str, body: str) -> bool:
        logger.info("Email not configured; logging message", extra={"recipient": recipient, "subject": subject})
        return True


def reminder_message(habit, owner) -> tuple[str, str]:
    """Subject and body for a habit reminder."""

    greeting = f"Hi {owner.full_name}," if owner.full_name else "Hi,"
    subject = f"Reminder: {habit.name}"
    body = f"{greeting}\n\nThis is your reminder to complete \"{habit.name}\" today."
    return subject, body


def create_notifier(config: BaseConfig) -> Notifier:
    """Brevo email when credentials are configured, log-only otherwise."""

    if config.email_enabled:
        return BrevoEmailNotifier(
            config.BREVO_API_KEY,
            config.BREVO_SENDER_EMAIL,
            config.BREVO_SENDER_NAME,
            api_url=config.BREVO_API_URL,
            timeout=config.NOTIFY_TIMEOUT_SECONDS,
        )
    logger.warning("BREVO_API_KEY/BREVO_SENDER_EMAIL not set; reminders will only be logged")
    return LogOnlyNotifier()


__all__ = ["BrevoEmailNotifier", "LogOnlyNotifier", "Notifier", "create_notifier", "reminder_message"]
