"""Throttled data-quality notifications.

Operators are alerted about employees missing an external reference at
most once per UTC calendar day.  The throttle state lives in memory only,
so a restart may send one more alert the same day, and running several
importer instances will duplicate alerts.
"""

from __future__ import annotations

import asyncio
import logging
import smtplib
import ssl
import threading
from collections.abc import Callable, Sequence
from datetime import UTC, date, datetime
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Protocol

from attendance_importer.config import EmailConfig
from attendance_importer.models import EmployeeIdentity

_logger = logging.getLogger(__name__)

SMTP_TIMEOUT_SECONDS = 30.0


def _utcnow() -> datetime:
    return datetime.now(UTC)


class NotificationSender(Protocol):
    """Delivers a plain-text notification."""

    async def send(self, subject: str, recipients: Sequence[str], body: str) -> None:
        ...


def compose_invalid_employees_message(
    employees: Sequence[EmployeeIdentity],
    installation_identifier: str,
    now: datetime,
) -> tuple[str, str]:
    """Build ``(subject, body)`` for the invalid-employee alert."""
    labels = list(dict.fromkeys(employee.label for employee in employees))
    subject = f"{installation_identifier or 'Unknown'} - Invalid Users Detected ({len(labels)})"
    lines = [
        f"The following {len(labels)} employee(s) have no external reference.",
        "Attendance import is halted for their devices until the records are amended.",
        "",
        *(f"  - {label}" for label in labels),
        "",
        f"Installation: {installation_identifier or 'Unknown'}",
        f"Generated at: {now:%Y-%m-%d %H:%M:%S} UTC",
    ]
    return subject, "\n".join(lines)


class NotificationThrottle:
    """Sends the invalid-employee alert at most once per UTC day.

    The alert may only go out while the UTC clock is inside
    ``[hour_utc:00, hour_utc:window_minutes]``; the scheduler calls in
    many times a day, so the window plus the last-sent date approximate
    a daily report without persistent state.
    """

    def __init__(
        self,
        sender: NotificationSender,
        recipients: Sequence[str],
        *,
        hour_utc: int = 14,
        window_minutes: int = 5,
        installation_identifier: str = "Unknown",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._sender = sender
        self._recipients = tuple(recipients)
        self._hour_utc = hour_utc
        self._window_minutes = window_minutes
        self._installation_identifier = installation_identifier
        self._clock = clock or _utcnow
        self._lock = threading.Lock()
        self._last_sent_date: date | None = None

    @property
    def last_sent_date(self) -> date | None:
        return self._last_sent_date

    def in_window(self, now: datetime) -> bool:
        return now.hour == self._hour_utc and now.minute <= self._window_minutes

    def _claim_today(self, today: date) -> bool:
        """Mark *today* as sent; return ``False`` if it already was."""
        with self._lock:
            if self._last_sent_date == today:
                return False
            self._last_sent_date = today
            return True

    async def notify_invalid_employees(self, employees: Sequence[EmployeeIdentity]) -> None:
        """Alert operators about *employees*, subject to the daily throttle.

        Never raises on delivery failure.
        """
        if not employees:
            return

        now = self._clock().astimezone(UTC)
        if not self.in_window(now):
            return
        if not self._claim_today(now.date()):
            return

        try:
            if not self._recipients:
                _logger.info("No daily report recipients configured; skipping invalid employee notification")
                return
            subject, body = compose_invalid_employees_message(employees, self._installation_identifier, now)
            await self._sender.send(subject, self._recipients, body)
            _logger.info("Daily email sent to %d recipients", len(self._recipients))
        except Exception:
            _logger.error("Failed to send daily email", exc_info=True)


class SmtpNotificationSender:
    """Sends notifications through an SMTP relay."""

    def __init__(self, config: EmailConfig) -> None:
        self._config = config

    async def send(self, subject: str, recipients: Sequence[str], body: str) -> None:
        # smtplib blocks; keep it off the event loop.
        await asyncio.to_thread(self.deliver, subject, list(recipients), body)

    def _build_message(self, subject: str, recipients: list[str], body: str) -> MIMEText:
        message = MIMEText(body, "plain", "utf-8")
        message["Subject"] = subject
        message["From"] = formataddr(("System Alert", self._config.sender_address))
        message["To"] = ", ".join(recipients)
        return message

    def deliver(self, subject: str, recipients: list[str], body: str) -> None:
        """Send one message synchronously; blocks for the SMTP round trip."""
        config = self._config
        if not config.smtp_host:
            raise ValueError("SMTP host is not configured")
        message = self._build_message(subject, recipients, body)
        context = ssl.create_default_context()

        smtp: smtplib.SMTP
        if config.smtp_use_ssl:
            smtp = smtplib.SMTP_SSL(config.smtp_host, config.smtp_port, timeout=SMTP_TIMEOUT_SECONDS, context=context)
        else:
            smtp = smtplib.SMTP(config.smtp_host, config.smtp_port, timeout=SMTP_TIMEOUT_SECONDS)
        with smtp:
            if not config.smtp_use_ssl:
                smtp.starttls(context=context)
            if config.smtp_username:
                smtp.login(config.smtp_username, config.smtp_password or "")
            smtp.send_message(message, to_addrs=recipients)
