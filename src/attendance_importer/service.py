"""Service composition for the attendance importer."""

from __future__ import annotations

import logging
import logging.handlers
from collections.abc import Callable
from datetime import datetime
from typing import Any

import aiohttp

from attendance_importer._transport import ConnectApiClient
from attendance_importer.cancellation import CancellationToken
from attendance_importer.config import EmailConfig, ImporterConfig
from attendance_importer.devices.connect import CONNECT_DEVICE_TYPE, ConnectDeviceService
from attendance_importer.devices.registry import DeviceRegistry
from attendance_importer.erp import ErpClient
from attendance_importer.exceptions import ImporterConfigError, ImporterError
from attendance_importer.importer import AttendanceImporter, CycleSummary
from attendance_importer.notify import (
    SMTP_TIMEOUT_SECONDS,
    NotificationSender,
    NotificationThrottle,
    SmtpNotificationSender,
)
from attendance_importer.reconcile import RecordReconciler
from attendance_importer.schedule import BusinessHoursGate

_logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

SUBJECT_SUMMARY_LENGTH = 80


def _truncate(value: str, max_length: int) -> str:
    if len(value) <= max_length:
        return value
    return value[:max_length] + "..."


class SmtpAlertHandler(logging.handlers.SMTPHandler):
    """Mails log records to operators.

    Delivery goes through :class:`SmtpNotificationSender`, so alerts follow
    the same TLS and login settings as the daily notification.  The subject
    carries the level and the exception message (or the log message when
    no exception is attached), cut to 80 characters.
    """

    def __init__(self, email: EmailConfig, installation_identifier: str) -> None:
        credentials = (email.smtp_username, email.smtp_password or "") if email.smtp_username else None
        super().__init__(
            mailhost=(email.smtp_host, email.smtp_port),
            fromaddr=email.sender_address,
            toaddrs=list(email.alert_addresses),
            subject=installation_identifier or "Unknown",
            credentials=credentials,
            timeout=SMTP_TIMEOUT_SECONDS,
        )
        self._sender = SmtpNotificationSender(email)

    def getSubject(self, record: logging.LogRecord) -> str:  # noqa: N802
        exc = record.exc_info[1] if record.exc_info else None
        summary = str(exc) if exc is not None else record.getMessage()
        summary = " ".join(summary.split())
        return f"{self.subject} - {record.levelname}: {_truncate(summary, SUBJECT_SUMMARY_LENGTH)}"

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._sender.deliver(self.getSubject(record), list(self.toaddrs), self.format(record))
        except Exception:
            self.handleError(record)


def configure_logging(config: ImporterConfig, level: int = logging.INFO) -> None:
    """Configure root logging, mailing ERROR records to operators when configured."""
    logging.basicConfig(level=level, format=LOG_FORMAT)
    email = config.email
    if not email.alert_addresses or not email.smtp_host:
        return
    handler = SmtpAlertHandler(email, config.installation_identifier)
    handler.setLevel(logging.ERROR)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.getLogger().addHandler(handler)


class ImporterService:
    """Wires the importer components around one HTTP session.

    Usage::

        async with ImporterService(config, erp=erp) as service:
            await service.run(token)
    """

    def __init__(
        self,
        config: ImporterConfig,
        *,
        erp: ErpClient,
        session: aiohttp.ClientSession | None = None,
        sender: NotificationSender | None = None,
        registry: DeviceRegistry | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._config = config
        self._erp = erp
        self._external_session = session is not None
        self._http_session = session
        self._sender = sender
        self._registry = registry
        self._clock = clock
        self._importer: AttendanceImporter | None = None
        self._gate: BusinessHoursGate | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> ImporterService:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        try:
            self._build()
        except Exception:
            await self._close_session()
            raise
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self._close_session()
        self._importer = None
        self._gate = None

    async def _close_session(self) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    def _build(self) -> None:
        config = self._config
        assert self._http_session is not None  # noqa: S101

        registry = self._registry
        if registry is None:
            if not config.connect.api_key:
                raise ImporterConfigError("CONNECT_API_KEY is required for the Connect device type")
            connect_client = ConnectApiClient(config.connect, self._http_session)
            registry = DeviceRegistry()
            registry.register(CONNECT_DEVICE_TYPE, lambda: ConnectDeviceService(connect_client))

        throttle = NotificationThrottle(
            self._sender or SmtpNotificationSender(config.email),
            config.connect.daily_report_emails,
            hour_utc=config.notification_hour_utc,
            window_minutes=config.notification_window_minutes,
            installation_identifier=config.installation_identifier,
            clock=self._clock,
        )
        reconciler = RecordReconciler(self._erp, throttle, config.earliest_attendance_date)
        self._importer = AttendanceImporter(self._erp, registry, reconciler, config.tenant_ids)
        self._gate = BusinessHoursGate.from_config(self._importer, config, clock=self._clock)
        _logger.debug("Importer ready for tenants %s, device types %s", config.tenant_ids, registry.device_types)

    def _require_gate(self) -> BusinessHoursGate:
        if self._gate is None:
            raise ImporterError("Service not initialized. Use 'async with ImporterService(...) as service:'")
        return self._gate

    def _require_importer(self) -> AttendanceImporter:
        if self._importer is None:
            raise ImporterError("Service not initialized. Use 'async with ImporterService(...) as service:'")
        return self._importer

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def run(self, token: CancellationToken) -> None:
        """Run the business-hours loop until *token* is cancelled."""
        await self._require_gate().run(token)

    async def run_once(self, token: CancellationToken) -> CycleSummary:
        """Run a single import cycle, ignoring business hours."""
        return await self._require_importer().import_all(token)
