"""Importer configuration for attendance_importer."""

from __future__ import annotations

import dataclasses
import os
from datetime import date
from typing import Any

from attendance_importer.exceptions import ImporterConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def split_addresses(value: str | None) -> tuple[str, ...]:
    """Split a comma-separated address list, trimming and dropping blanks."""
    if not value:
        return ()
    return tuple(part.strip() for part in value.split(",") if part.strip())


def parse_tenant_ids(value: str | None) -> tuple[int, ...]:
    """Parse the comma-separated tenant id list.

    Every entry must be an integer.  An empty list or a blank entry is
    fatal, as is any entry that does not parse.

    Raises
    ------
    ImporterConfigError
        If the list is empty or contains an invalid entry.
    """
    tenant_ids: list[int] = []
    for part in (value or "").split(","):
        text = part.strip()
        if not text:
            raise ImporterConfigError(
                "Error parsing tenant ids: the list is empty or contains a blank entry "
                "(is the secrets file readable by the service account?)"
            )
        try:
            tenant_ids.append(int(text))
        except ValueError:
            raise ImporterConfigError(f"Error parsing tenant ids: {text!r} is not a valid integer") from None
    return tuple(tenant_ids)


def _parse_date(value: str, name: str) -> date:
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise ImporterConfigError(f"{name} must be an ISO date (YYYY-MM-DD), got {value!r}") from None


def _parse_number(value: str, name: str, kind: type[int] | type[float]) -> Any:
    try:
        return kind(value)
    except ValueError:
        raise ImporterConfigError(f"{name} must be a number, got {value!r}") from None


@dataclasses.dataclass(frozen=True)
class ConnectConfig:
    """Settings for the Connect attendance API.

    Parameters
    ----------
    api_key : str
        Value sent in the ``X-API-Key`` header.
    base_url : str
        API base URL, with trailing slash.
    daily_report_emails : tuple[str, ...]
        Recipients of the invalid-employee notification.
    sync_time_offset : str
        UTC offset appended to naive last-sync timestamps.
    request_timeout : float
        Total timeout per request, in seconds.
    """

    api_key: str = ""
    base_url: str = "https://attend.axc.ae/"
    daily_report_emails: tuple[str, ...] = ()
    sync_time_offset: str = "+04:00"
    request_timeout: float = 60.0


@dataclasses.dataclass(frozen=True)
class EmailConfig:
    """SMTP settings shared by the notification sender and the alert log handler."""

    smtp_host: str = ""
    smtp_port: int = 587
    smtp_use_ssl: bool = False
    smtp_username: str | None = None
    smtp_password: str | None = None
    sender_address: str = "donotreply@tellma.com"
    alert_addresses: tuple[str, ...] = ()


@dataclasses.dataclass(frozen=True)
class ImporterConfig:
    """Importer configuration.

    Parameters
    ----------
    tenant_ids : tuple[int, ...]
        Tenants processed each cycle, in order.
    earliest_attendance_date : date
        Events dated before this are never imported.
    business_start_hour, business_end_hour : int
        Inclusive local-time window in which import cycles run.
    time_zone : str
        IANA zone the business hours are expressed in.
    fallback_time_zone : str
        Zone used when ``time_zone`` is not available on the host.
    poll_interval : float
        Seconds between cycles inside business hours.
    error_cooldown : float
        Seconds to wait after an unexpected cycle failure.
    notification_hour_utc : int
        UTC hour in which the invalid-employee notification may be sent.
    notification_window_minutes : int
        Minutes past ``notification_hour_utc`` the window stays open.
    installation_identifier : str
        Label prefixed to notification and alert subjects.
    connect : ConnectConfig
        Connect API settings.
    email : EmailConfig
        SMTP settings.
    """

    tenant_ids: tuple[int, ...]
    earliest_attendance_date: date = date(2026, 1, 2)
    business_start_hour: int = 6
    business_end_hour: int = 21
    time_zone: str = "Asia/Dubai"
    fallback_time_zone: str = "Etc/GMT-4"
    poll_interval: float = 600.0
    error_cooldown: float = 60.0
    notification_hour_utc: int = 14
    notification_window_minutes: int = 5
    installation_identifier: str = "Unknown"
    connect: ConnectConfig = dataclasses.field(default_factory=ConnectConfig)
    email: EmailConfig = dataclasses.field(default_factory=EmailConfig)

    def __post_init__(self) -> None:
        if not self.tenant_ids:
            raise ImporterConfigError("At least one tenant id is required")
        if not 0 <= self.business_start_hour <= 23 or not 0 <= self.business_end_hour <= 23:
            raise ImporterConfigError("Business hours must be between 0 and 23")
        if self.business_start_hour > self.business_end_hour:
            raise ImporterConfigError(
                f"Business start hour {self.business_start_hour} is after end hour {self.business_end_hour}"
            )
        if not 0 <= self.notification_hour_utc <= 23:
            raise ImporterConfigError("Notification hour must be between 0 and 23")
        if not 0 <= self.notification_window_minutes <= 59:
            raise ImporterConfigError("Notification window must be between 0 and 59 minutes")
        if self.poll_interval <= 0 or self.error_cooldown < 0:
            raise ImporterConfigError("Poll interval must be positive and error cooldown non-negative")

    @classmethod
    def from_env(cls, **overrides: Any) -> ImporterConfig:
        """Create configuration from environment variables.

        Reads ``ATTENDANCE_TENANT_IDS`` plus optional ``ATTENDANCE_*``,
        ``CONNECT_*`` and ``SMTP_*`` variables.  Explicit keyword
        arguments override environment values.

        Raises
        ------
        ImporterConfigError
            If a required value is missing or a value does not parse.
        """
        env = os.environ

        connect_overrides = overrides.pop("connect", None)
        if isinstance(connect_overrides, ConnectConfig):
            connect = connect_overrides
        else:
            connect_kwargs: dict[str, Any] = {}
            for env_key, field_name in {
                "CONNECT_API_KEY": "api_key",
                "CONNECT_BASE_URL": "base_url",
                "CONNECT_SYNC_TIME_OFFSET": "sync_time_offset",
            }.items():
                val = env.get(env_key)
                if val is not None:
                    connect_kwargs[field_name] = val
            emails_env = env.get("CONNECT_DAILY_REPORT_EMAILS")
            if emails_env is not None:
                connect_kwargs["daily_report_emails"] = split_addresses(emails_env)
            timeout_env = env.get("CONNECT_REQUEST_TIMEOUT")
            if timeout_env is not None:
                connect_kwargs["request_timeout"] = _parse_number(timeout_env, "CONNECT_REQUEST_TIMEOUT", float)
            if isinstance(connect_overrides, dict):
                connect_kwargs.update(connect_overrides)
            connect = ConnectConfig(**connect_kwargs)

        email_overrides = overrides.pop("email", None)
        if isinstance(email_overrides, EmailConfig):
            email = email_overrides
        else:
            email_kwargs: dict[str, Any] = {}
            for env_key, field_name in {
                "SMTP_HOST": "smtp_host",
                "SMTP_USERNAME": "smtp_username",
                "SMTP_PASSWORD": "smtp_password",
                "SMTP_SENDER_ADDRESS": "sender_address",
            }.items():
                val = env.get(env_key)
                if val is not None:
                    email_kwargs[field_name] = val
            port_env = env.get("SMTP_PORT")
            if port_env is not None:
                email_kwargs["smtp_port"] = _parse_number(port_env, "SMTP_PORT", int)
            email_kwargs["smtp_use_ssl"] = _env_bool(env.get("SMTP_USE_SSL"), False)
            alerts_env = env.get("SMTP_ALERT_ADDRESSES")
            if alerts_env is not None:
                email_kwargs["alert_addresses"] = split_addresses(alerts_env)
            if isinstance(email_overrides, dict):
                email_kwargs.update(email_overrides)
            email = EmailConfig(**email_kwargs)

        config_kwargs: dict[str, Any] = {"connect": connect, "email": email}

        if "tenant_ids" not in overrides:
            config_kwargs["tenant_ids"] = parse_tenant_ids(env.get("ATTENDANCE_TENANT_IDS"))
        elif isinstance(overrides["tenant_ids"], str):
            overrides["tenant_ids"] = parse_tenant_ids(overrides["tenant_ids"])

        for env_key, field_name in {
            "ATTENDANCE_TIME_ZONE": "time_zone",
            "ATTENDANCE_FALLBACK_TIME_ZONE": "fallback_time_zone",
            "ATTENDANCE_INSTALLATION_IDENTIFIER": "installation_identifier",
        }.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = val

        cutoff_env = env.get("ATTENDANCE_EARLIEST_DATE")
        if cutoff_env is not None and "earliest_attendance_date" not in overrides:
            config_kwargs["earliest_attendance_date"] = _parse_date(cutoff_env, "ATTENDANCE_EARLIEST_DATE")

        _NUMERIC_ENV_MAP: dict[str, tuple[str, type[int] | type[float]]] = {
            "ATTENDANCE_BUSINESS_START_HOUR": ("business_start_hour", int),
            "ATTENDANCE_BUSINESS_END_HOUR": ("business_end_hour", int),
            "ATTENDANCE_POLL_INTERVAL": ("poll_interval", float),
            "ATTENDANCE_ERROR_COOLDOWN": ("error_cooldown", float),
            "ATTENDANCE_NOTIFICATION_HOUR_UTC": ("notification_hour_utc", int),
            "ATTENDANCE_NOTIFICATION_WINDOW_MINUTES": ("notification_window_minutes", int),
        }
        for env_key, (field_name, kind) in _NUMERIC_ENV_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _parse_number(val, env_key, kind)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
