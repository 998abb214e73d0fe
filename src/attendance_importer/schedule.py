"""Business-hours scheduling loop."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime, time, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from attendance_importer.cancellation import CancellationToken
from attendance_importer.config import ImporterConfig
from attendance_importer.importer import AttendanceImporter

_logger = logging.getLogger(__name__)

# Gulf Standard Time, used when neither configured zone is installed.
_FIXED_FALLBACK = timezone(timedelta(hours=4), "UTC+04:00")


def _utcnow() -> datetime:
    return datetime.now(UTC)


def resolve_time_zone(primary: str, fallback: str) -> tzinfo:
    """Return *primary*, else *fallback*, else a fixed UTC+04:00 offset."""
    for name in (primary, fallback):
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            _logger.warning("Time zone %r is not available on this host", name)
    return _FIXED_FALLBACK


def is_within_business_hours(local_now: datetime, start_hour: int, end_hour: int) -> bool:
    """Whether *local_now* lies in ``[start_hour:00, end_hour:00]``, both ends inclusive."""
    current = local_now.time()
    return time(start_hour) <= current <= time(end_hour)


def delay_until_next_window(local_now: datetime, start_hour: int) -> timedelta:
    """Time from *local_now* until the next ``start_hour:00`` in its zone.

    Before the start hour this is the same day, otherwise the next day.
    """
    day = local_now.date()
    if local_now.time() >= time(start_hour):
        day += timedelta(days=1)
    next_run = datetime.combine(day, time(start_hour), tzinfo=local_now.tzinfo)
    # Compare as UTC instants so DST transitions in the zone are honoured.
    return next_run.astimezone(UTC) - local_now.astimezone(UTC)


class BusinessHoursGate:
    """Runs import cycles on a fixed interval inside business hours.

    Outside the window the loop sleeps straight through to the next
    opening instead of polling.  Cycle failures are logged and followed
    by a short cooldown; only cancellation ends the loop.
    """

    def __init__(
        self,
        importer: AttendanceImporter,
        *,
        start_hour: int,
        end_hour: int,
        time_zone: tzinfo,
        poll_interval: float,
        error_cooldown: float,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._importer = importer
        self._start_hour = start_hour
        self._end_hour = end_hour
        self._tz = time_zone
        self._poll_interval = poll_interval
        self._error_cooldown = error_cooldown
        self._clock = clock or _utcnow

    @classmethod
    def from_config(
        cls,
        importer: AttendanceImporter,
        config: ImporterConfig,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> BusinessHoursGate:
        return cls(
            importer,
            start_hour=config.business_start_hour,
            end_hour=config.business_end_hour,
            time_zone=resolve_time_zone(config.time_zone, config.fallback_time_zone),
            poll_interval=config.poll_interval,
            error_cooldown=config.error_cooldown,
            clock=clock,
        )

    def local_now(self) -> datetime:
        return self._clock().astimezone(self._tz)

    async def step(self, token: CancellationToken) -> float:
        """Run one cycle if inside business hours; return seconds to sleep next."""
        local_now = self.local_now()
        if not is_within_business_hours(local_now, self._start_hour, self._end_hour):
            delay = delay_until_next_window(local_now, self._start_hour)
            _logger.info(
                "Outside working hours. Current local time: %s. Waiting %s until %02d:00.",
                local_now.strftime("%H:%M:%S"),
                delay,
                self._start_hour,
            )
            return delay.total_seconds()

        _logger.info("Worker running at: %s (local time)", local_now.isoformat(timespec="seconds"))
        _logger.debug("UTC time: %s", local_now.astimezone(UTC).isoformat(timespec="seconds"))
        summary = await self._importer.import_all(token)
        _logger.debug(
            "Cycle finished: %d records from %d device(s), %d device failure(s)",
            summary.imported_records,
            len(summary.succeeded_devices),
            len(summary.failed_devices),
        )
        return self._poll_interval

    async def run(self, token: CancellationToken) -> None:
        """Loop until *token* is cancelled."""
        while not token.is_cancelled:
            try:
                delay = await self.step(token)
            except asyncio.CancelledError:
                if token.is_cancelled:
                    break
                raise
            except Exception:
                _logger.error("Error in worker loop", exc_info=True)
                delay = self._error_cooldown
            if await token.sleep(delay):
                break
        _logger.info("Importer loop stopped")
