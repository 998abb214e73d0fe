from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta, timezone

import pytest

from attendance_importer.cancellation import CancellationToken
from attendance_importer.importer import CycleSummary
from attendance_importer.schedule import (
    BusinessHoursGate,
    delay_until_next_window,
    is_within_business_hours,
    resolve_time_zone,
)

_GULF = timezone(timedelta(hours=4))


def _local(hour: int, minute: int = 0, second: int = 0, day: int = 10) -> datetime:
    return datetime(2026, 3, day, hour, minute, second, tzinfo=_GULF)


def test_before_start_waits_until_start_same_day() -> None:
    now = _local(4, 15)
    delay = delay_until_next_window(now, 6)
    assert delay == timedelta(hours=1, minutes=45)
    assert (now + delay) == _local(6)


def test_after_end_waits_until_start_next_day() -> None:
    now = _local(21, 30)
    delay = delay_until_next_window(now, 6)
    assert delay == timedelta(hours=8, minutes=30)
    assert (now + delay) == _local(6, day=11)


@pytest.mark.parametrize(
    ("now", "inside"),
    [
        (_local(6, 0), True),
        (_local(21, 0), True),
        (_local(13, 37), True),
        (_local(5, 59, 59), False),
        (_local(21, 0, 1), False),
    ],
)
def test_window_bounds_are_inclusive(now: datetime, inside: bool) -> None:
    assert is_within_business_hours(now, 6, 21) is inside


def test_unknown_zones_fall_back_to_fixed_offset() -> None:
    tz = resolve_time_zone("Not/AZone", "Also/NotAZone")
    assert datetime(2026, 1, 1, tzinfo=UTC).astimezone(tz).utcoffset() == timedelta(hours=4)


class _StubImporter:
    def __init__(self, error: Exception | None = None, token: CancellationToken | None = None) -> None:
        self.calls = 0
        self._error = error
        self._token = token

    async def import_all(self, token: CancellationToken) -> CycleSummary:
        self.calls += 1
        if self._token is not None and self.calls >= 2:
            self._token.cancel()
        if self._error is not None:
            raise self._error
        return CycleSummary()


def _gate(importer: _StubImporter, now_utc: datetime) -> BusinessHoursGate:
    return BusinessHoursGate(
        importer,  # type: ignore[arg-type]
        start_hour=6,
        end_hour=21,
        time_zone=_GULF,
        poll_interval=600.0,
        error_cooldown=60.0,
        clock=lambda: now_utc,
    )


@pytest.mark.asyncio
async def test_step_inside_hours_runs_cycle_and_returns_poll_interval() -> None:
    importer = _StubImporter()
    # 06:00 local, exactly on the boundary.
    gate = _gate(importer, datetime(2026, 3, 10, 2, 0, tzinfo=UTC))

    delay = await gate.step(CancellationToken())

    assert importer.calls == 1
    assert delay == 600.0


@pytest.mark.asyncio
async def test_step_outside_hours_skips_cycle_and_sleeps_until_start() -> None:
    importer = _StubImporter()
    # 22:00 local.
    gate = _gate(importer, datetime(2026, 3, 10, 18, 0, tzinfo=UTC))

    delay = await gate.step(CancellationToken())

    assert importer.calls == 0
    assert delay == timedelta(hours=8).total_seconds()


@pytest.mark.asyncio
async def test_run_survives_cycle_failure_and_stops_on_cancel(monkeypatch: pytest.MonkeyPatch) -> None:
    token = CancellationToken()
    importer = _StubImporter(error=RuntimeError("boom"), token=token)
    gate = _gate(importer, datetime(2026, 3, 10, 8, 0, tzinfo=UTC))
    sleeps: list[float] = []

    async def _fake_sleep(seconds: float) -> bool:
        sleeps.append(seconds)
        return token.is_cancelled

    monkeypatch.setattr(token, "sleep", _fake_sleep)

    await asyncio.wait_for(gate.run(token), timeout=1.0)

    assert importer.calls == 2
    # Failed cycles are followed by the short cooldown.
    assert sleeps == [60.0, 60.0]


@pytest.mark.asyncio
async def test_run_exits_when_cycle_observes_cancellation() -> None:
    token = CancellationToken()

    class _CancelledImporter(_StubImporter):
        async def import_all(self, token_: CancellationToken) -> CycleSummary:
            self.calls += 1
            token.cancel()
            token_.raise_if_cancelled()
            return CycleSummary()

    importer = _CancelledImporter()
    gate = _gate(importer, datetime(2026, 3, 10, 8, 0, tzinfo=UTC))

    await asyncio.wait_for(gate.run(token), timeout=1.0)

    assert importer.calls == 1


@pytest.mark.asyncio
async def test_token_sleep_wakes_on_cancel() -> None:
    token = CancellationToken()
    loop = asyncio.get_running_loop()
    loop.call_later(0.01, token.cancel)

    cancelled = await asyncio.wait_for(token.sleep(30.0), timeout=1.0)

    assert cancelled is True
