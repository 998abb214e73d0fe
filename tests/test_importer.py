from __future__ import annotations

import asyncio
from datetime import UTC, date, datetime

import pytest
from _fakes import FakeCapability, FakeErp, RecordingSender, make_device, make_employee

from attendance_importer.cancellation import CancellationToken
from attendance_importer.devices.registry import DeviceRegistry
from attendance_importer.exceptions import ErpError
from attendance_importer.importer import AttendanceImporter, group_by_device_type
from attendance_importer.notify import NotificationThrottle
from attendance_importer.reconcile import RecordReconciler

_EVENT = ("1001", datetime(2026, 1, 5, 8, 30), True)


def _build(
    erp: FakeErp,
    capability: FakeCapability,
    tenant_ids: list[int],
) -> AttendanceImporter:
    registry = DeviceRegistry()
    registry.register("Connect", lambda: capability)
    throttle = NotificationThrottle(
        RecordingSender(),
        [],
        clock=lambda: datetime(2026, 1, 5, 9, 0, tzinfo=UTC),
    )
    reconciler = RecordReconciler(erp, throttle, date(2026, 1, 2))
    return AttendanceImporter(erp, registry, reconciler, tenant_ids)


@pytest.mark.asyncio
async def test_tenant_device_list_failure_does_not_stop_other_tenants() -> None:
    erp = FakeErp(devices={2: [make_device(20)]}, employees=[make_employee("1001")])
    erp.device_failures.add(1)
    capability = FakeCapability({20: [_EVENT]})

    summary = await _build(erp, capability, [1, 2]).import_all(CancellationToken())

    assert erp.device_calls == [1, 2]
    assert summary.skipped_tenants == [1]
    assert [(tenant, len(records)) for tenant, records in erp.imported] == [(2, 1)]


@pytest.mark.asyncio
async def test_device_failure_does_not_stop_other_devices(caplog: pytest.LogCaptureFixture) -> None:
    erp = FakeErp(
        devices={1: [make_device(10), make_device(11), make_device(12)]},
        employees=[make_employee("1001")],
    )
    capability = FakeCapability({10: [_EVENT], 11: [_EVENT], 12: [_EVENT]})
    capability.failing.add(10)
    erp.import_failures.add(11)

    with caplog.at_level("INFO", logger="attendance_importer.importer"):
        summary = await _build(erp, capability, [1]).import_all(CancellationToken())

    assert capability.loaded == [10, 11, 12]
    assert summary.failed_devices == [10, 11]
    assert summary.succeeded_devices == [12]
    assert summary.imported_records == 1
    assert any("Imported 1 records to tenant 1" in rec.getMessage() for rec in caplog.records)
    assert any(rec.exc_info and isinstance(rec.exc_info[1], ErpError) for rec in caplog.records)


@pytest.mark.asyncio
async def test_unknown_device_type_skips_group_only() -> None:
    erp = FakeErp(
        devices={1: [make_device(10, device_type="Zkem"), make_device(11), make_device(12, device_type="Zkem")]},
        employees=[make_employee("1001")],
    )
    capability = FakeCapability({11: [_EVENT]})

    summary = await _build(erp, capability, [1]).import_all(CancellationToken())

    assert summary.skipped_device_types == ["Zkem"]
    assert capability.loaded == [11]
    assert summary.succeeded_devices == [11]


@pytest.mark.asyncio
async def test_empty_result_is_still_forwarded() -> None:
    erp = FakeErp(devices={1: [make_device(10)]}, employees=[make_employee("1001")])

    summary = await _build(erp, FakeCapability({}), [1]).import_all(CancellationToken())

    assert erp.imported == [(1, [])]
    assert summary.succeeded_devices == [10]


@pytest.mark.asyncio
async def test_cancellation_stops_before_next_device() -> None:
    token = CancellationToken()
    erp = FakeErp(devices={1: [make_device(10), make_device(11)], 2: [make_device(20)]}, employees=[make_employee("1001")])

    class _CancellingCapability(FakeCapability):
        async def load_from_device(self, device, token_):  # type: ignore[no-untyped-def]
            records = await super().load_from_device(device, token_)
            token.cancel()
            return records

    capability = _CancellingCapability({10: [_EVENT], 11: [_EVENT]})

    with pytest.raises(asyncio.CancelledError):
        await _build(erp, capability, [1, 2]).import_all(token)

    # The in-flight device completes; nothing after it starts.
    assert capability.loaded == [10]
    assert [tenant for tenant, _ in erp.imported] == [1]
    assert erp.device_calls == [1]


@pytest.mark.asyncio
async def test_cancelled_token_starts_nothing() -> None:
    token = CancellationToken()
    token.cancel()
    erp = FakeErp(devices={1: [make_device(10)]})

    with pytest.raises(asyncio.CancelledError):
        await _build(erp, FakeCapability({}), [1]).import_all(token)

    assert erp.device_calls == []


def test_grouping_preserves_first_seen_order() -> None:
    devices = [make_device(1, device_type="B"), make_device(2, device_type="A"), make_device(3, device_type="B")]

    groups = group_by_device_type(devices)

    assert list(groups) == ["B", "A"]
    assert [d.id for d in groups["B"]] == [1, 3]
