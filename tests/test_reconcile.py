from __future__ import annotations

from datetime import UTC, date, datetime

import pytest
from _fakes import FakeCapability, FakeErp, RecordingSender, make_device, make_employee

from attendance_importer.cancellation import CancellationToken
from attendance_importer.exceptions import DuplicateEmployeeReferenceError
from attendance_importer.models import AttendanceRecord, DirectoryScope
from attendance_importer.notify import NotificationThrottle
from attendance_importer.reconcile import RecordReconciler, build_lookup, filter_records, partition_employees

_CUTOFF = date(2026, 1, 2)


def _in_window_clock() -> datetime:
    return datetime(2026, 1, 5, 14, 2, tzinfo=UTC)


def _reconciler(erp: FakeErp, sender: RecordingSender | None = None) -> RecordReconciler:
    throttle = NotificationThrottle(
        sender or RecordingSender(),
        ["ops@example.com"],
        clock=_in_window_clock,
    )
    return RecordReconciler(erp, throttle, _CUTOFF)


@pytest.mark.asyncio
async def test_connect_scenario_yields_records_in_source_order() -> None:
    device = make_device(1)
    erp = FakeErp(employees=[make_employee("1001", "E1"), make_employee("1002", "E2")])
    capability = FakeCapability(
        {
            1: [
                ("1001", datetime(2026, 1, 5, 8, 30), True),
                ("1002", datetime(2026, 1, 5, 9, 0), None),
            ]
        }
    )

    records = await _reconciler(erp).reconcile(7, device, capability, CancellationToken())

    assert [(r.user_id, r.time, r.is_in) for r in records] == [
        ("1001", datetime(2026, 1, 5, 8, 30), True),
        ("1002", datetime(2026, 1, 5, 9, 0), None),
    ]
    assert all(r.device == device for r in records)
    assert erp.directory_calls == [DirectoryScope(tenant_id=7, location="Mild Tower")]


@pytest.mark.asyncio
async def test_invalid_employee_blocks_whole_device_and_notifies() -> None:
    device = make_device(1)
    erp = FakeErp(employees=[make_employee("1001", "E1"), make_employee("", "E2")])
    capability = FakeCapability(
        {
            1: [
                ("1001", datetime(2026, 1, 5, 8, 30), True),
                ("1002", datetime(2026, 1, 5, 9, 0), None),
            ]
        }
    )
    sender = RecordingSender()

    records = await _reconciler(erp, sender).reconcile(7, device, capability, CancellationToken())

    assert records == []
    # The device is never queried once the directory fails validation.
    assert capability.loaded == []
    assert len(sender.sent) == 1
    subject, recipients, body = sender.sent[0]
    assert "Invalid Users Detected (1)" in subject
    assert recipients == ["ops@example.com"]
    assert "E2: Employee E2" in body


@pytest.mark.asyncio
async def test_empty_event_stream_returns_empty_result() -> None:
    erp = FakeErp(employees=[make_employee("1001")])
    records = await _reconciler(erp).reconcile(7, make_device(1), FakeCapability({}), CancellationToken())
    assert records == []


@pytest.mark.asyncio
async def test_directory_failure_propagates() -> None:
    class _BrokenErp(FakeErp):
        async def get_employee_directory(self, scope, token):  # type: ignore[no-untyped-def]
            raise ConnectionError("directory down")

    with pytest.raises(ConnectionError):
        await _reconciler(_BrokenErp()).reconcile(7, make_device(1), FakeCapability({}), CancellationToken())


@pytest.mark.asyncio
async def test_unresolved_user_ids_are_dropped_and_logged_once(caplog: pytest.LogCaptureFixture) -> None:
    erp = FakeErp(employees=[make_employee("1001")])
    capability = FakeCapability(
        {
            1: [
                ("9999", datetime(2026, 1, 5, 7, 0), None),
                ("1001", datetime(2026, 1, 5, 8, 0), True),
                ("9999", datetime(2026, 1, 5, 17, 0), None),
                ("8888", datetime(2026, 1, 5, 18, 0), None),
            ]
        }
    )

    with caplog.at_level("WARNING", logger="attendance_importer.reconcile"):
        records = await _reconciler(erp).reconcile(7, make_device(1), capability, CancellationToken())

    assert [r.user_id for r in records] == ["1001"]
    unknown_logs = [rec.getMessage() for rec in caplog.records if "unknown user ids" in rec.getMessage()]
    assert len(unknown_logs) == 1
    assert unknown_logs[0].endswith("9999, 8888")


def test_filter_keeps_event_only_when_all_conditions_hold() -> None:
    device = make_device(1)
    lookup = build_lookup([make_employee("1", joining=date(2026, 2, 1)), make_employee("2", code="E2")])
    events = [
        # before joining date
        ("1", datetime(2026, 1, 31, 23, 59)),
        # on joining date
        ("1", datetime(2026, 2, 1, 0, 0)),
        # before global cutoff
        ("2", datetime(2026, 1, 1, 12, 0)),
        # on global cutoff
        ("2", datetime(2026, 1, 2, 0, 0)),
        # unknown
        ("3", datetime(2026, 3, 1, 0, 0)),
    ]
    records = [AttendanceRecord(device=device, user_id=u, time=t) for u, t in events]

    kept, unresolved = filter_records(records, lookup, _CUTOFF)

    assert [(r.user_id, r.time) for r in kept] == [
        ("1", datetime(2026, 2, 1, 0, 0)),
        ("2", datetime(2026, 1, 2, 0, 0)),
    ]
    assert unresolved == ["3"]


def test_partition_treats_blank_and_missing_references_as_invalid() -> None:
    employees = [make_employee("1"), make_employee(None, "E2"), make_employee("   ", "E3")]
    valid, invalid = partition_employees(employees)
    assert [e.external_reference for e in valid] == ["1"]
    assert [e.code for e in invalid] == ["E2", "E3"]


def test_duplicate_external_references_raise() -> None:
    with pytest.raises(DuplicateEmployeeReferenceError) as exc_info:
        build_lookup([make_employee("1"), make_employee("1", code="E2")])
    assert exc_info.value.references == ["1"]
