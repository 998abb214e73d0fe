"""Record reconciliation.

Turns one device's event stream plus the tenant's employee directory
into the set of records that is safe to import.  The policy is
fail-closed: if any directory entry lacks an external reference, nothing
is imported for the device until the ERP data is fixed.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import date

from attendance_importer.cancellation import CancellationToken
from attendance_importer.devices.base import DeviceCapability
from attendance_importer.devices.connect import device_location
from attendance_importer.erp import ErpClient
from attendance_importer.exceptions import DuplicateEmployeeReferenceError
from attendance_importer.models import AttendanceRecord, DeviceInfo, DirectoryScope, EmployeeIdentity
from attendance_importer.notify import NotificationThrottle

_logger = logging.getLogger(__name__)


def partition_employees(
    employees: Iterable[EmployeeIdentity],
) -> tuple[list[EmployeeIdentity], list[EmployeeIdentity]]:
    """Split a directory into ``(valid, invalid)`` by external reference."""
    valid: list[EmployeeIdentity] = []
    invalid: list[EmployeeIdentity] = []
    for employee in employees:
        (valid if employee.is_valid else invalid).append(employee)
    return valid, invalid


def build_lookup(employees: Iterable[EmployeeIdentity]) -> dict[str, EmployeeIdentity]:
    """Index valid employees by external reference.

    Raises
    ------
    DuplicateEmployeeReferenceError
        If two employees share a reference.
    """
    lookup: dict[str, EmployeeIdentity] = {}
    duplicates: list[str] = []
    for employee in employees:
        reference = employee.external_reference or ""
        if reference in lookup:
            if reference not in duplicates:
                duplicates.append(reference)
            continue
        lookup[reference] = employee
    if duplicates:
        raise DuplicateEmployeeReferenceError(duplicates)
    return lookup


def filter_records(
    records: Sequence[AttendanceRecord],
    lookup: dict[str, EmployeeIdentity],
    earliest_date: date,
) -> tuple[list[AttendanceRecord], list[str]]:
    """Keep records of known employees dated on or after both cutoffs.

    Returns the surviving records in source order and the distinct user
    ids that did not resolve to an employee.
    """
    kept: list[AttendanceRecord] = []
    unresolved: dict[str, None] = {}
    for record in records:
        employee = lookup.get(record.user_id)
        if employee is None:
            unresolved.setdefault(record.user_id)
            continue
        event_date = record.time.date()
        if event_date >= employee.joining_date and event_date >= earliest_date:
            kept.append(record)
    return kept, list(unresolved)


class RecordReconciler:
    """Validates device output against the ERP employee directory."""

    def __init__(
        self,
        erp: ErpClient,
        throttle: NotificationThrottle,
        earliest_attendance_date: date,
    ) -> None:
        self._erp = erp
        self._throttle = throttle
        self._earliest_date = earliest_attendance_date

    async def reconcile(
        self,
        tenant_id: int,
        device: DeviceInfo,
        capability: DeviceCapability,
        token: CancellationToken,
    ) -> list[AttendanceRecord]:
        """Load *device* through *capability* and return importable records.

        Directory and device failures propagate to the caller.
        """
        scope = DirectoryScope(tenant_id=tenant_id, location=device_location(device))
        employees = await self._erp.get_employee_directory(scope, token)

        valid, invalid = partition_employees(employees)
        if invalid:
            await self._throttle.notify_invalid_employees(invalid)
            _logger.warning(
                "%d employee(s) have no external reference; halting import from %s until they are amended",
                len(invalid),
                device,
            )
            return []

        _logger.debug("Retrieved %d employees for %s", len(valid), scope)
        lookup = build_lookup(valid)

        records = await capability.load_from_device(device, token)
        if not records:
            return []

        kept, unresolved = filter_records(records, lookup, self._earliest_date)
        if unresolved:
            _logger.warning(
                "Skipped events from %s for unknown user ids: %s",
                device,
                ", ".join(unresolved),
            )
        return kept
