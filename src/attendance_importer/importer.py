"""Import orchestration: tenants, device groups, devices."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from attendance_importer.cancellation import CancellationToken
from attendance_importer.devices.base import DeviceCapability
from attendance_importer.devices.registry import DeviceRegistry
from attendance_importer.erp import ErpClient
from attendance_importer.exceptions import UnknownDeviceTypeError
from attendance_importer.models import DeviceInfo
from attendance_importer.reconcile import RecordReconciler

_logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CycleSummary:
    """Outcome counters for one import cycle."""

    imported_records: int = 0
    succeeded_devices: list[int] = field(default_factory=list)
    failed_devices: list[int] = field(default_factory=list)
    skipped_tenants: list[int] = field(default_factory=list)
    skipped_device_types: list[str] = field(default_factory=list)


def group_by_device_type(devices: Iterable[DeviceInfo]) -> dict[str, list[DeviceInfo]]:
    """Group devices by tag, keeping first-seen group and device order."""
    groups: dict[str, list[DeviceInfo]] = {}
    for device in devices:
        groups.setdefault(device.device_type, []).append(device)
    return groups


class AttendanceImporter:
    """Runs one import cycle across all configured tenants.

    Failures are isolated per tenant (device list fetch), per device
    group (unknown device type) and per device (load, reconcile or
    import), so one broken unit never stops the rest of the cycle.
    Cancellation is checked between units.
    """

    def __init__(
        self,
        erp: ErpClient,
        registry: DeviceRegistry,
        reconciler: RecordReconciler,
        tenant_ids: Sequence[int],
    ) -> None:
        self._erp = erp
        self._registry = registry
        self._reconciler = reconciler
        self._tenant_ids = tuple(tenant_ids)

    async def import_all(self, token: CancellationToken) -> CycleSummary:
        summary = CycleSummary()
        for tenant_id in self._tenant_ids:
            token.raise_if_cancelled()
            try:
                devices = await self._erp.get_device_infos(tenant_id, token)
            except Exception:
                _logger.error(
                    "An error occurred while getting the list of device infos from tenant %s",
                    tenant_id,
                    exc_info=True,
                )
                summary.skipped_tenants.append(tenant_id)
                continue

            for device_type, group in group_by_device_type(devices).items():
                token.raise_if_cancelled()
                try:
                    capability = self._registry.resolve(device_type)
                except UnknownDeviceTypeError:
                    _logger.error(
                        "Skipping %d device(s) of unknown type %r in tenant %s",
                        len(group),
                        device_type,
                        tenant_id,
                        exc_info=True,
                    )
                    summary.skipped_device_types.append(device_type)
                    continue
                await self._import_group(tenant_id, capability, group, token, summary)
        return summary

    async def _import_group(
        self,
        tenant_id: int,
        capability: DeviceCapability,
        devices: Sequence[DeviceInfo],
        token: CancellationToken,
        summary: CycleSummary,
    ) -> None:
        for device in devices:
            token.raise_if_cancelled()
            try:
                records = await self._reconciler.reconcile(tenant_id, device, capability, token)
                await self._erp.import_records(tenant_id, records, token)
            except Exception:
                _logger.error(
                    "An error occurred while loading from device (%s) and uploading to tenant %s",
                    device,
                    tenant_id,
                    exc_info=True,
                )
                summary.failed_devices.append(device.id)
                continue
            _logger.info("Imported %d records to tenant %s from (%s)", len(records), tenant_id, device)
            summary.imported_records += len(records)
            summary.succeeded_devices.append(device.id)
