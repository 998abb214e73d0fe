"""ERP collaborator interface.

The importer reads device lists and employee directories from the ERP
and writes reconciled records back.  Implementations own transport,
authentication and the per-device sync watermark.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from attendance_importer.cancellation import CancellationToken
from attendance_importer.models import AttendanceRecord, DeviceInfo, DirectoryScope, EmployeeIdentity


class ErpClient(Protocol):
    """Structural interface of the ERP backend used by the importer."""

    async def get_device_infos(self, tenant_id: int, token: CancellationToken) -> Sequence[DeviceInfo]:
        ...

    async def import_records(
        self,
        tenant_id: int,
        records: Sequence[AttendanceRecord],
        token: CancellationToken,
    ) -> None:
        ...

    async def get_employee_directory(
        self,
        scope: DirectoryScope,
        token: CancellationToken,
    ) -> Sequence[EmployeeIdentity]:
        ...
