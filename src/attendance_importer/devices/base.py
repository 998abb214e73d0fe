"""Device capability contract."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from attendance_importer.cancellation import CancellationToken
from attendance_importer.models import AttendanceRecord, DeviceInfo


class DeviceCapability(Protocol):
    """Loads attendance events from one vendor's devices.

    Implementations hold no per-call mutable state, so one instance may
    serve several devices concurrently.  ``load_from_device`` raises
    :class:`~attendance_importer.exceptions.TransportError` on network
    failure and :class:`~attendance_importer.exceptions.MalformedResponseError`
    on an undecodable payload.
    """

    @property
    def device_type(self) -> str:
        ...

    async def load_from_device(self, device: DeviceInfo, token: CancellationToken) -> Sequence[AttendanceRecord]:
        ...
