"""Connect attendance API device capability."""

from __future__ import annotations

import logging
import re

from attendance_importer._transport import ConnectApiClient
from attendance_importer.cancellation import CancellationToken
from attendance_importer.models import AttendanceRecord, DeviceInfo

_logger = logging.getLogger(__name__)

CONNECT_DEVICE_TYPE = "Connect"

_DEVICE_SUFFIX = re.compile(r" device", re.IGNORECASE)


def device_location(device: DeviceInfo) -> str:
    """Return the Connect location encoded in a device's display name.

    ``"Mild Tower Device"`` becomes ``"Mild Tower"``.

    Raises
    ------
    ValueError
        If the device has no display name.
    """
    if not device.name or not device.name.strip():
        raise ValueError(f"Connect device {device.id} has no name; the name encodes its location")
    return _DEVICE_SUFFIX.sub("", device.name)


class ConnectDeviceService:
    """Device capability backed by the Connect cloud attendance API."""

    def __init__(self, client: ConnectApiClient) -> None:
        self._client = client

    @property
    def device_type(self) -> str:
        return CONNECT_DEVICE_TYPE

    async def load_from_device(self, device: DeviceInfo, token: CancellationToken) -> list[AttendanceRecord]:
        location = device_location(device)
        events = await self._client.get_attendance_events(location, device.last_sync_time, token)
        if not events:
            _logger.warning("No attendance records retrieved from Connect API for device %s", device.name)
            return []
        _logger.debug("Retrieved %d attendance records from Connect API for %s", len(events), location)
        return [event.to_record(device) for event in events]
