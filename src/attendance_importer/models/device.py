"""Device snapshot model."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from attendance_importer.models._base import ImporterBaseModel


class DeviceInfo(ImporterBaseModel):
    """A clock-in device as registered in the ERP.

    Snapshots are fetched fresh every cycle; the importer never
    mutates ``last_sync_time``, which the ERP owns.
    """

    id: int
    """ERP identifier of the device."""
    device_type: str
    """Tag used to resolve the device capability (e.g. ``"Connect"``)."""
    tenant_id: int | None = None
    """Tenant that owns the device."""
    ip_address: str = ""
    """Network address of the device."""
    port: int | None = None
    """Network port of the device."""
    name: str = ""
    """Display name; for Connect devices it also encodes the location."""
    duty_station_id: int | None = None
    """Duty-station reference in the ERP."""
    last_sync_time: datetime | None = Field(default=None)
    """Watermark of the last imported event, ``None`` for a first sync."""

    def __str__(self) -> str:
        return f"Device {self.id} '{self.name}' type={self.device_type} at {self.ip_address}:{self.port}"
