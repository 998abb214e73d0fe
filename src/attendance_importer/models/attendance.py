"""Attendance event models."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import field_validator

from attendance_importer.models._base import ImporterBaseModel
from attendance_importer.models.device import DeviceInfo


class AttendanceRecord(ImporterBaseModel):
    """Vendor-independent attendance event, traceable to one device."""

    device: DeviceInfo
    user_id: str
    time: datetime
    is_in: bool | None = None
    """Direction of the punch; ``None`` when the device does not say."""


class ConnectAttendanceEvent(ImporterBaseModel):
    """Raw event as returned by the Connect attendance API."""

    user_id: str
    time: datetime
    is_in: bool | None = None

    @field_validator("user_id", mode="before")
    @classmethod
    def _coerce_user_id(cls, value: Any) -> Any:
        # Some firmware sends numeric ids.
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    def to_record(self, device: DeviceInfo) -> AttendanceRecord:
        return AttendanceRecord(device=device, user_id=self.user_id, time=self.time, is_in=self.is_in)
