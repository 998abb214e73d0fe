"""Data models for attendance_importer."""

from attendance_importer.models._base import ImporterBaseModel
from attendance_importer.models.attendance import AttendanceRecord, ConnectAttendanceEvent
from attendance_importer.models.device import DeviceInfo
from attendance_importer.models.employee import DirectoryScope, EmployeeIdentity

__all__ = [
    "AttendanceRecord",
    "ConnectAttendanceEvent",
    "DeviceInfo",
    "DirectoryScope",
    "EmployeeIdentity",
    "ImporterBaseModel",
]
