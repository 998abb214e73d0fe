"""attendance_importer - Async importer for biometric attendance events."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("attendance-importer")
except PackageNotFoundError:
    __version__ = "0+local"
from attendance_importer.cancellation import CancellationToken
from attendance_importer.config import ConnectConfig, EmailConfig, ImporterConfig, parse_tenant_ids
from attendance_importer.devices import ConnectDeviceService, DeviceCapability, DeviceRegistry
from attendance_importer.erp import ErpClient
from attendance_importer.exceptions import (
    DuplicateDeviceTypeError,
    DuplicateEmployeeReferenceError,
    ErpError,
    ImporterConfigError,
    ImporterError,
    MalformedResponseError,
    TransportError,
    UnknownDeviceTypeError,
)
from attendance_importer.importer import AttendanceImporter, CycleSummary
from attendance_importer.models import (
    AttendanceRecord,
    ConnectAttendanceEvent,
    DeviceInfo,
    DirectoryScope,
    EmployeeIdentity,
)
from attendance_importer.notify import NotificationSender, NotificationThrottle, SmtpNotificationSender
from attendance_importer.reconcile import RecordReconciler
from attendance_importer.schedule import BusinessHoursGate
from attendance_importer.service import ImporterService, SmtpAlertHandler, configure_logging

__all__ = [
    "__version__",
    "AttendanceImporter",
    "AttendanceRecord",
    "BusinessHoursGate",
    "CancellationToken",
    "ConnectAttendanceEvent",
    "ConnectConfig",
    "ConnectDeviceService",
    "CycleSummary",
    "DeviceCapability",
    "DeviceInfo",
    "DeviceRegistry",
    "DirectoryScope",
    "DuplicateDeviceTypeError",
    "DuplicateEmployeeReferenceError",
    "EmailConfig",
    "EmployeeIdentity",
    "ErpClient",
    "ErpError",
    "ImporterConfig",
    "ImporterConfigError",
    "ImporterError",
    "ImporterService",
    "MalformedResponseError",
    "NotificationSender",
    "NotificationThrottle",
    "RecordReconciler",
    "SmtpAlertHandler",
    "SmtpNotificationSender",
    "TransportError",
    "UnknownDeviceTypeError",
    "configure_logging",
    "parse_tenant_ids",
]
