"""Custom exception hierarchy for attendance_importer."""

from __future__ import annotations


class ImporterError(Exception):
    """Base exception for all attendance_importer errors."""


class ImporterConfigError(ImporterError):
    """Invalid or missing configuration."""


class TransportError(ImporterError):
    """HTTP-level failure (network, non-success status)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class MalformedResponseError(TransportError):
    """Response payload could not be decoded into the expected shape."""


class ErpError(ImporterError):
    """The ERP backend rejected a request.

    Raised by :class:`~attendance_importer.erp.ErpClient` implementations;
    the importer treats it like any other per-tenant or per-device failure.
    """


class UnknownDeviceTypeError(ImporterError):
    """No device capability is registered for a device-type tag."""

    def __init__(self, device_type: str) -> None:
        self.device_type = device_type
        super().__init__(f"No device capability registered for device type {device_type!r}")


class DuplicateDeviceTypeError(ImporterConfigError):
    """A device-type tag was registered more than once."""

    def __init__(self, device_type: str) -> None:
        self.device_type = device_type
        super().__init__(f"Device type {device_type!r} is already registered")


class DuplicateEmployeeReferenceError(ImporterError):
    """Two employees in one directory share an external reference."""

    def __init__(self, references: list[str]) -> None:
        self.references = references
        super().__init__(f"Employee directory has duplicate external references: {', '.join(references)}")
