"""Device capabilities and the device-type registry."""

from attendance_importer.devices.base import DeviceCapability
from attendance_importer.devices.connect import CONNECT_DEVICE_TYPE, ConnectDeviceService, device_location
from attendance_importer.devices.registry import CapabilityFactory, DeviceRegistry

__all__ = [
    "CONNECT_DEVICE_TYPE",
    "CapabilityFactory",
    "ConnectDeviceService",
    "DeviceCapability",
    "DeviceRegistry",
    "device_location",
]
