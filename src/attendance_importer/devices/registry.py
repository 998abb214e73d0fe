"""Device-type registry."""

from __future__ import annotations

import logging
from collections.abc import Callable

from attendance_importer.devices.base import DeviceCapability
from attendance_importer.exceptions import DuplicateDeviceTypeError, ImporterConfigError, UnknownDeviceTypeError

_logger = logging.getLogger(__name__)

CapabilityFactory = Callable[[], DeviceCapability]


class DeviceRegistry:
    """Explicit map from device-type tag to capability factory.

    Tags are matched exactly.  Registration is validated eagerly so a
    misconfigured service fails at startup rather than mid-cycle.
    """

    def __init__(self) -> None:
        self._factories: dict[str, CapabilityFactory] = {}

    def register(self, device_type: str, factory: CapabilityFactory) -> None:
        """Register *factory* for *device_type*.

        Raises
        ------
        DuplicateDeviceTypeError
            If the tag is already registered.
        ImporterConfigError
            If the tag is blank or the factory builds a capability
            reporting a different tag.
        """
        if not device_type or not device_type.strip():
            raise ImporterConfigError("Device type tag must not be blank")
        if device_type in self._factories:
            raise DuplicateDeviceTypeError(device_type)
        capability = factory()
        if capability.device_type != device_type:
            raise ImporterConfigError(
                f"Capability registered as {device_type!r} reports device type {capability.device_type!r}"
            )
        self._factories[device_type] = factory
        _logger.debug("Registered device type %s", device_type)

    def resolve(self, device_type: str) -> DeviceCapability:
        """Build the capability for *device_type*.

        Raises
        ------
        UnknownDeviceTypeError
            If no factory is registered for the tag.
        """
        factory = self._factories.get(device_type)
        if factory is None:
            raise UnknownDeviceTypeError(device_type)
        return factory()

    @property
    def device_types(self) -> tuple[str, ...]:
        return tuple(self._factories)

    def __contains__(self, device_type: object) -> bool:
        return device_type in self._factories
