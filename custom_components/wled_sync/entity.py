"""Base entity for WLED Sync integration."""
from __future__ import annotations

from typing import Any

from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .api import ConnectionStatus
from .const import DOMAIN
from .coordinator import WLEDSyncCoordinator
from .exceptions import exception_for_error
from .manager import WLEDSyncManager
from .models import WLEDDevice
from .sync import CommandPhase, CommandResult

# Phases that mean the user's request did not take effect
_FAILED_PHASES = frozenset(
    {CommandPhase.REJECTED, CommandPhase.REVERTED, CommandPhase.FAILED, CommandPhase.EXPIRED}
)


class WLEDSyncEntity(CoordinatorEntity[WLEDSyncCoordinator]):
    """Base entity for WLED devices.

    Provides common functionality:
    - Device registry integration
    - Canonical device snapshot access through the manager
    - Availability based on online status
    """

    _attr_has_entity_name = True

    def __init__(
        self,
        coordinator: WLEDSyncCoordinator,
        device: WLEDDevice,
    ) -> None:
        super().__init__(coordinator)
        self._device_id = device.device_id

        self._attr_device_info = DeviceInfo(
            identifiers={(DOMAIN, device.device_id)},
            name=device.name,
            manufacturer="WLED",
            model=device.product_type or "WLED",
            configuration_url=device.base_url,
        )

    @property
    def manager(self) -> WLEDSyncManager:
        return self.coordinator.manager

    @property
    def device(self) -> WLEDDevice | None:
        """Current canonical snapshot."""
        return self.manager.get_device(self._device_id)

    @property
    def available(self) -> bool:
        """Return True if the device answered recently."""
        if not super().available:
            return False
        device = self.device
        return device is not None and device.is_online

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        """Return extra state attributes."""
        device = self.device
        attrs: dict[str, Any] = {"device_id": self._device_id}
        if device is not None:
            attrs["ip_address"] = device.ip_address
            if device.location:
                attrs["location"] = device.location
            if device.last_seen is not None:
                attrs["last_seen"] = device.last_seen.isoformat()

        status = self.manager.connection_status(self._device_id)
        attrs["connection"] = str(status)
        if status is ConnectionStatus.CONNECTED:
            attrs["update_mode"] = "real-time (WebSocket)"
        else:
            attrs["update_mode"] = "polling"
            attempts = self.manager.reconnect_attempts(self._device_id)
            if attempts:
                attrs["reconnect_attempts"] = attempts
        if self.manager.is_streaming(self._device_id):
            attrs["streaming"] = True

        error = self.manager.active_error(self._device_id)
        if error is not None:
            attrs["error"] = error.message
        return attrs

    @staticmethod
    def _raise_for_result(result: CommandResult) -> None:
        """Raise a translatable exception if the command did not take effect."""
        if result.error is not None and result.phase in _FAILED_PHASES:
            raise exception_for_error(result.error)
