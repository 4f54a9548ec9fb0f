"""DataUpdateCoordinator for WLED Sync integration."""
from __future__ import annotations

import ipaddress
import logging
from collections.abc import Callable, Iterable
from datetime import timedelta
from typing import TYPE_CHECKING

from homeassistant.components import network
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.aiohttp_client import async_get_clientsession
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator

from .api import WLEDApiClient, WLEDWebSocketManager
from .discovery import HostListDiscovery
from .manager import WLEDSyncManager
from .models import PushEvent, SyncSettings, WLEDDevice
from .storage import WLEDDeviceStore, WLEDSceneStore
from .sync.errors import DeviceError
from .sync.refresh import Network

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry

_LOGGER = logging.getLogger(__name__)


class WLEDSyncCoordinator(DataUpdateCoordinator[dict[str, WLEDDevice]]):
    """Coordinator bridging the sync manager to Home Assistant.

    Polling runs through the manager's health check. Pushed updates and
    command results reach the entities through ``on_devices_changed``
    without waiting for the next poll.
    """

    config_entry: ConfigEntry

    def __init__(
        self,
        hass: HomeAssistant,
        config_entry: ConfigEntry,
        client: WLEDApiClient,
        hosts: Iterable[str],
        update_interval: timedelta,
        realtime: bool = True,
        settings: SyncSettings | None = None,
    ) -> None:
        """Initialize the coordinator."""
        self.client = client
        self.hosts = list(hosts)
        self._networks: list[Network] = []
        session = async_get_clientsession(hass)

        def _transport(on_event: Callable[[PushEvent], None]) -> WLEDWebSocketManager:
            return WLEDWebSocketManager(session, on_event)

        self.manager = WLEDSyncManager(
            client,
            transport_factory=_transport if realtime else None,
            discovery_factory=lambda on_discovered: HostListDiscovery(
                client, self.hosts, on_discovered
            ),
            store=WLEDDeviceStore(hass),
            scene_store=WLEDSceneStore(hass),
            settings=settings,
            networks=lambda: self._networks,
        )
        self.manager.registry.register_observer(self)
        self._remove_error_listener = self.manager.errors.add_listener(self._on_error_changed)

        super().__init__(
            hass,
            _LOGGER,
            config_entry=config_entry,
            name="WLED Sync",
            update_interval=update_interval,
        )

    async def _async_setup(self) -> None:
        """Set up the coordinator - restore devices and start discovery."""
        self._networks = await self._async_local_networks()
        _LOGGER.debug("Local networks: %s", [str(net) for net in self._networks])
        await self.manager.async_start()

    async def _async_local_networks(self) -> list[Network]:
        """Networks of the enabled host adapters."""
        networks: list[Network] = []
        for adapter in await network.async_get_adapters(self.hass):
            if not adapter["enabled"]:
                continue
            for ipv4 in adapter["ipv4"]:
                networks.append(
                    ipaddress.ip_network(
                        f"{ipv4['address']}/{ipv4['network_prefix']}", strict=False
                    )
                )
        return networks

    async def _async_update_data(self) -> dict[str, WLEDDevice]:
        """Poll every device."""
        _LOGGER.debug("Polling %d WLED devices", len(self.manager.registry))
        return await self.manager.async_poll_all()

    @callback
    def on_devices_changed(self, devices: list[WLEDDevice]) -> None:
        """Publish replaced snapshots without resetting the poll schedule."""
        self.data = self.manager.devices
        self.async_update_listeners()

    @callback
    def _on_error_changed(self, device_id: str, error: DeviceError | None) -> None:
        self.async_update_listeners()

    def get_device(self, device_id: str) -> WLEDDevice | None:
        """Get device by ID."""
        return self.manager.get_device(device_id)

    async def async_shutdown(self) -> None:
        """Stop the manager before the coordinator shuts down."""
        self._remove_error_listener()
        self.manager.registry.unregister_observer(self)
        await self.manager.async_stop()
        await super().async_shutdown()
