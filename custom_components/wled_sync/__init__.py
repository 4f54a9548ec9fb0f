"""The WLED Sync integration."""
from __future__ import annotations

import logging
from datetime import timedelta

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.aiohttp_client import async_get_clientsession

from .api import WLEDApiClient
from .const import (
    CONF_HOSTS,
    CONF_POLL_INTERVAL,
    CONF_REALTIME,
    CONFIG_ENTRY_VERSION,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_REALTIME,
    PLATFORMS,
)
from .coordinator import WLEDSyncCoordinator
from .models import WLEDConfigEntry, WLEDRuntimeData

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(hass: HomeAssistant, entry: WLEDConfigEntry) -> bool:
    """Set up WLED Sync from a config entry."""
    _LOGGER.debug("Setting up WLED Sync integration")

    config = entry.data
    options = entry.options
    hosts = options.get(CONF_HOSTS, config.get(CONF_HOSTS, []))
    poll_interval = options.get(
        CONF_POLL_INTERVAL, config.get(CONF_POLL_INTERVAL, DEFAULT_POLL_INTERVAL)
    )
    realtime = options.get(CONF_REALTIME, DEFAULT_REALTIME)

    # Create API client with shared session
    session = async_get_clientsession(hass)
    client = WLEDApiClient(session=session)

    coordinator = WLEDSyncCoordinator(
        hass,
        entry,
        client,
        hosts=hosts,
        update_interval=timedelta(seconds=poll_interval),
        realtime=realtime,
    )

    # Restore devices, start discovery and run the first poll
    await coordinator.async_config_entry_first_refresh()

    entry.runtime_data = WLEDRuntimeData(
        client=client,
        coordinator=coordinator,
        manager=coordinator.manager,
    )

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)

    # Register update listener for options changes
    entry.async_on_unload(entry.add_update_listener(async_options_updated))

    _LOGGER.info(
        "WLED Sync set up with %d known devices, %d configured hosts",
        len(coordinator.manager.devices),
        len(hosts),
    )

    return True


async def async_unload_entry(hass: HomeAssistant, entry: WLEDConfigEntry) -> bool:
    """Unload a config entry."""
    _LOGGER.debug("Unloading WLED Sync integration")

    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)

    if unload_ok:
        await entry.runtime_data.coordinator.async_shutdown()
        # Close API client (only if we own the session)
        await entry.runtime_data.client.close()

    return unload_ok


async def async_options_updated(hass: HomeAssistant, entry: WLEDConfigEntry) -> None:
    """Handle options update."""
    _LOGGER.debug("Options updated, reloading integration")
    await hass.config_entries.async_reload(entry.entry_id)


async def async_migrate_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Migrate old entry to new version."""
    _LOGGER.debug("Migrating config entry from version %s", entry.version)

    if entry.version > CONFIG_ENTRY_VERSION:
        # Downgrade from a future version is not supported
        return False

    return True
