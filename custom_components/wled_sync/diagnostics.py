"""Diagnostics support for WLED Sync integration.

Provides debug information for troubleshooting without exposing network
addresses.
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from homeassistant.components.diagnostics import async_redact_data
from homeassistant.core import HomeAssistant

from .const import CONF_HOSTS
from .models import WLEDConfigEntry

# Keys to redact from diagnostic output
TO_REDACT = {CONF_HOSTS, "ip_address"}


async def async_get_config_entry_diagnostics(
    hass: HomeAssistant,
    entry: WLEDConfigEntry,
) -> dict[str, Any]:
    """Return diagnostics for a config entry."""
    manager = entry.runtime_data.manager

    devices_info = {}
    for device_id, device in manager.devices.items():
        error = manager.active_error(device_id)
        devices_info[device_id] = async_redact_data(
            {
                **device.to_storage(),
                "is_online": device.is_online,
                "capabilities": [
                    segment.description
                    for segment in manager.device_capabilities(device_id).segments
                ],
                "connection": str(manager.connection_status(device_id)),
                "under_user_control": manager.intents.is_under_user_control(device_id),
                "pending_fields": sorted(manager.dispatcher.protected_fields(device_id)),
                "error": error.kind if error else None,
                "effect_count": len(manager.effects(device_id)),
                "preset_count": len(manager.presets(device_id)),
            },
            TO_REDACT,
        )

    return {
        "config_entry": {
            "entry_id": entry.entry_id,
            "version": entry.version,
            "data": async_redact_data(dict(entry.data), TO_REDACT),
            "options": async_redact_data(dict(entry.options), TO_REDACT),
        },
        "settings": asdict(manager.settings),
        "realtime": manager.realtime_enabled,
        "devices": devices_info,
        "device_count": len(devices_info),
        "selection": sorted(manager.selection),
    }
