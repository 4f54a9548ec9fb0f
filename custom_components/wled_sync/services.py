"""Service registration for WLED Sync integration."""
from __future__ import annotations

import logging

import voluptuous as vol

from homeassistant.core import HomeAssistant
from homeassistant.helpers import config_validation as cv, entity_platform

from .const import STREAM_FPS, STREAM_MAX_FPS
from .models.commands import PRESET_ID_MAX, PRESET_ID_MIN

_LOGGER = logging.getLogger(__name__)

# Service names
SERVICE_RENAME = "rename"
SERVICE_UPDATE_LOCATION = "update_location"
SERVICE_APPLY_PRESET = "apply_preset"
SERVICE_SAVE_PRESET = "save_preset"
SERVICE_REFRESH = "refresh"
SERVICE_DISMISS_ERROR = "dismiss_error"
SERVICE_RETRY = "retry"
SERVICE_RECONNECT = "reconnect"
SERVICE_APPLY_GRADIENT = "apply_gradient"
SERVICE_START_TRANSITION = "start_transition"
SERVICE_STOP_TRANSITION = "stop_transition"
SERVICE_SAVE_SCENE = "save_scene"
SERVICE_APPLY_SCENE = "apply_scene"
SERVICE_REMOVE_SCENE = "remove_scene"

_PRESET_ID = vol.All(vol.Coerce(int), vol.Range(min=PRESET_ID_MIN, max=PRESET_ID_MAX))

_RGB = vol.All(vol.Coerce(tuple), vol.ExactSequence((cv.byte, cv.byte, cv.byte)))
_COLORS = vol.All(cv.ensure_list, vol.Length(min=1), [_RGB])
_DURATION = vol.All(vol.Coerce(float), vol.Range(min=0.1, max=3600))
_FPS = vol.All(vol.Coerce(int), vol.Range(min=1, max=STREAM_MAX_FPS))


async def async_setup_services(hass: HomeAssistant) -> None:
    """Set up WLED Sync light platform services."""
    _LOGGER.debug("Setting up WLED Sync services")

    platform = entity_platform.async_get_current_platform()

    platform.async_register_entity_service(
        SERVICE_RENAME,
        {vol.Required("name"): vol.All(cv.string, vol.Length(min=1, max=32))},
        "async_rename",
    )

    platform.async_register_entity_service(
        SERVICE_UPDATE_LOCATION,
        {vol.Required("location"): cv.string},
        "async_update_location",
    )

    platform.async_register_entity_service(
        SERVICE_APPLY_PRESET,
        {
            vol.Required("preset_id"): _PRESET_ID,
            vol.Optional("transition"): vol.All(
                vol.Coerce(float), vol.Range(min=0, max=6553)
            ),
        },
        "async_apply_preset",
    )

    platform.async_register_entity_service(
        SERVICE_SAVE_PRESET,
        {
            vol.Required("preset_id"): _PRESET_ID,
            vol.Optional("name", default=""): cv.string,
        },
        "async_save_preset",
    )

    platform.async_register_entity_service(SERVICE_REFRESH, {}, "async_refresh")
    platform.async_register_entity_service(SERVICE_DISMISS_ERROR, {}, "async_dismiss_error")
    platform.async_register_entity_service(SERVICE_RETRY, {}, "async_retry")
    platform.async_register_entity_service(SERVICE_RECONNECT, {}, "async_reconnect")

    platform.async_register_entity_service(
        SERVICE_APPLY_GRADIENT,
        {
            vol.Required("colors"): _COLORS,
            vol.Optional("brightness"): cv.byte,
        },
        "async_apply_gradient",
    )

    platform.async_register_entity_service(
        SERVICE_START_TRANSITION,
        {
            vol.Required("colors"): _COLORS,
            vol.Required("target_colors"): _COLORS,
            vol.Required("duration"): _DURATION,
            vol.Optional("fps", default=STREAM_FPS): _FPS,
            vol.Optional("brightness"): cv.byte,
            vol.Optional("target_brightness"): cv.byte,
        },
        "async_start_transition",
    )

    platform.async_register_entity_service(
        SERVICE_STOP_TRANSITION, {}, "async_stop_transition"
    )

    platform.async_register_entity_service(
        SERVICE_SAVE_SCENE,
        {
            vol.Required("name"): vol.All(cv.string, vol.Length(min=1, max=64)),
            vol.Required("colors"): _COLORS,
            vol.Optional("target_colors"): _COLORS,
            vol.Optional("duration"): _DURATION,
            vol.Optional("brightness"): cv.byte,
            vol.Optional("target_brightness"): cv.byte,
            vol.Optional("effect_id"): cv.positive_int,
            vol.Optional("palette_id"): cv.positive_int,
            vol.Optional("speed"): cv.byte,
            vol.Optional("intensity"): cv.byte,
        },
        "async_save_scene",
    )

    platform.async_register_entity_service(
        SERVICE_APPLY_SCENE,
        {vol.Required("scene_id"): cv.string},
        "async_apply_scene",
    )

    platform.async_register_entity_service(
        SERVICE_REMOVE_SCENE,
        {vol.Required("scene_id"): cv.string},
        "async_remove_scene",
    )
