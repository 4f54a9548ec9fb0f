"""WLED Sync light platform."""
from __future__ import annotations

import logging
from typing import Any

from homeassistant.components.light import (
    ATTR_BRIGHTNESS,
    ATTR_COLOR_TEMP_KELVIN,
    ATTR_EFFECT,
    ATTR_RGB_COLOR,
    ColorMode,
    LightEntity,
    LightEntityFeature,
)
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import COLOR_TEMP_KELVIN_MAX, COLOR_TEMP_KELVIN_MIN, STREAM_FPS
from .coordinator import WLEDSyncCoordinator
from .entity import WLEDSyncEntity
from .exceptions import WLEDDeviceNotFoundError, WLEDSceneNotFoundError
from .models import Gradient, RGBColor, WLEDConfigEntry, WLEDDevice
from .models.state import kelvin_from_temperature, temperature_from_kelvin
from .services import async_setup_services

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: WLEDConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up WLED lights from a config entry.

    Devices discovered after setup get their entity on the next coordinator
    update.
    """
    coordinator = entry.runtime_data.coordinator
    known: set[str] = set()

    @callback
    def _add_new_devices() -> None:
        new_devices = [
            device
            for device_id, device in coordinator.manager.devices.items()
            if device_id not in known
        ]
        if not new_devices:
            return
        known.update(device.device_id for device in new_devices)
        new = [WLEDSyncLight(coordinator, device) for device in new_devices]
        _LOGGER.debug("Adding %d light entities", len(new))
        async_add_entities(new)

    _add_new_devices()
    entry.async_on_unload(coordinator.async_add_listener(_add_new_devices))

    await async_setup_services(hass)


class WLEDSyncLight(WLEDSyncEntity, LightEntity):
    """WLED light entity.

    State comes from the canonical snapshot, which already holds the
    optimistic value of any command in flight, so the UI does not flicker
    back while the device catches up.
    """

    _attr_name = None  # Use device name from DeviceInfo
    _attr_min_color_temp_kelvin = COLOR_TEMP_KELVIN_MIN
    _attr_max_color_temp_kelvin = COLOR_TEMP_KELVIN_MAX

    def __init__(
        self,
        coordinator: WLEDSyncCoordinator,
        device: WLEDDevice,
    ) -> None:
        super().__init__(coordinator, device)
        self._attr_unique_id = device.device_id

    @property
    def supported_color_modes(self) -> set[ColorMode]:
        """Color modes from the detected segment capabilities."""
        capabilities = self.manager.device_capabilities(self._device_id)
        modes: set[ColorMode] = set()
        if capabilities.supports_rgb:
            modes.add(ColorMode.RGB)
        if capabilities.supports_cct:
            modes.add(ColorMode.COLOR_TEMP)
        if not modes:
            modes.add(ColorMode.BRIGHTNESS)
        return modes

    @property
    def supported_features(self) -> LightEntityFeature:
        features = LightEntityFeature(0)
        if self.manager.effects(self._device_id):
            features |= LightEntityFeature.EFFECT
        return features

    @property
    def effect_list(self) -> list[str] | None:
        return self.manager.effects(self._device_id) or None

    @property
    def is_on(self) -> bool | None:
        """Return true if light is on."""
        return self.manager.current_power_state(self._device_id)

    @property
    def brightness(self) -> int | None:
        device = self.device
        return device.brightness if device else None

    @property
    def rgb_color(self) -> tuple[int, int, int] | None:
        device = self.device
        return device.display_color.as_tuple if device else None

    @property
    def color_temp_kelvin(self) -> int | None:
        device = self.device
        if device is None or device.temperature is None:
            return None
        return kelvin_from_temperature(device.temperature)

    @property
    def color_mode(self) -> ColorMode:
        """Return current color mode."""
        supported = self.supported_color_modes
        device = self.device
        if device is not None and device.is_cct_active and ColorMode.COLOR_TEMP in supported:
            return ColorMode.COLOR_TEMP
        if ColorMode.RGB in supported:
            return ColorMode.RGB
        if ColorMode.COLOR_TEMP in supported:
            return ColorMode.COLOR_TEMP
        return ColorMode.BRIGHTNESS

    async def async_turn_on(self, **kwargs: Any) -> None:
        """Turn on the light.

        Command order: power, then color or color temperature, then
        brightness last.
        """
        if not self.manager.current_power_state(self._device_id):
            self._raise_for_result(await self.manager.async_set_power(self._device_id, True))

        if ATTR_EFFECT in kwargs:
            await self._async_set_effect(kwargs[ATTR_EFFECT])

        if ATTR_RGB_COLOR in kwargs:
            r, g, b = kwargs[ATTR_RGB_COLOR]
            self._raise_for_result(
                await self.manager.async_set_color(self._device_id, RGBColor(r, g, b))
            )
        elif ATTR_COLOR_TEMP_KELVIN in kwargs:
            temperature = temperature_from_kelvin(kwargs[ATTR_COLOR_TEMP_KELVIN])
            self._raise_for_result(
                await self.manager.async_apply_cct(self._device_id, temperature)
            )

        if ATTR_BRIGHTNESS in kwargs:
            self._raise_for_result(
                await self.manager.async_set_brightness(self._device_id, kwargs[ATTR_BRIGHTNESS])
            )

    async def async_turn_off(self, **kwargs: Any) -> None:
        """Turn off the light."""
        self._raise_for_result(await self.manager.async_set_power(self._device_id, False))

    async def _async_set_effect(self, effect_name: str) -> None:
        effects = self.manager.effects(self._device_id)
        if effect_name not in effects:
            _LOGGER.warning("Unknown effect '%s' for %s", effect_name, self._device_id)
            return
        self._raise_for_result(
            await self.manager.async_set_effect(self._device_id, effects.index(effect_name))
        )

    # === Entity services ===

    async def async_rename(self, name: str) -> None:
        self._raise_for_result(await self.manager.async_rename(self._device_id, name))

    async def async_update_location(self, location: str) -> None:
        if await self.manager.async_update_location(self._device_id, location) is None:
            raise WLEDDeviceNotFoundError(self._device_id)

    async def async_apply_preset(self, preset_id: int, transition: float | None = None) -> None:
        # WLED transitions are in tenths of a second
        tenths = round(transition * 10) if transition is not None else None
        self._raise_for_result(
            await self.manager.async_apply_preset(self._device_id, preset_id, tenths)
        )

    async def async_save_preset(self, preset_id: int, name: str = "") -> None:
        self._raise_for_result(
            await self.manager.async_save_preset(self._device_id, preset_id, name)
        )

    async def async_refresh(self) -> None:
        await self.manager.async_refresh(force=True)

    async def async_dismiss_error(self) -> None:
        self.manager.dismiss_error(self._device_id)

    async def async_retry(self) -> None:
        await self.manager.async_retry(self._device_id)

    async def async_reconnect(self) -> None:
        if self.manager.get_device(self._device_id) is None:
            raise WLEDDeviceNotFoundError(self._device_id)
        await self.manager.async_force_reconnect(self._device_id)

    async def async_apply_gradient(
        self, colors: list[tuple[int, int, int]], brightness: int | None = None
    ) -> None:
        self._raise_for_result(
            await self.manager.async_apply_gradient(
                self._device_id, _gradient(colors), brightness
            )
        )

    async def async_start_transition(
        self,
        colors: list[tuple[int, int, int]],
        target_colors: list[tuple[int, int, int]],
        duration: float,
        fps: int = STREAM_FPS,
        brightness: int | None = None,
        target_brightness: int | None = None,
    ) -> None:
        task = self.manager.start_gradient_transition(
            self._device_id,
            _gradient(colors),
            _gradient(target_colors),
            duration,
            fps,
            brightness,
            target_brightness,
        )
        if task is None:
            raise WLEDDeviceNotFoundError(self._device_id)

    async def async_stop_transition(self) -> None:
        self.manager.cancel_streaming(self._device_id)

    async def async_save_scene(
        self,
        name: str,
        colors: list[tuple[int, int, int]],
        target_colors: list[tuple[int, int, int]] | None = None,
        duration: float | None = None,
        brightness: int | None = None,
        target_brightness: int | None = None,
        effect_id: int | None = None,
        palette_id: int | None = None,
        speed: int | None = None,
        intensity: int | None = None,
    ) -> None:
        scene = await self.manager.async_save_scene(
            self._device_id,
            name,
            _gradient(colors),
            secondary=_gradient(target_colors) if target_colors else None,
            duration=duration,
            a_brightness=brightness,
            b_brightness=target_brightness,
            effect_id=effect_id,
            palette_id=palette_id,
            speed=speed,
            intensity=intensity,
        )
        if scene is None:
            raise WLEDDeviceNotFoundError(self._device_id)
        self.coordinator.async_update_listeners()

    async def async_apply_scene(self, scene_id: str) -> None:
        if self.manager.get_scene(scene_id) is None:
            raise WLEDSceneNotFoundError(scene_id)
        self._raise_for_result(
            await self.manager.async_apply_scene(scene_id, self._device_id)
        )

    async def async_remove_scene(self, scene_id: str) -> None:
        if not await self.manager.async_remove_scene(scene_id):
            raise WLEDSceneNotFoundError(scene_id)
        self.coordinator.async_update_listeners()

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        attrs = super().extra_state_attributes
        presets = self.manager.presets(self._device_id)
        if presets:
            attrs["presets"] = {preset.preset_id: preset.name for preset in presets}
        scenes = self.manager.scenes(self._device_id)
        if scenes:
            attrs["scenes"] = {scene.scene_id: scene.name for scene in scenes}
        return attrs


def _gradient(colors: list[tuple[int, int, int]]) -> Gradient:
    return Gradient.from_colors(*(RGBColor(*color) for color in colors))
