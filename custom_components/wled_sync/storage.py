"""Device and scene persistence backed by the Home Assistant storage helper."""
from __future__ import annotations

import logging
from typing import Any

from homeassistant.core import HomeAssistant
from homeassistant.helpers.storage import Store

from .const import STORAGE_KEY, STORAGE_KEY_SCENES, STORAGE_SAVE_DELAY, STORAGE_VERSION
from .models.device import WLEDDevice
from .models.scene import Scene

_LOGGER = logging.getLogger(__name__)


class WLEDDeviceStore:
    """Persists device snapshots keyed by device id.

    Writes are debounced by the storage helper, so saving on every
    canonical change is cheap.
    """

    def __init__(self, hass: HomeAssistant, key: str = STORAGE_KEY) -> None:
        self._store: Store[dict[str, Any]] = Store(hass, STORAGE_VERSION, key)
        self._devices: dict[str, dict[str, Any]] = {}

    async def fetch_all(self) -> list[WLEDDevice]:
        """Load every persisted device; corrupt records are skipped."""
        data = await self._store.async_load() or {}
        self._devices = dict(data.get("devices", {}))

        devices: list[WLEDDevice] = []
        for device_id, record in self._devices.items():
            try:
                devices.append(WLEDDevice.from_storage(record))
            except (KeyError, TypeError, ValueError) as err:
                _LOGGER.warning("Skipping stored device %s: %s", device_id, err)
        return devices

    async def save(self, device: WLEDDevice) -> None:
        record = device.to_storage()
        if self._devices.get(device.device_id) == record:
            return
        self._devices[device.device_id] = record
        self._store.async_delay_save(self._data_to_save, STORAGE_SAVE_DELAY)

    async def remove(self, device_id: str) -> None:
        if self._devices.pop(device_id, None) is not None:
            self._store.async_delay_save(self._data_to_save, STORAGE_SAVE_DELAY)

    def _data_to_save(self) -> dict[str, Any]:
        return {"devices": dict(self._devices)}


class WLEDSceneStore:
    """Persists saved scenes keyed by scene id."""

    def __init__(self, hass: HomeAssistant, key: str = STORAGE_KEY_SCENES) -> None:
        self._store: Store[dict[str, Any]] = Store(hass, STORAGE_VERSION, key)
        self._scenes: dict[str, dict[str, Any]] = {}

    async def fetch_all(self) -> list[Scene]:
        """Load every saved scene; corrupt records are skipped."""
        data = await self._store.async_load() or {}
        self._scenes = dict(data.get("scenes", {}))

        scenes: list[Scene] = []
        for scene_id, record in self._scenes.items():
            try:
                scenes.append(Scene.from_storage(record))
            except (KeyError, TypeError, ValueError) as err:
                _LOGGER.warning("Skipping stored scene %s: %s", scene_id, err)
        return scenes

    async def save(self, scene: Scene) -> None:
        self._scenes[scene.scene_id] = scene.to_storage()
        self._store.async_delay_save(self._data_to_save, STORAGE_SAVE_DELAY)

    async def remove(self, scene_id: str) -> None:
        if self._scenes.pop(scene_id, None) is not None:
            self._store.async_delay_save(self._data_to_save, STORAGE_SAVE_DELAY)

    def _data_to_save(self) -> dict[str, Any]:
        return {"scenes": dict(self._scenes)}
