"""Test device persistence."""
from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import pytest
from homeassistant.core import HomeAssistant

from custom_components.wled_sync.const import STORAGE_KEY, STORAGE_KEY_SCENES, STORAGE_VERSION
from custom_components.wled_sync.models import Gradient, RGBColor, Scene
from custom_components.wled_sync.storage import WLEDDeviceStore, WLEDSceneStore


@pytest.fixture
def store(hass: HomeAssistant) -> WLEDDeviceStore:
    store = WLEDDeviceStore(hass)
    store._store.async_delay_save = MagicMock()
    return store


def _stored(devices: dict[str, Any]) -> dict[str, Any]:
    return {
        "version": STORAGE_VERSION,
        "minor_version": 1,
        "key": STORAGE_KEY,
        "data": {"devices": devices},
    }


class TestWLEDDeviceStore:
    """Test WLEDDeviceStore."""

    @pytest.mark.asyncio
    async def test_fetch_all_empty(self, store):
        assert await store.fetch_all() == []

    @pytest.mark.asyncio
    async def test_fetch_all_restores_offline(self, hass_storage, store, device):
        """Test restored devices start offline until contact is confirmed."""
        hass_storage[STORAGE_KEY] = _stored({device.device_id: device.to_storage()})

        devices = await store.fetch_all()

        assert len(devices) == 1
        restored = devices[0]
        assert restored.device_id == device.device_id
        assert restored.name == device.name
        assert restored.color == device.color
        assert restored.last_seen == device.last_seen
        assert restored.is_online is False

    @pytest.mark.asyncio
    async def test_corrupt_record_skipped(self, hass_storage, store, device, caplog):
        hass_storage[STORAGE_KEY] = _stored(
            {
                "broken": {"name": "No id"},
                device.device_id: device.to_storage(),
            }
        )

        devices = await store.fetch_all()

        assert [restored.device_id for restored in devices] == [device.device_id]
        assert "Skipping stored device broken" in caplog.text

    @pytest.mark.asyncio
    async def test_save_schedules_write(self, store, device):
        await store.save(device)

        store._store.async_delay_save.assert_called_once()
        assert store._data_to_save() == {"devices": {device.device_id: device.to_storage()}}

    @pytest.mark.asyncio
    async def test_unchanged_save_skipped(self, store, device):
        """Test saving an identical record does not schedule another write."""
        await store.save(device)
        await store.save(device)

        assert store._store.async_delay_save.call_count == 1

        await store.save(device.with_changes(is_on=True))
        assert store._store.async_delay_save.call_count == 2

    @pytest.mark.asyncio
    async def test_remove(self, store, device):
        await store.save(device)

        await store.remove(device.device_id)
        await store.remove(device.device_id)

        assert store._data_to_save() == {"devices": {}}
        assert store._store.async_delay_save.call_count == 2


@pytest.fixture
def scene_store(hass: HomeAssistant) -> WLEDSceneStore:
    store = WLEDSceneStore(hass)
    store._store.async_delay_save = MagicMock()
    return store


@pytest.fixture
def scene(device) -> Scene:
    return Scene(
        name="Sunset",
        device_id=device.device_id,
        brightness=120,
        primary=Gradient.from_colors(RGBColor(255, 80, 0), RGBColor(120, 0, 60)),
    )


class TestWLEDSceneStore:
    """Test WLEDSceneStore."""

    @pytest.mark.asyncio
    async def test_fetch_all(self, hass_storage, scene_store, scene, caplog):
        hass_storage[STORAGE_KEY_SCENES] = {
            "version": STORAGE_VERSION,
            "minor_version": 1,
            "key": STORAGE_KEY_SCENES,
            "data": {
                "scenes": {
                    scene.scene_id: scene.to_storage(),
                    "broken": {"name": "No gradient"},
                }
            },
        }

        assert await scene_store.fetch_all() == [scene]
        assert "Skipping stored scene broken" in caplog.text

    @pytest.mark.asyncio
    async def test_save_and_remove(self, scene_store, scene):
        await scene_store.save(scene)
        assert scene_store._data_to_save() == {"scenes": {scene.scene_id: scene.to_storage()}}

        await scene_store.remove(scene.scene_id)
        await scene_store.remove(scene.scene_id)

        assert scene_store._data_to_save() == {"scenes": {}}
        assert scene_store._store.async_delay_save.call_count == 2
