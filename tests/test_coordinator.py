"""Test WLED Sync coordinator."""
from __future__ import annotations

import ipaddress
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from homeassistant.core import HomeAssistant

from custom_components.wled_sync.coordinator import WLEDSyncCoordinator
from custom_components.wled_sync.sync import DeviceError, ErrorKind

ADAPTERS = [
    {
        "name": "eth0",
        "enabled": True,
        "ipv4": [{"address": "192.168.1.10", "network_prefix": 24}],
        "ipv6": [],
    },
    {
        "name": "wlan0",
        "enabled": False,
        "ipv4": [{"address": "10.0.0.5", "network_prefix": 8}],
        "ipv6": [],
    },
]


@pytest.fixture
def coordinator(hass: HomeAssistant, mock_config_entry, mock_api_client):
    """Coordinator polling two hosts without push transport."""
    return WLEDSyncCoordinator(
        hass,
        mock_config_entry,
        mock_api_client,
        hosts=["192.168.1.50", "192.168.1.51"],
        update_interval=timedelta(seconds=15),
        realtime=False,
    )


# ==============================================================================
# Initialization Tests
# ==============================================================================


class TestWLEDSyncCoordinatorInit:
    """Test coordinator initialization."""

    def test_coordinator_initialization(self, coordinator, mock_config_entry, mock_api_client):
        """Test coordinator initializes with correct attributes."""
        assert coordinator.client == mock_api_client
        assert coordinator.hosts == ["192.168.1.50", "192.168.1.51"]
        assert coordinator.config_entry == mock_config_entry
        assert coordinator.update_interval == timedelta(seconds=15)
        assert not coordinator.manager.realtime_enabled

    def test_realtime_builds_transport(self, hass: HomeAssistant, mock_config_entry, mock_api_client):
        coordinator = WLEDSyncCoordinator(
            hass,
            mock_config_entry,
            mock_api_client,
            hosts=[],
            update_interval=timedelta(seconds=15),
        )

        assert coordinator.manager.realtime_enabled


# ==============================================================================
# Setup and Update Tests
# ==============================================================================


class TestCoordinatorUpdates:
    """Test setup, polling and pushed updates."""

    @pytest.mark.asyncio
    async def test_async_setup_reads_local_networks(self, coordinator):
        """Test only enabled adapters contribute local networks."""
        with patch(
            "custom_components.wled_sync.coordinator.network.async_get_adapters",
            AsyncMock(return_value=ADAPTERS),
        ), patch.object(coordinator.manager, "async_start", AsyncMock()) as mock_start:
            await coordinator._async_setup()

        assert coordinator._networks == [ipaddress.ip_network("192.168.1.0/24")]
        mock_start.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_update_data_polls_devices(
        self, coordinator, mock_api_client, device, state_factory
    ):
        coordinator.manager.registry.put(device, notify=False)
        mock_api_client.get_state.return_value = state_factory(on=True, bri=200)

        data = await coordinator._async_update_data()

        assert data[device.device_id].is_on is True
        assert data[device.device_id].brightness == 200

    @pytest.mark.asyncio
    async def test_registry_changes_published(self, coordinator, device):
        """Test replaced snapshots reach listeners without a poll."""
        listener = MagicMock()
        coordinator.async_add_listener(listener)

        coordinator.manager.registry.put(device)

        listener.assert_called()
        assert coordinator.data[device.device_id] == device
        await coordinator.async_shutdown()

    @pytest.mark.asyncio
    async def test_error_changes_published(self, coordinator, device):
        listener = MagicMock()
        coordinator.async_add_listener(listener)

        coordinator.manager.errors.report(DeviceError(ErrorKind.TIMEOUT, device.device_id))

        listener.assert_called_once()
        await coordinator.async_shutdown()

    def test_get_device(self, coordinator, device):
        coordinator.manager.registry.put(device, notify=False)

        assert coordinator.get_device(device.device_id) == device
        assert coordinator.get_device("missing") is None


# ==============================================================================
# Shutdown Tests
# ==============================================================================


class TestCoordinatorShutdown:
    """Test coordinator shutdown."""

    @pytest.mark.asyncio
    async def test_shutdown_stops_manager(self, coordinator, device):
        listener = MagicMock()
        coordinator.async_add_listener(listener)

        with patch.object(coordinator.manager, "async_stop", AsyncMock()) as mock_stop:
            await coordinator.async_shutdown()

        mock_stop.assert_awaited_once()

        coordinator.manager.registry.put(device)
        coordinator.manager.errors.report(DeviceError(ErrorKind.TIMEOUT, device.device_id))
        listener.assert_not_called()
