"""Fixtures for WLED Sync integration tests."""
from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.wled_sync.const import (
    CONF_HOSTS,
    CONF_POLL_INTERVAL,
    CONF_REALTIME,
    DOMAIN,
)
from custom_components.wled_sync.manager import WLEDSyncManager
from custom_components.wled_sync.models import (
    InfoSnapshot,
    RGBColor,
    StateSnapshot,
    SyncSettings,
    WLEDDevice,
)
from custom_components.wled_sync.models.preset import Preset

NOW = datetime(2026, 1, 15, 20, 30, tzinfo=UTC)

# Segment flags: RGB only, and RGB + white + CCT
FLAGS_RGB = [1]
FLAGS_RGBW_CCT = [7]


# ==============================================================================
# Home Assistant Fixtures
# ==============================================================================


@pytest.fixture(autouse=True)
def auto_enable_custom_integrations(enable_custom_integrations):
    """Enable custom integrations for all tests."""
    yield


@pytest.fixture
def expected_lingering_timers() -> bool:
    """Engine batch and command timers may outlive a test's assertions."""
    return True


@pytest.fixture
def expected_lingering_tasks() -> bool:
    """Background persistence tasks may outlive a test's assertions."""
    return True


@pytest.fixture
def mock_config_entry():
    """Create a mock config entry."""
    return MockConfigEntry(
        domain=DOMAIN,
        unique_id=DOMAIN,
        data={
            CONF_HOSTS: ["192.168.1.50", "192.168.1.51"],
            CONF_POLL_INTERVAL: 15,
        },
        options={CONF_REALTIME: False},
        entry_id="test_entry_id",
        title="WLED Sync",
    )


# ==============================================================================
# Clock Fixtures
# ==============================================================================


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


class FakeNow:
    """Wall clock that only moves when told to."""

    def __init__(self, start: datetime = NOW) -> None:
        self.value = start

    def __call__(self) -> datetime:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def now() -> FakeNow:
    return FakeNow()


# ==============================================================================
# Device Fixtures
# ==============================================================================


def _make_device(
    device_id: str = "aabbccddeeff",
    name: str = "Desk Strip",
    ip_address: str = "192.168.1.50",
    **changes,
) -> WLEDDevice:
    """Build an online device last seen at NOW."""
    defaults = {
        "is_on": False,
        "brightness": 100,
        "color": RGBColor(255, 255, 255),
        "is_online": True,
        "last_seen": NOW,
    }
    defaults.update(changes)
    return WLEDDevice(device_id=device_id, name=name, ip_address=ip_address, **defaults)


@pytest.fixture
def device() -> WLEDDevice:
    """An online RGB strip, off at brightness 100."""
    return _make_device()


@pytest.fixture
def second_device() -> WLEDDevice:
    return _make_device(device_id="112233445566", name="Shelf", ip_address="192.168.1.51")


@pytest.fixture
def info_rgb() -> InfoSnapshot:
    """Info object of an RGB-only device."""
    return InfoSnapshot.from_json(
        {
            "name": "Desk Strip",
            "mac": "aa:bb:cc:dd:ee:ff",
            "ver": "0.14.4",
            "leds": {"count": 60, "seglc": FLAGS_RGB},
            "product": "FOSS",
            "ip": "192.168.1.50",
        }
    )


@pytest.fixture
def info_cct() -> InfoSnapshot:
    """Info object of an RGBW device with a CCT segment."""
    return InfoSnapshot.from_json(
        {
            "name": "Desk Strip",
            "mac": "aa:bb:cc:dd:ee:ff",
            "ver": "0.14.4",
            "leds": {"count": 60, "seglc": FLAGS_RGBW_CCT},
            "product": "FOSS",
            "ip": "192.168.1.50",
        }
    )


def state_json(
    on: bool = False,
    bri: int = 100,
    col: list[int] | None = None,
    cct: int | None = None,
) -> dict:
    """A /json/state object with a single segment."""
    segment: dict = {"id": 0, "col": [col or [255, 255, 255]], "fx": 0, "pal": 0}
    if cct is not None:
        segment["cct"] = cct
    return {"on": on, "bri": bri, "transition": 7, "ps": -1, "seg": [segment]}


def _make_state(**kwargs) -> StateSnapshot:
    return StateSnapshot.from_json(state_json(**kwargs))


@pytest.fixture
def device_factory():
    """Build devices: ``device_factory(device_id=..., is_on=True)``."""
    return _make_device


@pytest.fixture
def state_factory():
    """Build state snapshots: ``state_factory(on=True, bri=200)``."""
    return _make_state


# ==============================================================================
# API Client Fixtures
# ==============================================================================


@pytest.fixture
def mock_api_client(info_rgb):
    """Create a mock API client that acknowledges every command."""
    client = MagicMock()
    client.get_state = AsyncMock(return_value=_make_state())
    client.send_command = AsyncMock(return_value=None)
    client.set_state = AsyncMock(return_value=None)
    client.set_segment_pixels = AsyncMock(return_value=None)
    client.fetch_metadata = AsyncMock(return_value=info_rgb)
    client.fetch_effects = AsyncMock(return_value=["Solid", "Blink", "Breathe"])
    client.fetch_presets = AsyncMock(
        return_value=[Preset(1, "Evening"), Preset(2, "Reading")]
    )
    client.close = AsyncMock()
    return client


@pytest.fixture
def mock_store():
    """Create a mock device store."""
    store = MagicMock()
    store.fetch_all = AsyncMock(return_value=[])
    store.save = AsyncMock()
    store.remove = AsyncMock()
    return store


@pytest.fixture
def mock_scene_store():
    """Create a mock scene store."""
    store = MagicMock()
    store.fetch_all = AsyncMock(return_value=[])
    store.save = AsyncMock()
    store.remove = AsyncMock()
    return store


@pytest.fixture
def mock_transport():
    """Create a mock push transport with no open sockets."""
    transport = MagicMock()
    transport.connect = AsyncMock()
    transport.disconnect = AsyncMock()
    transport.send = AsyncMock(return_value=True)
    transport.is_connected = MagicMock(return_value=False)
    transport.reconnect = AsyncMock()
    transport.reconnect_attempts = MagicMock(return_value=0)
    transport.async_stop = AsyncMock()
    return transport


# ==============================================================================
# Manager Fixtures
# ==============================================================================


@pytest.fixture
def settings() -> SyncSettings:
    """Engine timings short enough to wait out in tests."""
    return SyncSettings(
        protection_window=1.5,
        rename_protection_window=8.0,
        command_timeout=5.0,
        batch_interval=0.01,
        refresh_debounce=1.5,
        health_check_interval=15.0,
    )


@pytest.fixture
async def manager(mock_api_client, mock_store, mock_scene_store, settings, clock, now):
    """Manager without push transport or discovery."""
    manager = WLEDSyncManager(
        mock_api_client,
        store=mock_store,
        scene_store=mock_scene_store,
        settings=settings,
        clock=clock,
        now=now,
    )
    yield manager
    await manager.async_stop()


@pytest.fixture
def mock_coordinator(manager):
    """Coordinator stand-in exposing a real manager."""
    coordinator = MagicMock()
    coordinator.manager = manager
    coordinator.last_update_success = True
    coordinator.async_add_listener = MagicMock(return_value=MagicMock())
    return coordinator
