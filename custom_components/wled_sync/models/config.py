from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..const import (
    BATCH_INTERVAL,
    BRIGHTNESS_THRESHOLD,
    COMMAND_TIMEOUT,
    HEALTH_CHECK_INTERVAL,
    PROTECTION_WINDOW,
    REFRESH_CONCURRENCY,
    REFRESH_DEBOUNCE,
    RENAME_PROTECTION_WINDOW,
)

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry

    from ..api import WLEDApiClient
    from ..coordinator import WLEDSyncCoordinator
    from ..manager import WLEDSyncManager


@dataclass(frozen=True)
class SyncSettings:
    """Tunable timings of the reconciliation engine (seconds)."""

    protection_window: float = PROTECTION_WINDOW
    rename_protection_window: float = RENAME_PROTECTION_WINDOW
    command_timeout: float = COMMAND_TIMEOUT
    batch_interval: float = BATCH_INTERVAL
    brightness_threshold: int = BRIGHTNESS_THRESHOLD
    refresh_debounce: float = REFRESH_DEBOUNCE
    refresh_concurrency: int = REFRESH_CONCURRENCY
    health_check_interval: float = HEALTH_CHECK_INTERVAL


@dataclass
class WLEDRuntimeData:
    client: WLEDApiClient
    coordinator: WLEDSyncCoordinator
    manager: WLEDSyncManager


# Type alias for ConfigEntry with WLEDRuntimeData
type WLEDConfigEntry = ConfigEntry[WLEDRuntimeData]
