"""Constants for the WLED Sync integration."""
from __future__ import annotations

from homeassistant.const import Platform

DOMAIN = "wled_sync"

# Config entry data / options
CONF_HOSTS = "hosts"
CONF_POLL_INTERVAL = "poll_interval"
CONF_REALTIME = "realtime"

# Default poll interval (seconds); polling doubles as the health check
DEFAULT_POLL_INTERVAL = 15
DEFAULT_REALTIME = True

# Color temperature range exposed to Home Assistant (Kelvin)
COLOR_TEMP_KELVIN_MIN = 2700
COLOR_TEMP_KELVIN_MAX = 6500

# Reconciliation timings (seconds)
PROTECTION_WINDOW = 1.5
RENAME_PROTECTION_WINDOW = 8.0
COMMAND_TIMEOUT = 5.0
BATCH_INTERVAL = 0.2
REFRESH_DEBOUNCE = 1.5
HEALTH_CHECK_INTERVAL = 15.0

# Gradient streaming
STREAM_FPS = 20
STREAM_MAX_FPS = 60

# Brightness deltas at or below this are treated as device smoothing jitter
BRIGHTNESS_THRESHOLD = 15

# Maximum concurrent device polls / batch commands
REFRESH_CONCURRENCY = 4

# Push transport
MAX_WEBSOCKET_CONNECTIONS = 5
WEBSOCKET_RECONNECT_BASE = 2
WEBSOCKET_RECONNECT_MAX = 60
WEBSOCKET_HEARTBEAT = 30

# Persistence
STORAGE_KEY = f"{DOMAIN}.devices"
STORAGE_KEY_SCENES = f"{DOMAIN}.scenes"
STORAGE_VERSION = 1
STORAGE_SAVE_DELAY = 2

PLATFORMS: list[Platform] = [
    Platform.LIGHT,
]

CONFIG_ENTRY_VERSION = 1
