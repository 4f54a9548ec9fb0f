from __future__ import annotations

ENDPOINT_JSON = "/json"
ENDPOINT_STATE = "/json/state"
ENDPOINT_INFO = "/json/info"
ENDPOINT_EFFECTS = "/json/eff"
ENDPOINT_CONFIG = "/json/cfg"
ENDPOINT_PRESETS = "/presets.json"
ENDPOINT_WEBSOCKET = "/ws"

# Seconds before an HTTP request is abandoned
REQUEST_TIMEOUT = 10

# Statuses WLED (or an ESP web server under load) uses when it cannot serve now
BUSY_STATUSES = frozenset({429, 503})
TIMEOUT_STATUSES = frozenset({408, 504})

# LEDs per request when writing individual pixel colors
PIXEL_CHUNK_SIZE = 256
