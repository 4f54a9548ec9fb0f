"""WLED JSON API and WebSocket transport."""
from __future__ import annotations

from .client import WLEDApiClient
from .exceptions import (
    WLEDApiError,
    WLEDBusyError,
    WLEDConfigurationError,
    WLEDConnectionError,
    WLEDInvalidResponseError,
    WLEDTimeoutError,
)
from .websocket import ConnectionStatus, WLEDWebSocketManager

__all__ = [
    "ConnectionStatus",
    "WLEDApiClient",
    "WLEDApiError",
    "WLEDBusyError",
    "WLEDConfigurationError",
    "WLEDConnectionError",
    "WLEDInvalidResponseError",
    "WLEDTimeoutError",
    "WLEDWebSocketManager",
]
