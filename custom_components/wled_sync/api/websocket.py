"""WebSocket push transport for WLED devices.

Each WLED device serves a WebSocket at ``/ws`` which sends the full
``{"state": ..., "info": ...}`` object on connect and after every change,
whether it was caused by us, another controller or a physical button.

Key features:
- One connection per device, bounded by a connection limit
- Higher priority devices may evict lower priority ones at the limit
- Automatic reconnection with exponential backoff
- Events handed to the owner in arrival order
"""
from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

import aiohttp

from ..const import (
    MAX_WEBSOCKET_CONNECTIONS,
    WEBSOCKET_HEARTBEAT,
    WEBSOCKET_RECONNECT_BASE,
    WEBSOCKET_RECONNECT_MAX,
)
from ..models.device import WLEDDevice
from ..models.state import InfoSnapshot, PushEvent, StateSnapshot, UpdateSource

_LOGGER = logging.getLogger(__name__)


class ConnectionStatus(StrEnum):
    """Push connection status of one device."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    LIMIT_REACHED = "limitReached"


class _Connection:
    """Bookkeeping for one device connection."""

    def __init__(self, device: WLEDDevice, priority: int) -> None:
        self.device = device
        self.priority = priority
        self.task: asyncio.Task | None = None
        self.socket: aiohttp.ClientWebSocketResponse | None = None
        self.attempts = 0


class WLEDWebSocketManager:
    """Maintains WebSocket connections to WLED devices.

    Attributes:
        max_connections: Maximum simultaneously open device connections.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        on_event: Callable[[PushEvent], None],
        max_connections: int = MAX_WEBSOCKET_CONNECTIONS,
    ) -> None:
        """Initialize the transport.

        Args:
            session: Shared aiohttp session.
            on_event: Callback invoked for each received event.
            max_connections: Connection limit.
        """
        self._session = session
        self._on_event = on_event
        self.max_connections = max_connections
        self._connections: dict[str, _Connection] = {}
        self._statuses: dict[str, ConnectionStatus] = {}
        self._listeners: list[Callable[[str, ConnectionStatus], None]] = []

    def status(self, device_id: str) -> ConnectionStatus:
        """Return the connection status of a device."""
        return self._statuses.get(device_id, ConnectionStatus.DISCONNECTED)

    @property
    def statuses(self) -> dict[str, ConnectionStatus]:
        """Connection status of every known device."""
        return dict(self._statuses)

    def is_connected(self, device_id: str) -> bool:
        """Return True if the device socket is open."""
        return self.status(device_id) is ConnectionStatus.CONNECTED

    def add_status_listener(
        self, listener: Callable[[str, ConnectionStatus], None]
    ) -> Callable[[], None]:
        """Subscribe to status changes; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def _set_status(self, device_id: str, status: ConnectionStatus) -> None:
        if self._statuses.get(device_id) is status:
            return
        self._statuses[device_id] = status
        _LOGGER.debug("WebSocket %s -> %s", device_id, status)
        for listener in list(self._listeners):
            listener(device_id, status)

    async def connect(self, device: WLEDDevice, priority: int = 0) -> ConnectionStatus:
        """Open (or keep) a connection to a device.

        At the connection limit the lowest priority connection is evicted
        if its priority is lower than ``priority``; otherwise the request
        is refused with ``LIMIT_REACHED``.
        """
        existing = self._connections.get(device.device_id)
        if existing is not None:
            existing.priority = priority
            existing.device = device
            return self.status(device.device_id)

        if len(self._connections) >= self.max_connections:
            victim = min(self._connections.values(), key=lambda conn: conn.priority)
            if victim.priority >= priority:
                _LOGGER.debug(
                    "Connection limit (%d) reached, not connecting %s",
                    self.max_connections,
                    device.name,
                )
                self._set_status(device.device_id, ConnectionStatus.LIMIT_REACHED)
                return ConnectionStatus.LIMIT_REACHED
            await self.disconnect(victim.device.device_id)
            self._set_status(victim.device.device_id, ConnectionStatus.LIMIT_REACHED)

        connection = _Connection(device, priority)
        self._connections[device.device_id] = connection
        self._set_status(device.device_id, ConnectionStatus.CONNECTING)
        connection.task = asyncio.create_task(
            self._connection_loop(connection),
            name=f"wled_sync websocket {device.device_id}",
        )
        return ConnectionStatus.CONNECTING

    async def disconnect(self, device_id: str) -> None:
        """Close the connection to a device."""
        connection = self._connections.pop(device_id, None)
        if connection is None:
            return
        if connection.task:
            connection.task.cancel()
            try:
                await connection.task
            except asyncio.CancelledError:
                pass
        self._set_status(device_id, ConnectionStatus.DISCONNECTED)

    async def reconnect(self, device_id: str) -> ConnectionStatus:
        """Drop and reopen a connection, resetting its backoff.

        Unknown devices are left alone and report their current status.
        """
        connection = self._connections.get(device_id)
        if connection is None:
            return self.status(device_id)
        device, priority = connection.device, connection.priority
        _LOGGER.info("Forcing reconnection to %s", device.name)
        await self.disconnect(device_id)
        return await self.connect(device, priority)

    def reconnect_attempts(self, device_id: str) -> int:
        """Failed attempts since the connection was last open."""
        connection = self._connections.get(device_id)
        return connection.attempts if connection is not None else 0

    async def async_stop(self) -> None:
        """Close every connection."""
        for device_id in list(self._connections):
            await self.disconnect(device_id)
        _LOGGER.info("WebSocket transport stopped")

    async def send(self, payload: dict[str, Any], device_id: str) -> bool:
        """Send a partial state over an open socket.

        Returns:
            True if the payload was written, False if no socket is open.
        """
        connection = self._connections.get(device_id)
        if connection is None or connection.socket is None or connection.socket.closed:
            return False
        try:
            await connection.socket.send_json(payload)
        except (aiohttp.ClientError, ConnectionResetError) as err:
            _LOGGER.debug("WebSocket send to %s failed: %s", device_id, err)
            return False
        return True

    async def _connection_loop(self, connection: _Connection) -> None:
        """Maintain one device connection with exponential backoff."""
        device_id = connection.device.device_id
        reconnect_interval = WEBSOCKET_RECONNECT_BASE

        while True:
            try:
                async with self._session.ws_connect(
                    connection.device.websocket_url,
                    heartbeat=WEBSOCKET_HEARTBEAT,
                ) as socket:
                    connection.socket = socket
                    connection.attempts = 0
                    reconnect_interval = WEBSOCKET_RECONNECT_BASE
                    self._set_status(device_id, ConnectionStatus.CONNECTED)
                    _LOGGER.info("Connected to %s WebSocket", connection.device.name)

                    async for message in socket:
                        if message.type is aiohttp.WSMsgType.TEXT:
                            self._handle_message(connection.device, message.data)
                        elif message.type in (
                            aiohttp.WSMsgType.CLOSED,
                            aiohttp.WSMsgType.ERROR,
                        ):
                            break

            except asyncio.CancelledError:
                _LOGGER.debug("WebSocket loop for %s cancelled", device_id)
                connection.socket = None
                raise

            except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as err:
                _LOGGER.debug(
                    "WebSocket error for %s: %s. Reconnecting in %ds",
                    connection.device.name,
                    err,
                    reconnect_interval,
                )

            connection.attempts += 1
            connection.socket = None
            self._set_status(device_id, ConnectionStatus.RECONNECTING)
            await asyncio.sleep(reconnect_interval)
            reconnect_interval = min(reconnect_interval * 2, WEBSOCKET_RECONNECT_MAX)

    def _handle_message(self, device: WLEDDevice, raw: str) -> None:
        """Parse a WebSocket message and invoke the event callback."""
        try:
            data = json.loads(raw)
        except ValueError as err:
            _LOGGER.warning("Failed to parse WebSocket message from %s: %s", device.name, err)
            return

        if not isinstance(data, dict):
            return

        state = data.get("state")
        info = data.get("info")
        if not isinstance(state, dict) and not isinstance(info, dict):
            return

        try:
            event = PushEvent(
                device_id=device.device_id,
                state=StateSnapshot.from_json(state) if isinstance(state, dict) else None,
                info=InfoSnapshot.from_json(info) if isinstance(info, dict) else None,
                timestamp=datetime.now(UTC),
                source=UpdateSource.PUSH,
                host=device.ip_address,
            )
        except (ValueError, TypeError, AttributeError) as err:
            _LOGGER.warning("Dropping malformed WebSocket message from %s: %s", device.name, err)
            return
        try:
            self._on_event(event)
        except Exception:
            _LOGGER.exception("Error handling WebSocket event from %s", device.name)
