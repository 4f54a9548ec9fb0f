"""Transport layer protocol interfaces.

Defines contracts for the command/query client and the push transport.
These protocols enable dependency injection and testing with mock
implementations.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..api.websocket import ConnectionStatus
    from ..models.commands import DeviceCommand
    from ..models.device import WLEDDevice
    from ..models.preset import Preset
    from ..models.state import InfoSnapshot, RGBColor, StateSnapshot


@runtime_checkable
class IDeviceClient(Protocol):
    """Protocol for WLED command/query operations.

    All calls are request/response and fallible. Implementations raise
    WLEDApiError subclasses which the dispatcher classifies.
    """

    async def get_state(self, host: str) -> StateSnapshot:
        """Fetch the current state of a device.

        Raises:
            WLEDApiError: If the query fails.
        """
        ...

    async def set_state(self, host: str, payload: dict[str, Any]) -> StateSnapshot | None:
        """Post a partial state; returns the resulting state if reported."""
        ...

    async def send_command(self, host: str, command: DeviceCommand) -> StateSnapshot | None:
        """Send a command to its endpoint; returns the resulting state if reported."""
        ...

    async def set_color(
        self, host: str, color: RGBColor, segment_id: int = 0, white: int | None = None
    ) -> StateSnapshot | None:
        ...

    async def set_cct(self, host: str, cct: int, segment_id: int = 0) -> StateSnapshot | None:
        ...

    async def set_segment_pixels(
        self,
        host: str,
        hex_colors: list[str],
        segment_id: int = 0,
        start: int = 0,
        brightness: int | None = None,
    ) -> None:
        """Write one hex color per LED, starting at ``start``."""
        ...

    async def set_effect(
        self,
        host: str,
        effect_id: int,
        speed: int | None = None,
        intensity: int | None = None,
        palette_id: int | None = None,
        segment_id: int = 0,
    ) -> StateSnapshot | None:
        ...

    async def fetch_presets(self, host: str) -> list[Preset]:
        ...

    async def apply_preset(
        self, host: str, preset_id: int, transition: int | None = None
    ) -> StateSnapshot | None:
        ...

    async def save_preset(self, host: str, preset_id: int, name: str) -> None:
        ...

    async def fetch_metadata(self, host: str) -> InfoSnapshot:
        """Fetch device metadata (name, MAC, segment capability flags)."""
        ...

    async def fetch_effects(self, host: str) -> list[str]:
        ...

    async def update_name(self, host: str, name: str) -> None:
        ...


@runtime_checkable
class IPushTransport(Protocol):
    """Protocol for the persistent push transport.

    Emits unsolicited PushEvents through the callback it was created with.
    """

    async def connect(self, device: WLEDDevice, priority: int = 0) -> ConnectionStatus:
        """Open a connection to a device."""
        ...

    async def disconnect(self, device_id: str) -> None:
        """Close the connection to a device."""
        ...

    async def reconnect(self, device_id: str) -> ConnectionStatus:
        """Drop and reopen a connection, resetting its backoff."""
        ...

    async def send(self, payload: dict[str, Any], device_id: str) -> bool:
        """Send a partial state; returns False if the device is not connected."""
        ...

    def status(self, device_id: str) -> ConnectionStatus:
        ...

    def is_connected(self, device_id: str) -> bool:
        ...

    def reconnect_attempts(self, device_id: str) -> int:
        ...

    def add_status_listener(
        self, listener: Callable[[str, ConnectionStatus], None]
    ) -> Callable[[], None]:
        """Subscribe to connection status changes."""
        ...

    async def async_stop(self) -> None:
        ...
