"""State management protocol interfaces.

Defines contracts for state observers, persistence and discovery.
Enables separation between the sync engine and the Home Assistant layer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..models.device import WLEDDevice
    from ..models.scene import Scene


@runtime_checkable
class IStateObserver(Protocol):
    """Protocol for canonical state observers.

    Implemented by the coordinator and anything else that needs to be
    notified when canonical device snapshots are replaced.
    """

    def on_devices_changed(self, devices: list[WLEDDevice]) -> None:
        """Called after one or more devices were replaced.

        Args:
            devices: The new snapshots, applied atomically.
        """
        ...


@runtime_checkable
class IDeviceStore(Protocol):
    """Protocol for device persistence."""

    async def fetch_all(self) -> list[WLEDDevice]:
        """Load every persisted device."""
        ...

    async def save(self, device: WLEDDevice) -> None:
        """Persist one device."""
        ...

    async def remove(self, device_id: str) -> None:
        """Forget one device."""
        ...


@runtime_checkable
class ISceneStore(Protocol):
    """Protocol for scene persistence."""

    async def fetch_all(self) -> list[Scene]:
        ...

    async def save(self, scene: Scene) -> None:
        ...

    async def remove(self, scene_id: str) -> None:
        ...


@runtime_checkable
class IDiscoveryService(Protocol):
    """Protocol for device discovery.

    Discovered devices are delivered through the callback the service was
    created with.
    """

    async def start(self) -> None:
        """Start discovering devices."""
        ...

    async def stop(self) -> None:
        """Stop discovery and cancel outstanding lookups."""
        ...

    async def add_by_address(self, ip_address: str) -> WLEDDevice | None:
        """Query one address; returns the device if it answered."""
        ...
