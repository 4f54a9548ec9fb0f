"""Device model representing one WLED fixture.

Frozen dataclass; every change produces a new snapshot which replaces the
canonical one in the device registry.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from .state import InfoSnapshot, RGBColor, temperature_to_rgb

DEFAULT_COLOR = RGBColor(255, 255, 255)

# Fields a command can target and the reconciler can change
CONTROLLABLE_FIELDS = frozenset({"is_on", "brightness", "color", "temperature"})


@dataclass(frozen=True)
class WLEDDevice:
    """Observable attributes of a WLED device."""

    device_id: str
    name: str
    ip_address: str
    location: str = ""
    is_on: bool = False
    brightness: int = 0
    color: RGBColor = field(default_factory=lambda: DEFAULT_COLOR)
    temperature: float | None = None
    is_online: bool = False
    last_seen: datetime | None = None
    product_type: str | None = None

    @classmethod
    def from_info(
        cls,
        info: InfoSnapshot,
        ip_address: str,
        seen_at: datetime | None = None,
    ) -> WLEDDevice:
        """Create a freshly discovered device from its info object."""
        return cls(
            device_id=info.device_id or ip_address,
            name=info.name or ip_address,
            ip_address=ip_address,
            is_online=True,
            last_seen=seen_at,
            product_type=info.product,
        )

    @property
    def is_cct_active(self) -> bool:
        """Whether color temperature currently drives the display color."""
        return self.temperature is not None and self.temperature > 0

    @property
    def display_color(self) -> RGBColor:
        """Color to display, derived from temperature while CCT is active."""
        if self.is_cct_active:
            return temperature_to_rgb(self.temperature)
        return self.color

    @property
    def base_url(self) -> str:
        """HTTP base URL of the device."""
        return f"http://{self.ip_address}"

    @property
    def websocket_url(self) -> str:
        """WebSocket endpoint of the device."""
        return f"ws://{self.ip_address}/ws"

    def same_observable_state(self, other: WLEDDevice) -> bool:
        """Field-level equality used to drop no-op updates.

        Compares identity, power, brightness, liveness, name, address,
        color and color temperature. ``last_seen`` and ``location`` are
        deliberately excluded.
        """
        return (
            self.device_id == other.device_id
            and self.is_on == other.is_on
            and self.brightness == other.brightness
            and self.is_online == other.is_online
            and self.name == other.name
            and self.ip_address == other.ip_address
            and self.color == other.color
            and self.temperature == other.temperature
        )

    def with_changes(self, **changes: Any) -> WLEDDevice:
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_storage(self) -> dict[str, Any]:
        """Serialize for persistent storage."""
        return {
            "device_id": self.device_id,
            "name": self.name,
            "ip_address": self.ip_address,
            "location": self.location,
            "is_on": self.is_on,
            "brightness": self.brightness,
            "color": self.color.as_list,
            "temperature": self.temperature,
            "last_seen": self.last_seen.isoformat() if self.last_seen else None,
            "product_type": self.product_type,
        }

    @classmethod
    def from_storage(cls, data: dict[str, Any]) -> WLEDDevice:
        """Restore from persistent storage.

        Restored devices start offline until contact is confirmed.
        """
        last_seen = data.get("last_seen")
        return cls(
            device_id=data["device_id"],
            name=data.get("name", data["device_id"]),
            ip_address=data.get("ip_address", ""),
            location=data.get("location", ""),
            is_on=bool(data.get("is_on", False)),
            brightness=int(data.get("brightness", 0)),
            color=RGBColor.from_list(data.get("color") or []) or DEFAULT_COLOR,
            temperature=data.get("temperature"),
            is_online=False,
            last_seen=datetime.fromisoformat(last_seen) if last_seen else None,
            product_type=data.get("product_type"),
        )
