"""Device state models.

Immutable snapshots of what a WLED device reports over its JSON API or
WebSocket, plus color temperature helpers shared by the engine and the
light platform.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any

# Kelvin scale WLED accepts for the segment "cct" key (values below are 0-255)
CCT_KELVIN_MIN = 1000
CCT_KELVIN_MAX = 20000

# Display range used for normalized temperature (0.0 = warm, 1.0 = cool)
TEMPERATURE_KELVIN_WARM = 2700
TEMPERATURE_KELVIN_COOL = 6500


@dataclass(frozen=True)
class RGBColor:
    """Immutable RGB color representation."""

    r: int
    g: int
    b: int

    def __post_init__(self) -> None:
        """Validate color values are in range."""
        # Use object.__setattr__ because dataclass is frozen
        object.__setattr__(self, "r", max(0, min(255, int(self.r))))
        object.__setattr__(self, "g", max(0, min(255, int(self.g))))
        object.__setattr__(self, "b", max(0, min(255, int(self.b))))

    @property
    def as_tuple(self) -> tuple[int, int, int]:
        """Return as (r, g, b) tuple."""
        return (self.r, self.g, self.b)

    @property
    def as_list(self) -> list[int]:
        """Return as [r, g, b] list, the WLED segment color format."""
        return [self.r, self.g, self.b]

    @property
    def as_hex(self) -> str:
        """Return as ``RRGGBB``, the WLED per-LED color format."""
        return f"{self.r:02X}{self.g:02X}{self.b:02X}"

    @classmethod
    def from_hex(cls, value: str) -> RGBColor:
        """Create from ``RRGGBB`` (optionally ``#``-prefixed).

        Raises:
            ValueError: If the string is not a 6-digit hex color.
        """
        channels = _parse_color(value)
        if len(channels) < 3:
            raise ValueError(f"Invalid hex color: {value!r}")
        return cls(*channels[:3])

    @classmethod
    def from_list(cls, values: list[int] | tuple[int, ...]) -> RGBColor | None:
        """Create from a WLED color array.

        Returns None unless at least three channels are present; a fourth
        (white) channel is ignored.
        """
        if len(values) < 3:
            return None
        return cls(r=values[0], g=values[1], b=values[2])


class UpdateSource(StrEnum):
    """Origin of an incoming device update."""

    PUSH = "push"
    POLL = "poll"
    DISCOVERY = "discovery"
    COMMAND = "command"

    @property
    def is_passive(self) -> bool:
        """Return True for updates not triggered by our own command."""
        return self is not UpdateSource.COMMAND


def _as_int(value: Any, default: int | None = None) -> int | None:
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _parse_color(value: Any) -> tuple[int, ...]:
    """Decode one segment color slot.

    WLED reports channel arrays but also accepts hex strings (``"FF0000"``,
    ``"FF000080"`` with white), bare or wrapped in a one-element array.
    Unreadable slots decode to an empty tuple so slot positions are kept.
    """
    if isinstance(value, (list, tuple)) and len(value) == 1 and isinstance(value[0], str):
        value = value[0]
    if isinstance(value, str):
        hex_value = value.removeprefix("#")
        if len(hex_value) not in (6, 8):
            return ()
        try:
            return tuple(bytes.fromhex(hex_value))
        except ValueError:
            return ()
    if not isinstance(value, (list, tuple)):
        return ()
    channels = tuple(_as_int(channel) for channel in value)
    if None in channels:
        return ()
    return channels


@dataclass(frozen=True)
class SegmentState:
    """State of a single WLED segment."""

    segment_id: int
    colors: tuple[tuple[int, ...], ...] = ()
    cct: int | None = None
    effect_id: int | None = None
    palette_id: int | None = None
    on: bool | None = None
    brightness: int | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any], index: int = 0) -> SegmentState:
        """Create from a WLED segment object."""
        col = data.get("col")
        colors = tuple(_parse_color(color) for color in col) if isinstance(col, list) else ()
        return cls(
            segment_id=_as_int(data.get("id"), index),
            colors=colors,
            cct=_as_int(data.get("cct")),
            effect_id=data.get("fx"),
            palette_id=data.get("pal"),
            on=data.get("on"),
            brightness=data.get("bri"),
        )

    @property
    def primary_rgb(self) -> RGBColor | None:
        """Primary color, only when the device returned an RGB triple."""
        if not self.colors:
            return None
        return RGBColor.from_list(self.colors[0])

    @property
    def cct_normalized(self) -> float | None:
        """Segment CCT mapped onto 0.0 (warm) - 1.0 (cool)."""
        if self.cct is None:
            return None
        return normalize_cct(self.cct)


@dataclass(frozen=True)
class StateSnapshot:
    """Snapshot of the WLED ``state`` object."""

    on: bool | None = None
    brightness: int | None = None
    segments: tuple[SegmentState, ...] = ()
    preset_id: int | None = None
    transition: int | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> StateSnapshot:
        """Create from the JSON returned by /json/state."""
        segments = tuple(
            SegmentState.from_json(seg, index)
            for index, seg in enumerate(data.get("seg", []))
            if isinstance(seg, dict)
        )
        on = data.get("on")
        return cls(
            on=bool(on) if on is not None else None,
            brightness=_as_int(data.get("bri")),
            segments=segments,
            preset_id=data.get("ps"),
            transition=data.get("transition"),
        )

    def segment(self, segment_id: int = 0) -> SegmentState | None:
        """Return the segment with the given id, if reported."""
        for seg in self.segments:
            if seg.segment_id == segment_id:
                return seg
        return None


@dataclass(frozen=True)
class InfoSnapshot:
    """Snapshot of the WLED ``info`` object."""

    name: str | None = None
    mac: str | None = None
    version: str | None = None
    led_count: int = 0
    segment_flags: tuple[int, ...] = ()
    product: str | None = None
    ip_address: str | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> InfoSnapshot:
        """Create from the JSON returned by /json/info."""
        leds = data.get("leds")
        if not isinstance(leds, dict):
            leds = {}
        flags = leds.get("seglc")
        if not isinstance(flags, list):
            flags = []
        return cls(
            name=data.get("name"),
            mac=data.get("mac"),
            version=data.get("ver"),
            led_count=_as_int(leds.get("count"), 0),
            segment_flags=tuple(flag for flag in map(_as_int, flags) if flag is not None),
            product=data.get("product"),
            ip_address=data.get("ip"),
        )

    @property
    def device_id(self) -> str | None:
        """Stable identifier derived from the MAC address."""
        if not self.mac:
            return None
        return self.mac.replace(":", "").lower()


@dataclass(frozen=True)
class PushEvent:
    """A candidate update for one device, from any source."""

    device_id: str
    state: StateSnapshot | None = None
    info: InfoSnapshot | None = None
    timestamp: datetime | None = None
    source: UpdateSource = UpdateSource.PUSH
    host: str | None = None


def normalize_cct(value: int) -> float:
    """Normalize a WLED cct value (0-255 or Kelvin) to 0.0-1.0."""
    if value >= CCT_KELVIN_MIN:
        span = CCT_KELVIN_MAX - CCT_KELVIN_MIN
        return max(0.0, min(1.0, (value - CCT_KELVIN_MIN) / span))
    return max(0.0, min(1.0, value / 255))


def temperature_to_cct(temperature: float) -> int:
    """Convert a normalized temperature to the 0-255 WLED cct scale."""
    return round(max(0.0, min(1.0, temperature)) * 255)


def kelvin_from_temperature(temperature: float) -> int:
    """Convert a normalized temperature to Kelvin in the display range."""
    temperature = max(0.0, min(1.0, temperature))
    span = TEMPERATURE_KELVIN_COOL - TEMPERATURE_KELVIN_WARM
    return round(TEMPERATURE_KELVIN_WARM + temperature * span)


def temperature_from_kelvin(kelvin: int) -> float:
    """Convert Kelvin in the display range to a normalized temperature."""
    span = TEMPERATURE_KELVIN_COOL - TEMPERATURE_KELVIN_WARM
    return max(0.0, min(1.0, (kelvin - TEMPERATURE_KELVIN_WARM) / span))


def temperature_to_rgb(temperature: float) -> RGBColor:
    """Approximate the display RGB of a normalized color temperature.

    Uses the Tanner Helland black-body approximation over the display
    range (2700 K warm to 6500 K cool).
    """
    kelvin = kelvin_from_temperature(temperature) / 100

    if kelvin <= 66:
        red = 255.0
        green = 99.4708025861 * math.log(kelvin) - 161.1195681661
    else:
        red = 329.698727446 * math.pow(kelvin - 60, -0.1332047592)
        green = 288.1221695283 * math.pow(kelvin - 60, -0.0755148492)

    if kelvin >= 66:
        blue = 255.0
    elif kelvin <= 19:
        blue = 0.0
    else:
        blue = 138.5177312231 * math.log(kelvin - 10) - 305.0447927307

    return RGBColor(r=round(red), g=round(green), b=round(blue))
