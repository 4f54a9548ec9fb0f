"""Command pattern models for device control.

Each command encapsulates a single control action, knows how to serialize
itself for the WLED JSON API and which device capabilities it needs.
Targets describe the canonical fields a command is expected to change.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, fields, replace
from typing import Any

from .capability import DeviceCapabilities
from .device import WLEDDevice
from .state import CCT_KELVIN_MIN, RGBColor

ENDPOINT_STATE = "state"
ENDPOINT_CONFIG = "cfg"

PRESET_ID_MIN = 1
PRESET_ID_MAX = 250


class CommandValidationError(ValueError):
    """Command cannot run on the target device, or carries invalid values."""


@dataclass(frozen=True)
class CommandTarget:
    """Values a command asks for; ``None`` means the field is not covered."""

    is_on: bool | None = None
    brightness: int | None = None
    color: RGBColor | None = None
    temperature: float | None = None
    name: str | None = None

    @property
    def fields(self) -> frozenset[str]:
        """Names of the device fields this target covers."""
        return frozenset(f.name for f in fields(self) if getattr(self, f.name) is not None)

    def apply_to(self, device: WLEDDevice) -> WLEDDevice:
        """Return the device with the covered fields set to the target."""
        changes = {name: getattr(self, name) for name in self.fields}
        return replace(device, **changes) if changes else device

    def revert(self, device: WLEDDevice, prior: WLEDDevice) -> WLEDDevice:
        """Restore the covered fields of ``device`` from ``prior``."""
        changes = {name: getattr(prior, name) for name in self.fields}
        return replace(device, **changes) if changes else device

    def matches(self, device: WLEDDevice) -> bool:
        """True if the device already shows every covered value."""
        return all(getattr(device, name) == getattr(self, name) for name in self.fields)


@dataclass(frozen=True)
class DeviceCommand(ABC):
    """Base class for device commands.

    Commands are immutable value objects that know how to serialize
    themselves for the WLED JSON API.
    """

    @property
    def endpoint(self) -> str:
        """JSON API object the payload is posted to."""
        return ENDPOINT_STATE

    @property
    def mirrorable(self) -> bool:
        """Whether the payload may also be sent over the WebSocket."""
        return self.endpoint == ENDPOINT_STATE

    @abstractmethod
    def to_payload(self) -> dict[str, Any]:
        """Convert to a WLED JSON API payload."""
        ...

    def validate(self, capabilities: DeviceCapabilities | None = None) -> None:
        """Check the command can run on a device with these capabilities.

        Raises:
            CommandValidationError: The device cannot perform the command.
        """


@dataclass(frozen=True)
class _SegmentCommand(DeviceCommand):
    """Command addressed to a single segment."""

    segment_id: int = 0

    def validate(self, capabilities: DeviceCapabilities | None = None) -> None:
        if self.segment_id < 0:
            raise CommandValidationError(f"Invalid segment {self.segment_id}")
        if capabilities is None:
            return
        if self.segment_id >= capabilities.segment_count:
            raise CommandValidationError(
                f"Segment {self.segment_id} does not exist "
                f"(device has {capabilities.segment_count})"
            )


@dataclass(frozen=True)
class PowerCommand(DeviceCommand):
    """Command to turn device on or off."""

    power_on: bool = True

    def to_payload(self) -> dict[str, Any]:
        return {"on": self.power_on}


@dataclass(frozen=True)
class BrightnessCommand(DeviceCommand):
    """Command to set master brightness (0-255)."""

    brightness: int = 255

    def to_payload(self) -> dict[str, Any]:
        return {"bri": max(0, min(255, self.brightness))}


@dataclass(frozen=True)
class ColorCommand(_SegmentCommand):
    """Command to set the primary RGB(W) color of a segment."""

    color: RGBColor = RGBColor(255, 255, 255)
    white: int | None = None

    def to_payload(self) -> dict[str, Any]:
        col = self.color.as_list
        if self.white is not None:
            col.append(max(0, min(255, self.white)))
        return {"seg": [{"id": self.segment_id, "col": [col]}]}

    def validate(self, capabilities: DeviceCapabilities | None = None) -> None:
        super().validate(capabilities)
        if capabilities is None:
            return
        segment = capabilities.segment(self.segment_id)
        if segment is not None and not segment.supports_rgb:
            raise CommandValidationError(
                f"Segment {self.segment_id} does not support RGB color"
            )
        if self.white is not None and segment is not None and not segment.supports_white:
            raise CommandValidationError(
                f"Segment {self.segment_id} has no white channel"
            )


@dataclass(frozen=True)
class CCTCommand(_SegmentCommand):
    """Command to set segment color temperature.

    ``cct`` is either 0-255 (warm to cool) or an absolute Kelvin value
    of at least 1000.
    """

    cct: int = 127

    def to_payload(self) -> dict[str, Any]:
        return {"seg": [{"id": self.segment_id, "cct": self.cct}]}

    def validate(self, capabilities: DeviceCapabilities | None = None) -> None:
        if 255 < self.cct < CCT_KELVIN_MIN or self.cct < 0:
            raise CommandValidationError(
                f"Invalid CCT value {self.cct}: use 0-255 or Kelvin >= {CCT_KELVIN_MIN}"
            )
        super().validate(capabilities)
        if capabilities is None:
            return
        segment = capabilities.segment(self.segment_id)
        if segment is None or not segment.supports_cct:
            raise CommandValidationError(
                f"Segment {self.segment_id} does not support color temperature"
            )


@dataclass(frozen=True)
class EffectCommand(_SegmentCommand):
    """Command to run an effect on a segment."""

    effect_id: int = 0
    speed: int | None = None
    intensity: int | None = None
    palette_id: int | None = None

    def to_payload(self) -> dict[str, Any]:
        segment: dict[str, Any] = {"id": self.segment_id, "fx": self.effect_id}
        if self.speed is not None:
            segment["sx"] = self.speed
        if self.intensity is not None:
            segment["ix"] = self.intensity
        if self.palette_id is not None:
            segment["pal"] = self.palette_id
        return {"seg": [segment]}


@dataclass(frozen=True)
class PresetCommand(DeviceCommand):
    """Command to apply a stored preset."""

    preset_id: int = PRESET_ID_MIN
    transition: int | None = None  # tenths of a second

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"ps": self.preset_id}
        if self.transition is not None:
            payload["transition"] = self.transition
        return payload

    def validate(self, capabilities: DeviceCapabilities | None = None) -> None:
        _validate_preset_id(self.preset_id)


@dataclass(frozen=True)
class SavePresetCommand(DeviceCommand):
    """Command to store the current state as a preset."""

    preset_id: int = PRESET_ID_MIN
    name: str = ""

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"psave": self.preset_id}
        if self.name:
            payload["n"] = self.name
        return payload

    @property
    def mirrorable(self) -> bool:
        return False

    def validate(self, capabilities: DeviceCapabilities | None = None) -> None:
        _validate_preset_id(self.preset_id)


@dataclass(frozen=True)
class RenameCommand(DeviceCommand):
    """Command to change the device's configured name."""

    name: str = ""

    @property
    def endpoint(self) -> str:
        return ENDPOINT_CONFIG

    def to_payload(self) -> dict[str, Any]:
        return {"id": {"name": self.name}}

    def validate(self, capabilities: DeviceCapabilities | None = None) -> None:
        if not self.name.strip():
            raise CommandValidationError("Device name cannot be empty")


def _validate_preset_id(preset_id: int) -> None:
    if not PRESET_ID_MIN <= preset_id <= PRESET_ID_MAX:
        raise CommandValidationError(
            f"Preset id {preset_id} out of range {PRESET_ID_MIN}-{PRESET_ID_MAX}"
        )
