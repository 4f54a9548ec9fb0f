"""WLED Sync models."""
from __future__ import annotations

from .capability import Capabilities, DeviceCapabilities
from .commands import (
    BrightnessCommand,
    CCTCommand,
    ColorCommand,
    CommandTarget,
    CommandValidationError,
    DeviceCommand,
    EffectCommand,
    PowerCommand,
    PresetCommand,
    RenameCommand,
    SavePresetCommand,
)
from .config import SyncSettings, WLEDConfigEntry, WLEDRuntimeData
from .device import WLEDDevice
from .gradient import Gradient, GradientStop
from .preset import Preset
from .scene import Scene
from .state import (
    InfoSnapshot,
    PushEvent,
    RGBColor,
    SegmentState,
    StateSnapshot,
    UpdateSource,
)

__all__ = [
    "BrightnessCommand",
    "Capabilities",
    "CCTCommand",
    "ColorCommand",
    "CommandTarget",
    "CommandValidationError",
    "DeviceCapabilities",
    "DeviceCommand",
    "EffectCommand",
    "Gradient",
    "GradientStop",
    "InfoSnapshot",
    "PowerCommand",
    "Preset",
    "PresetCommand",
    "PushEvent",
    "RenameCommand",
    "RGBColor",
    "SavePresetCommand",
    "Scene",
    "SegmentState",
    "StateSnapshot",
    "SyncSettings",
    "UpdateSource",
    "WLEDConfigEntry",
    "WLEDDevice",
    "WLEDRuntimeData",
]
