"""Scene models.

A scene is a locally stored look for one device: brightness plus either a
static gradient, an A/B gradient transition or an effect.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .gradient import Gradient


@dataclass(frozen=True)
class Scene:
    """A saved look for a device."""

    name: str
    device_id: str
    brightness: int
    primary: Gradient
    scene_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime | None = None

    # A/B transition
    transition_enabled: bool = False
    secondary: Gradient | None = None
    duration: float | None = None
    a_brightness: int | None = None
    b_brightness: int | None = None

    # Effect
    effects_enabled: bool = False
    effect_id: int | None = None
    palette_id: int | None = None
    speed: int | None = None
    intensity: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "brightness", max(0, min(255, int(self.brightness))))

    @property
    def has_transition(self) -> bool:
        return (
            self.transition_enabled
            and self.secondary is not None
            and self.duration is not None
        )

    def to_storage(self) -> dict[str, Any]:
        return {
            "scene_id": self.scene_id,
            "name": self.name,
            "device_id": self.device_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "brightness": self.brightness,
            "primary": self.primary.to_storage(),
            "transition_enabled": self.transition_enabled,
            "secondary": self.secondary.to_storage() if self.secondary else None,
            "duration": self.duration,
            "a_brightness": self.a_brightness,
            "b_brightness": self.b_brightness,
            "effects_enabled": self.effects_enabled,
            "effect_id": self.effect_id,
            "palette_id": self.palette_id,
            "speed": self.speed,
            "intensity": self.intensity,
        }

    @classmethod
    def from_storage(cls, data: dict[str, Any]) -> Scene:
        created_at = data.get("created_at")
        secondary = data.get("secondary")
        return cls(
            scene_id=data["scene_id"],
            name=data["name"],
            device_id=data["device_id"],
            created_at=datetime.fromisoformat(created_at) if created_at else None,
            brightness=data["brightness"],
            primary=Gradient.from_storage(data["primary"]),
            transition_enabled=data.get("transition_enabled", False),
            secondary=Gradient.from_storage(secondary) if secondary else None,
            duration=data.get("duration"),
            a_brightness=data.get("a_brightness"),
            b_brightness=data.get("b_brightness"),
            effects_enabled=data.get("effects_enabled", False),
            effect_id=data.get("effect_id"),
            palette_id=data.get("palette_id"),
            speed=data.get("speed"),
            intensity=data.get("intensity"),
        )
