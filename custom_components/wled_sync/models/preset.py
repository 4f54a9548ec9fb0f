from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Preset:
    preset_id: int
    name: str
    quick_label: str | None = None

    @classmethod
    def from_api(cls, preset_id: int, data: dict[str, Any]) -> Preset:
        return cls(
            preset_id=preset_id,
            name=data.get("n") or f"Preset {preset_id}",
            quick_label=data.get("ql"),
        )


def parse_presets(data: dict[str, Any]) -> list[Preset]:
    """Parse /presets.json, skipping the reserved slot 0 and empty slots."""
    presets: list[Preset] = []
    for key, value in data.items():
        try:
            preset_id = int(key)
        except (TypeError, ValueError):
            continue
        if preset_id == 0 or not isinstance(value, dict) or not value:
            continue
        presets.append(Preset.from_api(preset_id, value))
    return sorted(presets, key=lambda preset: preset.preset_id)
