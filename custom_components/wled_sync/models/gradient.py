"""Gradient models for per-LED color output.

A gradient is a list of color stops across the strip. Sampling produces
one hex color per LED, the frame format WLED accepts in a segment's
``i`` array.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .state import RGBColor

# Gamma applied when sampling frames for the strip
DEFAULT_GAMMA = 2.2

# LED count assumed when a device never reported one
DEFAULT_LED_COUNT = 120


@dataclass(frozen=True)
class GradientStop:
    """A color at a position between 0.0 (first LED) and 1.0 (last LED)."""

    position: float
    color: RGBColor

    def __post_init__(self) -> None:
        object.__setattr__(self, "position", max(0.0, min(1.0, float(self.position))))

    def to_storage(self) -> dict[str, Any]:
        return {"position": self.position, "color": self.color.as_hex}

    @classmethod
    def from_storage(cls, data: dict[str, Any]) -> GradientStop:
        return cls(position=data["position"], color=RGBColor.from_hex(data["color"]))


def _lerp(a: RGBColor, b: RGBColor, t: float) -> RGBColor:
    return RGBColor(
        round(a.r + (b.r - a.r) * t),
        round(a.g + (b.g - a.g) * t),
        round(a.b + (b.b - a.b) * t),
    )


def _gamma(color: RGBColor, gamma: float) -> RGBColor:
    exponent = 1.0 / max(0.0001, gamma)
    return RGBColor(
        *(round(255 * (channel / 255) ** exponent) for channel in color.as_tuple)
    )


def ease_in_out_cubic(t: float) -> float:
    """Cubic ease used to pace A/B transitions."""
    t = max(0.0, min(1.0, t))
    if t < 0.5:
        return 4 * t * t * t
    return 1 - (-2 * t + 2) ** 3 / 2


@dataclass(frozen=True)
class Gradient:
    """Color stops across a strip, kept sorted by position."""

    stops: tuple[GradientStop, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "stops", tuple(sorted(self.stops, key=lambda stop: stop.position))
        )

    @classmethod
    def from_colors(cls, *colors: RGBColor) -> Gradient:
        """Spread colors evenly across the strip."""
        if len(colors) == 1:
            return cls((GradientStop(0.0, colors[0]),))
        last = max(1, len(colors) - 1)
        return cls(tuple(GradientStop(index / last, color) for index, color in enumerate(colors)))

    @property
    def first_color(self) -> RGBColor | None:
        return self.stops[0].color if self.stops else None

    def color_at(self, position: float) -> RGBColor:
        """Interpolated color at a position on the strip."""
        if not self.stops:
            return RGBColor(255, 255, 255)
        position = max(0.0, min(1.0, position))
        first, last = self.stops[0], self.stops[-1]
        if position <= first.position:
            return first.color
        if position >= last.position:
            return last.color
        for left, right in zip(self.stops, self.stops[1:]):
            if left.position <= position <= right.position:
                span = max(0.000001, right.position - left.position)
                return _lerp(left.color, right.color, (position - left.position) / span)
        return last.color

    def sample(self, led_count: int, gamma: float = DEFAULT_GAMMA) -> list[str]:
        """One gamma-corrected hex color per LED."""
        if led_count <= 0:
            return []
        if len(self.stops) < 2:
            color = self.first_color or RGBColor(0, 0, 0)
            return [color.as_hex] * led_count

        last = max(led_count - 1, 1)
        return [
            _gamma(self.color_at(index / last), gamma).as_hex
            for index in range(led_count)
        ]

    def blend(self, other: Gradient, t: float) -> Gradient:
        """Mix toward ``other``; 0.0 is this gradient, 1.0 is ``other``.

        Both gradients are resampled on evenly spaced positions so that
        gradients with different stop counts can be mixed.
        """
        t = max(0.0, min(1.0, t))
        count = max(len(self.stops), len(other.stops), 2)
        positions = [index / (count - 1) for index in range(count)]
        return Gradient(
            tuple(
                GradientStop(position, _lerp(self.color_at(position), other.color_at(position), t))
                for position in positions
            )
        )

    def to_storage(self) -> list[dict[str, Any]]:
        return [stop.to_storage() for stop in self.stops]

    @classmethod
    def from_storage(cls, data: list[dict[str, Any]]) -> Gradient:
        return cls(tuple(GradientStop.from_storage(stop) for stop in data))
