"""Segment capability models.

WLED reports one light-capability bitfield per segment in
``info.leds.seglc``.
"""

from __future__ import annotations

from dataclasses import dataclass

SEGMENT_FLAG_RGB = 0x01
SEGMENT_FLAG_WHITE = 0x02
SEGMENT_FLAG_CCT = 0x04


@dataclass(frozen=True)
class Capabilities:
    """Feature flags of one segment, plus the device segment count."""

    raw_flags: int = SEGMENT_FLAG_RGB
    segment_count: int = 1

    def __post_init__(self) -> None:
        """Segment count is always at least one."""
        object.__setattr__(self, "segment_count", max(1, self.segment_count))

    @property
    def supports_rgb(self) -> bool:
        return bool(self.raw_flags & SEGMENT_FLAG_RGB)

    @property
    def supports_white(self) -> bool:
        return bool(self.raw_flags & SEGMENT_FLAG_WHITE)

    @property
    def supports_cct(self) -> bool:
        return bool(self.raw_flags & SEGMENT_FLAG_CCT)

    @property
    def description(self) -> str:
        """Short human-readable summary, e.g. ``RGB + White + CCT``."""
        parts = []
        if self.supports_rgb:
            parts.append("RGB")
        if self.supports_white:
            parts.append("White")
        if self.supports_cct:
            parts.append("CCT")
        return " + ".join(parts) if parts else "On/Off"


@dataclass(frozen=True)
class DeviceCapabilities:
    """Capabilities of every segment of a device."""

    segments: tuple[Capabilities, ...]

    @classmethod
    def from_segment_flags(cls, flags: list[int] | tuple[int, ...] | None) -> DeviceCapabilities:
        """Parse the ``seglc`` array.

        A missing or empty array falls back to a single RGB segment.
        """
        if not flags:
            return cls.rgb_only()
        count = len(flags)
        return cls(
            segments=tuple(
                Capabilities(raw_flags=int(flag), segment_count=count)
                for flag in flags
            )
        )

    @classmethod
    def rgb_only(cls) -> DeviceCapabilities:
        """Safe default used until detection completes."""
        return cls(segments=(Capabilities(),))

    @property
    def segment_count(self) -> int:
        return max(1, len(self.segments))

    @property
    def supports_cct(self) -> bool:
        """True if any segment supports color temperature."""
        return any(seg.supports_cct for seg in self.segments)

    @property
    def supports_rgb(self) -> bool:
        """True if any segment supports RGB."""
        return any(seg.supports_rgb for seg in self.segments)

    def segment(self, segment_id: int) -> Capabilities | None:
        """Capabilities of one segment, None if out of range."""
        if 0 <= segment_id < len(self.segments):
            return self.segments[segment_id]
        return None
