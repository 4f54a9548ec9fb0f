"""Per-device capability cache."""

from __future__ import annotations

import logging
import threading

from ..models.capability import Capabilities, DeviceCapabilities

_LOGGER = logging.getLogger(__name__)


class CapabilityCache:
    """Caches parsed segment capabilities per device.

    Populated asynchronously from device metadata and read synchronously.
    Entries are either fully present or absent.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cache: dict[str, DeviceCapabilities] = {}

    def detect(self, device_id: str, segment_flags: list[int] | tuple[int, ...] | None) -> DeviceCapabilities:
        """Parse the segment capability bitfield and cache the result.

        Idempotent; the last result wins.
        """
        capabilities = DeviceCapabilities.from_segment_flags(segment_flags)
        with self._lock:
            previous = self._cache.get(device_id)
            self._cache[device_id] = capabilities
        if previous != capabilities:
            _LOGGER.debug(
                "Capabilities for %s: %s",
                device_id,
                ", ".join(seg.description for seg in capabilities.segments),
            )
        return capabilities

    def get(self, device_id: str, segment_id: int = 0) -> Capabilities | None:
        """Capabilities of one segment, None until detected."""
        with self._lock:
            capabilities = self._cache.get(device_id)
        if capabilities is None:
            return None
        return capabilities.segment(segment_id)

    def device(self, device_id: str) -> DeviceCapabilities | None:
        """Capabilities of every segment, None until detected."""
        with self._lock:
            return self._cache.get(device_id)

    def get_or_default(self, device_id: str) -> DeviceCapabilities:
        """Detected capabilities, or a single RGB segment."""
        return self.device(device_id) or DeviceCapabilities.rgb_only()

    def segment_count(self, device_id: str) -> int:
        return self.get_or_default(device_id).segment_count

    def supports_cct(self, device_id: str, segment_id: int = 0) -> bool:
        capabilities = self.get(device_id, segment_id)
        return capabilities is not None and capabilities.supports_cct

    def remove(self, device_id: str) -> None:
        with self._lock:
            self._cache.pop(device_id, None)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
