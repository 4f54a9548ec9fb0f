"""Canonical device registry.

The single source of truth for every device snapshot. All mutations go
through the reconciliation path or the command dispatcher; observers are
notified after each atomic replacement.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from datetime import datetime

from ..models.device import WLEDDevice
from ..protocols.state import IStateObserver

_LOGGER = logging.getLogger(__name__)


class DeviceRegistry:
    """Canonical map of device id to device snapshot.

    A single lock serializes every read-modify-write; sections holding it
    never perform I/O. Observers are called after the lock is released.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._devices: dict[str, WLEDDevice] = {}
        self._observers: list[IStateObserver] = []

    def __contains__(self, device_id: object) -> bool:
        with self._lock:
            return device_id in self._devices

    def __len__(self) -> int:
        with self._lock:
            return len(self._devices)

    def get(self, device_id: str) -> WLEDDevice | None:
        with self._lock:
            return self._devices.get(device_id)

    @property
    def devices(self) -> dict[str, WLEDDevice]:
        """Copy of the canonical map."""
        with self._lock:
            return dict(self._devices)

    def register_observer(self, observer: IStateObserver) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def unregister_observer(self, observer: IStateObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def put(self, device: WLEDDevice, notify: bool = True) -> None:
        """Replace (or add) one device."""
        with self._lock:
            self._devices[device.device_id] = device
        if notify:
            self._notify([device])

    def put_many(self, devices: Iterable[WLEDDevice]) -> list[WLEDDevice]:
        """Replace several devices atomically with a single notification."""
        applied = list(devices)
        if not applied:
            return applied
        with self._lock:
            for device in applied:
                self._devices[device.device_id] = device
        self._notify(applied)
        return applied

    def update(
        self,
        device_id: str,
        mutate: Callable[[WLEDDevice], WLEDDevice],
        notify: bool = True,
    ) -> WLEDDevice | None:
        """Atomically replace a device with ``mutate(current)``.

        Returns:
            The new snapshot, or None if the device is unknown.
        """
        with self._lock:
            current = self._devices.get(device_id)
            if current is None:
                return None
            updated = mutate(current)
            self._devices[device_id] = updated
        if notify and updated != current:
            self._notify([updated])
        return updated

    def touch(self, device_id: str, seen_at: datetime) -> WLEDDevice | None:
        """Advance ``last_seen`` without notifying observers."""
        with self._lock:
            current = self._devices.get(device_id)
            if current is None:
                return None
            if current.last_seen is not None and current.last_seen >= seen_at:
                return current
            updated = current.with_changes(last_seen=seen_at)
            self._devices[device_id] = updated
            return updated

    def remove(self, device_id: str) -> WLEDDevice | None:
        with self._lock:
            return self._devices.pop(device_id, None)

    def _notify(self, devices: list[WLEDDevice]) -> None:
        for observer in list(self._observers):
            observer.on_devices_changed(devices)
