"""Update coalescing.

Device pushes can arrive several times a second. Accepted snapshots are
parked here and applied in one batch per window, latest value winning.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from ..const import BATCH_INTERVAL
from ..models.device import WLEDDevice

_LOGGER = logging.getLogger(__name__)


def _onto_current(current: WLEDDevice, snapshot: WLEDDevice) -> WLEDDevice:
    """Carry local-only fields and the newest contact time onto a parked snapshot.

    The snapshot was built from canonical state when it was parked; a location
    edit or a ``touch`` since then must survive the flush.
    """
    last_seen = snapshot.last_seen
    if current.last_seen is not None and (last_seen is None or current.last_seen > last_seen):
        last_seen = current.last_seen
    if last_seen == snapshot.last_seen and current.location == snapshot.location:
        return snapshot
    return snapshot.with_changes(location=current.location, last_seen=last_seen)


class UpdateCoalescer:
    """Batches accepted device snapshots into periodic flushes.

    Args:
        current: Returns the canonical snapshot of a device.
        apply: Applies a list of snapshots atomically.
        interval: Batch window in seconds.
    """

    def __init__(
        self,
        current: Callable[[str], WLEDDevice | None],
        apply: Callable[[list[WLEDDevice]], object],
        interval: float = BATCH_INTERVAL,
    ) -> None:
        self._current = current
        self._apply = apply
        self.interval = interval
        self._pending: dict[str, WLEDDevice] = {}
        self._timer: asyncio.TimerHandle | None = None

    @property
    def has_pending(self) -> bool:
        return bool(self._pending)

    @property
    def timer_active(self) -> bool:
        return self._timer is not None

    def pending(self, device_id: str) -> WLEDDevice | None:
        """Latest not-yet-applied snapshot for a device."""
        return self._pending.get(device_id)

    def schedule(self, device_id: str, snapshot: WLEDDevice) -> None:
        """Park the latest snapshot and start the batch timer if idle."""
        self._pending[device_id] = snapshot
        if self._timer is None:
            loop = asyncio.get_running_loop()
            self._timer = loop.call_later(self.interval, self._on_timer)

    def replace_pending(self, device_id: str, mutate: Callable[[WLEDDevice], WLEDDevice]) -> None:
        """Rewrite a parked snapshot in place, if there is one."""
        snapshot = self._pending.get(device_id)
        if snapshot is not None:
            self._pending[device_id] = mutate(snapshot)

    def discard(self, device_id: str) -> None:
        self._pending.pop(device_id, None)

    def flush(self) -> list[WLEDDevice]:
        """Apply every parked snapshot that differs from canonical.

        Returns:
            The snapshots that were applied.
        """
        self._cancel_timer()
        pending, self._pending = self._pending, {}

        changed: list[WLEDDevice] = []
        for device_id, snapshot in pending.items():
            current = self._current(device_id)
            if current is None:
                continue
            snapshot = _onto_current(current, snapshot)
            if current.same_observable_state(snapshot):
                continue
            changed.append(snapshot)

        if changed:
            _LOGGER.debug(
                "Applying %d of %d coalesced updates", len(changed), len(pending)
            )
            self._apply(changed)
        return changed

    def cancel(self) -> None:
        """Drop parked snapshots and stop the timer."""
        self._cancel_timer()
        self._pending.clear()

    def _on_timer(self) -> None:
        self._timer = None
        self.flush()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
