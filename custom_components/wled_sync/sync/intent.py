"""User intent tracking.

Records when the user last touched a device and what they asked for, so
passive updates that would override that intent can be suppressed.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from ..const import PROTECTION_WINDOW, RENAME_PROTECTION_WINDOW
from ..models.commands import CommandTarget

_LOGGER = logging.getLogger(__name__)


@dataclass
class IntentRecord:
    """Ephemeral per-device intent."""

    last_interaction: float | None = None
    pending_target: CommandTarget | None = None
    generation: int = 0


@dataclass(frozen=True)
class RenameIntent:
    """A requested name change awaiting confirmation from the device."""

    name: str
    issued_at: float
    window: float

    @property
    def expires_at(self) -> float:
        return self.issued_at + self.window

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class IntentTracker:
    """Per-device user intent bookkeeping.

    All methods are safe to call from any update source; a single lock
    serializes access. Times come from ``clock`` (monotonic seconds).
    """

    def __init__(
        self,
        protection_window: float = PROTECTION_WINDOW,
        rename_window: float = RENAME_PROTECTION_WINDOW,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the tracker."""
        self.protection_window = protection_window
        self.rename_window = rename_window
        self._clock = clock
        self._lock = threading.Lock()
        self._records: dict[str, IntentRecord] = {}
        self._renames: dict[str, RenameIntent] = {}
        self._generation = 0

    def now(self) -> float:
        return self._clock()

    # === User interaction ===

    def mark_interaction(self, device_id: str) -> None:
        """Record that the user touched the device now."""
        with self._lock:
            record = self._records.setdefault(device_id, IntentRecord())
            record.last_interaction = self._clock()

    def clear_interaction(self, device_id: str) -> None:
        with self._lock:
            record = self._records.get(device_id)
            if record is None:
                return
            record.last_interaction = None
            self._purge(device_id, record)

    def is_under_user_control(self, device_id: str) -> bool:
        """True while the protection window since the last interaction is open."""
        with self._lock:
            record = self._records.get(device_id)
            if record is None or record.last_interaction is None:
                return False
            if self._clock() - record.last_interaction < self.protection_window:
                return True
            record.last_interaction = None
            self._purge(device_id, record)
            return False

    # === Pending command target ===

    def set_pending_target(self, device_id: str, target: CommandTarget) -> int:
        """Register the value a command is waiting to have confirmed.

        Returns:
            The generation of the new pending target. Any previously pending
            target for the device is superseded.
        """
        with self._lock:
            self._generation += 1
            record = self._records.setdefault(device_id, IntentRecord())
            record.pending_target = target
            record.generation = self._generation
            return self._generation

    def clear_pending_target(self, device_id: str, generation: int | None = None) -> bool:
        """Clear the pending target.

        With ``generation``, only clears if that generation is still live.

        Returns:
            True if a pending target was cleared.
        """
        with self._lock:
            record = self._records.get(device_id)
            if record is None or record.pending_target is None:
                return False
            if generation is not None and record.generation != generation:
                return False
            record.pending_target = None
            self._purge(device_id, record)
            return True

    def pending_target(self, device_id: str) -> CommandTarget | None:
        with self._lock:
            record = self._records.get(device_id)
            return record.pending_target if record else None

    def pending_generation(self, device_id: str) -> int | None:
        """Generation of the live pending target, if any."""
        with self._lock:
            record = self._records.get(device_id)
            if record is None or record.pending_target is None:
                return None
            return record.generation

    def is_pending_match(
        self,
        device_id: str,
        candidate: CommandTarget,
        generation: int | None = None,
    ) -> bool:
        """Check whether ``candidate`` is the live pending target.

        A response belonging to a superseded command carries an older
        generation and does not match.
        """
        with self._lock:
            record = self._records.get(device_id)
            if record is None or record.pending_target is None:
                return False
            if generation is not None and generation != record.generation:
                return False
            return record.pending_target == candidate

    # === Rename ===

    def begin_rename(self, device_id: str, name: str) -> RenameIntent:
        with self._lock:
            intent = RenameIntent(name=name, issued_at=self._clock(), window=self.rename_window)
            self._renames[device_id] = intent
            return intent

    def rename_intent(self, device_id: str) -> RenameIntent | None:
        with self._lock:
            return self._renames.get(device_id)

    def clear_rename(self, device_id: str) -> None:
        with self._lock:
            self._renames.pop(device_id, None)

    # === Housekeeping ===

    def forget(self, device_id: str) -> None:
        """Drop all intent for a removed device."""
        with self._lock:
            self._records.pop(device_id, None)
            self._renames.pop(device_id, None)

    def _purge(self, device_id: str, record: IntentRecord) -> None:
        """Drop an empty record. Caller holds the lock."""
        if record.last_interaction is None and record.pending_target is None:
            self._records.pop(device_id, None)
