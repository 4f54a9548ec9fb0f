"""Reconciliation core.

Decides, for every incoming update regardless of its source, whether to
apply it, suppress it or merge part of it into the canonical model.

Rules, first match wins per field:

1. Fields covered by an optimistic value or a pending command target are
   removed from passive updates.
2. While the user is interacting with the device, every controllable
   field of a passive update is removed. Our own command responses are
   exempt.
3. While a rename is pending, a reported name is accepted only if it
   matches the requested one; a mismatch is held until the rename window
   expires, after which the device name is authoritative.
4. Remaining fields are compared against the latest known snapshot with
   significance thresholds: power always counts, brightness only beyond
   the jitter threshold, color only when an RGB triple was reported and
   never while color temperature is active, temperature only on segments
   that support CCT.

Accepted changes yield a new snapshot for the coalescer. An update with no
significant change only advances ``last_seen``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from ..const import BRIGHTNESS_THRESHOLD
from ..models.device import CONTROLLABLE_FIELDS, WLEDDevice
from ..models.state import PushEvent
from .capabilities import CapabilityCache
from .intent import IntentTracker

_LOGGER = logging.getLogger(__name__)

# Precision of normalized temperatures compared between snapshots
TEMPERATURE_PRECISION = 3


class ReconcileAction(StrEnum):
    """Outcome of reconciling one update."""

    APPLY = "apply"  # significant delta, hand the snapshot to the coalescer
    TOUCH = "touch"  # liveness only
    SUPPRESS = "suppress"  # candidate fields withheld, liveness only
    IGNORE = "ignore"  # unknown device


@dataclass(frozen=True)
class Reconciliation:
    """Decision for one incoming update."""

    action: ReconcileAction
    device: WLEDDevice | None = None
    changed: frozenset[str] = frozenset()
    suppressed: frozenset[str] = frozenset()
    reason: str = ""


class Reconciler:
    """Stateless decision function over intent and capability state."""

    def __init__(
        self,
        intents: IntentTracker,
        capabilities: CapabilityCache,
        brightness_threshold: int = BRIGHTNESS_THRESHOLD,
    ) -> None:
        self._intents = intents
        self._capabilities = capabilities
        self.brightness_threshold = brightness_threshold

    def reconcile(
        self,
        current: WLEDDevice | None,
        update: PushEvent,
        *,
        protected: frozenset[str] = frozenset(),
        base: WLEDDevice | None = None,
    ) -> Reconciliation:
        """Decide what to do with an update.

        Args:
            current: Canonical snapshot of the device.
            update: The incoming update.
            protected: Fields covered by an optimistic value or pending target.
            base: Latest not-yet-applied snapshot, if one is parked.

        Returns:
            The decision; for APPLY the new snapshot, for TOUCH/SUPPRESS the
            canonical snapshot with ``last_seen`` advanced.
        """
        if current is None:
            return Reconciliation(ReconcileAction.IGNORE, reason="unknown device")

        base = base or current
        device_id = current.device_id
        candidate = self._candidate_fields(base, update)
        suppressed: set[str] = set()
        reasons: list[str] = []

        if update.source.is_passive:
            held = protected & candidate.keys()
            if held:
                suppressed |= held
                reasons.append("optimistic value pending")

            if self._intents.is_under_user_control(device_id):
                held = CONTROLLABLE_FIELDS & candidate.keys()
                if held:
                    suppressed |= held
                    reasons.append("user interaction in progress")

            for name in suppressed:
                candidate.pop(name, None)

        if "name" in candidate and not self._accept_name(device_id, candidate["name"]):
            candidate.pop("name")
            suppressed.add("name")
            reasons.append("rename pending")

        changes = self._significant_changes(base, candidate, reasons)
        seen_at = update.timestamp or current.last_seen

        if changes or not base.is_online:
            device = base.with_changes(**changes, is_online=True, last_seen=seen_at)
            changed = frozenset(changes) | ({"is_online"} if not base.is_online else set())
            _LOGGER.debug(
                "%s update for %s accepted: %s",
                update.source,
                device_id,
                sorted(changed),
            )
            return Reconciliation(
                ReconcileAction.APPLY,
                device=device,
                changed=changed,
                suppressed=frozenset(suppressed),
                reason="; ".join(reasons),
            )

        touched = current.with_changes(last_seen=seen_at) if seen_at else current
        if suppressed:
            _LOGGER.debug(
                "%s update for %s suppressed %s: %s",
                update.source,
                device_id,
                sorted(suppressed),
                "; ".join(reasons),
            )
            return Reconciliation(
                ReconcileAction.SUPPRESS,
                device=touched,
                suppressed=frozenset(suppressed),
                reason="; ".join(reasons),
            )
        return Reconciliation(ReconcileAction.TOUCH, device=touched, reason="; ".join(reasons))

    def _candidate_fields(self, base: WLEDDevice, update: PushEvent) -> dict[str, Any]:
        """Extract the device fields an update reports."""
        candidate: dict[str, Any] = {}
        state = update.state
        if state is not None:
            if state.on is not None:
                candidate["is_on"] = state.on
            if state.brightness is not None:
                candidate["brightness"] = state.brightness

            segment = state.segment(0)
            if segment is not None:
                color = segment.primary_rgb
                if color is not None:
                    candidate["color"] = color
                if (
                    segment.cct is not None
                    and self._capabilities.supports_cct(base.device_id, segment.segment_id)
                ):
                    candidate["temperature"] = round(
                        segment.cct_normalized, TEMPERATURE_PRECISION
                    )

        if update.info is not None and update.info.name:
            candidate["name"] = update.info.name
        if update.host:
            candidate["ip_address"] = update.host
        return candidate

    def _accept_name(self, device_id: str, name: str) -> bool:
        """Apply the rename rule to a reported name."""
        intent = self._intents.rename_intent(device_id)
        if intent is None:
            return True
        if name == intent.name:
            _LOGGER.debug("Rename of %s to %r confirmed", device_id, name)
            self._intents.clear_rename(device_id)
            return True
        if not intent.is_expired(self._intents.now()):
            return False
        _LOGGER.info(
            "Rename of %s to %r not confirmed; keeping device name %r",
            device_id,
            intent.name,
            name,
        )
        self._intents.clear_rename(device_id)
        return True

    def _significant_changes(
        self,
        base: WLEDDevice,
        candidate: dict[str, Any],
        reasons: list[str],
    ) -> dict[str, Any]:
        changes: dict[str, Any] = {}

        if "is_on" in candidate and candidate["is_on"] != base.is_on:
            changes["is_on"] = candidate["is_on"]

        if "brightness" in candidate:
            if abs(candidate["brightness"] - base.brightness) > self.brightness_threshold:
                changes["brightness"] = candidate["brightness"]

        temperature = base.temperature
        if "temperature" in candidate:
            temperature = candidate["temperature"]
            if temperature != base.temperature:
                changes["temperature"] = temperature

        if "color" in candidate:
            if temperature is not None and temperature > 0:
                if candidate["color"] != base.color:
                    reasons.append("color temperature active")
            elif candidate["color"] != base.color:
                changes["color"] = candidate["color"]

        for name in ("name", "ip_address"):
            if name in candidate and candidate[name] != getattr(base, name):
                changes[name] = candidate[name]

        return changes
