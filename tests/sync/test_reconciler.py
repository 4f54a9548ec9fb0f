"""Test the reconciliation core."""
from __future__ import annotations

from datetime import timedelta

import pytest

from custom_components.wled_sync.models import (
    InfoSnapshot,
    PushEvent,
    RGBColor,
    UpdateSource,
)
from custom_components.wled_sync.sync import (
    CapabilityCache,
    IntentTracker,
    ReconcileAction,
    Reconciler,
)


@pytest.fixture
def intents(clock) -> IntentTracker:
    return IntentTracker(protection_window=1.5, rename_window=8.0, clock=clock)


@pytest.fixture
def capabilities() -> CapabilityCache:
    return CapabilityCache()


@pytest.fixture
def reconciler(intents, capabilities) -> Reconciler:
    return Reconciler(intents, capabilities, brightness_threshold=15)


@pytest.fixture
def push(device, state_factory):
    """Build a push event for the default device, one second after last_seen."""

    def _push(source=UpdateSource.PUSH, info=None, host=None, **state):
        return PushEvent(
            device_id=device.device_id,
            state=state_factory(**state) if state else None,
            info=info,
            timestamp=device.last_seen + timedelta(seconds=1),
            source=source,
            host=host,
        )

    return _push


# ==============================================================================
# Basic Decisions
# ==============================================================================


class TestReconcileBasics:
    """Test decisions without user intent."""

    def test_unknown_device_ignored(self, reconciler, push):
        result = reconciler.reconcile(None, push(on=True))

        assert result.action is ReconcileAction.IGNORE
        assert result.device is None

    def test_power_change_applied(self, reconciler, device, push):
        """Test a passive power change reaches a new snapshot."""
        result = reconciler.reconcile(device, push(on=True))

        assert result.action is ReconcileAction.APPLY
        assert result.changed == {"is_on"}
        assert result.device.is_on is True
        assert result.device.last_seen == device.last_seen + timedelta(seconds=1)

    def test_no_change_touches(self, reconciler, device, push):
        """Test an identical report only advances last_seen."""
        result = reconciler.reconcile(device, push(on=False, bri=100))

        assert result.action is ReconcileAction.TOUCH
        assert result.device.last_seen == device.last_seen + timedelta(seconds=1)
        assert result.device.same_observable_state(device)

    def test_brightness_jitter_ignored(self, reconciler, device, push):
        """Test deltas at or below the threshold are not significant."""
        assert reconciler.reconcile(device, push(bri=115)).action is ReconcileAction.TOUCH
        assert reconciler.reconcile(device, push(bri=85)).action is ReconcileAction.TOUCH

    def test_brightness_beyond_threshold_applied(self, reconciler, device, push):
        result = reconciler.reconcile(device, push(bri=116))

        assert result.action is ReconcileAction.APPLY
        assert result.device.brightness == 116

    def test_color_applied(self, reconciler, device, push):
        result = reconciler.reconcile(device, push(col=[255, 0, 0]))

        assert result.action is ReconcileAction.APPLY
        assert result.device.color == RGBColor(255, 0, 0)

    def test_offline_device_comes_back_online(self, reconciler, device, push):
        """Test any contact with an offline device is applied."""
        offline = device.with_changes(is_online=False)
        result = reconciler.reconcile(offline, push(on=False, bri=100))

        assert result.action is ReconcileAction.APPLY
        assert result.changed == {"is_online"}
        assert result.device.is_online is True

    def test_host_change_applied(self, reconciler, device, push):
        """Test a device that moved address is followed."""
        result = reconciler.reconcile(device, push(host="192.168.1.77"))

        assert result.action is ReconcileAction.APPLY
        assert result.device.ip_address == "192.168.1.77"

    def test_base_snapshot_is_compared(self, reconciler, device, push):
        """Test deltas are measured against the parked snapshot if any."""
        parked = device.with_changes(is_on=True)
        result = reconciler.reconcile(device, push(on=True), base=parked)

        assert result.action is ReconcileAction.TOUCH


# ==============================================================================
# Suppression
# ==============================================================================


class TestSuppression:
    """Test fields withheld because of user intent."""

    def test_protected_field_suppressed(self, reconciler, device, push):
        """Test a passive update never overrides an optimistic value."""
        result = reconciler.reconcile(
            device, push(on=True, bri=200), protected=frozenset({"is_on"})
        )

        assert result.action is ReconcileAction.APPLY
        assert result.suppressed == {"is_on"}
        assert result.device.is_on is False
        assert result.device.brightness == 200

    def test_only_protected_fields_changed(self, reconciler, device, push):
        result = reconciler.reconcile(device, push(on=True), protected=frozenset({"is_on"}))

        assert result.action is ReconcileAction.SUPPRESS
        assert result.device.is_on is False

    def test_command_response_not_suppressed(self, reconciler, device, push):
        """Test our own command responses bypass protection."""
        result = reconciler.reconcile(
            device, push(source=UpdateSource.COMMAND, on=True), protected=frozenset({"is_on"})
        )

        assert result.action is ReconcileAction.APPLY
        assert result.device.is_on is True

    def test_protection_window(self, reconciler, intents, clock, device, push):
        """Test passive updates wait until the protection window elapses."""
        intents.mark_interaction(device.device_id)

        result = reconciler.reconcile(device, push(on=True, bri=200))
        assert result.action is ReconcileAction.SUPPRESS
        assert {"is_on", "brightness"} <= result.suppressed

        clock.advance(1.5)
        result = reconciler.reconcile(device, push(on=True, bri=200))
        assert result.action is ReconcileAction.APPLY
        assert result.device.is_on is True

    def test_window_does_not_hold_name(self, reconciler, intents, device, push):
        """Test identity fields are not controllable fields."""
        intents.mark_interaction(device.device_id)

        result = reconciler.reconcile(device, push(info=InfoSnapshot(name="Kitchen")))

        assert result.action is ReconcileAction.APPLY
        assert result.device.name == "Kitchen"


# ==============================================================================
# Color Temperature
# ==============================================================================


class TestColorTemperature:
    """Test the CCT-over-RGB rule."""

    def test_rgb_ignored_while_cct_active(self, reconciler, device, push):
        """Test an RGB-only push leaves the color alone in CCT mode."""
        cct_device = device.with_changes(temperature=0.7)

        result = reconciler.reconcile(cct_device, push(col=[255, 160, 0]))

        assert result.action is ReconcileAction.TOUCH
        assert result.device.color == cct_device.color
        assert "color temperature active" in result.reason

    def test_rgb_applied_at_zero_temperature(self, reconciler, device, push):
        rgb_device = device.with_changes(temperature=0.0)

        result = reconciler.reconcile(rgb_device, push(col=[255, 160, 0]))

        assert result.device.color == RGBColor(255, 160, 0)

    def test_cct_read_on_capable_segment(self, reconciler, capabilities, device, push):
        """Test a reported cct becomes the normalized temperature."""
        capabilities.detect(device.device_id, [7])

        result = reconciler.reconcile(device, push(cct=255))

        assert result.action is ReconcileAction.APPLY
        assert result.device.temperature == 1.0

    def test_cct_ignored_without_capability(self, reconciler, device, push):
        result = reconciler.reconcile(device, push(cct=255))

        assert result.device.temperature is None

    def test_cct_leaving_cct_mode_allows_rgb(self, reconciler, capabilities, device, push):
        """Test a push reporting cct 0 with a color applies the color."""
        capabilities.detect(device.device_id, [7])
        cct_device = device.with_changes(temperature=0.7)

        result = reconciler.reconcile(cct_device, push(cct=0, col=[0, 0, 255]))

        assert result.device.temperature == 0.0
        assert result.device.color == RGBColor(0, 0, 255)


# ==============================================================================
# Rename
# ==============================================================================


class TestRename:
    """Test the rename protection rule."""

    def test_stale_name_held_during_window(self, reconciler, intents, device, push):
        renamed = device.with_changes(name="Bedroom Lamp")
        intents.begin_rename(device.device_id, "Bedroom Lamp")

        result = reconciler.reconcile(renamed, push(info=InfoSnapshot(name="Desk Strip")))

        assert result.action is ReconcileAction.SUPPRESS
        assert result.device.name == "Bedroom Lamp"
        assert intents.rename_intent(device.device_id) is not None

    def test_matching_name_confirms(self, reconciler, intents, device, push):
        intents.begin_rename(device.device_id, "Bedroom Lamp")

        result = reconciler.reconcile(device, push(info=InfoSnapshot(name="Bedroom Lamp")))

        assert result.device.name == "Bedroom Lamp"
        assert intents.rename_intent(device.device_id) is None

    def test_device_name_wins_after_window(self, reconciler, intents, clock, device, push):
        """Test an unconfirmed rename gives way to the device name."""
        renamed = device.with_changes(name="Bedroom Lamp")
        intents.begin_rename(device.device_id, "Bedroom Lamp")
        clock.advance(8.0)

        result = reconciler.reconcile(renamed, push(info=InfoSnapshot(name="Desk Strip")))

        assert result.action is ReconcileAction.APPLY
        assert result.device.name == "Desk Strip"
        assert intents.rename_intent(device.device_id) is None
