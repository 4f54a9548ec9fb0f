"""Test user intent tracking."""
from __future__ import annotations

import pytest

from custom_components.wled_sync.models import CommandTarget
from custom_components.wled_sync.sync import IntentTracker


@pytest.fixture
def intents(clock) -> IntentTracker:
    return IntentTracker(protection_window=1.5, rename_window=8.0, clock=clock)


# ==============================================================================
# Protection Window Tests
# ==============================================================================


class TestProtectionWindow:
    """Test the user interaction window."""

    def test_no_interaction(self, intents):
        """Test an untouched device is not under user control."""
        assert not intents.is_under_user_control("dev")

    def test_window_open_then_elapsed(self, intents, clock):
        """Test the window closes after the protection window."""
        intents.mark_interaction("dev")

        clock.advance(1.0)
        assert intents.is_under_user_control("dev")

        clock.advance(0.5)
        assert not intents.is_under_user_control("dev")

    def test_new_interaction_extends_window(self, intents, clock):
        intents.mark_interaction("dev")
        clock.advance(1.0)
        intents.mark_interaction("dev")
        clock.advance(1.0)

        assert intents.is_under_user_control("dev")

    def test_clear_interaction(self, intents):
        intents.mark_interaction("dev")
        intents.clear_interaction("dev")

        assert not intents.is_under_user_control("dev")

    def test_devices_are_independent(self, intents):
        intents.mark_interaction("a")

        assert intents.is_under_user_control("a")
        assert not intents.is_under_user_control("b")


# ==============================================================================
# Pending Target Tests
# ==============================================================================


class TestPendingTarget:
    """Test pending command targets and generations."""

    def test_set_and_match(self, intents):
        """Test the live target matches with its generation."""
        target = CommandTarget(is_on=True)
        generation = intents.set_pending_target("dev", target)

        assert intents.pending_target("dev") == target
        assert intents.pending_generation("dev") == generation
        assert intents.is_pending_match("dev", target, generation)
        assert not intents.is_pending_match("dev", CommandTarget(is_on=False))

    def test_superseded_generation_does_not_match(self, intents):
        """Test a response for an older command is recognized as stale."""
        target = CommandTarget(brightness=50)
        first = intents.set_pending_target("dev", target)
        second = intents.set_pending_target("dev", target)

        assert second > first
        assert not intents.is_pending_match("dev", target, first)
        assert intents.is_pending_match("dev", target, second)

    def test_generations_are_global(self, intents):
        """Test generations never repeat across devices."""
        first = intents.set_pending_target("a", CommandTarget(is_on=True))
        second = intents.set_pending_target("b", CommandTarget(is_on=True))

        assert first != second

    def test_clear_with_stale_generation_is_ignored(self, intents):
        first = intents.set_pending_target("dev", CommandTarget(is_on=True))
        intents.set_pending_target("dev", CommandTarget(is_on=False))

        assert not intents.clear_pending_target("dev", first)
        assert intents.pending_target("dev") == CommandTarget(is_on=False)

    def test_clear(self, intents):
        generation = intents.set_pending_target("dev", CommandTarget(is_on=True))

        assert intents.clear_pending_target("dev", generation)
        assert intents.pending_target("dev") is None
        assert intents.pending_generation("dev") is None
        assert not intents.clear_pending_target("dev")

    def test_clearing_pending_keeps_interaction(self, intents):
        """Test the two pieces of intent have separate lifecycles."""
        intents.mark_interaction("dev")
        intents.set_pending_target("dev", CommandTarget(is_on=True))
        intents.clear_pending_target("dev")

        assert intents.is_under_user_control("dev")


# ==============================================================================
# Rename Tests
# ==============================================================================


class TestRenameIntent:
    """Test rename intents."""

    def test_begin_rename(self, intents, clock):
        intent = intents.begin_rename("dev", "Bedroom Lamp")

        assert intent.name == "Bedroom Lamp"
        assert intent.expires_at == clock() + 8.0
        assert intents.rename_intent("dev") == intent

    def test_expiry(self, intents, clock):
        intent = intents.begin_rename("dev", "Bedroom Lamp")

        clock.advance(7.5)
        assert not intent.is_expired(clock())
        clock.advance(0.5)
        assert intent.is_expired(clock())

    def test_clear_rename(self, intents):
        intents.begin_rename("dev", "Bedroom Lamp")
        intents.clear_rename("dev")

        assert intents.rename_intent("dev") is None

    def test_forget(self, intents):
        """Test removing a device drops all of its intent."""
        intents.mark_interaction("dev")
        intents.set_pending_target("dev", CommandTarget(is_on=True))
        intents.begin_rename("dev", "x")

        intents.forget("dev")

        assert not intents.is_under_user_control("dev")
        assert intents.pending_target("dev") is None
        assert intents.rename_intent("dev") is None
