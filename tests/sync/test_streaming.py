"""Test gradient A/B transitions."""
from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from custom_components.wled_sync.models import Gradient, RGBColor
from custom_components.wled_sync.sync import run_transition
from custom_components.wled_sync.sync.streaming import frame_count

RED = Gradient.from_colors(RGBColor(255, 0, 0))
BLUE = Gradient.from_colors(RGBColor(0, 0, 255))


@pytest.fixture
def sleep() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def send_frame() -> AsyncMock:
    return AsyncMock()


class TestFrameCount:
    """Test frame pacing."""

    @pytest.mark.parametrize(
        ("duration", "fps", "expected"),
        [(1.0, 20, 20), (0.01, 20, 1), (0, 20, 1), (2.5, 4, 10), (1.0, 0, 1)],
    )
    def test_frame_count(self, duration, fps, expected):
        assert frame_count(duration, fps) == expected


class TestRunTransition:
    """Test run_transition."""

    @pytest.mark.asyncio
    async def test_starts_and_ends_on_gradients(self, send_frame, sleep):
        sent = await run_transition(send_frame, RED, BLUE, 1.0, 4, 3, sleep=sleep)

        assert sent == 5
        frames = [call.args[0] for call in send_frame.await_args_list]
        assert frames[0] == ["FF0000"] * 3
        assert frames[-1] == ["0000FF"] * 3
        assert [call.args[0] for call in sleep.await_args_list] == [0.25] * 4

    @pytest.mark.asyncio
    async def test_brightness_follows_ease(self, send_frame, sleep):
        """Test brightness is tweened on the same curve as the colors."""
        await run_transition(
            send_frame, RED, BLUE, 1.0, 4, 1, a_brightness=0, b_brightness=160, sleep=sleep
        )

        assert [call.args[1] for call in send_frame.await_args_list] == [0, 10, 80, 150, 160]

    @pytest.mark.asyncio
    async def test_brightness_needs_both_ends(self, send_frame, sleep):
        await run_transition(send_frame, RED, BLUE, 0.5, 2, 1, b_brightness=100, sleep=sleep)

        assert {call.args[1] for call in send_frame.await_args_list} == {None}

    @pytest.mark.asyncio
    async def test_send_failure_stops_stream(self, send_frame, sleep):
        send_frame.side_effect = [None, OSError("gone")]

        with pytest.raises(OSError):
            await run_transition(send_frame, RED, BLUE, 1.0, 10, 1, sleep=sleep)

        assert send_frame.await_count == 2
        assert sleep.await_count == 1
