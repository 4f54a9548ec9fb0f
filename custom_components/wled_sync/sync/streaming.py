"""Gradient A/B transitions.

A transition streams per-LED frames that blend gradient A into gradient B
over a duration, optionally tweening brightness alongside. Cancellation is
task cancellation: the caller runs each transition in a per-device task.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from ..models.gradient import Gradient, ease_in_out_cubic

_LOGGER = logging.getLogger(__name__)

FrameSender = Callable[[list[str], int | None], Awaitable[None]]


def frame_count(duration: float, fps: int) -> int:
    """Number of frames after the first one for a transition."""
    return max(1, round(max(0.0, duration) * max(1, fps)))


async def run_transition(
    send_frame: FrameSender,
    start: Gradient,
    end: Gradient,
    duration: float,
    fps: int,
    led_count: int,
    a_brightness: int | None = None,
    b_brightness: int | None = None,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> int:
    """Stream frames from ``start`` to ``end``.

    The first frame shows ``start`` and the last shows ``end``; frames in
    between follow a cubic ease. Brightness is tweened only when both
    endpoints are given.

    Returns:
        The number of frames sent.
    """
    frames = frame_count(duration, fps)
    interval = max(0.0, duration) / frames
    tween = a_brightness is not None and b_brightness is not None

    for frame in range(frames + 1):
        t = ease_in_out_cubic(frame / frames)
        brightness = None
        if tween:
            brightness = round(a_brightness + (b_brightness - a_brightness) * t)
        await send_frame(start.blend(end, t).sample(led_count), brightness)
        if frame < frames:
            await sleep(interval)

    _LOGGER.debug("Transition finished after %d frames", frames + 1)
    return frames + 1
