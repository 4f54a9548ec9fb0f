"""Test per-device background tasks."""
from __future__ import annotations

import asyncio

import pytest

from custom_components.wled_sync.sync import DeviceTaskRunner


async def _wait_forever(started: asyncio.Event) -> None:
    started.set()
    await asyncio.Event().wait()


class TestDeviceTaskRunner:
    """Test DeviceTaskRunner."""

    @pytest.mark.asyncio
    async def test_start_replaces_previous(self):
        """Test starting a task for a device cancels the one it had."""
        runner = DeviceTaskRunner()
        started = asyncio.Event()
        first = runner.start("aabbccddeeff", _wait_forever(started))
        await started.wait()

        second = runner.start("aabbccddeeff", asyncio.sleep(0, result="done"))

        assert await second == "done"
        await asyncio.gather(first, return_exceptions=True)
        assert first.cancelled()
        assert not runner.is_running("aabbccddeeff")

    @pytest.mark.asyncio
    async def test_devices_independent(self):
        runner = DeviceTaskRunner()
        started = asyncio.Event()
        other_started = asyncio.Event()
        task = runner.start("aabbccddeeff", _wait_forever(started))
        runner.start("112233445566", _wait_forever(other_started))
        await started.wait()
        await other_started.wait()

        assert runner.cancel("112233445566") is True

        assert runner.is_running("aabbccddeeff")
        assert not task.cancelled()
        await runner.async_cancel_all()

    @pytest.mark.asyncio
    async def test_cancel_unknown(self):
        assert DeviceTaskRunner().cancel("missing") is False

    @pytest.mark.asyncio
    async def test_cancel_all(self):
        runner = DeviceTaskRunner()
        started = asyncio.Event()
        task = runner.start("aabbccddeeff", _wait_forever(started))
        await started.wait()

        await runner.async_cancel_all()

        assert task.cancelled()
        assert not runner.is_running("aabbccddeeff")

    @pytest.mark.asyncio
    async def test_failure_logged(self, caplog):
        """Test a failing task is logged rather than lost."""

        async def _fail() -> None:
            raise RuntimeError("boom")

        runner = DeviceTaskRunner()
        task = runner.start("aabbccddeeff", _fail())
        await asyncio.gather(task, return_exceptions=True)
        await asyncio.sleep(0)

        assert "Background task for aabbccddeeff failed" in caplog.text
        assert not runner.is_running("aabbccddeeff")
