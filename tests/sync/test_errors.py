"""Test the device error taxonomy and error center."""
from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from custom_components.wled_sync.api.exceptions import (
    WLEDBusyError,
    WLEDConfigurationError,
    WLEDConnectionError,
    WLEDInvalidResponseError,
    WLEDTimeoutError,
)
from custom_components.wled_sync.models import CommandValidationError
from custom_components.wled_sync.sync import (
    DeviceError,
    ErrorCenter,
    ErrorKind,
    classify,
)


def _response_error(status: int) -> aiohttp.ClientResponseError:
    return aiohttp.ClientResponseError(MagicMock(), (), status=status)


# ==============================================================================
# Classification Tests
# ==============================================================================


class TestClassify:
    """Test mapping exceptions to error kinds."""

    @pytest.mark.parametrize(
        ("err", "kind"),
        [
            (WLEDConnectionError(), ErrorKind.DEVICE_OFFLINE),
            (WLEDTimeoutError(), ErrorKind.TIMEOUT),
            (WLEDBusyError(), ErrorKind.BUSY),
            (WLEDInvalidResponseError(), ErrorKind.INVALID_RESPONSE),
            (WLEDConfigurationError("bad address"), ErrorKind.CONFIGURATION),
            (CommandValidationError("no cct"), ErrorKind.CONFIGURATION),
            (TimeoutError(), ErrorKind.TIMEOUT),
            (aiohttp.ClientConnectionError(), ErrorKind.DEVICE_OFFLINE),
            (OSError("no route"), ErrorKind.DEVICE_OFFLINE),
            (ValueError("garbage"), ErrorKind.INVALID_RESPONSE),
        ],
    )
    def test_classify(self, err, kind):
        assert classify(err) is kind

    @pytest.mark.parametrize(
        ("status", "kind"),
        [
            (408, ErrorKind.TIMEOUT),
            (504, ErrorKind.TIMEOUT),
            (429, ErrorKind.BUSY),
            (503, ErrorKind.BUSY),
            (500, ErrorKind.BUSY),
            (400, ErrorKind.CONFIGURATION),
            (404, ErrorKind.CONFIGURATION),
        ],
    )
    def test_classify_http_status(self, status, kind):
        assert classify(_response_error(status)) is kind


# ==============================================================================
# DeviceError Tests
# ==============================================================================


class TestDeviceError:
    """Test DeviceError presentation."""

    def test_retryable_kinds(self):
        assert DeviceError(ErrorKind.DEVICE_OFFLINE, "d").retryable
        assert DeviceError(ErrorKind.TIMEOUT, "d").retryable
        assert DeviceError(ErrorKind.BUSY, "d").retryable
        assert not DeviceError(ErrorKind.INVALID_RESPONSE, "d").retryable
        assert not DeviceError(ErrorKind.CONFIGURATION, "d").retryable

    def test_action_title(self):
        """Test only offline and timeout errors offer a retry action."""
        assert DeviceError(ErrorKind.DEVICE_OFFLINE, "d").action_title == "Retry"
        assert DeviceError(ErrorKind.TIMEOUT, "d").action_title == "Retry"
        assert DeviceError(ErrorKind.BUSY, "d").action_title is None

    def test_messages_name_the_device(self):
        assert DeviceError(ErrorKind.DEVICE_OFFLINE, "d", "Desk").message == "Desk is offline."
        assert (
            DeviceError(ErrorKind.DEVICE_OFFLINE, "d").message
            == "The device appears to be offline."
        )
        assert "busy" in DeviceError(ErrorKind.BUSY, "d", "Desk").message

    def test_configuration_message_uses_detail(self):
        error = DeviceError(ErrorKind.CONFIGURATION, "d", "Desk", "No CCT here")

        assert error.message == "No CCT here"

    def test_equality_ignores_detail(self):
        """Test two errors of the same kind for a device are the same error."""
        assert DeviceError(ErrorKind.TIMEOUT, "d", "A", "x") == DeviceError(
            ErrorKind.TIMEOUT, "d", "B", "y"
        )


# ==============================================================================
# ErrorCenter Tests
# ==============================================================================


class TestErrorCenter:
    """Test ErrorCenter."""

    def test_report_and_duplicate(self):
        """Test a repeat of the active error is a no-op."""
        center = ErrorCenter()
        listener = MagicMock()
        center.add_listener(listener)
        error = DeviceError(ErrorKind.TIMEOUT, "d")

        assert center.report(error)
        assert not center.report(DeviceError(ErrorKind.TIMEOUT, "d", detail="again"))

        assert center.active("d") == error
        listener.assert_called_once_with("d", error)

    def test_different_kind_replaces(self):
        center = ErrorCenter()
        center.report(DeviceError(ErrorKind.TIMEOUT, "d"))
        center.report(DeviceError(ErrorKind.DEVICE_OFFLINE, "d"))

        assert center.active("d").kind is ErrorKind.DEVICE_OFFLINE
        assert len(center.errors) == 1

    def test_dismiss(self):
        center = ErrorCenter()
        listener = MagicMock()
        center.report(DeviceError(ErrorKind.TIMEOUT, "d"))
        center.add_listener(listener)

        assert center.dismiss("d")
        assert not center.dismiss("d")
        assert center.active("d") is None
        listener.assert_called_once_with("d", None)

    def test_remove_listener(self):
        center = ErrorCenter()
        listener = MagicMock()
        remove = center.add_listener(listener)
        remove()

        center.report(DeviceError(ErrorKind.TIMEOUT, "d"))

        listener.assert_not_called()

    @pytest.mark.asyncio
    async def test_retry_runs_action(self):
        """Test retry dismisses the error and runs the stored action."""
        center = ErrorCenter()
        retry = AsyncMock()
        center.report(DeviceError(ErrorKind.DEVICE_OFFLINE, "d"), retry)

        assert await center.async_retry("d")

        retry.assert_awaited_once()
        assert center.active("d") is None

    @pytest.mark.asyncio
    async def test_retry_not_offered_for_configuration(self):
        center = ErrorCenter()
        retry = AsyncMock()
        center.report(DeviceError(ErrorKind.CONFIGURATION, "d"), retry)

        assert not await center.async_retry("d")
        retry.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_retry_without_error(self):
        assert not await ErrorCenter().async_retry("d")
