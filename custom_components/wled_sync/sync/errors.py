"""User-facing error taxonomy.

Every network-origin failure is translated into one of a handful of kinds
before it reaches the reconciliation core or the UI. At most one error is
active per device.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

import aiohttp

from ..api.exceptions import (
    WLEDBusyError,
    WLEDConfigurationError,
    WLEDConnectionError,
    WLEDInvalidResponseError,
    WLEDTimeoutError,
)
from ..models.commands import CommandValidationError

_LOGGER = logging.getLogger(__name__)


class ErrorKind(StrEnum):
    """Classification of a device failure."""

    DEVICE_OFFLINE = "device_offline"
    TIMEOUT = "timeout"
    BUSY = "busy"
    INVALID_RESPONSE = "invalid_response"
    CONFIGURATION = "configuration"


RETRYABLE_KINDS = frozenset({ErrorKind.DEVICE_OFFLINE, ErrorKind.TIMEOUT, ErrorKind.BUSY})
RETRY_ACTION_KINDS = frozenset({ErrorKind.DEVICE_OFFLINE, ErrorKind.TIMEOUT})


@dataclass(frozen=True)
class DeviceError:
    """An advisory error shown for one device."""

    kind: ErrorKind
    device_id: str
    device_name: str = field(default="", compare=False)
    detail: str = field(default="", compare=False)

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS

    @property
    def action_title(self) -> str | None:
        """Label of the banner action, if any."""
        return "Retry" if self.kind in RETRY_ACTION_KINDS else None

    @property
    def message(self) -> str:
        name = self.device_name
        if self.kind is ErrorKind.DEVICE_OFFLINE:
            return f"{name} is offline." if name else "The device appears to be offline."
        if self.kind is ErrorKind.TIMEOUT:
            return f"{name} is not responding." if name else "The device is not responding."
        if self.kind is ErrorKind.BUSY:
            target = name or "The device"
            return f"{target} is busy. Try again in a moment."
        if self.kind is ErrorKind.INVALID_RESPONSE:
            return "Received an unexpected response from WLED."
        return self.detail or f"{name or 'The device'} does not support this operation."


def classify(err: BaseException) -> ErrorKind:
    """Map a transport or validation exception to an ErrorKind."""
    if isinstance(err, (CommandValidationError, WLEDConfigurationError)):
        return ErrorKind.CONFIGURATION
    if isinstance(err, WLEDTimeoutError):
        return ErrorKind.TIMEOUT
    if isinstance(err, WLEDBusyError):
        return ErrorKind.BUSY
    if isinstance(err, WLEDInvalidResponseError):
        return ErrorKind.INVALID_RESPONSE
    if isinstance(err, WLEDConnectionError):
        return ErrorKind.DEVICE_OFFLINE
    if isinstance(err, TimeoutError):
        return ErrorKind.TIMEOUT
    if isinstance(err, aiohttp.ClientResponseError):
        if err.status in (408, 504):
            return ErrorKind.TIMEOUT
        if err.status == 429 or err.status >= 500:
            return ErrorKind.BUSY
        return ErrorKind.CONFIGURATION
    if isinstance(err, (aiohttp.ClientError, OSError)):
        return ErrorKind.DEVICE_OFFLINE
    return ErrorKind.INVALID_RESPONSE


type RetryCallback = Callable[[], Awaitable[Any]]


class ErrorCenter:
    """Holds the active error of each device.

    A repeat of the active kind is a no-op; a different kind replaces it.
    Dismissing clears without side effects.
    """

    def __init__(self) -> None:
        self._errors: dict[str, DeviceError] = {}
        self._retries: dict[str, RetryCallback] = {}
        self._listeners: list[Callable[[str, DeviceError | None], None]] = []

    @property
    def errors(self) -> dict[str, DeviceError]:
        return dict(self._errors)

    def active(self, device_id: str) -> DeviceError | None:
        return self._errors.get(device_id)

    def add_listener(
        self, listener: Callable[[str, DeviceError | None], None]
    ) -> Callable[[], None]:
        """Subscribe to error changes; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def report(self, error: DeviceError, retry: RetryCallback | None = None) -> bool:
        """Surface an error.

        Returns:
            True if the error became active, False for a duplicate.
        """
        if retry is not None and error.retryable:
            self._retries[error.device_id] = retry
        elif not error.retryable:
            self._retries.pop(error.device_id, None)
        if self._errors.get(error.device_id) == error:
            return False
        self._errors[error.device_id] = error
        _LOGGER.warning("%s (%s)", error.message, error.detail or error.kind)
        self._notify(error.device_id, error)
        return True

    def dismiss(self, device_id: str) -> bool:
        """Clear the active error of a device."""
        self._retries.pop(device_id, None)
        if self._errors.pop(device_id, None) is None:
            return False
        self._notify(device_id, None)
        return True

    async def async_retry(self, device_id: str) -> bool:
        """Dismiss the error and run its retry action.

        Returns:
            False if the device has no retryable error.
        """
        retry = self._retries.get(device_id)
        error = self._errors.get(device_id)
        if retry is None or error is None or not error.retryable:
            return False
        self.dismiss(device_id)
        await retry()
        return True

    def _notify(self, device_id: str, error: DeviceError | None) -> None:
        for listener in list(self._listeners):
            listener(device_id, error)
