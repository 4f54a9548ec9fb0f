"""Translatable exceptions for WLED Sync integration.

Raised by entities and services when a command result carries a device
error, so the user sees the message in the configured language.

Exception Hierarchy:
    WLEDSyncException (HomeAssistantError)
    ├── WLEDDeviceNotFoundError - Unknown device id
    ├── WLEDSceneNotFoundError - Unknown scene id
    ├── WLEDDeviceOfflineError - Device unreachable
    ├── WLEDDeviceTimeoutError - Device did not answer in time
    ├── WLEDDeviceBusyError - Device refused the request for now
    ├── WLEDUnexpectedResponseError - Reply could not be understood
    └── WLEDUnsupportedError - Invalid request or unsupported operation
"""

from __future__ import annotations

from homeassistant.exceptions import HomeAssistantError

from .const import DOMAIN
from .sync.errors import DeviceError, ErrorKind


class WLEDSyncException(HomeAssistantError):
    """Base exception for WLED Sync with translation support.

    Attributes:
        translation_domain: Always set to DOMAIN ("wled_sync")
        translation_key: Key to look up in strings.json exceptions section
        translation_placeholders: Dynamic values to substitute in message
    """

    translation_domain: str = DOMAIN
    translation_key: str = "unknown_error"

    def __init__(
        self,
        translation_key: str | None = None,
        translation_placeholders: dict[str, str] | None = None,
    ) -> None:
        """Initialize translatable exception.

        Args:
            translation_key: Key for exception message in strings.json
            translation_placeholders: Dynamic values for message substitution
        """
        effective_key = translation_key if translation_key is not None else type(self).translation_key
        super().__init__(
            translation_domain=type(self).translation_domain,
            translation_key=effective_key,
            translation_placeholders=translation_placeholders or {},
        )


class WLEDDeviceNotFoundError(WLEDSyncException):
    """The requested device is not known."""

    translation_key = "device_not_found"

    def __init__(self, device_id: str) -> None:
        super().__init__(translation_placeholders={"device_id": device_id})
        self.device_id = device_id


class WLEDSceneNotFoundError(WLEDSyncException):
    """The requested scene is not saved."""

    translation_key = "scene_not_found"

    def __init__(self, scene_id: str) -> None:
        super().__init__(translation_placeholders={"scene_id": scene_id})
        self.scene_id = scene_id


class _DeviceErrorException(WLEDSyncException):
    """Exception carrying a device error."""

    def __init__(self, error: DeviceError) -> None:
        """Initialize from a device error.

        Args:
            error: The classified device error
        """
        super().__init__(
            translation_placeholders={
                "device_name": error.device_name or error.device_id,
                "detail": error.detail or error.message,
            },
        )
        self.error = error


class WLEDDeviceOfflineError(_DeviceErrorException):
    """Device unreachable: connection refused, no route or DNS failure."""

    translation_key = "device_offline"


class WLEDDeviceTimeoutError(_DeviceErrorException):
    """Device did not answer before the deadline."""

    translation_key = "device_timeout"


class WLEDDeviceBusyError(_DeviceErrorException):
    """Device refused the request for now."""

    translation_key = "device_busy"


class WLEDUnexpectedResponseError(_DeviceErrorException):
    """Device replied with something that could not be decoded."""

    translation_key = "invalid_response"


class WLEDUnsupportedError(_DeviceErrorException):
    """Invalid request, bad address or operation the device cannot perform."""

    translation_key = "unsupported_operation"


_EXCEPTIONS: dict[ErrorKind, type[_DeviceErrorException]] = {
    ErrorKind.DEVICE_OFFLINE: WLEDDeviceOfflineError,
    ErrorKind.TIMEOUT: WLEDDeviceTimeoutError,
    ErrorKind.BUSY: WLEDDeviceBusyError,
    ErrorKind.INVALID_RESPONSE: WLEDUnexpectedResponseError,
    ErrorKind.CONFIGURATION: WLEDUnsupportedError,
}


def exception_for_error(error: DeviceError) -> WLEDSyncException:
    """Build the translatable exception matching a device error."""
    return _EXCEPTIONS[error.kind](error)
