"""Exceptions for the WLED JSON API client."""
from __future__ import annotations


class WLEDApiError(Exception):
    """Base exception for WLED API errors."""

    def __init__(self, message: str, code: int | None = None) -> None:
        """Initialize the exception."""
        super().__init__(message)
        self.code = code


class WLEDConnectionError(WLEDApiError):
    """Device unreachable - connection refused, no route or DNS failure."""

    def __init__(self, message: str = "Failed to connect to WLED device") -> None:
        """Initialize connection error."""
        super().__init__(message)


class WLEDTimeoutError(WLEDApiError):
    """Request exceeded its deadline."""

    def __init__(self, message: str = "Request timed out", code: int | None = None) -> None:
        """Initialize timeout error."""
        super().__init__(message, code=code)


class WLEDBusyError(WLEDApiError):
    """Device cannot accept the request right now."""

    def __init__(self, message: str = "Device is busy", code: int | None = None) -> None:
        """Initialize busy error."""
        super().__init__(message, code=code)


class WLEDInvalidResponseError(WLEDApiError):
    """Device replied but the payload could not be decoded."""

    def __init__(self, message: str = "Invalid response from device") -> None:
        """Initialize invalid response error."""
        super().__init__(message)


class WLEDConfigurationError(WLEDApiError):
    """Bad address, rejected request or unsupported operation."""
