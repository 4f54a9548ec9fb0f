"""WLED JSON API client."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, TypeVar

import aiohttp
import async_timeout

from ..models.commands import (
    ENDPOINT_CONFIG as COMMAND_ENDPOINT_CONFIG,
    CCTCommand,
    ColorCommand,
    DeviceCommand,
    EffectCommand,
    PresetCommand,
    RenameCommand,
    SavePresetCommand,
)
from ..models.preset import Preset, parse_presets
from ..models.state import InfoSnapshot, RGBColor, StateSnapshot
from .const import (
    BUSY_STATUSES,
    ENDPOINT_CONFIG,
    ENDPOINT_EFFECTS,
    ENDPOINT_INFO,
    ENDPOINT_PRESETS,
    ENDPOINT_STATE,
    PIXEL_CHUNK_SIZE,
    REQUEST_TIMEOUT,
    TIMEOUT_STATUSES,
)
from .exceptions import (
    WLEDBusyError,
    WLEDConfigurationError,
    WLEDConnectionError,
    WLEDInvalidResponseError,
    WLEDTimeoutError,
)

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class WLEDApiClient:
    """Client for the WLED JSON API of devices on the local network.

    Every method takes the device host (IP address or hostname); the client
    itself holds no per-device state.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        request_timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        """Initialize API client."""
        self._session = session
        self._owns_session = session is None
        self._request_timeout = request_timeout

    async def __aenter__(self) -> WLEDApiClient:
        """Async context manager entry."""
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Close the session if we own it."""
        if self._owns_session and self._session:
            await self._session.close()
            self._session = None

    @property
    def session(self) -> aiohttp.ClientSession:
        """Return the HTTP session, creating one if needed."""
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def _request(
        self,
        method: str,
        host: str,
        endpoint: str,
        json_data: dict[str, Any] | None = None,
    ) -> Any:
        """Make a request against a device.

        Args:
            method: HTTP method (GET, POST)
            host: Device address
            endpoint: API path, e.g. "/json/state"
            json_data: Optional JSON payload

        Returns:
            Decoded JSON body, or an empty dict for an empty body

        Raises:
            WLEDConfigurationError: Bad address or rejected request (4xx)
            WLEDTimeoutError: Deadline exceeded
            WLEDBusyError: Device reported it cannot serve the request now
            WLEDInvalidResponseError: Body could not be decoded
            WLEDConnectionError: Network error
        """
        if not host or any(char.isspace() for char in host) or "/" in host:
            raise WLEDConfigurationError(f"Invalid device address: {host!r}")

        url = f"http://{host}{endpoint}"

        try:
            async with async_timeout.timeout(self._request_timeout):
                async with self.session.request(
                    method,
                    url,
                    json=json_data,
                ) as response:
                    if response.status in TIMEOUT_STATUSES:
                        raise WLEDTimeoutError(
                            f"{host} timed out (HTTP {response.status})",
                            code=response.status,
                        )
                    if response.status in BUSY_STATUSES or response.status >= 500:
                        raise WLEDBusyError(
                            f"{host} is busy (HTTP {response.status})",
                            code=response.status,
                        )
                    if response.status >= 400:
                        raise WLEDConfigurationError(
                            f"{host} rejected {endpoint} (HTTP {response.status})",
                            code=response.status,
                        )

                    try:
                        data = await response.json(content_type=None)
                    except ValueError as err:
                        raise WLEDInvalidResponseError(
                            f"Could not decode response from {host}: {err}"
                        ) from err

                    return {} if data is None else data

        except asyncio.TimeoutError as err:
            raise WLEDTimeoutError(f"Request to {host} timed out") from err
        except aiohttp.ClientResponseError as err:
            raise WLEDInvalidResponseError(str(err)) from err
        except aiohttp.ClientError as err:
            raise WLEDConnectionError(str(err)) from err

    @staticmethod
    def _expect_object(data: Any, host: str) -> dict[str, Any]:
        if not isinstance(data, dict):
            raise WLEDInvalidResponseError(
                f"Expected a JSON object from {host}, got {type(data).__name__}"
            )
        return data

    @staticmethod
    def _parse_snapshot(parser: Callable[[dict[str, Any]], T], data: Any, host: str) -> T:
        """Build a snapshot, reporting unreadable payloads as invalid responses."""
        try:
            return parser(WLEDApiClient._expect_object(data, host))
        except (ValueError, TypeError, AttributeError) as err:
            raise WLEDInvalidResponseError(
                f"Unexpected payload from {host}: {err}"
            ) from err

    def _parse_state_reply(self, data: Any, host: str) -> StateSnapshot | None:
        """Parse a POST reply; ``{"success": true}`` carries no state."""
        data = self._expect_object(data, host)
        if not data or set(data) <= {"success"}:
            if data.get("success") is False:
                raise WLEDBusyError(f"{host} did not accept the request")
            return None
        return self._parse_snapshot(StateSnapshot.from_json, data, host)

    # === State Queries ===

    async def get_state(self, host: str) -> StateSnapshot:
        """Fetch the current state object.

        Raises:
            WLEDApiError: Request failed
        """
        data = await self._request("GET", host, ENDPOINT_STATE)
        return self._parse_snapshot(StateSnapshot.from_json, data, host)

    async def fetch_metadata(self, host: str) -> InfoSnapshot:
        """Fetch the info object (name, MAC, segment capabilities)."""
        data = await self._request("GET", host, ENDPOINT_INFO)
        return self._parse_snapshot(InfoSnapshot.from_json, data, host)

    async def fetch_effects(self, host: str) -> list[str]:
        """Fetch the effect names, indexed by effect id."""
        data = await self._request("GET", host, ENDPOINT_EFFECTS)
        if not isinstance(data, list):
            raise WLEDInvalidResponseError(f"Expected effect list from {host}")
        return [str(name) for name in data]

    async def fetch_presets(self, host: str) -> list[Preset]:
        """Fetch stored presets."""
        data = await self._request("GET", host, ENDPOINT_PRESETS)
        return parse_presets(self._expect_object(data, host))

    # === Control Commands ===

    async def set_state(self, host: str, payload: dict[str, Any]) -> StateSnapshot | None:
        """Post a partial state.

        Args:
            host: Device address
            payload: Partial WLED state object

        Returns:
            The resulting full state, or None if the device only acknowledged
        """
        data = await self._request("POST", host, ENDPOINT_STATE, {**payload, "v": True})
        return self._parse_state_reply(data, host)

    async def send_command(self, host: str, command: DeviceCommand) -> StateSnapshot | None:
        """Send a command object to its JSON API endpoint."""
        _LOGGER.debug("Sending %s to %s: %s", type(command).__name__, host, command.to_payload())
        if command.endpoint == COMMAND_ENDPOINT_CONFIG:
            await self._request("POST", host, ENDPOINT_CONFIG, command.to_payload())
            return None
        return await self.set_state(host, command.to_payload())

    async def set_color(
        self,
        host: str,
        color: RGBColor,
        segment_id: int = 0,
        white: int | None = None,
    ) -> StateSnapshot | None:
        """Set the primary color of a segment."""
        return await self.send_command(
            host, ColorCommand(segment_id=segment_id, color=color, white=white)
        )

    async def set_cct(self, host: str, cct: int, segment_id: int = 0) -> StateSnapshot | None:
        """Set segment color temperature (0-255, or Kelvin >= 1000).

        Raises:
            CommandValidationError: Value outside both accepted ranges
        """
        command = CCTCommand(segment_id=segment_id, cct=cct)
        command.validate()
        return await self.send_command(host, command)

    async def set_segment_pixels(
        self,
        host: str,
        hex_colors: list[str],
        segment_id: int = 0,
        start: int = 0,
        brightness: int | None = None,
        chunk_size: int = PIXEL_CHUNK_SIZE,
    ) -> None:
        """Write individual LED colors, ``chunk_size`` LEDs per request.

        Each request addresses a run of LEDs through the segment ``i``
        array: the start index followed by one hex color per LED.
        """
        for offset in range(0, len(hex_colors), chunk_size):
            chunk = hex_colors[offset : offset + chunk_size]
            payload: dict[str, Any] = {"seg": [{"id": segment_id, "i": [start + offset, *chunk]}]}
            if brightness is not None and offset == 0:
                payload["bri"] = brightness
            await self._request("POST", host, ENDPOINT_STATE, payload)

    async def set_effect(
        self,
        host: str,
        effect_id: int,
        speed: int | None = None,
        intensity: int | None = None,
        palette_id: int | None = None,
        segment_id: int = 0,
    ) -> StateSnapshot | None:
        """Run an effect on a segment."""
        return await self.send_command(
            host,
            EffectCommand(
                segment_id=segment_id,
                effect_id=effect_id,
                speed=speed,
                intensity=intensity,
                palette_id=palette_id,
            ),
        )

    async def apply_preset(
        self,
        host: str,
        preset_id: int,
        transition: int | None = None,
    ) -> StateSnapshot | None:
        """Apply a stored preset."""
        command = PresetCommand(preset_id=preset_id, transition=transition)
        command.validate()
        return await self.send_command(host, command)

    async def save_preset(self, host: str, preset_id: int, name: str) -> None:
        """Store the current state as a preset."""
        command = SavePresetCommand(preset_id=preset_id, name=name)
        command.validate()
        await self.send_command(host, command)

    async def update_name(self, host: str, name: str) -> None:
        """Change the device's configured name."""
        await self.send_command(host, RenameCommand(name=name))
