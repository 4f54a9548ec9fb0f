"""Discovery of configured WLED hosts.

Devices are found by probing the addresses the user configured; there is
no network scanning.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from datetime import UTC, datetime

import aiohttp

from .api.exceptions import WLEDApiError
from .models.device import WLEDDevice
from .models.state import InfoSnapshot
from .protocols import IDeviceClient

_LOGGER = logging.getLogger(__name__)


class HostListDiscovery:
    """Queries a fixed list of hosts for WLED devices.

    Args:
        client: Client used to fetch ``/json/info``.
        hosts: Addresses to query.
        on_discovered: Awaited for every device that answered.
    """

    def __init__(
        self,
        client: IDeviceClient,
        hosts: Iterable[str],
        on_discovered: Callable[[WLEDDevice, InfoSnapshot | None], Awaitable[None]],
    ) -> None:
        self._client = client
        self.hosts = list(dict.fromkeys(host.strip() for host in hosts if host.strip()))
        self._on_discovered = on_discovered
        self._task: asyncio.Task | None = None

    async def start(self) -> None:
        """Query every host in the background."""
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self._query_all(), name="wled_sync discovery")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _query_all(self) -> None:
        results = await asyncio.gather(*(self.add_by_address(host) for host in self.hosts))
        found = sum(1 for device in results if device is not None)
        _LOGGER.info("Found %d of %d configured WLED hosts", found, len(self.hosts))

    async def add_by_address(self, ip_address: str) -> WLEDDevice | None:
        """Query one address; returns the device if it answered."""
        try:
            info = await self._client.fetch_metadata(ip_address)
        except (WLEDApiError, aiohttp.ClientError, TimeoutError) as err:
            _LOGGER.debug("No WLED device at %s: %s", ip_address, err)
            return None

        device = WLEDDevice.from_info(info, ip_address, seen_at=datetime.now(UTC))
        await self._on_discovered(device, info)
        return device
