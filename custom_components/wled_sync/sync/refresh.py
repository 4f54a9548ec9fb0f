"""Refresh coordination.

Debounces refresh requests, bounds the number of concurrent device polls
and skips devices outside the local subnets.
"""

from __future__ import annotations

import asyncio
import ipaddress
import logging
import time
from collections.abc import Awaitable, Callable, Iterable, Sequence

from ..const import REFRESH_CONCURRENCY, REFRESH_DEBOUNCE
from ..models.device import WLEDDevice

_LOGGER = logging.getLogger(__name__)

type Network = ipaddress.IPv4Network | ipaddress.IPv6Network


def is_in_local_subnets(address: str, networks: Sequence[Network]) -> bool:
    """Whether an address belongs to one of the local networks.

    With no known local networks nothing is skipped. Hostnames cannot be
    checked and are always considered local.
    """
    if not networks:
        return True
    try:
        ip = ipaddress.ip_address(address)
    except ValueError:
        return True
    return any(ip.version == net.version and ip in net for net in networks)


class RefreshCoordinator:
    """Runs debounced, bounded-concurrency polls of many devices.

    Args:
        poll: Polls one device.
        networks: Returns the current local networks.
        debounce: Seconds during which a completed refresh stays fresh.
        concurrency: Maximum polls in flight.
        clock: Monotonic time source.
    """

    def __init__(
        self,
        poll: Callable[[WLEDDevice], Awaitable[None]],
        networks: Callable[[], Sequence[Network]] = lambda: (),
        debounce: float = REFRESH_DEBOUNCE,
        concurrency: int = REFRESH_CONCURRENCY,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._poll = poll
        self._networks = networks
        self.debounce = debounce
        self.concurrency = concurrency
        self._clock = clock
        self._last_refresh: float | None = None
        self._in_flight = False

    @property
    def is_fresh(self) -> bool:
        if self._in_flight:
            return True
        if self._last_refresh is None:
            return False
        return self._clock() - self._last_refresh < self.debounce

    def eligible(self, devices: Iterable[WLEDDevice]) -> list[WLEDDevice]:
        """Devices reachable from the local subnets."""
        networks = self._networks()
        eligible = []
        for device in devices:
            if is_in_local_subnets(device.ip_address, networks):
                eligible.append(device)
            else:
                _LOGGER.debug(
                    "Skipping %s (%s): not on a local subnet",
                    device.name,
                    device.ip_address,
                )
        return eligible

    async def async_refresh(self, devices: Iterable[WLEDDevice], force: bool = False) -> int:
        """Poll devices unless a refresh is still fresh.

        Returns:
            Number of devices polled; 0 when the request was coalesced.
        """
        if not force and self.is_fresh:
            _LOGGER.debug("Refresh skipped, last refresh is still fresh")
            return 0

        self._in_flight = True
        self._last_refresh = self._clock()
        try:
            targets = self.eligible(devices)
            semaphore = asyncio.Semaphore(self.concurrency)

            async def _bounded(device: WLEDDevice) -> None:
                async with semaphore:
                    await self._poll(device)

            await asyncio.gather(*(_bounded(device) for device in targets))
            return len(targets)
        finally:
            self._in_flight = False
            self._last_refresh = self._clock()
