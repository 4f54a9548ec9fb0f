"""Command dispatcher.

Turns a requested device mutation into wire commands and drives each
command through its optimistic-then-confirm-or-revert lifecycle:

    PENDING -> CONFIRMED | REVERTED | EXPIRED | FAILED | SUPERSEDED

Three layers are kept apart: the canonical snapshot (registry), the
optimistic value shown while a command is in flight (held here) and the
pending command target (intent tracker).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum

import aiohttp

from ..api.exceptions import WLEDApiError
from ..const import COMMAND_TIMEOUT
from ..models.commands import CommandTarget, CommandValidationError, DeviceCommand
from ..models.device import WLEDDevice
from ..models.state import PushEvent, StateSnapshot, UpdateSource
from ..protocols.api import IDeviceClient, IPushTransport
from ..protocols.state import IDeviceStore
from .capabilities import CapabilityCache
from .coalescer import UpdateCoalescer
from .errors import DeviceError, ErrorCenter, ErrorKind, RetryCallback, classify
from .intent import IntentTracker
from .registry import DeviceRegistry

_LOGGER = logging.getLogger(__name__)


class CommandPhase(StrEnum):
    """Lifecycle phase of a command."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    REVERTED = "reverted"
    EXPIRED = "expired"
    FAILED = "failed"  # transient failure, attempted value kept
    SUPERSEDED = "superseded"
    REJECTED = "rejected"  # failed validation, never sent


@dataclass(frozen=True)
class CommandResult:
    """Terminal outcome of one command."""

    device_id: str
    phase: CommandPhase
    error: DeviceError | None = None
    state: StateSnapshot | None = None

    @property
    def success(self) -> bool:
        return self.phase is CommandPhase.CONFIRMED


@dataclass
class _InFlight:
    generation: int
    target: CommandTarget
    prior: WLEDDevice
    timer: asyncio.TimerHandle | None = None
    phase: CommandPhase = CommandPhase.PENDING


def _utcnow() -> datetime:
    return datetime.now(UTC)


class CommandDispatcher:
    """Issues commands and manages optimistic state."""

    def __init__(
        self,
        registry: DeviceRegistry,
        intents: IntentTracker,
        capabilities: CapabilityCache,
        coalescer: UpdateCoalescer,
        client: IDeviceClient,
        errors: ErrorCenter,
        *,
        transport: IPushTransport | None = None,
        store: IDeviceStore | None = None,
        on_response: Callable[[PushEvent], object] | None = None,
        command_timeout: float = COMMAND_TIMEOUT,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._registry = registry
        self._intents = intents
        self._capabilities = capabilities
        self._coalescer = coalescer
        self._client = client
        self._errors = errors
        self._transport = transport
        self._store = store
        self._on_response = on_response
        self.command_timeout = command_timeout
        self._now = now
        self._optimistic: dict[str, CommandTarget] = {}
        self._in_flight: dict[str, _InFlight] = {}

    # === Optimistic layer ===

    def optimistic(self, device_id: str) -> CommandTarget | None:
        """Optimistic value currently shown for a device."""
        return self._optimistic.get(device_id)

    def protected_fields(self, device_id: str) -> frozenset[str]:
        """Fields passive updates must not touch right now."""
        fields: frozenset[str] = frozenset()
        optimistic = self._optimistic.get(device_id)
        if optimistic is not None:
            fields |= optimistic.fields
        pending = self._intents.pending_target(device_id)
        if pending is not None:
            fields |= pending.fields
        return fields

    def phase(self, device_id: str) -> CommandPhase | None:
        """Phase of the latest tracked command for a device."""
        in_flight = self._in_flight.get(device_id)
        return in_flight.phase if in_flight else None

    # === Execution ===

    async def async_execute(
        self,
        device_id: str,
        command: DeviceCommand,
        target: CommandTarget | None = None,
        retry: RetryCallback | None = None,
    ) -> CommandResult:
        """Run one command through its full lifecycle.

        Args:
            device_id: Target device.
            command: Wire command to send.
            target: Canonical fields the command is expected to change.
            retry: Action offered with a retryable error.

        Returns:
            The terminal result. Errors are reported to the error center,
            never raised.
        """
        target = target or CommandTarget()
        device = self._registry.get(device_id)

        rejection = self._validate(device_id, device, command)
        if rejection is not None:
            self._errors.report(rejection)
            return CommandResult(device_id, CommandPhase.REJECTED, error=rejection)

        generation = self._begin(device_id, target)

        try:
            state = await self._send(device, command)
        except (WLEDApiError, aiohttp.ClientError, TimeoutError) as err:
            return self._fail(device_id, generation, target, err, retry)

        return await self._confirm(device_id, generation, target, state)

    def _validate(
        self,
        device_id: str,
        device: WLEDDevice | None,
        command: DeviceCommand,
    ) -> DeviceError | None:
        if device is None:
            return DeviceError(ErrorKind.CONFIGURATION, device_id, detail="Unknown device")
        if not device.ip_address.strip():
            return DeviceError(
                ErrorKind.CONFIGURATION,
                device_id,
                device.name,
                f"{device.name} has no network address",
            )
        try:
            command.validate(self._capabilities.get_or_default(device_id))
        except CommandValidationError as err:
            _LOGGER.warning("Rejected %s for %s: %s", type(command).__name__, device.name, err)
            return DeviceError(ErrorKind.CONFIGURATION, device_id, device.name, str(err))
        return None

    def _begin(self, device_id: str, target: CommandTarget) -> int:
        """Register intent and apply the optimistic value."""
        previous = self._in_flight.pop(device_id, None)
        prior = self._registry.get(device_id)
        if previous is not None:
            self._cancel_timer(previous)
            if previous.phase is CommandPhase.PENDING:
                previous.phase = CommandPhase.SUPERSEDED
                prior = previous.prior
                _LOGGER.debug("Superseding pending command for %s", device_id)

        self._intents.mark_interaction(device_id)
        generation = self._intents.set_pending_target(device_id, target)

        if target.fields:
            self._optimistic[device_id] = target
            self._registry.update(device_id, target.apply_to)
            self._coalescer.replace_pending(device_id, target.apply_to)
        else:
            self._optimistic.pop(device_id, None)

        in_flight = _InFlight(generation=generation, target=target, prior=prior)
        loop = asyncio.get_running_loop()
        in_flight.timer = loop.call_later(
            self.command_timeout, self._expire, device_id, generation
        )
        self._in_flight[device_id] = in_flight
        return generation

    async def _send(self, device: WLEDDevice, command: DeviceCommand) -> StateSnapshot | None:
        """Write the command; mirror it over the push transport when connected."""
        if (
            self._transport is not None
            and command.mirrorable
            and self._transport.is_connected(device.device_id)
        ):
            await self._transport.send(command.to_payload(), device.device_id)
        return await self._client.send_command(device.ip_address, command)

    def _expire(self, device_id: str, generation: int) -> None:
        """Command timer fired: drop pending and optimistic state, keep the UI value."""
        in_flight = self._in_flight.get(device_id)
        if in_flight is None or in_flight.generation != generation:
            return
        in_flight.timer = None
        in_flight.phase = CommandPhase.EXPIRED
        self._intents.clear_pending_target(device_id, generation)
        self._optimistic.pop(device_id, None)
        _LOGGER.debug("Command for %s expired without confirmation", device_id)

    def _stale_result(
        self,
        device_id: str,
        generation: int,
        error: DeviceError | None = None,
        state: StateSnapshot | None = None,
    ) -> CommandResult:
        in_flight = self._in_flight.get(device_id)
        if in_flight is not None and in_flight.generation == generation:
            self._in_flight.pop(device_id)
            return CommandResult(device_id, CommandPhase.EXPIRED, error=error, state=state)
        return CommandResult(device_id, CommandPhase.SUPERSEDED, error=error, state=state)

    async def _confirm(
        self,
        device_id: str,
        generation: int,
        target: CommandTarget,
        state: StateSnapshot | None,
    ) -> CommandResult:
        if not self._intents.is_pending_match(device_id, target, generation):
            _LOGGER.debug("Discarding response of a stale command for %s", device_id)
            return self._stale_result(device_id, generation, state=state)

        self._finish(device_id)
        self._intents.clear_pending_target(device_id, generation)
        self._intents.clear_interaction(device_id)
        self._optimistic.pop(device_id, None)

        now = self._now()
        device = self._registry.update(
            device_id,
            lambda current: target.apply_to(current).with_changes(
                is_online=True, last_seen=now
            ),
        )
        self._errors.dismiss(device_id)

        if device is not None and self._store is not None:
            await self._store.save(device)

        if state is not None and self._on_response is not None:
            self._on_response(
                PushEvent(
                    device_id=device_id,
                    state=state,
                    timestamp=now,
                    source=UpdateSource.COMMAND,
                )
            )
        return CommandResult(device_id, CommandPhase.CONFIRMED, state=state)

    def _fail(
        self,
        device_id: str,
        generation: int,
        target: CommandTarget,
        err: BaseException,
        retry: RetryCallback | None,
    ) -> CommandResult:
        kind = classify(err)
        device = self._registry.get(device_id)
        error = DeviceError(kind, device_id, device.name if device else "", str(err))

        if not self._intents.is_pending_match(device_id, target, generation):
            result = self._stale_result(device_id, generation, error=error)
            if result.phase is CommandPhase.EXPIRED:
                self._errors.report(error, retry)
            return result

        in_flight = self._finish(device_id)
        self._intents.clear_pending_target(device_id, generation)
        self._optimistic.pop(device_id, None)
        if target.name is not None:
            self._intents.clear_rename(device_id)

        phase = CommandPhase.FAILED
        if kind in (ErrorKind.DEVICE_OFFLINE, ErrorKind.CONFIGURATION) and in_flight is not None:
            prior = in_flight.prior
            offline = kind is ErrorKind.DEVICE_OFFLINE

            def _revert(current: WLEDDevice) -> WLEDDevice:
                reverted = target.revert(current, prior)
                return reverted.with_changes(is_online=False) if offline else reverted

            self._registry.update(device_id, _revert)
            if offline:
                self._coalescer.discard(device_id)
            else:
                self._coalescer.replace_pending(
                    device_id, lambda current: target.revert(current, prior)
                )
            self._intents.clear_interaction(device_id)
            phase = CommandPhase.REVERTED

        _LOGGER.debug(
            "Command for %s failed (%s): %s",
            error.device_name or device_id,
            kind,
            err,
        )
        self._errors.report(error, retry)
        return CommandResult(device_id, phase, error=error)

    def _finish(self, device_id: str) -> _InFlight | None:
        in_flight = self._in_flight.pop(device_id, None)
        if in_flight is not None:
            self._cancel_timer(in_flight)
        return in_flight

    @staticmethod
    def _cancel_timer(in_flight: _InFlight) -> None:
        if in_flight.timer is not None:
            in_flight.timer.cancel()
            in_flight.timer = None

    def cancel_all(self) -> None:
        """Stop every command timer; used on shutdown."""
        for in_flight in self._in_flight.values():
            self._cancel_timer(in_flight)
        self._in_flight.clear()
        self._optimistic.clear()
