"""WLED Sync manager.

Composes the reconciliation engine with the external collaborators (HTTP
client, push transport, discovery, persistence) and exposes the read and
write API used by the Home Assistant layer.

Every device mutation flows through one of two paths: incoming updates go
through the reconciler and the coalescer, user commands go through the
command dispatcher. Nothing else writes to the registry.
"""
from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterable, Sequence
from datetime import UTC, datetime

import aiohttp

from .api.exceptions import WLEDApiError
from .api.websocket import ConnectionStatus
from .const import STREAM_FPS, STREAM_MAX_FPS
from .models.capability import DeviceCapabilities
from .models.commands import (
    BrightnessCommand,
    CCTCommand,
    ColorCommand,
    CommandTarget,
    DeviceCommand,
    EffectCommand,
    PowerCommand,
    PresetCommand,
    RenameCommand,
    SavePresetCommand,
)
from .models.config import SyncSettings
from .models.device import WLEDDevice
from .models.gradient import DEFAULT_LED_COUNT, Gradient
from .models.preset import Preset
from .models.scene import Scene
from .models.state import (
    InfoSnapshot,
    PushEvent,
    RGBColor,
    UpdateSource,
    temperature_to_cct,
    temperature_to_rgb,
)
from .protocols import (
    IDeviceClient,
    IDeviceStore,
    IDiscoveryService,
    IPushTransport,
    ISceneStore,
)
from .sync import (
    CapabilityCache,
    CommandDispatcher,
    CommandPhase,
    CommandResult,
    DeviceError,
    DeviceRegistry,
    DeviceTaskRunner,
    ErrorCenter,
    ErrorKind,
    IntentTracker,
    Reconciler,
    Reconciliation,
    ReconcileAction,
    RefreshCoordinator,
    UpdateCoalescer,
    classify,
    is_in_local_subnets,
    run_transition,
)
from .sync.refresh import Network

_LOGGER = logging.getLogger(__name__)

# Connection priority of devices connected in bulk from a selection
BATCH_CONNECT_PRIORITY = 10

_FETCH_ERRORS = (WLEDApiError, aiohttp.ClientError, TimeoutError)

type DiscoveredCallback = Callable[[WLEDDevice, InfoSnapshot | None], Awaitable[None]]
type TransportFactory = Callable[[Callable[[PushEvent], None]], IPushTransport]
type DiscoveryFactory = Callable[[DiscoveredCallback], IDiscoveryService]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class WLEDSyncManager:
    """Owns the canonical device state and every path that changes it.

    Args:
        client: HTTP command/query client.
        transport_factory: Builds the push transport around our event handler.
            Without one, state arrives by polling only.
        discovery_factory: Builds the discovery service around our callback.
        store: Device persistence.
        scene_store: Scene persistence.
        settings: Engine timings.
        networks: Returns the local networks used for the subnet skip.
        clock: Monotonic time source for intent windows and debouncing.
        now: Wall clock for ``last_seen``.
    """

    def __init__(
        self,
        client: IDeviceClient,
        *,
        transport_factory: TransportFactory | None = None,
        discovery_factory: DiscoveryFactory | None = None,
        store: IDeviceStore | None = None,
        scene_store: ISceneStore | None = None,
        settings: SyncSettings | None = None,
        networks: Callable[[], Sequence[Network]] = lambda: (),
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.settings = settings or SyncSettings()
        self._client = client
        self._store = store
        self._scene_store = scene_store
        self._networks = networks
        self._now = now

        self.registry = DeviceRegistry()
        self.intents = IntentTracker(
            protection_window=self.settings.protection_window,
            rename_window=self.settings.rename_protection_window,
            clock=clock,
        )
        self.capabilities = CapabilityCache()
        self.errors = ErrorCenter()
        self._coalescer = UpdateCoalescer(
            current=self.registry.get,
            apply=self.registry.put_many,
            interval=self.settings.batch_interval,
        )
        self._reconciler = Reconciler(
            self.intents,
            self.capabilities,
            brightness_threshold=self.settings.brightness_threshold,
        )
        self._transport = transport_factory(self.handle_push) if transport_factory else None
        self._discovery = discovery_factory(self.async_handle_discovered) if discovery_factory else None
        self.dispatcher = CommandDispatcher(
            self.registry,
            self.intents,
            self.capabilities,
            self._coalescer,
            client,
            self.errors,
            transport=self._transport,
            store=store,
            on_response=self.handle_push,
            command_timeout=self.settings.command_timeout,
            now=now,
        )
        self._refresher = RefreshCoordinator(
            self._async_poll_device,
            networks=networks,
            debounce=self.settings.refresh_debounce,
            concurrency=self.settings.refresh_concurrency,
            clock=clock,
        )
        self._tasks = DeviceTaskRunner()
        self._streams = DeviceTaskRunner()
        self._persist_tasks: set[asyncio.Task] = set()
        self._effects: dict[str, list[str]] = {}
        self._presets: dict[str, list[Preset]] = {}
        self._selection: set[str] = set()
        self._led_counts: dict[str, int] = {}
        self._scenes: dict[str, Scene] = {}

        self.registry.register_observer(self)

    # === Read API ===

    @property
    def devices(self) -> dict[str, WLEDDevice]:
        return self.registry.devices

    @property
    def realtime_enabled(self) -> bool:
        return self._transport is not None

    def get_device(self, device_id: str) -> WLEDDevice | None:
        return self.registry.get(device_id)

    def current_power_state(self, device_id: str) -> bool | None:
        """Power state including any optimistic value in flight."""
        optimistic = self.dispatcher.optimistic(device_id)
        if optimistic is not None and optimistic.is_on is not None:
            return optimistic.is_on
        device = self.registry.get(device_id)
        return device.is_on if device else None

    def device_capabilities(self, device_id: str) -> DeviceCapabilities:
        """Detected capabilities, RGB-only until detection completes."""
        return self.capabilities.get_or_default(device_id)

    def presets(self, device_id: str) -> list[Preset]:
        return list(self._presets.get(device_id, []))

    def effects(self, device_id: str) -> list[str]:
        return list(self._effects.get(device_id, []))

    def active_error(self, device_id: str) -> DeviceError | None:
        return self.errors.active(device_id)

    def connection_status(self, device_id: str) -> ConnectionStatus:
        if self._transport is None:
            return ConnectionStatus.DISCONNECTED
        return self._transport.status(device_id)

    def reconnect_attempts(self, device_id: str) -> int:
        """Failed push connection attempts since the socket was last open."""
        if self._transport is None:
            return 0
        return self._transport.reconnect_attempts(device_id)

    def led_count(self, device_id: str) -> int:
        """LED count reported by the device, or a default until known."""
        return self._led_counts.get(device_id, DEFAULT_LED_COUNT)

    def is_streaming(self, device_id: str) -> bool:
        return self._streams.is_running(device_id)

    # === Passive inputs ===

    def handle_push(self, event: PushEvent) -> Reconciliation:
        """Reconcile one incoming update from any source.

        Runs synchronously so events of a device are handled in arrival
        order.
        """
        device_id = event.device_id
        current = self.registry.get(device_id)
        if current is None:
            _LOGGER.debug("Ignoring %s update for unknown device %s", event.source, device_id)
            return Reconciliation(ReconcileAction.IGNORE, reason="unknown device")

        if event.info is not None and event.info.segment_flags:
            self.capabilities.detect(device_id, event.info.segment_flags)
        if event.info is not None and event.info.led_count > 0:
            self._led_counts[device_id] = event.info.led_count

        result = self._reconciler.reconcile(
            current,
            event,
            protected=self.dispatcher.protected_fields(device_id),
            base=self._coalescer.pending(device_id),
        )
        if result.action is ReconcileAction.APPLY and result.device is not None:
            self._coalescer.schedule(device_id, result.device)
        elif result.action is not ReconcileAction.IGNORE and event.timestamp is not None:
            self.registry.touch(device_id, event.timestamp)
        return result

    async def async_handle_discovered(
        self, device: WLEDDevice, info: InfoSnapshot | None = None
    ) -> None:
        """Add a newly found device or refresh a known one."""
        existing = self.registry.get(device.device_id)
        if existing is not None:
            self.handle_push(
                PushEvent(
                    device_id=device.device_id,
                    info=info,
                    timestamp=device.last_seen or self._now(),
                    source=UpdateSource.DISCOVERY,
                    host=device.ip_address,
                )
            )
            return

        _LOGGER.info("Discovered WLED device %s at %s", device.name, device.ip_address)
        self.registry.put(device)
        if info is not None and info.led_count > 0:
            self._led_counts[device.device_id] = info.led_count
        if info is not None and info.segment_flags:
            self.capabilities.detect(device.device_id, info.segment_flags)
            await self._async_refresh_catalog(device)
        else:
            self.start_capability_detection(device.device_id)
        await self._async_connect_push(device)

    async def async_poll_all(self) -> dict[str, WLEDDevice]:
        """Poll every device now; doubles as the health check."""
        await self._refresher.async_refresh(self.registry.devices.values(), force=True)
        self._coalescer.flush()
        return self.registry.devices

    async def async_refresh(self, force: bool = False) -> int:
        """Debounced refresh of every device."""
        polled = await self._refresher.async_refresh(self.registry.devices.values(), force=force)
        if polled:
            self._coalescer.flush()
        return polled

    async def _async_poll_device(self, device: WLEDDevice) -> None:
        try:
            state = await self._client.get_state(device.ip_address)
        except _FETCH_ERRORS as err:
            self._handle_unreachable(device.device_id, err)
            return

        self.handle_push(
            PushEvent(
                device_id=device.device_id,
                state=state,
                timestamp=self._now(),
                source=UpdateSource.POLL,
            )
        )

    def _handle_unreachable(self, device_id: str, err: BaseException) -> None:
        """Mark a device offline once it has been silent for the health-check interval."""
        now = self._now()
        interval = self.settings.health_check_interval

        def _mark_offline(current: WLEDDevice) -> WLEDDevice:
            if not current.is_online:
                return current
            if current.last_seen is not None and (now - current.last_seen).total_seconds() < interval:
                return current
            return current.with_changes(is_online=False)

        before = self.registry.get(device_id)
        after = self.registry.update(device_id, _mark_offline)
        if before is not None and after is not None and before.is_online and not after.is_online:
            self._coalescer.discard(device_id)
            _LOGGER.warning("%s is unreachable: %s", after.name, err)
        else:
            _LOGGER.debug("Poll of %s failed: %s", device_id, err)

    # === Capabilities, effects and presets ===

    def start_capability_detection(self, device_id: str) -> asyncio.Task:
        return self._tasks.start(device_id, self.async_detect_capabilities(device_id))

    async def async_detect_capabilities(self, device_id: str) -> DeviceCapabilities | None:
        """Fetch device info and refresh capabilities, effects and presets."""
        device = self.registry.get(device_id)
        if device is None:
            return None
        try:
            info = await self._client.fetch_metadata(device.ip_address)
        except _FETCH_ERRORS as err:
            _LOGGER.warning("Could not detect capabilities of %s: %s", device.name, err)
            return None

        capabilities = self.capabilities.detect(device_id, info.segment_flags)
        self.handle_push(
            PushEvent(
                device_id=device_id,
                info=info,
                timestamp=self._now(),
                source=UpdateSource.DISCOVERY,
            )
        )
        await self._async_refresh_catalog(device)
        await self._async_connect_push(device)
        return capabilities

    async def _async_refresh_catalog(self, device: WLEDDevice) -> None:
        await self.async_refresh_effects(device.device_id)
        await self.async_refresh_presets(device.device_id)

    async def async_refresh_effects(self, device_id: str) -> list[str]:
        """Refresh the cached effect list; keeps the old list on failure."""
        device = self.registry.get(device_id)
        if device is None:
            return []
        try:
            self._effects[device_id] = await self._client.fetch_effects(device.ip_address)
        except _FETCH_ERRORS as err:
            _LOGGER.warning("Failed to fetch effects for %s: %s", device.name, err)
        return self.effects(device_id)

    async def async_refresh_presets(self, device_id: str) -> list[Preset]:
        """Refresh the cached preset list; keeps the old list on failure."""
        device = self.registry.get(device_id)
        if device is None:
            return []
        try:
            self._presets[device_id] = await self._client.fetch_presets(device.ip_address)
        except _FETCH_ERRORS as err:
            _LOGGER.warning("Failed to fetch presets for %s: %s", device.name, err)
            return self.presets(device_id)
        _LOGGER.debug("Fetched %d presets for %s", len(self._presets[device_id]), device.name)
        return self.presets(device_id)

    # === Write API ===

    async def _execute(
        self,
        device_id: str,
        command: DeviceCommand,
        target: CommandTarget | None = None,
    ) -> CommandResult:
        async def _retry() -> CommandResult:
            return await self._execute(device_id, command, target)

        return await self.dispatcher.async_execute(device_id, command, target, retry=_retry)

    async def async_set_power(self, device_id: str, on: bool) -> CommandResult:
        return await self._execute(device_id, PowerCommand(power_on=on), CommandTarget(is_on=on))

    async def async_toggle(self, device_id: str) -> CommandResult:
        """Invert the power state the user currently sees."""
        return await self.async_set_power(device_id, not self.current_power_state(device_id))

    async def async_set_brightness(self, device_id: str, brightness: int) -> CommandResult:
        brightness = max(0, min(255, int(brightness)))
        return await self._execute(
            device_id,
            BrightnessCommand(brightness=brightness),
            CommandTarget(brightness=brightness),
        )

    async def async_set_color(
        self,
        device_id: str,
        color: RGBColor,
        segment_id: int = 0,
        white: int | None = None,
    ) -> CommandResult:
        """Set an RGB color; leaves color temperature mode."""
        temperature = 0.0 if self.capabilities.supports_cct(device_id, segment_id) else None
        return await self._execute(
            device_id,
            ColorCommand(segment_id=segment_id, color=color, white=white),
            CommandTarget(color=color, temperature=temperature),
        )

    async def async_apply_cct(
        self,
        device_id: str,
        temperature: float,
        segment_id: int = 0,
    ) -> CommandResult:
        """Set a normalized color temperature (0.0 warm to 1.0 cool)."""
        temperature = round(max(0.0, min(1.0, temperature)), 3)
        return await self._execute(
            device_id,
            CCTCommand(segment_id=segment_id, cct=temperature_to_cct(temperature)),
            CommandTarget(temperature=temperature, color=temperature_to_rgb(temperature)),
        )

    async def async_set_effect(
        self,
        device_id: str,
        effect_id: int,
        speed: int | None = None,
        intensity: int | None = None,
        palette_id: int | None = None,
        segment_id: int = 0,
    ) -> CommandResult:
        return await self._execute(
            device_id,
            EffectCommand(
                segment_id=segment_id,
                effect_id=effect_id,
                speed=speed,
                intensity=intensity,
                palette_id=palette_id,
            ),
        )

    async def async_apply_preset(
        self,
        device_id: str,
        preset_id: int,
        transition: int | None = None,
    ) -> CommandResult:
        return await self._execute(
            device_id, PresetCommand(preset_id=preset_id, transition=transition)
        )

    async def async_save_preset(self, device_id: str, preset_id: int, name: str) -> CommandResult:
        """Store the current state as a preset and refresh the preset list."""
        result = await self._execute(
            device_id, SavePresetCommand(preset_id=preset_id, name=name)
        )
        if result.success:
            await self.async_refresh_presets(device_id)
        return result

    async def async_rename(self, device_id: str, name: str) -> CommandResult:
        """Rename the device.

        The requested name is protected from stale device reports until the
        device confirms it or the rename window expires.
        """
        name = name.strip()
        if name:
            self.intents.begin_rename(device_id, name)
        result = await self._execute(
            device_id, RenameCommand(name=name), CommandTarget(name=name or None)
        )
        if result.phase is CommandPhase.REJECTED:
            self.intents.clear_rename(device_id)
        return result

    async def async_update_location(self, device_id: str, location: str) -> WLEDDevice | None:
        """Set the local-only location label."""
        location = location.strip()
        self._coalescer.replace_pending(
            device_id, lambda parked: parked.with_changes(location=location)
        )
        return self.registry.update(
            device_id, lambda current: current.with_changes(location=location)
        )

    async def async_remove_device(self, device_id: str) -> None:
        """Forget a device entirely."""
        self._tasks.cancel(device_id)
        self._streams.cancel(device_id)
        self._coalescer.discard(device_id)
        if self._transport is not None:
            await self._transport.disconnect(device_id)
        self.registry.remove(device_id)
        self.intents.forget(device_id)
        self.capabilities.remove(device_id)
        self.errors.dismiss(device_id)
        self._selection.discard(device_id)
        self._effects.pop(device_id, None)
        self._presets.pop(device_id, None)
        self._led_counts.pop(device_id, None)
        if self._store is not None:
            await self._store.remove(device_id)

    # === Gradients and streaming ===

    def _unknown_device(self, device_id: str) -> CommandResult:
        error = DeviceError(ErrorKind.CONFIGURATION, device_id, detail="Unknown device")
        self.errors.report(error)
        return CommandResult(device_id, CommandPhase.REJECTED, error=error)

    async def async_apply_gradient(
        self,
        device_id: str,
        gradient: Gradient,
        brightness: int | None = None,
    ) -> CommandResult:
        """Write a static gradient across the strip.

        Ends any transition running on the device. Brightness, if given,
        goes through the command path so canonical state follows it.
        """
        self._streams.cancel(device_id)
        return await self._async_send_gradient(device_id, gradient, brightness)

    async def _async_send_gradient(
        self,
        device_id: str,
        gradient: Gradient,
        brightness: int | None,
    ) -> CommandResult:
        device = self.registry.get(device_id)
        if device is None:
            return self._unknown_device(device_id)
        try:
            await self._client.set_segment_pixels(
                device.ip_address, gradient.sample(self.led_count(device_id))
            )
        except _FETCH_ERRORS as err:
            error = DeviceError(classify(err), device_id, device.name, str(err))

            async def _retry() -> CommandResult:
                return await self.async_apply_gradient(device_id, gradient, brightness)

            self.errors.report(error, retry=_retry)
            return CommandResult(device_id, CommandPhase.FAILED, error=error)

        if brightness is not None:
            return await self.async_set_brightness(device_id, brightness)
        return CommandResult(device_id, CommandPhase.CONFIRMED)

    def start_gradient_transition(
        self,
        device_id: str,
        start: Gradient,
        end: Gradient,
        duration: float,
        fps: int = STREAM_FPS,
        a_brightness: int | None = None,
        b_brightness: int | None = None,
    ) -> asyncio.Task | None:
        """Stream a blend from ``start`` to ``end`` in the background.

        Starting a transition cancels the one already running on the same
        device; ``cancel_streaming`` stops it early.

        Returns:
            The streaming task, or None for an unknown device.
        """
        if self.registry.get(device_id) is None:
            return None
        fps = max(1, min(STREAM_MAX_FPS, int(fps)))
        return self._streams.start(
            device_id,
            self._async_run_transition(
                device_id, start, end, duration, fps, a_brightness, b_brightness
            ),
        )

    def cancel_streaming(self, device_id: str) -> bool:
        """Stop the transition running on a device, if any."""
        return self._streams.cancel(device_id)

    async def _async_run_transition(
        self,
        device_id: str,
        start: Gradient,
        end: Gradient,
        duration: float,
        fps: int,
        a_brightness: int | None,
        b_brightness: int | None,
    ) -> None:
        device = self.registry.get(device_id)
        if device is None:
            return

        async def _send_frame(frame: list[str], brightness: int | None) -> None:
            await self._client.set_segment_pixels(
                device.ip_address, frame, brightness=brightness
            )

        _LOGGER.debug("Starting %.1fs transition on %s at %d fps", duration, device.name, fps)
        try:
            await run_transition(
                _send_frame,
                start,
                end,
                duration,
                fps,
                self.led_count(device_id),
                a_brightness,
                b_brightness,
            )
        except _FETCH_ERRORS as err:
            error = DeviceError(classify(err), device_id, device.name, str(err))

            async def _retry() -> asyncio.Task | None:
                return self.start_gradient_transition(
                    device_id, start, end, duration, fps, a_brightness, b_brightness
                )

            self.errors.report(error, retry=_retry)
            return

        if b_brightness is not None:
            await self.async_set_brightness(device_id, b_brightness)

    # === Scenes ===

    def scenes(self, device_id: str | None = None) -> list[Scene]:
        """Saved scenes, oldest first; optionally only those of one device."""
        return [
            scene
            for scene in self._scenes.values()
            if device_id is None or scene.device_id == device_id
        ]

    def get_scene(self, scene_id: str) -> Scene | None:
        return self._scenes.get(scene_id)

    async def async_save_scene(
        self,
        device_id: str,
        name: str,
        primary: Gradient,
        *,
        secondary: Gradient | None = None,
        duration: float | None = None,
        a_brightness: int | None = None,
        b_brightness: int | None = None,
        effect_id: int | None = None,
        palette_id: int | None = None,
        speed: int | None = None,
        intensity: int | None = None,
    ) -> Scene | None:
        """Save the device's current brightness with a gradient look.

        Returns:
            The new scene, or None for an unknown device.
        """
        device = self.registry.get(device_id)
        if device is None:
            return None
        scene = Scene(
            name=name.strip() or device.name,
            device_id=device_id,
            brightness=device.brightness,
            primary=primary,
            created_at=self._now(),
            transition_enabled=secondary is not None and duration is not None,
            secondary=secondary,
            duration=duration,
            a_brightness=a_brightness,
            b_brightness=b_brightness,
            effects_enabled=effect_id is not None,
            effect_id=effect_id,
            palette_id=palette_id,
            speed=speed,
            intensity=intensity,
        )
        self._scenes[scene.scene_id] = scene
        if self._scene_store is not None:
            await self._scene_store.save(scene)
        _LOGGER.debug("Saved scene %s for %s", scene.name, device.name)
        return scene

    async def async_remove_scene(self, scene_id: str) -> bool:
        if self._scenes.pop(scene_id, None) is None:
            return False
        if self._scene_store is not None:
            await self._scene_store.remove(scene_id)
        return True

    async def async_apply_scene(
        self, scene_id: str, device_id: str | None = None
    ) -> CommandResult:
        """Apply a saved scene, by default to the device it was saved from.

        Running transitions are cancelled first, then brightness is set,
        then the effect, A/B transition or static gradient is applied.
        """
        scene = self._scenes.get(scene_id)
        target = device_id or (scene.device_id if scene else "")
        if scene is None:
            error = DeviceError(ErrorKind.CONFIGURATION, target, detail=f"Unknown scene {scene_id}")
            self.errors.report(error)
            return CommandResult(target, CommandPhase.REJECTED, error=error)

        self._streams.cancel(target)
        result = await self.async_set_brightness(target, scene.brightness)
        if not result.success:
            return result

        if scene.effects_enabled:
            base = scene.primary.first_color
            if base is not None:
                result = await self.async_set_color(target, base)
                if not result.success:
                    return result
            return await self.async_set_effect(
                target,
                scene.effect_id or 0,
                speed=scene.speed,
                intensity=scene.intensity,
                palette_id=scene.palette_id,
            )

        if scene.has_transition:
            self.start_gradient_transition(
                target,
                scene.primary,
                scene.secondary,
                scene.duration,
                a_brightness=scene.a_brightness,
                b_brightness=scene.b_brightness,
            )
            return result

        return await self._async_send_gradient(target, scene.primary, None)

    # === Connection health ===

    async def async_force_reconnect(self, device_id: str) -> ConnectionStatus:
        """Poll the device now and reopen its push connection with a fresh backoff."""
        device = self.registry.get(device_id)
        if device is None:
            return ConnectionStatus.DISCONNECTED
        await self._async_poll_device(device)
        self._coalescer.flush()
        if self._transport is None:
            return ConnectionStatus.DISCONNECTED
        status = await self._transport.reconnect(device_id)
        if status is ConnectionStatus.DISCONNECTED:
            await self._async_connect_push(device)
        return self.connection_status(device_id)

    # === Errors ===

    def dismiss_error(self, device_id: str) -> bool:
        return self.errors.dismiss(device_id)

    async def async_retry(self, device_id: str) -> bool:
        return await self.errors.async_retry(device_id)

    # === Selection and batch operations ===

    @property
    def selection(self) -> frozenset[str]:
        return frozenset(self._selection)

    def select(self, device_id: str) -> bool:
        if device_id not in self.registry:
            return False
        self._selection.add(device_id)
        return True

    def deselect(self, device_id: str) -> None:
        self._selection.discard(device_id)

    def select_all(self) -> None:
        self._selection = set(self.registry.devices)

    def clear_selection(self) -> None:
        self._selection.clear()

    async def _async_batch(
        self, operation: Callable[[str], Awaitable[CommandResult]]
    ) -> dict[str, CommandResult]:
        """Run an operation for every selected device with bounded fan-out."""
        device_ids = sorted(self._selection & set(self.registry.devices))
        semaphore = asyncio.Semaphore(self.settings.refresh_concurrency)

        async def _bounded(device_id: str) -> tuple[str, CommandResult]:
            async with semaphore:
                return device_id, await operation(device_id)

        return dict(await asyncio.gather(*(_bounded(device_id) for device_id in device_ids)))

    async def async_batch_toggle(self) -> dict[str, CommandResult]:
        return await self._async_batch(self.async_toggle)

    async def async_batch_set_brightness(self, brightness: int) -> dict[str, CommandResult]:
        return await self._async_batch(
            lambda device_id: self.async_set_brightness(device_id, brightness)
        )

    async def async_batch_set_color(self, color: RGBColor) -> dict[str, CommandResult]:
        return await self._async_batch(lambda device_id: self.async_set_color(device_id, color))

    async def async_batch_apply_preset(self, preset_id: int) -> dict[str, CommandResult]:
        return await self._async_batch(
            lambda device_id: self.async_apply_preset(device_id, preset_id)
        )

    async def async_batch_connect_realtime(self) -> dict[str, ConnectionStatus]:
        """Open push connections for the selection, preferring it over others."""
        statuses: dict[str, ConnectionStatus] = {}
        if self._transport is None:
            return statuses
        for offset, device_id in enumerate(sorted(self._selection)):
            device = self.registry.get(device_id)
            if device is not None:
                statuses[device_id] = await self._transport.connect(
                    device, priority=BATCH_CONNECT_PRIORITY + offset
                )
        return statuses

    async def async_batch_disconnect_realtime(self) -> None:
        if self._transport is None:
            return
        for device_id in sorted(self._selection):
            await self._transport.disconnect(device_id)

    # === Persistence ===

    def on_devices_changed(self, devices: list[WLEDDevice]) -> None:
        """Persist replaced snapshots in the background."""
        if self._store is None:
            return
        task = asyncio.get_running_loop().create_task(self._async_persist(devices))
        self._persist_tasks.add(task)
        task.add_done_callback(self._persist_tasks.discard)

    async def _async_persist(self, devices: Iterable[WLEDDevice]) -> None:
        for device in devices:
            await self._store.save(device)

    # === Lifecycle ===

    async def async_start(self) -> None:
        """Load persisted devices, start discovery and connect push transport."""
        if self._store is not None:
            stored = await self._store.fetch_all()
            for device in stored:
                self.registry.put(device, notify=False)
            _LOGGER.debug("Restored %d devices from storage", len(stored))

        if self._scene_store is not None:
            for scene in await self._scene_store.fetch_all():
                self._scenes[scene.scene_id] = scene

        if self._discovery is not None:
            await self._discovery.start()

        # Detection confirms contact and then opens the push connection
        for device_id in self.registry.devices:
            if not self._tasks.is_running(device_id):
                self.start_capability_detection(device_id)

        _LOGGER.info("WLED Sync started with %d devices", len(self.registry))

    async def _async_connect_push(self, device: WLEDDevice, priority: int = 0) -> None:
        if self._transport is None:
            return
        if not is_in_local_subnets(device.ip_address, self._networks()):
            _LOGGER.debug("Not connecting %s: outside the local subnets", device.name)
            return
        await self._transport.connect(device, priority)

    async def async_stop(self) -> None:
        """Stop background work and flush pending state."""
        if self._discovery is not None:
            await self._discovery.stop()
        await self._streams.async_cancel_all()
        await self._tasks.async_cancel_all()
        if self._transport is not None:
            await self._transport.async_stop()
        self.dispatcher.cancel_all()
        self._coalescer.flush()
        if self._persist_tasks:
            await asyncio.gather(*self._persist_tasks, return_exceptions=True)
        self.registry.unregister_observer(self)
        _LOGGER.info("WLED Sync stopped")
