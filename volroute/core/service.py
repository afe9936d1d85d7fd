"""Service layer used by the CLI and future UI frontends."""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from concurrent.futures import Executor
from pathlib import Path
from typing import Any, Protocol

from volroute.core.binding import MacBindingVerifier, Resolver
from volroute.core.client import TvClient
from volroute.core.config import credential_path_for, default_config_path, load_config, save_config
from volroute.core.credentials import CredentialStore
from volroute.core.dispatcher import KeyDispatcher
from volroute.core.engine import HostVolume, RoutingEngine, compute_verdict
from volroute.core.errors import HookUnavailableError, HostAudioError, VolrouteError
from volroute.core.model import DeviceSignal, PairResult, RoutingStatus, TvConfig
from volroute.transports.base import Connector

LOGGER = logging.getLogger(__name__)


class DeviceMonitor(Protocol):
    def probe(self) -> DeviceSignal: ...

    def start(self) -> None: ...

    def stop(self) -> None: ...


class KeyHook(Protocol):
    def start(self) -> None: ...

    def stop(self) -> None: ...


MonitorFactory = Callable[["VolumeProxyService"], DeviceMonitor]
HookFactory = Callable[[KeyDispatcher], KeyHook]


class VolumeProxyService:
    def __init__(
        self,
        config_path: Path | None = None,
        *,
        connector: Connector | None = None,
        resolver: Resolver | None = None,
        host_volume: HostVolume | None = None,
        monitor_factory: MonitorFactory | None = None,
        hook_factory: HookFactory | None = None,
        executor: Executor | None = None,
    ) -> None:
        self.config_path = config_path or default_config_path()
        self.config = load_config(self.config_path)
        self.store = CredentialStore(credential_path_for(self.config_path))
        self.verifier = MacBindingVerifier(resolver)
        self.client = TvClient(self.config, self.store, verifier=self.verifier, connector=connector)
        self.engine = RoutingEngine(host_volume if host_volume is not None else _default_host_volume())
        self.dispatcher = KeyDispatcher(self.engine, self.client, executor)
        self._monitor_factory = monitor_factory or _default_monitor
        self._hook_factory = hook_factory or _default_hook
        self._monitor: DeviceMonitor | None = None
        self._hook: KeyHook | None = None

    def status(self) -> RoutingStatus:
        signal = self.engine.signal
        return RoutingStatus(
            device_name=signal.device_name,
            device_is_target=signal.device_is_target,
            spatial_audio_active=signal.spatial_audio_active,
            paired=self.store.has_key(),
            routing=self.engine.routing,
        )

    def probe_status(self) -> RoutingStatus:
        """Query the default device once and report what routing would be.

        The engine is not touched, so a one-shot query never changes the host level.
        """
        monitor = self._monitor or self._monitor_factory(self)
        signal = monitor.probe()
        paired = self.store.has_key()
        return RoutingStatus(
            device_name=signal.device_name,
            device_is_target=signal.device_is_target,
            spatial_audio_active=signal.spatial_audio_active,
            paired=paired,
            routing=compute_verdict(
                signal.device_is_target,
                signal.spatial_audio_active,
                self._can_route(signal),
                self.config.only_when_atmos,
            ),
        )

    def on_device_signal(self, signal: DeviceSignal) -> None:
        self.engine.apply_signal(signal, self._can_route(signal), self.config.only_when_atmos)

    def apply_config(self, config: TvConfig) -> None:
        """Persist an edited configuration and re-evaluate routing against it."""
        save_config(config, self.config_path)
        self.config = config
        self.client.set_configuration(config)
        self.engine.refresh(self._can_route(), config.only_when_atmos)
        if self._monitor is not None:
            self.on_device_signal(self._monitor.probe())

    def verify_binding(self) -> None:
        self.verifier.check(self.config)

    def pair(self, on_prompt: Callable[[], None] | None = None) -> PairResult:
        frames = self.client.pair(on_prompt)
        LOGGER.info("Paired with TV at %s", self.config.tv_ip)
        self.engine.refresh(self._can_route(), self.config.only_when_atmos)
        applied = self._apply_safe_tv_volume()
        return PairResult(frames_read=frames, safe_volume_applied=applied)

    def unpair(self) -> bool:
        """Forget the client key. Returns False when there was nothing to remove."""
        if not self.store.has_key():
            LOGGER.debug("unpair: no client key present")
            return False
        self._apply_safe_tv_volume()
        self.client.unpair()
        LOGGER.info("Removed pairing for TV at %s", self.config.tv_ip)
        self.engine.refresh(False, self.config.only_when_atmos)
        return True

    def volume_up(self) -> None:
        self.client.volume_up()

    def volume_down(self) -> None:
        self.client.volume_down()

    def set_volume(self, level: int) -> None:
        self.client.set_volume(level)

    def set_mute(self, mute: bool) -> None:
        self.client.set_mute(mute)

    def toggle_mute(self) -> bool:
        return self.client.toggle_mute()

    def start(self) -> tuple[str, ...]:
        """Start device monitoring and the key hook. Returns warnings for missing pieces."""
        warnings: list[str] = []
        self._monitor = self._monitor_factory(self)
        try:
            self._monitor.start()
        except HostAudioError as exc:
            warnings.append(f"Device monitoring unavailable: {exc}")
            LOGGER.warning("Device monitoring unavailable: %s", exc)
            self.on_device_signal(DeviceSignal(device_is_target=False, spatial_audio_active=False))

        self._hook = self._hook_factory(self.dispatcher)
        try:
            self._hook.start()
        except HookUnavailableError as exc:
            warnings.append(str(exc))
            LOGGER.warning("Key hook unavailable: %s", exc)
            self._hook = None
        return tuple(warnings)

    def stop(self) -> None:
        if self._hook is not None:
            self._hook.stop()
            self._hook = None
        if self._monitor is not None:
            self._monitor.stop()
            self._monitor = None
        self.dispatcher.shutdown()
        self.engine.shutdown()
        if self.store.has_key():
            self._apply_safe_tv_volume()

    def _can_route(self, signal: DeviceSignal | None = None) -> bool:
        """Routing needs a stored key and a TV whose MAC binding checks out.

        The binding is only looked up when the device could route at all.
        """
        signal = signal or self.engine.signal
        if not signal.device_is_target or not self.store.has_key():
            return False
        return self.verifier.verify(self.config)

    def _apply_safe_tv_volume(self) -> bool:
        try:
            self.client.set_volume(self.config.safe_tv_volume)
        except VolrouteError as exc:
            LOGGER.warning("Could not set TV volume to %d: %s", self.config.safe_tv_volume, exc)
            return False
        return True


def _default_host_volume() -> HostVolume | None:
    if sys.platform != "win32":
        return None
    from volroute.host.audio import PycawHostVolume

    return PycawHostVolume()


def _default_monitor(service: VolumeProxyService) -> Any:
    from volroute.host.audio import UnavailableDeviceMonitor, WindowsDeviceMonitor

    if sys.platform != "win32":
        return UnavailableDeviceMonitor(service.on_device_signal)
    return WindowsDeviceMonitor(lambda: service.config.device_hint, service.on_device_signal)


def _default_hook(dispatcher: KeyDispatcher) -> KeyHook:
    from volroute.host.keyboard import VolumeKeyHook

    return VolumeKeyHook(dispatcher)
