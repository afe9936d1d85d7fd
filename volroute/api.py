"""Stable public API for building tooling on top of volroute.

This module is the supported integration surface for third-party callers
(tray UIs, scripts, services). Avoid importing from internal modules unless
intentionally depending on non-stable internals.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from volroute.core.binding import Resolver
from volroute.core.engine import HostVolume, compute_verdict
from volroute.core.errors import (
    BindingError,
    BindingMismatchError,
    BindingResolutionError,
    ConfigurationError,
    ConfigValidationError,
    HookUnavailableError,
    HostAudioError,
    NotPairedError,
    PairingError,
    PairingTimeoutError,
    ProtocolError,
    TransportClosedError,
    TransportConnectError,
    TransportError,
    TransportReceiveError,
    TransportSendError,
    TransportUpgradeError,
    VolrouteError,
)
from volroute.core.model import DeviceSignal, PairResult, RoutingStatus, TvAction, TvConfig, VolumeKey
from volroute.core.service import HookFactory, MonitorFactory, VolumeProxyService
from volroute.transports.base import Connector

__all__ = [
    "VolrouteError",
    "ConfigurationError",
    "ConfigValidationError",
    "BindingError",
    "BindingMismatchError",
    "BindingResolutionError",
    "NotPairedError",
    "TransportError",
    "TransportConnectError",
    "TransportUpgradeError",
    "TransportSendError",
    "TransportReceiveError",
    "TransportClosedError",
    "ProtocolError",
    "PairingError",
    "PairingTimeoutError",
    "HostAudioError",
    "HookUnavailableError",
    "DeviceSignal",
    "PairResult",
    "RoutingStatus",
    "TvAction",
    "TvConfig",
    "VolumeKey",
    "compute_verdict",
    "Client",
]


class Client:
    """Public client for pairing with the TV and routing volume keys to it.

    A `Client` wraps configuration, the credential store, the TV protocol
    client, and the routing engine behind a stable API. Device signals and key
    presses are fed in by whatever owns the platform hooks.
    """

    def __init__(
        self,
        config_path: Path | None = None,
        *,
        connector: Connector | None = None,
        resolver: Resolver | None = None,
        host_volume: HostVolume | None = None,
        monitor_factory: MonitorFactory | None = None,
        hook_factory: HookFactory | None = None,
    ) -> None:
        self._service = VolumeProxyService(
            config_path,
            connector=connector,
            resolver=resolver,
            host_volume=host_volume,
            monitor_factory=monitor_factory,
            hook_factory=hook_factory,
        )

    @property
    def config(self) -> TvConfig:
        return self._service.config

    @property
    def routing(self) -> bool:
        return self._service.engine.routing

    def status(self) -> RoutingStatus:
        return self._service.status()

    def update_config(self, config: TvConfig) -> None:
        self._service.apply_config(config)

    def report_device(self, signal: DeviceSignal) -> None:
        self._service.on_device_signal(signal)

    def handle_key(self, key: VolumeKey) -> bool:
        """Return True when the key was claimed for the TV."""
        return self._service.dispatcher.handle_key(key)

    def verify_binding(self) -> bool:
        return self._service.verifier.verify(self._service.config)

    def pair(self, on_prompt: Callable[[], None] | None = None) -> PairResult:
        return self._service.pair(on_prompt)

    def unpair(self) -> bool:
        return self._service.unpair()

    def run(self, action: TvAction) -> bool:
        return self._service.client.run(action)

    def set_volume(self, level: int) -> None:
        self._service.set_volume(level)

    def set_mute(self, mute: bool) -> None:
        self._service.set_mute(mute)

    def close(self) -> None:
        self._service.stop()
