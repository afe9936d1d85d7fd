"""Routing decision engine.

Decides whether volume keys go to the TV and pins or restores the host
endpoint level when that decision flips.
"""

from __future__ import annotations

import logging
import threading
from typing import Protocol

from volroute.core.errors import HostAudioError
from volroute.core.model import NO_DEVICE, DeviceSignal

LOGGER = logging.getLogger(__name__)

FULL_SCALE = 1.0


class HostVolume(Protocol):
    def get_level(self) -> float:
        """Return the host endpoint level in 0.0-1.0."""

    def set_level(self, level: float) -> None:
        """Set the host endpoint level in 0.0-1.0."""


def compute_verdict(
    device_is_target: bool,
    spatial_audio_active: bool,
    has_credential: bool,
    only_when_atmos: bool,
) -> bool:
    candidate = device_is_target and (spatial_audio_active if only_when_atmos else True)
    return candidate and has_credential


class RoutingEngine:
    """Owns the routing verdict and the saved host level.

    One lock guards the verdict, the device flags, and the level snapshot, so
    recomputations from device-change, configuration, and key-hook threads
    serialize with each other and with level writes.
    """

    def __init__(self, host_volume: HostVolume | None = None) -> None:
        self._host_volume = host_volume
        self._lock = threading.RLock()
        self._signal: DeviceSignal = NO_DEVICE
        self._routing = False
        self._saved_level: float | None = None

    @property
    def routing(self) -> bool:
        with self._lock:
            return self._routing

    @property
    def saved_level(self) -> float | None:
        with self._lock:
            return self._saved_level

    @property
    def signal(self) -> DeviceSignal:
        with self._lock:
            return self._signal

    def recompute(
        self,
        device_is_target: bool,
        spatial_audio_active: bool,
        has_credential: bool,
        only_when_atmos: bool,
        *,
        device_name: str | None = None,
    ) -> bool:
        with self._lock:
            self._signal = DeviceSignal(
                device_is_target=device_is_target,
                spatial_audio_active=spatial_audio_active,
                device_name=self._signal.device_name if device_name is None else device_name,
            )
            verdict = compute_verdict(
                device_is_target,
                spatial_audio_active,
                has_credential,
                only_when_atmos,
            )
            previous = self._routing
            self._routing = verdict
            if verdict and not previous:
                self._snapshot_and_pin()
            elif previous and not verdict:
                self._restore()

        if verdict != previous:
            LOGGER.info("Routing to TV %s", "enabled" if verdict else "disabled")
        return verdict

    def apply_signal(self, signal: DeviceSignal, has_credential: bool, only_when_atmos: bool) -> bool:
        return self.recompute(
            signal.device_is_target,
            signal.spatial_audio_active,
            has_credential,
            only_when_atmos,
            device_name=signal.device_name,
        )

    def refresh(self, has_credential: bool, only_when_atmos: bool) -> bool:
        """Recompute with the last device signal, e.g. after pairing or a config edit."""
        return self.apply_signal(self.signal, has_credential, only_when_atmos)

    def pin_host_level(self) -> None:
        """Force the host level to full scale while routing is active."""
        with self._lock:
            if self._routing:
                self._write_level(FULL_SCALE)

    def shutdown(self) -> None:
        """Restore the saved host level if routing is still active."""
        with self._lock:
            if self._routing:
                self._restore()
                self._routing = False

    def _snapshot_and_pin(self) -> None:
        if self._host_volume is None:
            LOGGER.warning("No host endpoint available; host level left untouched")
            return
        try:
            self._saved_level = self._host_volume.get_level()
        except HostAudioError as exc:
            LOGGER.warning("Could not read host level, keeping previous snapshot: %s", exc)
        self._write_level(FULL_SCALE)

    def _restore(self) -> None:
        if self._saved_level is None:
            LOGGER.warning("No saved host level to restore")
            return
        self._write_level(self._saved_level)

    def _write_level(self, level: float) -> None:
        if self._host_volume is None:
            return
        try:
            self._host_volume.set_level(level)
        except HostAudioError as exc:
            LOGGER.warning("Could not set host level to %.2f: %s", level, exc)
