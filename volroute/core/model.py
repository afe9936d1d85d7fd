"""Core data models used across config, client, engine, and CLI."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

DEFAULT_SECURE_PORT = 3001
DEFAULT_PLAIN_PORT = 3000


@dataclass(frozen=True)
class TvConfig:
    tv_ip: str = ""
    tv_mac: str = ""
    tv_port: int = DEFAULT_SECURE_PORT
    use_secure_websocket: bool = True
    device_hint: str = "LG"
    only_when_atmos: bool = True
    timeout_s: float = 5.0
    pairing_timeout_s: float = 60.0
    safe_tv_volume: int = 10

    @property
    def url(self) -> str:
        scheme = "wss" if self.use_secure_websocket else "ws"
        return f"{scheme}://{self.tv_ip}:{self.tv_port}/"


class TvAction(Enum):
    VOLUME_UP = "volume_up"
    VOLUME_DOWN = "volume_down"
    TOGGLE_MUTE = "toggle_mute"


class VolumeKey(Enum):
    VOLUME_UP = "volume_up"
    VOLUME_DOWN = "volume_down"
    VOLUME_MUTE = "volume_mute"

    @property
    def action(self) -> TvAction:
        return _KEY_ACTIONS[self]


_KEY_ACTIONS = {
    VolumeKey.VOLUME_UP: TvAction.VOLUME_UP,
    VolumeKey.VOLUME_DOWN: TvAction.VOLUME_DOWN,
    VolumeKey.VOLUME_MUTE: TvAction.TOGGLE_MUTE,
}


@dataclass(frozen=True)
class DeviceSignal:
    """What the device monitor reported for the current default playback device."""

    device_is_target: bool
    spatial_audio_active: bool
    device_name: str = ""


NO_DEVICE = DeviceSignal(device_is_target=False, spatial_audio_active=False)


@dataclass(frozen=True)
class RoutingStatus:
    device_name: str
    device_is_target: bool
    spatial_audio_active: bool
    paired: bool
    routing: bool


@dataclass(frozen=True)
class PairResult:
    frames_read: int
    safe_volume_applied: bool
