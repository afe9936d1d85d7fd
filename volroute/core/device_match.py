"""Device name and MAC address matching logic."""

from __future__ import annotations

from collections.abc import Callable

from volroute.core.model import DeviceSignal

_HEX_DIGITS = set("0123456789ABCDEF")


def name_matches_hint(device_name: str, hint: str) -> bool:
    lower_hint = hint.strip().lower()
    if not lower_hint:
        return False
    return lower_hint in device_name.lower()


def normalize_mac(mac: str) -> str:
    """Keep hexadecimal digits only, uppercased: 'aa:bb-cc' -> 'AABBCC'."""
    return "".join(ch for ch in mac.upper() if ch in _HEX_DIGITS)


def format_mac(mac: str) -> str:
    normalized = normalize_mac(mac)
    return ":".join(normalized[i : i + 2] for i in range(0, len(normalized), 2))


def macs_match(expected: str, actual: str) -> bool:
    expected_norm = normalize_mac(expected)
    return bool(expected_norm) and expected_norm == normalize_mac(actual)


def evaluate_device(
    device_name: str | None,
    hint: str,
    spatial_probe: Callable[[], bool],
) -> DeviceSignal:
    """Build the monitor signal for the current default device.

    The spatial audio probe only runs for a device that matched the hint.
    """
    if device_name is None:
        return DeviceSignal(device_is_target=False, spatial_audio_active=False)
    is_target = name_matches_hint(device_name, hint)
    spatial = spatial_probe() if is_target else False
    return DeviceSignal(
        device_is_target=is_target,
        spatial_audio_active=spatial,
        device_name=device_name,
    )
