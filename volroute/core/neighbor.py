"""Resolve the MAC address answering at an IPv4 address via the neighbor table."""

from __future__ import annotations

import ctypes
import ipaddress
import logging
import re
import socket
import subprocess
import sys
from collections.abc import Sequence

from volroute.core.device_match import format_mac
from volroute.core.errors import BindingResolutionError

LOGGER = logging.getLogger(__name__)

_MAC_RE = re.compile(r"([0-9A-F]{2}(?:[:-][0-9A-F]{2}){5})", re.IGNORECASE)
_PRIME_PORT = 9
_PRIME_TIMEOUT_S = 0.5


def resolve_mac(address: str) -> str:
    """Return the MAC for ``address`` formatted as 'AA:BB:CC:DD:EE:FF'.

    Raises BindingResolutionError when the address is invalid or no neighbor
    entry can be found.
    """
    try:
        ipv4 = ipaddress.IPv4Address(address)
    except ValueError as exc:
        raise BindingResolutionError(f"'{address}' is not a valid IPv4 address") from exc

    if sys.platform == "win32":
        return _send_arp(ipv4)

    mac = _lookup_neighbor_table(str(ipv4))
    if mac is None:
        _prime_neighbor_entry(str(ipv4))
        mac = _lookup_neighbor_table(str(ipv4))
    if mac is None:
        raise BindingResolutionError(
            f"Unable to resolve MAC address for {address}. Check that the TV is powered on and reachable."
        )
    return mac


def _send_arp(ipv4: ipaddress.IPv4Address) -> str:
    iphlpapi = ctypes.WinDLL("iphlpapi.dll")  # type: ignore[attr-defined]
    mac_buffer = (ctypes.c_ubyte * 8)()
    length = ctypes.c_ulong(6)
    # SendARP takes the destination as an IPAddr in network byte order.
    dest = int.from_bytes(ipv4.packed, "little")
    result = iphlpapi.SendARP(ctypes.c_ulong(dest), 0, ctypes.byref(mac_buffer), ctypes.byref(length))
    if result != 0 or length.value < 6:
        raise BindingResolutionError(f"SendARP failed for {ipv4}, result={result}")
    return format_mac(bytes(mac_buffer[:6]).hex())


def _lookup_neighbor_table(address: str) -> str | None:
    commands = [
        ["ip", "neigh", "show", address],
        ["arp", "-n", address],
    ]
    for cmd in commands:
        result = _run_lookup_command(cmd)
        if result is None or result.returncode != 0:
            continue
        for line in result.stdout.splitlines():
            if address not in line.split():
                continue
            match = _MAC_RE.search(line)
            if match:
                return format_mac(match.group(1))
    return None


def _prime_neighbor_entry(address: str) -> None:
    # Any outbound datagram makes the kernel ARP for the address.
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as probe:
            probe.settimeout(_PRIME_TIMEOUT_S)
            probe.sendto(b"", (address, _PRIME_PORT))
    except OSError as exc:
        LOGGER.debug("Neighbor probe to %s failed: %s", address, exc)


def _run_lookup_command(cmd: Sequence[str]) -> subprocess.CompletedProcess[str] | None:
    try:
        return subprocess.run(
            cmd,
            check=False,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError:
        return None
