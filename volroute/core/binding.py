"""MAC binding verification with a per-configuration cache."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass

from volroute.core.device_match import macs_match
from volroute.core.errors import (
    BindingError,
    BindingMismatchError,
    BindingResolutionError,
    ConfigurationError,
)
from volroute.core.model import TvConfig
from volroute.core.neighbor import resolve_mac

LOGGER = logging.getLogger(__name__)

Resolver = Callable[[str], str]


@dataclass(frozen=True)
class _CachedBinding:
    address: str
    mac: str
    error: BindingError | None


class MacBindingVerifier:
    """Checks that the device at the configured address has the configured MAC.

    The outcome is cached for the (address, MAC) pair it was computed for. Any
    change to either value forces a fresh lookup; nothing expires on a timer.
    """

    def __init__(self, resolver: Resolver | None = None) -> None:
        self._resolver = resolver or resolve_mac
        self._lock = threading.Lock()
        self._cached: _CachedBinding | None = None

    def check(self, config: TvConfig) -> None:
        """Raise a BindingError unless the binding for ``config`` is verified."""
        if not config.tv_ip or not config.tv_mac:
            raise ConfigurationError("TV IP or MAC not configured; cannot verify binding.")

        with self._lock:
            cached = self._cached
            if cached is None or cached.address != config.tv_ip or cached.mac != config.tv_mac:
                cached = _CachedBinding(
                    address=config.tv_ip,
                    mac=config.tv_mac,
                    error=self._verify(config.tv_ip, config.tv_mac),
                )
                self._cached = cached

        if cached.error is not None:
            raise cached.error

    def verify(self, config: TvConfig) -> bool:
        try:
            self.check(config)
        except (BindingError, ConfigurationError):
            return False
        return True

    def invalidate(self) -> None:
        with self._lock:
            self._cached = None

    def _verify(self, address: str, expected_mac: str) -> BindingError | None:
        try:
            actual = self._resolver(address)
        except BindingResolutionError as exc:
            LOGGER.error("MAC verification: %s", exc)
            return exc
        except OSError as exc:
            LOGGER.error("MAC verification: failed to resolve MAC for IP %s: %s", address, exc)
            return BindingResolutionError(f"Failed to resolve MAC for {address}: {exc}")

        if not macs_match(expected_mac, actual):
            LOGGER.error("MAC verification failed: configured=%s, actual=%s", expected_mac, actual)
            return BindingMismatchError(address, expected_mac, actual)

        LOGGER.debug("MAC verification passed for %s (%s)", address, actual)
        return None
