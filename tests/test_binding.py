from __future__ import annotations

from dataclasses import replace

import pytest

from volroute.core.binding import MacBindingVerifier
from volroute.core.errors import BindingMismatchError, BindingResolutionError, ConfigurationError
from volroute.core.model import TvConfig

CONFIG = TvConfig(tv_ip="192.168.1.50", tv_mac="AA:BB:CC:DD:EE:FF")


class CountingResolver:
    def __init__(self, mac: str = "aa-bb-cc-dd-ee-ff") -> None:
        self.mac = mac
        self.calls: list[str] = []

    def __call__(self, address: str) -> str:
        self.calls.append(address)
        return self.mac


def test_repeated_checks_resolve_once():
    resolver = CountingResolver()
    verifier = MacBindingVerifier(resolver)

    for _ in range(3):
        assert verifier.verify(CONFIG) is True

    assert resolver.calls == ["192.168.1.50"]


def test_mac_change_forces_fresh_lookup():
    resolver = CountingResolver()
    verifier = MacBindingVerifier(resolver)

    assert verifier.verify(CONFIG) is True
    assert verifier.verify(replace(CONFIG, tv_mac="11:22:33:44:55:66")) is False
    assert verifier.verify(CONFIG) is True

    assert len(resolver.calls) == 3


def test_mismatch_is_cached_and_raised():
    resolver = CountingResolver("11:22:33:44:55:66")
    verifier = MacBindingVerifier(resolver)

    with pytest.raises(BindingMismatchError) as excinfo:
        verifier.check(CONFIG)
    with pytest.raises(BindingMismatchError):
        verifier.check(CONFIG)

    assert excinfo.value.actual == "11:22:33:44:55:66"
    assert len(resolver.calls) == 1


def test_resolution_failure_is_reported():
    def failing(address: str) -> str:
        raise OSError("network unreachable")

    verifier = MacBindingVerifier(failing)

    with pytest.raises(BindingResolutionError):
        verifier.check(CONFIG)
    assert verifier.verify(CONFIG) is False


def test_missing_address_or_mac_is_configuration_error():
    resolver = CountingResolver()
    verifier = MacBindingVerifier(resolver)

    with pytest.raises(ConfigurationError):
        verifier.check(replace(CONFIG, tv_mac=""))
    assert verifier.verify(replace(CONFIG, tv_ip="")) is False
    assert resolver.calls == []


def test_invalidate_drops_cache():
    resolver = CountingResolver()
    verifier = MacBindingVerifier(resolver)

    verifier.verify(CONFIG)
    verifier.invalidate()
    verifier.verify(CONFIG)

    assert len(resolver.calls) == 2
