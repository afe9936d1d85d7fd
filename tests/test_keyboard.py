from __future__ import annotations

import sys
from types import SimpleNamespace

import pytest

from volroute.core.errors import HookUnavailableError
from volroute.core.model import VolumeKey
from volroute.host.keyboard import (
    VK_VOLUME_DOWN,
    VK_VOLUME_MUTE,
    VK_VOLUME_UP,
    WM_KEYDOWN,
    WM_SYSKEYDOWN,
    VolumeKeyHook,
)

WM_KEYUP = 0x0101
VK_A = 0x41


class FakeDispatcher:
    def __init__(self, claim: bool) -> None:
        self.claim = claim
        self.keys: list[VolumeKey] = []

    def handle_key(self, key: VolumeKey) -> bool:
        self.keys.append(key)
        return self.claim


class FakeListener:
    def __init__(self) -> None:
        self.suppressed = 0

    def suppress_event(self) -> None:
        self.suppressed += 1


def test_volume_keydown_claimed_when_routing():
    dispatcher = FakeDispatcher(claim=True)
    hook = VolumeKeyHook(dispatcher)

    assert hook.should_suppress(WM_KEYDOWN, VK_VOLUME_UP) is True
    assert hook.should_suppress(WM_SYSKEYDOWN, VK_VOLUME_DOWN) is True
    assert hook.should_suppress(WM_KEYDOWN, VK_VOLUME_MUTE) is True
    assert dispatcher.keys == [VolumeKey.VOLUME_UP, VolumeKey.VOLUME_DOWN, VolumeKey.VOLUME_MUTE]


def test_keys_pass_through_when_not_claimed():
    dispatcher = FakeDispatcher(claim=False)
    hook = VolumeKeyHook(dispatcher)

    assert hook.should_suppress(WM_KEYDOWN, VK_VOLUME_UP) is False


def test_keyup_and_other_keys_ignored():
    dispatcher = FakeDispatcher(claim=True)
    hook = VolumeKeyHook(dispatcher)

    assert hook.should_suppress(WM_KEYUP, VK_VOLUME_UP) is False
    assert hook.should_suppress(WM_KEYDOWN, VK_A) is False
    assert dispatcher.keys == []


def test_event_filter_suppresses_claimed_keys():
    hook = VolumeKeyHook(FakeDispatcher(claim=True))
    listener = FakeListener()
    hook._listener = listener

    assert hook._win32_event_filter(WM_KEYDOWN, SimpleNamespace(vkCode=VK_VOLUME_UP)) is True
    assert hook._win32_event_filter(WM_KEYDOWN, SimpleNamespace(vkCode=VK_A)) is True
    assert listener.suppressed == 1


@pytest.mark.skipif(sys.platform == "win32", reason="hook is available on Windows")
def test_hook_unavailable_off_windows():
    with pytest.raises(HookUnavailableError):
        VolumeKeyHook(FakeDispatcher(claim=True)).start()
