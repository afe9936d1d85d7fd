"""Global volume key hook built on pynput's Windows low-level keyboard listener."""

from __future__ import annotations

import logging
import sys
from typing import Any

from volroute.core.dispatcher import KeyDispatcher
from volroute.core.errors import HookUnavailableError
from volroute.core.model import VolumeKey

LOGGER = logging.getLogger(__name__)

WM_KEYDOWN = 0x0100
WM_SYSKEYDOWN = 0x0104

VK_VOLUME_MUTE = 0xAD
VK_VOLUME_DOWN = 0xAE
VK_VOLUME_UP = 0xAF

_VK_KEYS = {
    VK_VOLUME_UP: VolumeKey.VOLUME_UP,
    VK_VOLUME_DOWN: VolumeKey.VOLUME_DOWN,
    VK_VOLUME_MUTE: VolumeKey.VOLUME_MUTE,
}


class VolumeKeyHook:
    def __init__(self, dispatcher: KeyDispatcher) -> None:
        self.dispatcher = dispatcher
        self._listener: Any = None

    def should_suppress(self, msg: int, vk_code: int) -> bool:
        """Hook-thread decision for one raw key event; must stay non-blocking."""
        if msg not in (WM_KEYDOWN, WM_SYSKEYDOWN):
            return False
        key = _VK_KEYS.get(vk_code)
        if key is None:
            return False
        return self.dispatcher.handle_key(key)

    def _win32_event_filter(self, msg: int, data: Any) -> bool:
        if self.should_suppress(msg, data.vkCode):
            # Raises inside pynput to drop the event system-wide.
            self._listener.suppress_event()
        return True

    def start(self) -> None:
        if sys.platform != "win32":
            raise HookUnavailableError("Volume key interception is only supported on Windows.")
        try:
            from pynput import keyboard  # type: ignore
        except Exception as exc:  # pragma: no cover - import failure path
            raise HookUnavailableError("Volume key hook requires 'pynput'.") from exc

        self._listener = keyboard.Listener(win32_event_filter=self._win32_event_filter)
        self._listener.start()
        self._listener.wait()
        LOGGER.info("Volume key hook installed")

    def stop(self) -> None:
        if self._listener is not None:
            self._listener.stop()
            self._listener = None
            LOGGER.info("Volume key hook removed")
