"""Windows host audio: default endpoint level and default-device monitoring.

pycaw/comtypes are imported lazily so the rest of the package works on
machines without them; callers get HostAudioError instead.
"""

from __future__ import annotations

import ctypes
import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import contextmanager
from typing import Any, Iterator

from volroute.core.device_match import evaluate_device
from volroute.core.errors import HostAudioError
from volroute.core.model import NO_DEVICE, DeviceSignal

LOGGER = logging.getLogger(__name__)

E_RENDER = 0
E_CONSOLE = 0
E_MULTIMEDIA = 1
CLSCTX_INPROC_SERVER = 0x1

# ISpatialAudioObjectRenderStream IID, used by Windows as the Dolby Atmos format id.
_ATMOS_FORMAT_IID = "{BAB5F473-B423-477B-85F5-B5A332A04153}"
_SPATIAL_CLIENT_IID = "{BBF8E066-AAAA-49BE-9A4D-FD2A858EA27F}"

_com_tls = threading.local()
_SPATIAL_DEFS: Any = None


def _pycaw() -> Any:
    try:
        from pycaw import pycaw  # type: ignore
    except Exception as exc:  # pragma: no cover - import failure path
        raise HostAudioError(
            "Host audio control requires 'pycaw' and 'comtypes' on Windows."
        ) from exc
    return pycaw


@contextmanager
def _com_context() -> Iterator[None]:
    """Reference-counted per-thread COM initialization.

    Init is best-effort: on a thread already in another apartment (the MMDevice
    notification thread is MTA) CoInitialize fails with RPC_E_CHANGED_MODE and
    the COM calls still work. CoUninitialize only runs when this thread's init
    succeeded.
    """
    import comtypes  # type: ignore

    count = getattr(_com_tls, "count", 0)
    if count == 0:
        try:
            comtypes.CoInitialize()
            _com_tls.owned = True
        except OSError as exc:
            LOGGER.debug("CoInitialize failed, using existing apartment: %s", exc)
            _com_tls.owned = False
    _com_tls.count = count + 1
    try:
        yield
    finally:
        _com_tls.count -= 1
        if _com_tls.count == 0 and _com_tls.owned:
            _com_tls.owned = False
            comtypes.CoUninitialize()


def _default_render_device() -> Any:
    pycaw = _pycaw()
    enumerator = pycaw.AudioUtilities.GetDeviceEnumerator()
    return enumerator.GetDefaultAudioEndpoint(E_RENDER, E_CONSOLE)


def _spatial_defs() -> Any:
    """Define ISpatialAudioClient once; only the vtable slot order matters."""
    global _SPATIAL_DEFS
    if _SPATIAL_DEFS is not None:
        return _SPATIAL_DEFS

    from comtypes import GUID, HRESULT, STDMETHOD, IUnknown  # type: ignore

    class ISpatialAudioClient(IUnknown):
        _iid_ = GUID(_SPATIAL_CLIENT_IID)
        _methods_ = [
            STDMETHOD(HRESULT, "GetStaticObjectPosition", [ctypes.c_uint, ctypes.c_void_p, ctypes.c_void_p, ctypes.c_void_p]),
            STDMETHOD(HRESULT, "GetNativeStaticObjectTypeMask", [ctypes.c_void_p]),
            STDMETHOD(HRESULT, "GetMaxDynamicObjectCount", [ctypes.c_void_p]),
            STDMETHOD(HRESULT, "GetSupportedAudioObjectFormatEnumerator", [ctypes.c_void_p]),
            STDMETHOD(HRESULT, "GetMaxFrameCount", [ctypes.c_void_p, ctypes.c_void_p]),
            STDMETHOD(HRESULT, "IsAudioObjectFormatSupported", [ctypes.c_void_p]),
            STDMETHOD(HRESULT, "IsSpatialAudioStreamAvailable", [ctypes.POINTER(GUID), ctypes.c_void_p]),
            STDMETHOD(HRESULT, "ActivateSpatialAudioStream", [ctypes.c_void_p, ctypes.POINTER(GUID), ctypes.c_void_p]),
        ]

    _SPATIAL_DEFS = (ISpatialAudioClient, GUID(_ATMOS_FORMAT_IID))
    return _SPATIAL_DEFS


def is_atmos_available(device: Any) -> bool:
    from comtypes import COMError  # type: ignore

    spatial_client_cls, atmos_format = _spatial_defs()
    try:
        unknown = device.Activate(spatial_client_cls._iid_, CLSCTX_INPROC_SERVER, None)
        spatial = unknown.QueryInterface(spatial_client_cls)
        result = spatial.IsSpatialAudioStreamAvailable(ctypes.byref(atmos_format), None)
    except (COMError, OSError) as exc:
        LOGGER.debug("IsSpatialAudioStreamAvailable failed: %s", exc)
        return False
    return result in (0, None)


def _friendly_name(device: Any) -> str | None:
    pycaw = _pycaw()
    try:
        name = pycaw.AudioUtilities.CreateDevice(device).FriendlyName
    except Exception as exc:  # noqa: BLE001 - property store reads fail in many COM ways
        LOGGER.debug("Could not read endpoint friendly name: %s", exc)
        return None
    return str(name) if name else None


class PycawHostVolume:
    """Master volume of the current default render endpoint."""

    def get_level(self) -> float:
        with self._endpoint_volume() as volume:
            return float(volume.GetMasterVolumeLevelScalar())

    def set_level(self, level: float) -> None:
        level = max(0.0, min(1.0, float(level)))
        with self._endpoint_volume() as volume:
            volume.SetMasterVolumeLevelScalar(level, None)

    @contextmanager
    def _endpoint_volume(self) -> Iterator[Any]:
        pycaw = _pycaw()
        from comtypes import COMError  # type: ignore
        from comtypes import CLSCTX_ALL  # type: ignore

        try:
            with _com_context():
                device = _default_render_device()
                interface = device.Activate(pycaw.IAudioEndpointVolume._iid_, CLSCTX_ALL, None)
                yield ctypes.cast(interface, ctypes.POINTER(pycaw.IAudioEndpointVolume))
        except (COMError, OSError) as exc:
            raise HostAudioError(f"Endpoint volume access failed: {exc}") from exc


class WindowsDeviceMonitor:
    """Reports the default render device on start and on every default change."""

    def __init__(
        self,
        hint_provider: Callable[[], str],
        on_signal: Callable[[DeviceSignal], None],
    ) -> None:
        self._hint_provider = hint_provider
        self._on_signal = on_signal
        self._enumerator: Any = None
        self._client: Any = None
        self._worker: ThreadPoolExecutor | None = None

    def probe(self) -> DeviceSignal:
        from comtypes import COMError  # type: ignore

        try:
            with _com_context():
                device = _default_render_device()
                name = _friendly_name(device)
                signal = evaluate_device(name, self._hint_provider(), lambda: is_atmos_available(device))
        except (COMError, OSError, HostAudioError) as exc:
            LOGGER.debug("GetDefaultAudioEndpoint failed: %s", exc)
            return NO_DEVICE
        LOGGER.debug(
            "Endpoint name: %s, hint: %s, match=%d, atmos=%d",
            signal.device_name,
            self._hint_provider(),
            int(signal.device_is_target),
            int(signal.spatial_audio_active),
        )
        return signal

    def refresh(self) -> None:
        self._on_signal(self.probe())

    def schedule_refresh(self) -> Future[None] | None:
        """Run a refresh on the monitor worker, off the COM notification thread."""
        worker = self._worker
        if worker is None:
            return None
        try:
            return worker.submit(self.refresh)
        except RuntimeError as exc:
            LOGGER.debug("Device refresh dropped during shutdown: %s", exc)
            return None

    def start(self) -> None:
        pycaw = _pycaw()
        from pycaw.callbacks import MMNotificationClient  # type: ignore

        monitor = self

        class _DefaultDeviceClient(MMNotificationClient):
            def on_default_device_changed(self, flow, flow_id, role, role_id, default_device_id):
                if flow_id == E_RENDER and role_id in (E_CONSOLE, E_MULTIMEDIA):
                    LOGGER.debug("OnDefaultDeviceChanged")
                    monitor.schedule_refresh()

        self._worker = ThreadPoolExecutor(max_workers=1, thread_name_prefix="volroute-device")
        self._enumerator = pycaw.AudioUtilities.GetDeviceEnumerator()
        self._client = _DefaultDeviceClient()
        self._enumerator.RegisterEndpointNotificationCallback(self._client)
        self.refresh()

    def stop(self) -> None:
        if self._enumerator is not None and self._client is not None:
            self._enumerator.UnregisterEndpointNotificationCallback(self._client)
        self._enumerator = None
        self._client = None
        if self._worker is not None:
            self._worker.shutdown(wait=True)
            self._worker = None


class UnavailableDeviceMonitor:
    """Stand-in when the platform has no device API: the TV is never the target."""

    def __init__(self, on_signal: Callable[[DeviceSignal], None]) -> None:
        self._on_signal = on_signal

    def probe(self) -> DeviceSignal:
        return NO_DEVICE

    def refresh(self) -> None:
        self._on_signal(NO_DEVICE)

    def start(self) -> None:
        LOGGER.warning("Audio device monitoring unavailable on this platform; routing stays on the host")
        self.refresh()

    def stop(self) -> None:
        pass
