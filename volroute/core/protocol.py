"""Frame building and response parsing for the TV remote-control protocol."""

from __future__ import annotations

import json
import re
from typing import Any

URI_VOLUME_UP = "ssap://audio/volumeUp"
URI_VOLUME_DOWN = "ssap://audio/volumeDown"
URI_SET_VOLUME = "ssap://audio/setVolume"
URI_SET_MUTE = "ssap://audio/setMute"
URI_GET_STATUS = "ssap://audio/getStatus"

CLIENT_KEY_FIELD = "client-key"
REGISTER_ID = "register_0"

_CLIENT_KEY_VALUE_RE = re.compile(r'("client-key"\s*:\s*")[^"]*(")')

MANIFEST: dict[str, Any] = {
    "manifestVersion": 1,
    "appVersion": "1.0",
    "appId": "com.volroute",
    "vendorId": "com.volroute",
    "localizedAppNames": {"": "volroute"},
    "localizedVendorNames": {"": "volroute"},
    "permissions": ["CONTROL_AUDIO"],
}


def build_register_message(client_key: str | None) -> str:
    payload: dict[str, Any] = {
        "forcePairing": False,
        "pairingType": "PROMPT",
    }
    if client_key:
        payload[CLIENT_KEY_FIELD] = client_key
    payload["manifest"] = MANIFEST
    return json.dumps({"type": "register", "id": REGISTER_ID, "payload": payload})


def build_request_message(uri: str, payload: dict[str, Any] | None = None, *, request_id: str = "req_0") -> str:
    message: dict[str, Any] = {"type": "request", "id": request_id, "uri": uri}
    if payload is not None:
        message["payload"] = payload
    return json.dumps(message)


def volume_payload(level: int) -> dict[str, int]:
    return {"volume": max(0, min(100, int(level)))}


def mute_payload(mute: bool) -> dict[str, bool]:
    return {"mute": bool(mute)}


def _decode(frame: str) -> dict[str, Any] | None:
    try:
        decoded = json.loads(frame)
    except (TypeError, ValueError):
        return None
    return decoded if isinstance(decoded, dict) else None


def parse_client_key(frame: str) -> str | None:
    """Return the client key embedded in a registration response, if any."""
    decoded = _decode(frame)
    if decoded is None:
        return None
    for container in (decoded.get("payload"), decoded):
        if isinstance(container, dict):
            key = container.get(CLIENT_KEY_FIELD)
            if isinstance(key, str) and key:
                return key
    return None


def parse_muted_flag(frame: str) -> bool | None:
    """Return the ``muted`` flag of a getStatus response, or None when absent."""
    decoded = _decode(frame)
    if decoded is None:
        return None
    payload = decoded.get("payload")
    if isinstance(payload, dict) and isinstance(payload.get("muted"), bool):
        return payload["muted"]
    return None


def frame_preview(frame: str, limit: int = 400) -> str:
    """Frame text safe for logs: client keys masked, long frames truncated."""
    masked = _CLIENT_KEY_VALUE_RE.sub(r"\1***\2", frame)
    return masked if len(masked) <= limit else masked[:limit] + "..."


def is_error_frame(frame: str) -> bool:
    decoded = _decode(frame)
    return decoded is not None and decoded.get("type") == "error"
