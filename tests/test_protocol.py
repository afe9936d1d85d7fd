from __future__ import annotations

import json

from volroute.core.protocol import (
    URI_SET_VOLUME,
    build_register_message,
    build_request_message,
    frame_preview,
    is_error_frame,
    parse_client_key,
    parse_muted_flag,
    volume_payload,
)


def test_register_without_key_requests_prompt():
    message = json.loads(build_register_message(None))

    assert message["type"] == "register"
    assert message["id"] == "register_0"
    assert message["payload"]["forcePairing"] is False
    assert message["payload"]["pairingType"] == "PROMPT"
    assert "client-key" not in message["payload"]
    assert message["payload"]["manifest"]["permissions"] == ["CONTROL_AUDIO"]


def test_register_with_key_includes_it():
    message = json.loads(build_register_message("abc123"))
    assert message["payload"]["client-key"] == "abc123"


def test_request_message_shape():
    message = json.loads(build_request_message(URI_SET_VOLUME, volume_payload(150)))
    assert message == {
        "type": "request",
        "id": "req_0",
        "uri": "ssap://audio/setVolume",
        "payload": {"volume": 100},
    }


def test_request_without_payload_omits_field():
    message = json.loads(build_request_message("ssap://audio/volumeUp"))
    assert "payload" not in message


def test_volume_payload_clamps_negative():
    assert volume_payload(-4) == {"volume": 0}


def test_parse_client_key_from_payload_or_root():
    assert parse_client_key('{"type":"registered","payload":{"client-key":"k1"}}') == "k1"
    assert parse_client_key('{"client-key":"k2"}') == "k2"
    assert parse_client_key('{"type":"response","payload":{"pairingType":"PROMPT"}}') is None
    assert parse_client_key("not json") is None


def test_parse_muted_flag():
    assert parse_muted_flag('{"type":"response","payload":{"muted":true,"volume":12}}') is True
    assert parse_muted_flag('{"type":"response","payload":{"muted":false}}') is False
    assert parse_muted_flag('{"type":"response","payload":{}}') is None
    assert parse_muted_flag("garbage") is None


def test_error_frame_detection():
    assert is_error_frame('{"type":"error","error":"403 cancelled"}') is True
    assert is_error_frame('{"type":"response"}') is False
    assert is_error_frame("[1, 2]") is False


def test_frame_preview_truncates():
    assert frame_preview("x" * 10, limit=4) == "xxxx..."
    assert frame_preview("short") == "short"


def test_frame_preview_masks_client_key():
    preview = frame_preview('{"type":"registered","payload":{"client-key": "s3cret"}}')
    assert "s3cret" not in preview
    assert '"client-key": "***"' in preview
