from __future__ import annotations

import ssl
from types import SimpleNamespace

import pytest
from websockets.exceptions import ConnectionClosedOK, InvalidHandshake, InvalidStatus
from websockets.frames import Close

from volroute.core.errors import (
    TransportClosedError,
    TransportConnectError,
    TransportReceiveError,
    TransportSendError,
    TransportUpgradeError,
)
from volroute.transports import websocket
from volroute.transports.websocket import WebSocketConnector, WebSocketSession, relaxed_tls_context


class FakeConnection:
    def __init__(self, incoming=None, send_error: Exception | None = None) -> None:
        self.incoming = incoming
        self.send_error = send_error
        self.sent: list[str] = []
        self.close_calls = 0

    def send(self, text: str) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(text)

    def recv(self, timeout=None):
        if isinstance(self.incoming, Exception):
            raise self.incoming
        return self.incoming

    def close(self) -> None:
        self.close_calls += 1


def _closed() -> ConnectionClosedOK:
    return ConnectionClosedOK(Close(1000, "bye"), Close(1000, "bye"), rcvd_then_sent=True)


def test_relaxed_tls_context_accepts_any_certificate():
    context = relaxed_tls_context()
    assert context.check_hostname is False
    assert context.verify_mode == ssl.CERT_NONE


def test_open_uses_tls_only_when_secure(monkeypatch):
    calls = []

    def fake_connect(url, ssl=None, open_timeout=None, close_timeout=None):
        calls.append((url, ssl, open_timeout))
        return FakeConnection("{}")

    monkeypatch.setattr(websocket, "connect", fake_connect)

    WebSocketConnector().open("wss://10.0.0.2:3001/", secure=True, timeout_s=4.0)
    WebSocketConnector().open("ws://10.0.0.2:3000/", secure=False)

    assert isinstance(calls[0][1], ssl.SSLContext)
    assert calls[0][2] == 4.0
    assert calls[1][1] is None


def test_open_maps_rejected_upgrade(monkeypatch):
    def fake_connect(url, **kwargs):
        raise InvalidStatus(SimpleNamespace(status_code=403))

    monkeypatch.setattr(websocket, "connect", fake_connect)

    with pytest.raises(TransportUpgradeError) as excinfo:
        WebSocketConnector().open("wss://10.0.0.2:3001/", secure=True)
    assert excinfo.value.status_code == 403


def test_open_maps_handshake_failure(monkeypatch):
    def fake_connect(url, **kwargs):
        raise InvalidHandshake("bad accept key")

    monkeypatch.setattr(websocket, "connect", fake_connect)

    with pytest.raises(TransportUpgradeError):
        WebSocketConnector().open("wss://10.0.0.2:3001/", secure=True)


@pytest.mark.parametrize("error", [TimeoutError("slow"), ConnectionRefusedError("refused")])
def test_open_maps_connect_failure(monkeypatch, error):
    def fake_connect(url, **kwargs):
        raise error

    monkeypatch.setattr(websocket, "connect", fake_connect)

    with pytest.raises(TransportConnectError):
        WebSocketConnector().open("wss://10.0.0.2:3001/", secure=True)


def test_session_recv_errors():
    assert WebSocketSession(FakeConnection('{"type":"registered"}'), "ws://x/").recv(1.0) == '{"type":"registered"}'

    with pytest.raises(TransportClosedError):
        WebSocketSession(FakeConnection(_closed()), "ws://x/").recv(1.0)
    with pytest.raises(TransportReceiveError):
        WebSocketSession(FakeConnection(TimeoutError()), "ws://x/").recv(1.0)
    with pytest.raises(TransportReceiveError, match="binary"):
        WebSocketSession(FakeConnection(b"\x00\x01"), "ws://x/").recv(1.0)


def test_session_send_error():
    session = WebSocketSession(FakeConnection(send_error=_closed()), "ws://x/")
    with pytest.raises(TransportSendError):
        session.send("{}")


def test_session_close_is_idempotent():
    connection = FakeConnection("{}")
    with WebSocketSession(connection, "ws://x/") as session:
        session.send("{}")
    session.close()

    assert connection.sent == ["{}"]
    assert connection.close_calls == 1
