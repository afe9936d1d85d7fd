"""WebSocket transport implementation using the websockets sync client."""

from __future__ import annotations

import logging
import ssl

from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidStatus, InvalidURI
from websockets.sync.client import ClientConnection, connect

from volroute.core.errors import (
    TransportClosedError,
    TransportConnectError,
    TransportReceiveError,
    TransportSendError,
    TransportUpgradeError,
)

LOGGER = logging.getLogger(__name__)

_CLOSE_TIMEOUT_S = 2.0


def relaxed_tls_context() -> ssl.SSLContext:
    """TLS context that accepts the TV's self-signed certificate.

    TVs on the local network present self-signed certificates with no usable
    hostname, so certificate and hostname checks are deliberately off. The
    MAC binding check is what ties the connection to the intended device.
    """
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


class WebSocketSession:
    def __init__(self, connection: ClientConnection, url: str) -> None:
        self._connection = connection
        self._url = url
        self._closed = False

    def send(self, text: str) -> None:
        try:
            self._connection.send(text)
        except ConnectionClosed as exc:
            raise TransportSendError(f"WebSocket send failed, connection closed: {exc}") from exc
        except (OSError, RuntimeError) as exc:
            raise TransportSendError(f"WebSocket send failed: {exc}") from exc

    def recv(self, timeout_s: float | None = None) -> str:
        try:
            message = self._connection.recv(timeout=timeout_s)
        except TimeoutError as exc:
            raise TransportReceiveError(f"WebSocket receive timed out after {timeout_s}s") from exc
        except ConnectionClosed as exc:
            LOGGER.debug("WebSocket close frame received from %s", self._url)
            raise TransportClosedError(f"WebSocket closed by peer: {exc}") from exc
        except (OSError, RuntimeError) as exc:
            raise TransportReceiveError(f"WebSocket receive failed: {exc}") from exc

        if not isinstance(message, str):
            raise TransportReceiveError(f"Unexpected binary frame of {len(message)} bytes")
        return message

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._connection.close()
        except (OSError, RuntimeError) as exc:
            LOGGER.debug("WebSocket close failed for %s: %s", self._url, exc)

    def __enter__(self) -> WebSocketSession:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class WebSocketConnector:
    def open(self, url: str, *, secure: bool, timeout_s: float = 5.0) -> WebSocketSession:
        try:
            connection = connect(
                url,
                ssl=relaxed_tls_context() if secure else None,
                open_timeout=timeout_s,
                close_timeout=_CLOSE_TIMEOUT_S,
            )
        except InvalidStatus as exc:
            status = exc.response.status_code
            raise TransportUpgradeError(
                f"WebSocket upgrade failed for {url}, HTTP status = {status}",
                status_code=status,
            ) from exc
        except (InvalidHandshake, InvalidURI) as exc:
            raise TransportUpgradeError(f"WebSocket handshake failed for {url}: {exc}") from exc
        except TimeoutError as exc:
            raise TransportConnectError(f"Connect to {url} timed out after {timeout_s}s") from exc
        except OSError as exc:
            raise TransportConnectError(f"Connect to {url} failed: {exc}") from exc

        LOGGER.debug("WebSocket connected to %s", url)
        return WebSocketSession(connection, url)
