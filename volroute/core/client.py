"""Remote-control client for the TV.

Every command opens its own WebSocket session, registers with the stored
client key, sends one request and closes again. No session is kept between
commands, and a command counts as successful once its request frame has been
sent: responses to ordinary commands are not inspected.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import contextmanager
from typing import Any, Iterator

from volroute.core.binding import MacBindingVerifier
from volroute.core.config import require_target
from volroute.core.credentials import CredentialStore
from volroute.core.errors import (
    NotPairedError,
    PairingError,
    PairingTimeoutError,
    TransportReceiveError,
    VolrouteError,
)
from volroute.core.model import TvAction, TvConfig
from volroute.core.protocol import (
    URI_GET_STATUS,
    URI_SET_MUTE,
    URI_SET_VOLUME,
    URI_VOLUME_DOWN,
    URI_VOLUME_UP,
    build_register_message,
    build_request_message,
    frame_preview,
    is_error_frame,
    mute_payload,
    parse_client_key,
    parse_muted_flag,
    volume_payload,
)
from volroute.transports.base import Connector, Session
from volroute.transports.websocket import WebSocketConnector

LOGGER = logging.getLogger(__name__)

PAIRING_MAX_FRAMES = 5


class TvClient:
    def __init__(
        self,
        config: TvConfig,
        store: CredentialStore,
        *,
        verifier: MacBindingVerifier | None = None,
        connector: Connector | None = None,
    ) -> None:
        self._config = config
        self.store = store
        self.verifier = verifier or MacBindingVerifier()
        self._connector = connector or WebSocketConnector()

    @property
    def config(self) -> TvConfig:
        return self._config

    def set_configuration(self, config: TvConfig) -> None:
        self._config = config

    def has_client_key(self) -> bool:
        return self.store.has_key()

    def volume_up(self) -> None:
        self._send_command(URI_VOLUME_UP)

    def volume_down(self) -> None:
        self._send_command(URI_VOLUME_DOWN)

    def set_volume(self, level: int) -> None:
        self._send_command(URI_SET_VOLUME, volume_payload(level))

    def set_mute(self, mute: bool) -> None:
        self._send_command(URI_SET_MUTE, mute_payload(mute))

    def toggle_mute(self) -> bool:
        """Invert the TV mute state and return the state that was sent.

        If the status response cannot be parsed, mute is forced on.
        """
        client_key = self._require_client_key("toggle_mute")
        with self._open_session() as session:
            session.send(build_register_message(client_key))
            self._read_acknowledgement(session)

            session.send(build_request_message(URI_GET_STATUS, request_id="req_0"))
            status = session.recv(self._config.timeout_s)

            muted = parse_muted_flag(status)
            if muted is None:
                LOGGER.debug("toggle_mute: failed to parse muted flag, forcing mute=true")
                new_muted = True
            else:
                new_muted = not muted

            session.send(build_request_message(URI_SET_MUTE, mute_payload(new_muted), request_id="req_1"))
        return new_muted

    def pair(self, on_prompt: Callable[[], None] | None = None) -> int:
        """Register without a key and wait for the TV to hand one out.

        ``on_prompt`` runs after the register frame is sent; it is where the
        caller tells the user to accept the prompt on the TV. Up to
        PAIRING_MAX_FRAMES frames are scanned for a client key. Returns the
        number of frames read. Nothing is stored unless a key was found.
        """
        LOGGER.debug("pair: starting")
        with self._open_session() as session:
            session.send(build_register_message(None))
            LOGGER.debug("pair: register sent, TV should show PROMPT now")
            if on_prompt is not None:
                on_prompt()

            for index in range(PAIRING_MAX_FRAMES):
                try:
                    frame = session.recv(self._config.pairing_timeout_s)
                except TransportReceiveError:
                    LOGGER.debug("pair: receive failed on iteration %d", index)
                    raise
                LOGGER.debug("pair: RECV[%d]: %s", index, frame_preview(frame))

                new_key = parse_client_key(frame)
                if new_key:
                    LOGGER.debug("pair: found client-key in RECV[%d]", index)
                    self.store.save(new_key)
                    return index + 1
                _raise_on_pairing_error(frame)

        LOGGER.debug("pair: no client-key found in any response")
        raise PairingTimeoutError(
            f"No client key received in {PAIRING_MAX_FRAMES} responses. "
            "Accept the pairing prompt on the TV and try again."
        )

    def unpair(self) -> None:
        self.store.delete()

    def run(self, action: TvAction) -> bool:
        """Execute ``action`` and reduce any failure to False."""
        try:
            if action is TvAction.VOLUME_UP:
                self.volume_up()
            elif action is TvAction.VOLUME_DOWN:
                self.volume_down()
            elif action is TvAction.TOGGLE_MUTE:
                self.toggle_mute()
            else:
                raise ValueError(f"Unsupported action {action!r}")
        except VolrouteError as exc:
            LOGGER.warning("TV command %s failed (%s): %s", action.value, type(exc).__name__, exc)
            return False
        return True

    def _require_client_key(self, operation: str) -> str:
        client_key = self.store.load()
        if not client_key:
            LOGGER.debug("%s: no client key yet (not paired)", operation)
            raise NotPairedError("Not paired with the TV. Run pairing first.")
        return client_key

    @contextmanager
    def _open_session(self) -> Iterator[Session]:
        config = self._config
        require_target(config)
        self.verifier.check(config)
        with self._connector.open(config.url, secure=config.use_secure_websocket, timeout_s=config.timeout_s) as session:
            yield session

    def _read_acknowledgement(self, session: Session) -> None:
        try:
            ack = session.recv(self._config.timeout_s)
        except TransportReceiveError as exc:
            LOGGER.debug("No registration acknowledgement: %s", exc)
            return
        LOGGER.debug("Registration acknowledgement: %s", frame_preview(ack))

    def _send_command(self, uri: str, payload: dict[str, Any] | None = None) -> None:
        client_key = self._require_client_key(uri)
        with self._open_session() as session:
            session.send(build_register_message(client_key))
            self._read_acknowledgement(session)
            session.send(build_request_message(uri, payload))
        LOGGER.debug("Sent %s", uri)


def _raise_on_pairing_error(frame: str) -> None:
    if is_error_frame(frame):
        raise PairingError(f"TV rejected pairing: {frame_preview(frame, 200)}")
