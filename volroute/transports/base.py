"""Transport interfaces."""

from __future__ import annotations

from typing import Protocol


class Session(Protocol):
    def send(self, text: str) -> None:
        """Send one text frame."""

    def recv(self, timeout_s: float | None = None) -> str:
        """Receive one text frame."""

    def close(self) -> None:
        """Close the connection and release the underlying handle."""

    def __enter__(self) -> "Session": ...

    def __exit__(self, *exc_info: object) -> None: ...


class Connector(Protocol):
    def open(self, url: str, *, secure: bool, timeout_s: float = 5.0) -> Session:
        """Open a WebSocket session to ``url``."""
