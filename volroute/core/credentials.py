"""Client key persistence beside the configuration file."""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from volroute.core.errors import VolrouteError

LOGGER = logging.getLogger(__name__)


class CredentialStore:
    """Plain-text file holding the single client key for the configured TV.

    A missing file and an empty file both mean "not paired". Access is
    serialized so worker threads and the pairing flow can share one store.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = threading.Lock()

    def load(self) -> str:
        with self._lock:
            try:
                content = self.path.read_text(encoding="utf-8")
            except FileNotFoundError:
                return ""
            except OSError as exc:
                LOGGER.warning("Could not read client key file %s: %s", self.path, exc)
                return ""
        lines = content.splitlines()
        return lines[0].strip() if lines else ""

    def has_key(self) -> bool:
        return bool(self.load())

    def save(self, key: str) -> None:
        if not key:
            raise ValueError("Refusing to store an empty client key")
        with self._lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self.path.write_text(key, encoding="utf-8")
            except OSError as exc:
                raise VolrouteError(f"Failed to write client key file {self.path}: {exc}") from exc
        LOGGER.debug("Stored client key (***hidden***) at %s", self.path)

    def delete(self) -> None:
        """Remove the stored key. Deleting when nothing is stored is a no-op."""
        with self._lock:
            try:
                self.path.unlink()
            except FileNotFoundError:
                LOGGER.debug("No client key present at %s", self.path)
                return
            except OSError as exc:
                raise VolrouteError(f"Failed to delete client key file {self.path}: {exc}") from exc
        LOGGER.debug("Client key removed from %s", self.path)
