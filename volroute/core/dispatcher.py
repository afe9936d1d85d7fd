"""Volume key dispatch from the synchronous hook callback to worker threads."""

from __future__ import annotations

import logging
from concurrent.futures import Executor, Future, ThreadPoolExecutor

from volroute.core.client import TvClient
from volroute.core.engine import RoutingEngine
from volroute.core.model import TvAction, VolumeKey

LOGGER = logging.getLogger(__name__)

_MAX_WORKERS = 8


class KeyDispatcher:
    """Decides inside the hook callback whether a volume key belongs to the TV.

    ``handle_key`` never touches the network: the TV command is submitted to
    an executor and the key is claimed whenever routing is active, even if
    that command later fails. Commands are not queued or coalesced; two quick
    presses run as two concurrent commands.
    """

    def __init__(
        self,
        engine: RoutingEngine,
        client: TvClient,
        executor: Executor | None = None,
    ) -> None:
        self.engine = engine
        self.client = client
        self._executor = executor or ThreadPoolExecutor(
            max_workers=_MAX_WORKERS,
            thread_name_prefix="volroute-tv",
        )
        self._owns_executor = executor is None

    def handle_key(self, key: VolumeKey) -> bool:
        """Return True when the key is claimed and must not reach the host."""
        routing = self.engine.routing
        LOGGER.debug("Key %s, routing=%d", key.value, int(routing))
        if not routing:
            return False

        self.engine.pin_host_level()
        try:
            future = self._executor.submit(self.client.run, key.action)
        except RuntimeError as exc:
            LOGGER.error("Could not dispatch %s: %s", key.action.value, exc)
        else:
            future.add_done_callback(_log_outcome(key.action))
        return True

    def shutdown(self, wait: bool = True) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=wait)


def _log_outcome(action: TvAction):
    def _done(future: Future[bool]) -> None:
        exc = future.exception()
        if exc is not None:
            LOGGER.error("TV command %s raised unexpectedly", action.value, exc_info=exc)
        elif not future.result():
            LOGGER.debug("TV volume command failed for action=%s", action.value)

    return _done
