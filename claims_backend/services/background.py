"""
Background persistence triggers for the data store.

Three triggers flush the snapshot outside of explicit mutations:
- a periodic timer while the process is alive,
- process teardown (``atexit`` and application shutdown),
- the client reporting that it went to a hidden/backgrounded state.
"""

import atexit
import threading
from collections.abc import Callable

from claims_backend.config.logging_config import get_logger

logger = get_logger(__name__)

HIDDEN_STATE = "hidden"


class BackgroundPersistence:
    """
    Periodic and lifecycle-driven flushing of a snapshot.

    Args:
        flush: Callable that persists the snapshot and reports success.
        interval_seconds: Seconds between timer flushes.
    """

    def __init__(self, flush: Callable[[], bool], interval_seconds: float = 30.0):
        self._flush = flush
        self.interval_seconds = interval_seconds
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._closed = False

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> "BackgroundPersistence":
        """Start the timer thread and register the teardown flush."""
        if self.running:
            return self
        self._stop.clear()
        self._closed = False
        self._thread = threading.Thread(
            target=self._run,
            name="claims-data-autosave",
            daemon=True,
        )
        self._thread.start()
        atexit.register(self.shutdown)
        logger.info("Background persistence started", interval_seconds=self.interval_seconds)
        return self

    def _run(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            self.flush_now("interval")

    def flush_now(self, reason: str) -> bool:
        """Flush immediately, tagging the log entry with the trigger."""
        saved = self._flush()
        logger.debug("Background flush", reason=reason, saved=saved)
        return saved

    def handle_visibility_change(self, state: str) -> bool:
        """
        React to the client's visibility state.

        Returns:
            True if a flush ran and succeeded.
        """
        if state != HIDDEN_STATE:
            return False
        return self.flush_now("hidden")

    def shutdown(self) -> None:
        """Stop the timer and run the final teardown flush once."""
        if self._closed:
            return
        self._closed = True
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=self.interval_seconds)
        self._thread = None
        atexit.unregister(self.shutdown)
        self.flush_now("teardown")
        logger.info("Background persistence stopped")
