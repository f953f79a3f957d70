"""
Background loop that keeps a client in step with the broadcast.

Engine progress is read every ``engine_check_interval`` seconds (which is also
how track ends are noticed); the schedule is polled every ``poll_interval``.
"""

import threading
import time
from typing import Callable, Optional

from loguru import logger

from .controller import PlaybackController

DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_ENGINE_CHECK_INTERVAL = 1.0


class PollingLoop:
    """Drives a PlaybackController from a daemon thread."""

    def __init__(
        self,
        controller: PlaybackController,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        engine_check_interval: float = DEFAULT_ENGINE_CHECK_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.controller = controller
        self.poll_interval = poll_interval
        self.engine_check_interval = engine_check_interval
        self.clock = clock
        self.thread: Optional[threading.Thread] = None
        self._stop = threading.Event()
        self._next_poll: Optional[float] = None

    @property
    def running(self) -> bool:
        return self.thread is not None and self.thread.is_alive()

    def start(self) -> None:
        """Start polling in a background thread."""
        if self.running:
            return
        self._stop.clear()
        self.thread = threading.Thread(target=self._run, daemon=True, name="loopcast-poller")
        self.thread.silent_logging = True
        self.thread.start()

    def stop(self) -> None:
        """Stop the loop and wait for the thread to exit."""
        self._stop.set()
        if self.thread and self.thread.is_alive():
            self.thread.join(timeout=2.0)
        self.thread = None

    def run_once(self, now: Optional[float] = None) -> bool:
        """One tick: sync the engine, then poll if a poll is due.

        Returns:
            True if the schedule was polled on this tick
        """
        now = self.clock() if now is None else now
        self.controller.sync_engine()

        if self._next_poll is not None and now < self._next_poll:
            return False
        self._next_poll = now + self.poll_interval
        self.controller.poll()
        return True

    def _run(self) -> None:
        logger.debug(
            f"Polling loop started (poll={self.poll_interval}s, "
            f"engine={self.engine_check_interval}s)"
        )
        while not self._stop.is_set():
            try:
                self.run_once()
            except Exception:
                logger.exception("Polling loop tick failed")
            self._stop.wait(self.engine_check_interval)
        logger.debug("Polling loop stopped")
