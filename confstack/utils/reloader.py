"""Periodic background reloading."""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicReloader:
    """Runs a callback on a daemon thread once per interval until stopped.

    The callback is not run at start-up, only after each full interval.
    """

    def __init__(
        self,
        callback: Callable[[], None],
        interval: float,
        name: str = "ConfigReloader",
    ):
        """Initialize the reloader.

        Args:
            callback: Function to call on every tick
            interval: Seconds between calls

        Raises:
            ValueError: If interval is not positive
        """
        if interval <= 0:
            raise ValueError(f"Reload interval must be positive, got {interval}")

        self.interval = interval
        self.name = name
        self._callback = callback
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Start the reload thread."""
        if self._thread and self._thread.is_alive():
            logger.warning("Reloader already running")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()
        logger.info(f"Started {self.name} with {self.interval}s interval")

    def stop(self, timeout: float = 2.0) -> None:
        """Signal the thread to stop and wait for it."""
        self._stop_event.set()

        if self._thread:
            if self._thread is not threading.current_thread():
                self._thread.join(timeout=timeout)
                if self._thread.is_alive():
                    logger.warning(f"{self.name} thread did not stop cleanly")
            self._thread = None
            logger.info(f"Stopped {self.name}")

    def is_running(self) -> bool:
        return (
            self._thread is not None
            and self._thread.is_alive()
            and not self._stop_event.is_set()
        )

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval):
            try:
                self._callback()
            except Exception as e:
                logger.error(f"{self.name} callback failed: {e}")
