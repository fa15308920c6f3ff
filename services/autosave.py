# services/autosave.py

"""
Periodic re-flush of the registration ledger.

Saves already happen after every admit and cancel; the timer re-writes
the snapshot on an interval so a failed write does not stay stale.
"""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class AutosaveTimer:
    """
    Re-flushes the full snapshot every `interval_seconds` on a daemon thread.

    Runs independently of request traffic; a failing flush is logged and
    the loop keeps going.
    """

    def __init__(self, flush: Callable[[], bool], interval_seconds: int = 120):
        self.flush = flush
        self.interval_seconds = max(1, int(interval_seconds))
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _loop(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            logger.info("Periodic autosave...")
            try:
                if not self.flush():
                    logger.error("Periodic autosave failed!")
            except Exception as e:
                logger.exception(f"Autosave error: {e}")

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="autosave", daemon=True)
        self._thread.start()
        logger.info(f"Periodic autosave enabled (every {self.interval_seconds}s)")

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
