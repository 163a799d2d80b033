# app/scheduler.py
import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)


class SyncScheduler:
    """
    Runs `job` once immediately, then every `interval_seconds` on a daemon
    thread until stop() is called. A failing tick never ends the loop.
    """

    def __init__(self, job: Callable[[], object], interval_seconds: float):
        self.job = job
        self.interval_seconds = interval_seconds
        self.ticks = 0
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="sync-scheduler", daemon=True)
        self._thread.start()
        logger.info({"event": "scheduler_started", "intervalSeconds": self.interval_seconds})

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info({"event": "scheduler_stopped", "ticks": self.ticks})

    def _loop(self) -> None:
        while not self._stop.is_set():
            self.ticks += 1
            try:
                self.job()
            except Exception as e:
                logger.exception({"event": "scheduler_tick_failed", "tick": self.ticks, "error": str(e)})
            if self._stop.wait(self.interval_seconds):
                break
