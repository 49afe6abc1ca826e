from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicTask:
    """
    Runs fn once right away and then every interval seconds on a daemon thread.

    start() on a running task stops the previous worker first, so at most one
    loop is ever armed per task.
    """

    def __init__(self, fn: Callable[[], None], interval: float, name: str = "periodic-task"):
        self.fn = fn
        self.interval = interval
        self.name = name
        self._lock = threading.Lock()
        self._stop_event: Optional[threading.Event] = None
        self._worker: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        worker = self._worker
        return worker is not None and worker.is_alive()

    def start(self) -> None:
        with self._lock:
            self._stop_locked()
            stop_event = threading.Event()
            self._stop_event = stop_event
            self._worker = threading.Thread(
                target=self._worker_loop,
                name=self.name,
                daemon=True,
                args=(stop_event,),
            )
            self._worker.start()

    def stop(self, timeout: float = 5.0) -> None:
        with self._lock:
            self._stop_locked(timeout)

    def _stop_locked(self, timeout: float = 5.0) -> None:
        if self._stop_event is not None:
            self._stop_event.set()
        worker = self._worker
        if worker is not None and worker is not threading.current_thread():
            worker.join(timeout=timeout)
        self._stop_event = None
        self._worker = None

    def _worker_loop(self, stop_event: threading.Event) -> None:
        logger.debug("%s started", self.name)
        try:
            while not stop_event.is_set():
                try:
                    self.fn()
                except Exception:
                    logger.exception("%s run failed", self.name)
                if stop_event.wait(timeout=self.interval):
                    break
        finally:
            logger.debug("%s stopped", self.name)
