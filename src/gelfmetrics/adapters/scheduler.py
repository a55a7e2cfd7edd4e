"""Background thread that invokes a callback at a fixed interval."""

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)


class PeriodicScheduler:
    """Runs ``callback`` every ``period`` seconds on a daemon thread.

    A tick runs to completion before the next one is scheduled, so
    invocations never overlap. Exceptions raised by the callback are logged
    and the schedule continues.
    """

    def __init__(
        self,
        callback: Callable[[], object],
        period: float,
        name: str = "gelf-reporter",
    ) -> None:
        if period <= 0:
            raise ValueError("period must be positive")
        self._callback = callback
        self._period = period
        self._name = name
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("Scheduler already started")
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """Stop scheduling and wait for a running tick to finish.

        Safe to call more than once and from any thread.
        """
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def _run(self) -> None:
        while not self._stop_event.wait(self._period):
            try:
                self._callback()
            except Exception:
                logger.exception("Scheduled report failed")
