"""Background thread that periodically replays the offline write queue."""

from __future__ import annotations

import logging
import threading
from typing import Optional

from intranet.client.scheduler import ReservationScheduler

logger = logging.getLogger(__name__)


class BackgroundReconciler:
    """Poll ``scheduler.reconcile_pending`` every ``interval`` seconds.

    Runs on a daemon thread; the scheduler's own locking keeps it from
    blocking foreground viewing or booking.
    """

    def __init__(self, scheduler: ReservationScheduler, interval: float = 30.0) -> None:
        self.scheduler = scheduler
        self.interval = interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="booking-reconciler", daemon=True)
        self._thread.start()
        logger.info("Background reconciler started (interval=%ss)", self.interval)

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
        self._thread = None
        logger.info("Background reconciler stopped")

    def run_once(self) -> int:
        """One pass; returns how many queued writes are still pending."""
        if not self.scheduler.pending_count():
            return 0
        try:
            result = self.scheduler.reconcile_pending()
        except Exception:
            logger.exception("Reconcile pass failed")
            return self.scheduler.pending_count()
        return result.remaining

    def _run(self) -> None:
        while not self._stop.is_set():
            self.run_once()
            self._stop.wait(self.interval)
