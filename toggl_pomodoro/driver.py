"""Periodic refresh: fetch entries, rebuild the state, remind, publish."""

import logging
import threading
from datetime import datetime, timezone
from typing import Callable

from .config import REFRESH_INTERVAL, PomodoroConfig
from .errors import SourceError
from .escalation import EscalationController
from .reconstruct import reconstruct
from .state import StateCell

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Refresher:
    def __init__(
        self,
        source,
        controller: EscalationController,
        cell: StateCell,
        pomodoro: PomodoroConfig,
        interval: float = REFRESH_INTERVAL,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.source = source
        self.controller = controller
        self.cell = cell
        self.pomodoro = pomodoro
        self.interval = interval
        self.clock = clock

    def run_once(self) -> bool:
        """One refresh cycle. Returns False if nothing was published."""
        try:
            entries = self.source.fetch_entries()
        except SourceError as e:
            # keep serving the previous snapshot, retry next tick
            logger.warning("Fetching time entries failed: %s", e)
            return False

        state = reconstruct(entries, self.pomodoro)
        state = self.controller.evaluate(state, self.cell.get(), self.clock())
        self.cell.publish(state)
        logger.debug("Published %s", state)
        return True

    def run(self, stop_event: threading.Event) -> None:
        """Refresh every `interval` seconds until stop_event is set."""
        logger.info("Refresher started (every %ss)", self.interval)
        while not stop_event.is_set():
            try:
                self.run_once()
            except Exception:
                logger.exception("Refresh failed")
            stop_event.wait(self.interval)
        logger.info("Refresher stopped")

    def start(self, stop_event: threading.Event) -> threading.Thread:
        thread = threading.Thread(
            target=self.run, args=(stop_event,), name="refresher", daemon=True
        )
        thread.start()
        return thread
