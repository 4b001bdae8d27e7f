"""In-process daily refresh, for deployments without an external cron."""
from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from pipeline import EventPipeline

logger = logging.getLogger(__name__)


def seconds_until(hour: int, now: datetime) -> float:
    """Seconds from now until the next local occurrence of hour:00."""
    target = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


class DailyScheduler:
    """Runs EventPipeline.refresh_cities once a day on a daemon thread."""

    def __init__(
        self,
        pipeline: EventPipeline,
        cities: List[str],
        hour: int = 2,
        delay_seconds: float = 3.0,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.pipeline = pipeline
        self.cities = cities
        self.hour = hour
        self.delay_seconds = delay_seconds
        self.clock = clock
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def run_once(self) -> dict:
        logger.info(f"Running scheduled scraping at {self.clock().isoformat()}")
        summary = self.pipeline.refresh_cities(
            self.cities, delay_seconds=self.delay_seconds
        )
        logger.info("Scheduled scraping completed")
        return summary

    def _tick(self) -> None:
        while not self._stop.wait(seconds_until(self.hour, self.clock())):
            try:
                self.run_once()
            except Exception:
                logger.exception("Scheduled scraping failed")

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._tick, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None
