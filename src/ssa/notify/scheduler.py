"""Periodic trigger for scheduled search batches.

Scheduling is implemented using the ``schedule`` library; each tick runs
one complete batch in a fresh event loop.
"""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Optional

import schedule

from ..utils.logging import get_logger
from .runner import BatchReport

logger = get_logger(__name__)


class BatchScheduler:
    """Run a batch every ``interval_hours`` hours."""

    def __init__(
        self,
        batch: Callable[[], Awaitable[BatchReport]],
        interval_hours: int = 24,
        scheduler: Optional[schedule.Scheduler] = None,
    ) -> None:
        self.batch = batch
        self.interval_hours = interval_hours
        self.scheduler = scheduler or schedule.Scheduler()
        self.last_report: Optional[BatchReport] = None

    def run_batch(self) -> Optional[BatchReport]:
        """Run one batch; a batch that raises is logged and yields ``None``."""
        logger.info("Triggering scheduled search batch")
        try:
            self.last_report = asyncio.run(self.batch())
        except Exception as e:
            logger.exception(f"Scheduled search batch failed: {e}")
            return None
        if not self.last_report.succeeded:
            logger.warning(
                f"Scheduled search batch finished with {len(self.last_report.failures)} failures"
            )
        return self.last_report

    def start(self, run_immediately: bool = True, poll_seconds: int = 60) -> None:
        """Start the scheduler loop in a blocking manner."""
        logger.info(f"Starting scheduled search loop every {self.interval_hours}h")
        self.scheduler.every(self.interval_hours).hours.do(self.run_batch)
        if run_immediately:
            self.run_batch()
        while True:
            self.scheduler.run_pending()
            time.sleep(poll_seconds)
