"""
Periodic full-sync manager.

Runs a background task that re-reconciles the whole record store every
interval, repairing anything a missed notification left behind.
"""

import asyncio
import uuid
from typing import Optional

from common.logging_config import get_logger
from mirror import config
from mirror.bulk_sync import BulkSyncDriver
from mirror.types import SyncReport

logger = get_logger(__name__)


class PeriodicSyncManager:
    """
    Manages periodic full-sync execution.

    Runs a full pass every ``interval_seconds``; the first pass starts
    immediately so a fresh mirror gets seeded.
    """

    def __init__(self, driver: BulkSyncDriver, interval_seconds: Optional[int] = None):
        """
        Initialize the periodic sync manager.

        Args:
            driver: BulkSyncDriver to run
            interval_seconds: Seconds between passes, defaults to MIRROR_FULL_SYNC_INTERVAL
        """
        self.driver = driver
        self.interval_seconds = interval_seconds or config.FULL_SYNC_INTERVAL
        self.task: Optional[asyncio.Task] = None
        self.running = False
        self.rounds = 0
        self.last_report: Optional[SyncReport] = None

    async def start(self):
        """Start the full-sync background task."""
        if self.running:
            logger.warning("Periodic sync manager already running")
            return

        self.running = True
        self.task = asyncio.create_task(self._sync_loop())
        logger.info(f"Periodic sync manager started [interval={self.interval_seconds}s]")

    async def stop(self):
        """Stop the full-sync background task."""
        if not self.running:
            return

        self.running = False

        if self.task:
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass

        logger.info(f"Periodic sync manager stopped [rounds={self.rounds}]")

    async def _sync_loop(self):
        """
        Main loop.

        Executes a full pass every interval; errors are logged and the next
        round still runs.
        """
        while self.running:
            try:
                await self._sync_round()
            except Exception as e:
                logger.error(f"Error in full sync round: {e}", exc_info=True)

            await asyncio.sleep(self.interval_seconds)

    async def _sync_round(self):
        """Execute one full pass and keep its report."""
        round_id = uuid.uuid4().hex[:8]
        logger.debug(f"Starting full sync round {round_id}")

        report = await self.driver.run()

        self.rounds += 1
        self.last_report = report

        if not report.success:
            logger.warning(
                f"Full sync round {round_id} finished with {report.failed} failures: "
                f"{', '.join(report.failed_ids)}"
            )
        else:
            logger.debug(f"Completed full sync round {round_id} [writes={report.writes}]")
