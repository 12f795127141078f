"""Tests for the periodic full-sync manager."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from mirror.bulk_sync import BulkSyncDriver
from mirror.periodic_sync import PeriodicSyncManager
from mirror.types import SyncReport


async def wait_for_rounds(manager, rounds, timeout=2.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while manager.rounds < rounds:
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError(f"only {manager.rounds} rounds completed")
        await asyncio.sleep(0.01)


class TestPeriodicSyncManager:
    """Test the background full-sync loop."""

    @pytest.mark.asyncio
    async def test_first_round_seeds_immediately(self, records, reconciler, record_store, document_store, foo_login):
        record_store.add_record(foo_login)
        manager = PeriodicSyncManager(BulkSyncDriver(records, reconciler), interval_seconds=3600)

        await manager.start()
        try:
            await wait_for_rounds(manager, 1)
        finally:
            await manager.stop()

        assert manager.last_report.inserted == 1
        assert await document_store.count() == 1
        assert manager.running is False

    @pytest.mark.asyncio
    async def test_round_errors_do_not_stop_loop(self):
        driver = AsyncMock()
        driver.run.side_effect = [RuntimeError("boom"), SyncReport(), SyncReport()]
        manager = PeriodicSyncManager(driver, interval_seconds=0.01)

        await manager.start()
        try:
            await wait_for_rounds(manager, 1)
        finally:
            await manager.stop()

        assert driver.run.await_count >= 2
        assert manager.last_report is not None

    @pytest.mark.asyncio
    async def test_failed_round_kept_as_last_report(self):
        failed = SyncReport(success=False, failed=1, failed_ids=["x|http|y"])
        driver = AsyncMock()
        driver.run.return_value = failed
        manager = PeriodicSyncManager(driver, interval_seconds=3600)

        await manager.start()
        try:
            await wait_for_rounds(manager, 1)
        finally:
            await manager.stop()

        assert manager.last_report is failed

    @pytest.mark.asyncio
    async def test_start_twice_keeps_one_task(self):
        driver = AsyncMock()
        driver.run.return_value = SyncReport()
        manager = PeriodicSyncManager(driver, interval_seconds=3600)

        await manager.start()
        task = manager.task
        await manager.start()

        assert manager.task is task
        await manager.stop()
