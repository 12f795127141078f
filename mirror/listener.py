"""
Change listener.

Subscribes to record-store notifications and feeds them through the
Reconciler. Notification delivery and processing are decoupled by an
asyncio.Queue: observe() only classifies and enqueues, a single worker task
reconciles events one at a time in arrival order.
"""

import asyncio
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from common.constants import STORAGE_CHANGED_TOPIC
from common.logging_config import get_logger
from mirror import config
from mirror.classifier import ClassifiedChange, classify
from mirror.mapper import RecordKey, record_key
from mirror.reconciler import Reconciler
from mirror.stores import RecordStore

logger = get_logger(__name__)


class ChangeListener:
    """
    Bridges record-store notifications to the Reconciler.

    Notifications may arrive on any thread (the record store is called from
    executor threads). A notifier on another thread blocks until the queue
    has room; a notifier on the loop thread cannot block, so a full queue
    drops the event and counts it in ``dropped``.
    """

    def __init__(
        self,
        record_store: RecordStore,
        reconciler: Reconciler,
        queue_maxsize: Optional[int] = None
    ):
        """
        Initialize the listener.

        Args:
            record_store: Store to subscribe to
            reconciler: Reconciler shared with the bulk drivers
            queue_maxsize: Queue bound, defaults to MIRROR_QUEUE_MAXSIZE (0 = unbounded)
        """
        self.record_store = record_store
        self.reconciler = reconciler
        self.queue_maxsize = config.QUEUE_MAXSIZE if queue_maxsize is None else queue_maxsize
        self.queue: Optional[asyncio.Queue] = None
        self.task: Optional[asyncio.Task] = None
        self.running = False
        self.processed = 0
        self.failures = 0
        self.dropped = 0
        self.suppressed_count = 0
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._suppressed: Dict[RecordKey, int] = {}
        self._suppress_lock = threading.Lock()

    async def start(self):
        """Subscribe to the record store and start the worker task."""
        if self.running:
            logger.warning("Change listener already running")
            return

        self._loop = asyncio.get_running_loop()
        self.queue = asyncio.Queue(maxsize=self.queue_maxsize)
        self.running = True
        self.task = asyncio.create_task(self._process_loop())
        self.record_store.add_observer(self.observe)
        logger.info("Change listener started")

    async def stop(self):
        """Unsubscribe and stop the worker task. Queued events are dropped."""
        if not self.running:
            return

        self.running = False
        self.record_store.remove_observer(self.observe)

        if self.task:
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass

        leftover = 0
        while not self.queue.empty():
            self.queue.get_nowait()
            self.queue.task_done()
            leftover += 1

        if leftover:
            logger.warning(f"Discarded {leftover} queued notification(s) on stop")
        logger.info(
            f"Change listener stopped [processed={self.processed}, failures={self.failures}, "
            f"dropped={self.dropped}]"
        )

    @contextmanager
    def suppressed(self, key: RecordKey) -> Iterator[None]:
        """
        Ignore notifications for records with ``key`` while the block runs.

        Used around record-store writes that originate from the document
        side, so they are not mirrored straight back.
        """
        with self._suppress_lock:
            self._suppressed[key] = self._suppressed.get(key, 0) + 1
        try:
            yield
        finally:
            with self._suppress_lock:
                self._suppressed[key] -= 1
                if not self._suppressed[key]:
                    del self._suppressed[key]

    def observe(self, subject: Any, topic: str, data: Any) -> None:
        """
        Record-store observer callback.

        Classification happens here, in the notifier's call, so a malformed
        notification raises into the code that sent it.

        Raises:
            MalformedNotificationError: If the notification cannot be classified
        """
        if topic != STORAGE_CHANGED_TOPIC:
            return

        change = classify(subject, data)

        if self._is_suppressed(change):
            self.suppressed_count += 1
            logger.debug(f"Ignoring '{change.operation.value}' for {change.record.origin}, write came from replication")
            return

        if not self.running or self._loop is None:
            logger.warning(f"Dropping '{change.operation.value}' notification, listener not running")
            return

        if _current_loop() is self._loop:
            self._enqueue_nowait(change)
        else:
            # blocks the notifying thread until the queue has room
            future = asyncio.run_coroutine_threadsafe(self.queue.put(change), self._loop)
            future.result()

    async def drain(self):
        """Wait until every queued change has been reconciled."""
        if self.running and self.queue is not None:
            await self.queue.join()

    def _is_suppressed(self, change: ClassifiedChange) -> bool:
        with self._suppress_lock:
            return record_key(change.record) in self._suppressed

    def _enqueue_nowait(self, change: ClassifiedChange) -> None:
        try:
            self.queue.put_nowait(change)
        except asyncio.QueueFull:
            self.dropped += 1
            self.failures += 1
            logger.error(
                f"Notification queue full [maxsize={self.queue_maxsize}], dropped "
                f"'{change.operation.value}' for {change.record.origin}; next full sync repairs it"
            )

    async def _process_loop(self):
        """
        Main worker loop.

        Reconciles queued changes one at a time; a failing change is logged
        and the loop moves on.
        """
        while self.running:
            change: ClassifiedChange = await self.queue.get()
            try:
                await self.reconciler.reconcile(change.operation, change.record)
                self.processed += 1
            except Exception as e:
                self.failures += 1
                logger.error(
                    f"Error reconciling '{change.operation.value}' for {change.record.origin}: {e}",
                    exc_info=True
                )
            finally:
                self.queue.task_done()


def _current_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None
