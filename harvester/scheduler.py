"""
Bounded-concurrency scheduling of the page pipeline.

Workers pull URLs from a shared WorkQueue until it is drained or the run is
cancelled. Results travel back over an asyncio.Queue to a single collector,
which is the only writer of the result table.
"""

import asyncio
import logging
import threading
from typing import Dict, Mapping, Optional, Sequence, Tuple

from .models import BASE_NAME_COLUMN, InputRow, ScrapeResult
from .progress import ProgressReporter, WorkerLog

logger = logging.getLogger(__name__)

ResultTable = Dict[str, ScrapeResult]

_WORKER_DONE = None


class CancellationToken:
    """
    One-shot stop flag shared between the engine and its workers.

    Backed by a threading.Event so ``cancel`` may be called from a signal
    handler or another thread.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class WorkQueue:
    """Ordered unique-URL work list with an atomically advanced cursor."""

    def __init__(self, unique_urls: Mapping[str, InputRow]):
        self._items: Sequence[Tuple[str, InputRow]] = tuple(unique_urls.items())
        self._cursor = 0
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._items)

    @property
    def remaining(self) -> int:
        return len(self._items) - self._cursor

    async def next(self) -> Optional[Tuple[str, InputRow]]:
        """Hand out the next (url, first_row) pair, or None when drained."""
        async with self._lock:
            if self._cursor >= len(self._items):
                return None
            item = self._items[self._cursor]
            self._cursor += 1
            return item


class Scheduler:
    """
    Fans the unique-URL list out to ``min(concurrency, U)`` workers.

    Usage:
        scheduler = Scheduler(pipeline, reporter, concurrency=3, token=token)
        results = await scheduler.run(work.unique_urls)
    """

    def __init__(
        self,
        pipeline,
        reporter: ProgressReporter,
        concurrency: int = 3,
        token: Optional[CancellationToken] = None
    ):
        """
        Initialize the scheduler.

        Args:
            pipeline: Object with ``async run(url, row, log) -> ScrapeResult``
            reporter: Progress reporter for the run
            concurrency: Maximum number of simultaneous pipelines (>= 1)
            token: Cancellation token polled before every pull
        """
        self.pipeline = pipeline
        self.reporter = reporter
        self.concurrency = max(1, concurrency)
        self.token = token or CancellationToken()

        self.active = 0
        self.peak_active = 0

    async def run(self, unique_urls: Mapping[str, InputRow]) -> ResultTable:
        """
        Process every unique URL (unless cancelled).

        Args:
            unique_urls: URL -> first row, in first-seen order

        Returns:
            URL -> ScrapeResult for every URL that was pulled before cancellation
        """
        queue = WorkQueue(unique_urls)
        results: ResultTable = {}
        if not len(queue):
            return results

        worker_count = min(self.concurrency, len(queue))
        channel: asyncio.Queue = asyncio.Queue()
        self.reporter.info(f"Starting scrape with {worker_count} concurrent workers.")

        workers = [
            asyncio.create_task(self._worker(worker_id, queue, channel))
            for worker_id in range(1, worker_count + 1)
        ]
        await self._collect(channel, results, worker_count, len(queue))
        await asyncio.gather(*workers)

        logger.debug(f"Scheduler finished: {len(results)} results, peak {self.peak_active} active")
        return results

    async def _worker(self, worker_id: int, queue: WorkQueue, channel: asyncio.Queue) -> None:
        try:
            while not self.token.cancelled:
                item = await queue.next()
                if item is None:
                    break

                url, row = item
                log = WorkerLog(self.reporter, worker_id, row.get(BASE_NAME_COLUMN) or "untitled")
                result = await self._run_one(url, row, log)
                await channel.put((url, result))
                # Let the collector record the result before the next pull
                await asyncio.sleep(0)
        finally:
            await channel.put(_WORKER_DONE)

    async def _run_one(self, url: str, row: InputRow, log: WorkerLog) -> ScrapeResult:
        self.active += 1
        self.peak_active = max(self.peak_active, self.active)
        try:
            return await self.pipeline.run(url, row, log)
        except Exception as e:
            log.error(f"Unexpected failure for {url}: {e}")
            return ScrapeResult.failed(str(e) or type(e).__name__)
        finally:
            self.active -= 1

    async def _collect(
        self,
        channel: asyncio.Queue,
        results: ResultTable,
        worker_count: int,
        total: int
    ) -> None:
        """Drain the result channel until every worker has signed off."""
        finished = 0
        while finished < worker_count:
            message = await channel.get()
            if message is _WORKER_DONE:
                finished += 1
                continue

            url, result = message
            results[url] = result
            processed = self.reporter.mark_processed()
            self.reporter.emit(f"Processing {processed}/{total}...")
