"""In-process processing queue.

The webhook enqueues transaction ids; a small pool of asyncio workers
processes them, each job in its own database session. ``stop`` drains the
queue and waits for in-flight jobs before returning.
"""

import asyncio
import logging
from typing import Callable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.ledger.client import LedgerClient
from app.services.processing import ProcessingResult, TransactionProcessor

logger = logging.getLogger(__name__)

ProcessorFactory = Callable[[AsyncSession, LedgerClient], TransactionProcessor]
ResultCallback = Callable[[ProcessingResult], None]


class ProcessingQueue:
    """Worker pool running ``TransactionProcessor.process`` per job.

    Results are persisted by the processor; ``on_result`` is an optional
    hook called with each finished job's result.

    Example:
        >>> queue = ProcessingQueue(AsyncSessionLocal, ledger, workers=2)
        >>> queue.start()
        >>> await queue.enqueue(transaction.id)
        >>> await queue.join()
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        ledger: LedgerClient,
        workers: int = 2,
        processor_factory: ProcessorFactory = TransactionProcessor,
        on_result: ResultCallback | None = None,
    ):
        self.session_factory = session_factory
        self.ledger = ledger
        self.workers = max(workers, 1)
        self.processor_factory = processor_factory
        self._queue: asyncio.Queue[UUID | None] = asyncio.Queue()
        self._tasks: list[asyncio.Task] = []
        self.on_result = on_result

    @property
    def is_running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    def start(self) -> None:
        if self.is_running:
            return
        self._tasks = [
            asyncio.create_task(self._worker(n), name=f"processing-worker-{n}")
            for n in range(self.workers)
        ]
        logger.info("Processing queue started", extra={"workers": self.workers})

    async def enqueue(self, transaction_id: UUID) -> None:
        await self._queue.put(transaction_id)
        logger.debug(
            "Transaction enqueued",
            extra={"transaction_id": str(transaction_id), "queue_size": self._queue.qsize()},
        )

    async def join(self) -> None:
        """Wait until every enqueued job has been processed."""
        await self._queue.join()

    async def stop(self) -> None:
        """Finish queued and in-flight jobs, then stop the workers."""
        if not self._tasks:
            return
        for _ in self._tasks:
            await self._queue.put(None)
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Processing queue stopped")

    async def _worker(self, number: int) -> None:
        while True:
            transaction_id = await self._queue.get()
            try:
                if transaction_id is None:
                    return
                async with self.session_factory() as db:
                    processor = self.processor_factory(db, self.ledger)
                    result = await processor.process(transaction_id)
                if self.on_result is not None:
                    self.on_result(result)
            except Exception:
                logger.exception(
                    "Processing worker job failed",
                    extra={"worker": number, "transaction_id": str(transaction_id)},
                )
            finally:
                self._queue.task_done()
