"""
Task Queue

Units of work keyed by (kind, key) are enqueued and drained by a fixed-size
pool of asyncio workers. A key that is still waiting in the queue is not
enqueued twice; once a worker picks it up the key can be scheduled again. A failing unit is logged and never takes its worker down.
"""

import asyncio
import logging
from datetime import datetime
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Set, Tuple

from auditflow.utils.clock import utcnow

logger = logging.getLogger(__name__)

TaskKey = Tuple[str, str]


@dataclass
class TaskStats:
    """Queue statistics."""
    enqueued: int = 0
    deduplicated: int = 0
    succeeded: int = 0
    failed: int = 0


@dataclass
class _Task:
    kind: str
    key: str
    factory: Callable[[], Awaitable[object]]
    enqueued_at: datetime = field(default_factory=utcnow)

    @property
    def task_key(self) -> TaskKey:
        return (self.kind, self.key)


class TaskQueue:
    """
    Asyncio worker pool.

    Usage:
        queue = TaskQueue(concurrency=4)
        await queue.start()
        queue.enqueue("audit", str(report_id), lambda: orchestrator.run_report(report_id))
        ...
        await queue.stop()
    """

    def __init__(self, concurrency: int = 4):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.concurrency = concurrency
        self._queue: "asyncio.Queue[_Task]" = asyncio.Queue()
        self._pending: Set[TaskKey] = set()
        self._workers: List[asyncio.Task] = []
        self._stats = TaskStats()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self):
        """Spawn the workers."""
        if self._running:
            logger.warning("Task queue already running")
            return
        self._running = True
        self._workers = [
            asyncio.create_task(self._worker(i), name=f"auditflow-worker-{i}")
            for i in range(self.concurrency)
        ]
        logger.info(f"Task queue started with {self.concurrency} workers")

    async def stop(self):
        """Cancel the workers. Queued work that has not started is dropped."""
        self._running = False
        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        logger.info("Task queue stopped")

    def enqueue(
        self,
        kind: str,
        key: str,
        factory: Callable[[], Awaitable[object]],
    ) -> bool:
        """
        Schedule `factory()` to run on a worker.

        Returns False when the same (kind, key) is still waiting to run.
        """
        task = _Task(kind=kind, key=key, factory=factory)
        if task.task_key in self._pending:
            self._stats.deduplicated += 1
            logger.debug(f"Task {kind}:{key} already scheduled")
            return False

        self._pending.add(task.task_key)
        self._queue.put_nowait(task)
        self._stats.enqueued += 1
        logger.debug(f"Enqueued task {kind}:{key}")
        return True

    def is_scheduled(self, kind: str, key: str) -> bool:
        return (kind, key) in self._pending

    async def join(self, timeout: Optional[float] = None):
        """Wait until every queued unit has finished."""
        await asyncio.wait_for(self._queue.join(), timeout=timeout)

    async def _worker(self, index: int):
        while True:
            task = await self._queue.get()
            self._pending.discard(task.task_key)
            try:
                logger.debug(f"Worker {index} running {task.kind}:{task.key}")
                await task.factory()
                self._stats.succeeded += 1
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self._stats.failed += 1
                logger.error(f"Task {task.kind}:{task.key} failed: {e}", exc_info=True)
            finally:
                self._queue.task_done()

    def get_stats(self) -> dict:
        return {
            "running": self._running,
            "workers": len(self._workers),
            "queued": self._queue.qsize(),
            "in_progress": len(self._pending) - self._queue.qsize(),
            "enqueued": self._stats.enqueued,
            "deduplicated": self._stats.deduplicated,
            "succeeded": self._stats.succeeded,
            "failed": self._stats.failed,
        }
