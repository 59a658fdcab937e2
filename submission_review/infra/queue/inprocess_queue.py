from __future__ import annotations

import logging
import queue
import threading
from typing import Callable, Generic, Hashable, Optional, Set, TypeVar


logger = logging.getLogger(__name__)

TTask = TypeVar("TTask", bound=Hashable)


class InProcessWorkerQueue(Generic[TTask]):
    """Background worker threads draining an in-memory task queue.

    A task equal to one that is still waiting is not queued again, so repeated
    triggers for the same submission collapse into one run. Once a worker
    picks a task up, an equal task may be queued behind it.

    Handler errors are logged and swallowed so a worker survives a failed
    task; the handler is expected to have persisted its own failure state.
    """

    def __init__(
        self,
        *,
        name: str,
        handler: Callable[[TTask], None],
        worker_concurrency: int,
        max_pending_jobs_soft_limit: Optional[int] = None,
    ) -> None:
        if worker_concurrency <= 0:
            raise ValueError("worker_concurrency must be positive")

        self._name = name
        self._handler = handler
        self._job_queue: queue.Queue[TTask] = queue.Queue()
        self._pending: Set[TTask] = set()
        self._pending_lock = threading.Lock()
        self._max_pending_jobs_soft_limit = max_pending_jobs_soft_limit

        for index in range(worker_concurrency):
            worker = threading.Thread(
                target=self._worker_loop,
                name=f"{name}-worker-{index + 1}",
                daemon=True,
            )
            worker.start()

        logger.info(
            "Initialized queue '%s': workers=%s, max_pending_jobs_soft_limit=%s",
            name,
            worker_concurrency,
            max_pending_jobs_soft_limit,
        )

    @property
    def pending_count(self) -> int:
        with self._pending_lock:
            return len(self._pending)

    def enqueue(self, task: TTask) -> bool:
        """Queue ``task``; returns ``False`` when an equal task is already waiting."""
        with self._pending_lock:
            if task in self._pending:
                logger.info("Queue '%s' already holds %r; not queueing it again", self._name, task)
                return False
            self._pending.add(task)
            pending = len(self._pending)

        self._job_queue.put(task)
        self._warn_if_backlogged(pending)
        return True

    def join(self) -> None:
        """Block until every enqueued task has been handled."""
        self._job_queue.join()

    def _warn_if_backlogged(self, pending: int) -> None:
        limit = self._max_pending_jobs_soft_limit
        if limit and pending > limit:
            logger.warning(
                "Queue '%s' has %s pending tasks, over the soft limit of %s",
                self._name,
                pending,
                limit,
            )

    def _worker_loop(self) -> None:
        while True:
            task = self._job_queue.get()
            with self._pending_lock:
                self._pending.discard(task)
            try:
                self._handler(task)
            except Exception:  # noqa: BLE001 - workers should stay alive
                logger.exception("Unexpected error while processing queue '%s' task %r", self._name, task)
            finally:
                self._job_queue.task_done()
