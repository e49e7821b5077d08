"""Bounded execution of per-query validation tasks.

Queries are dispatched by a single thread in file order and complete in
any order. The threaded backend runs them on a fixed-size
ThreadPoolExecutor; at most ``max_pending`` tasks are queued or running at
once, so dispatch blocks instead of buffering every query of a large input.

Features:
    - Serial and threaded backends
    - Bounded in-flight task count
    - Early abort on the first failed task
    - Execution statistics

Example:
    >>> from genevet.parallel.executor import QueryExecutor
    >>> executor = QueryExecutor(n_workers=4)
    >>> for query in queries:
    ...     executor.raise_failed()
    ...     executor.submit(validate, query, task_id=query.identifier)
    >>> stats = executor.join()
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from enum import Enum
from typing import Any, Callable

import attrs

logger = logging.getLogger(__name__)


# =============================================================================
# Enums
# =============================================================================


class ExecutorBackend(Enum):
    """Available execution backends."""

    SERIAL = "serial"
    THREADS = "threads"


# =============================================================================
# Data Structures
# =============================================================================


@attrs.define(slots=True)
class TaskResult:
    """Outcome of one submitted task."""

    task_id: str
    success: bool
    error: str | None = None
    duration_seconds: float = 0.0

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "task_id": self.task_id,
            "success": self.success,
            "error": self.error,
            "duration_seconds": round(self.duration_seconds, 3),
        }


@attrs.define(slots=True)
class ExecutionStats:
    """Statistics from one executor lifetime."""

    total_tasks: int
    successful: int
    failed: int
    total_duration: float
    mean_task_duration: float
    max_task_duration: float

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "total_tasks": self.total_tasks,
            "successful": self.successful,
            "failed": self.failed,
            "total_duration": round(self.total_duration, 3),
            "mean_task_duration": round(self.mean_task_duration, 3),
            "max_task_duration": round(self.max_task_duration, 3),
        }


# =============================================================================
# Query Executor
# =============================================================================


class QueryExecutor:
    """Run query tasks serially or on a bounded thread pool.

    In serial mode ``submit`` runs the task immediately and lets its
    exception propagate. In threaded mode the first exception is kept and
    re-raised by ``raise_failed`` or ``join``; pending tasks are cancelled
    once a failure has been seen.

    Example:
        >>> with QueryExecutor(n_workers=8) as executor:
        ...     executor.submit(func, item)
    """

    def __init__(
        self,
        n_workers: int = 1,
        backend: ExecutorBackend | str = ExecutorBackend.THREADS,
        max_pending: int | None = None,
    ) -> None:
        """Initialize executor.

        Args:
            n_workers: Number of worker threads (1 = serial).
            backend: Execution backend.
            max_pending: Maximum number of queued plus running tasks.
                Defaults to twice the worker count.
        """
        self.n_workers = max(1, n_workers)
        self.backend = ExecutorBackend(backend) if isinstance(backend, str) else backend

        if self.n_workers == 1:
            self.backend = ExecutorBackend.SERIAL

        self.max_pending = max(self.n_workers, max_pending or 2 * self.n_workers)

        self._pool: ThreadPoolExecutor | None = None
        self._slots = threading.BoundedSemaphore(self.max_pending)
        self._futures: list[Future] = []
        self._results: list[TaskResult] = []
        self._lock = threading.Lock()
        self._failure: BaseException | None = None
        self._start_time = time.time()

        if self.backend == ExecutorBackend.THREADS:
            self._pool = ThreadPoolExecutor(
                max_workers=self.n_workers,
                thread_name_prefix="genevet-query",
            )

        logger.debug(
            f"Query executor: backend={self.backend.value}, workers={self.n_workers}"
        )

    @property
    def is_concurrent(self) -> bool:
        """Whether tasks run on worker threads."""
        return self.backend == ExecutorBackend.THREADS

    def submit(self, func: Callable[..., Any], *args: Any, task_id: str = "") -> None:
        """Schedule ``func(*args)``.

        Blocks while ``max_pending`` tasks are in flight.
        """
        if self._pool is None:
            self._run(func, args, task_id)
            return

        self._slots.acquire()
        try:
            future = self._pool.submit(self._run, func, args, task_id)
        except BaseException:
            self._slots.release()
            raise
        future.add_done_callback(self._task_done)
        self._futures = [f for f in self._futures if not f.done()]
        self._futures.append(future)

    def _run(self, func: Callable[..., Any], args: tuple, task_id: str) -> Any:
        start_time = time.time()
        try:
            result = func(*args)
        except BaseException as e:
            self._record(TaskResult(
                task_id=task_id,
                success=False,
                error=str(e),
                duration_seconds=time.time() - start_time,
            ))
            if self._pool is not None:
                logger.error(f"Task {task_id} failed: {e}")
            raise
        self._record(TaskResult(
            task_id=task_id,
            success=True,
            duration_seconds=time.time() - start_time,
        ))
        return result

    def _record(self, task_result: TaskResult) -> None:
        with self._lock:
            self._results.append(task_result)

    def _task_done(self, future: Future) -> None:
        self._slots.release()
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            with self._lock:
                if self._failure is None:
                    self._failure = error

    def raise_failed(self) -> None:
        """Re-raise the first task failure, cancelling pending tasks."""
        with self._lock:
            failure = self._failure
        if failure is None:
            return
        for future in self._futures:
            future.cancel()
        raise failure

    def join(self) -> ExecutionStats:
        """Wait for every submitted task.

        Returns:
            Execution statistics.

        Raises:
            Exception: The first exception raised by a task.
        """
        if self._futures:
            wait(self._futures)
        self.shutdown()
        self.raise_failed()

        with self._lock:
            results = list(self._results)
        durations = [r.duration_seconds for r in results]
        successful = sum(1 for r in results if r.success)

        stats = ExecutionStats(
            total_tasks=len(results),
            successful=successful,
            failed=len(results) - successful,
            total_duration=time.time() - self._start_time,
            mean_task_duration=sum(durations) / len(durations) if durations else 0.0,
            max_task_duration=max(durations) if durations else 0.0,
        )
        logger.debug(
            f"Completed {stats.successful}/{stats.total_tasks} query tasks "
            f"in {stats.total_duration:.1f}s"
        )
        return stats

    def shutdown(self) -> None:
        """Release worker threads, waiting for running tasks."""
        if self._pool is not None:
            self._pool.shutdown(wait=True, cancel_futures=self._failure is not None)
            self._pool = None

    def __enter__(self) -> "QueryExecutor":
        return self

    def __exit__(self, *args: Any) -> None:
        self.shutdown()
