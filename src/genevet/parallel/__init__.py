"""Parallel execution of per-query validation.

Example:
    >>> from genevet.parallel import QueryExecutor
    >>> executor = QueryExecutor(n_workers=8)
"""

from genevet.parallel.executor import (
    ExecutionStats,
    ExecutorBackend,
    QueryExecutor,
    TaskResult,
)

__all__ = [
    "ExecutorBackend",
    "ExecutionStats",
    "QueryExecutor",
    "TaskResult",
]
