"""Run orchestration.

Example:
    >>> from genevet.core import ValidationOrchestrator
"""

from genevet.core.orchestrator import RunSummary, ValidationOrchestrator

__all__ = [
    "RunSummary",
    "ValidationOrchestrator",
]
