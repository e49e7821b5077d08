"""Run statistics and reports.

- RunAggregate: lock-protected totals merged from every query
- QueryReport and ReportWriter: per-query JSON fragments and the merged
  run report

Example:
    >>> from genevet.qc import ReportWriter, RunAggregate
"""

from genevet.qc.aggregate import RunAggregate
from genevet.qc.report import QueryReport, ReportWriter, build_query_report

__all__ = [
    "RunAggregate",
    "QueryReport",
    "ReportWriter",
    "build_query_report",
]
