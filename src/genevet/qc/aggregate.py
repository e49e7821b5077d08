"""Run-level statistics collected from every validated query.

The RunAggregate is shared by all workers. ``merge`` is its only
mutator and holds the aggregate lock for the whole update, so merges are
atomic and may arrive in any order. Only the order of ``scores`` depends
on completion order.

Example:
    >>> aggregate = RunAggregate()
    >>> aggregate.merge(report)
    >>> summary = aggregate.summary()
    >>> summary["good_predictions"]
    1
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Any

import attrs
import numpy as np

from genevet.validation.base import FailureCause, ValidationState

if TYPE_CHECKING:
    from genevet.qc.report import QueryReport

# Score histogram bin edges (last bin includes 100)
SCORE_BINS = np.arange(0, 101, 10)

NOT_TIMED = frozenset({ValidationState.UNAPPLICABLE, ValidationState.ERROR})


@attrs.define
class RunAggregate:
    """Totals over one validation run.

    Attributes:
        query_count: Number of merged queries.
        scores: Score of every merged query, in completion order.
        good_predictions: Queries scoring at least 75.
        bad_predictions: Queries scoring below 75.
        no_evidence: Queries where no check applied.
        no_aligner: Check failures caused by a missing alignment tool.
        no_network: Check failures caused by an unreachable service.
        error_counts: Number of ``error`` outcomes per check alias.
        running_times: ``(total seconds, samples)`` per check alias.
    """

    query_count: int = 0
    scores: list[int] = attrs.Factory(list)
    good_predictions: int = 0
    bad_predictions: int = 0
    no_evidence: int = 0
    no_aligner: int = 0
    no_network: int = 0
    error_counts: dict[str, int] = attrs.Factory(dict)
    running_times: dict[str, tuple[float, int]] = attrs.Factory(dict)
    _lock: threading.Lock = attrs.field(factory=threading.Lock, repr=False, eq=False)

    def merge(self, report: QueryReport) -> None:
        """Add one query report to the totals."""
        with self._lock:
            self.query_count += 1
            self.scores.append(report.score)
            if report.is_good:
                self.good_predictions += 1
            else:
                self.bad_predictions += 1
            if report.no_evidence:
                self.no_evidence += 1
            self.no_aligner += report.count_failures(FailureCause.ALIGNER_UNAVAILABLE)
            self.no_network += report.count_failures(FailureCause.NETWORK_UNAVAILABLE)

            for alias in report.errored_checks:
                self.error_counts[alias] = self.error_counts.get(alias, 0) + 1

            for outcome in report.outcomes:
                if not outcome.running_time or outcome.state in NOT_TIMED:
                    continue
                total, samples = self.running_times.get(outcome.alias, (0.0, 0))
                self.running_times[outcome.alias] = (total + outcome.running_time, samples + 1)

    def mean_running_times(self) -> dict[str, float]:
        """Average running time per check alias."""
        with self._lock:
            return {
                alias: total / samples
                for alias, (total, samples) in self.running_times.items()
                if samples
            }

    def score_histogram(self) -> dict[str, int]:
        """Number of scores per 10-point bin."""
        with self._lock:
            scores = list(self.scores)
        counts, edges = np.histogram(scores, bins=SCORE_BINS)
        return {
            f"{int(low)}-{int(high)}": int(count)
            for low, high, count in zip(edges[:-1], edges[1:], counts)
        }

    def summary(self) -> dict[str, Any]:
        """Plain-data summary of the run."""
        histogram = self.score_histogram()
        mean_times = self.mean_running_times()
        with self._lock:
            scores = np.asarray(self.scores, dtype=float)
            return {
                "query_count": self.query_count,
                "good_predictions": self.good_predictions,
                "bad_predictions": self.bad_predictions,
                "no_evidence": self.no_evidence,
                "no_aligner": self.no_aligner,
                "no_network": self.no_network,
                "mean_score": float(scores.mean()) if scores.size else None,
                "median_score": float(np.median(scores)) if scores.size else None,
                "score_histogram": histogram,
                "error_counts": dict(self.error_counts),
                "mean_running_times": mean_times,
            }

    def totals(self) -> dict[str, Any]:
        """Order-independent view used to compare runs."""
        with self._lock:
            return {
                "query_count": self.query_count,
                "scores": sorted(self.scores),
                "good_predictions": self.good_predictions,
                "bad_predictions": self.bad_predictions,
                "no_evidence": self.no_evidence,
                "no_aligner": self.no_aligner,
                "no_network": self.no_network,
                "error_counts": dict(self.error_counts),
            }
