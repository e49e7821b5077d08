"""Per-query reports and the merged run report.

Each validated query produces one QueryReport, written as its own JSON
fragment as soon as the query completes. Fragments never share a file, so
workers do not contend on a document. At the end of the run the fragments
are merged, in query order, into one JSON report with the run summary.

Output layout::

    <output_dir>/fragments/<index>_<identifier>.json
    <output_dir>/<input name>.json

Example:
    >>> from genevet.qc.report import ReportWriter, build_query_report
    >>> writer = ReportWriter("out", "predictions.fa")
    >>> report = build_query_report(1, prediction, hits, outcomes)
    >>> writer.write_fragment(report)
    >>> writer.write_merged(aggregate.summary())
"""

from __future__ import annotations

import json
import logging
import re
import threading
from datetime import datetime
from pathlib import Path
from typing import Any

import attrs

from genevet.homology.hits import SequenceRecord
from genevet.validation.base import FailureCause, ValidationOutcome, ValidationState
from genevet.validation.scoring import GOOD_SCORE, score_outcomes

logger = logging.getLogger(__name__)

FRAGMENT_DIR = "fragments"

UNSAFE_FILENAME = re.compile(r"[^A-Za-z0-9._-]+")


# =============================================================================
# Query Report
# =============================================================================


@attrs.define(slots=True, frozen=True)
class QueryReport:
    """Outcomes and score of one validated query.

    Attributes:
        index: 1-based position of the query in the input file.
        identifier: Prediction identifier.
        definition: Prediction definition line.
        prediction_length: Protein length of the prediction.
        n_hits: Hits left after identical-hit removal.
        outcomes: One outcome per check, in selection order.
        successes: Success count after pair collapsing.
        fails: Fail count after pair collapsing.
        score: 0-100 confidence score.
    """

    index: int
    identifier: str
    definition: str
    prediction_length: int
    n_hits: int
    outcomes: tuple[ValidationOutcome, ...]
    successes: float
    fails: float
    score: int

    @property
    def is_good(self) -> bool:
        """Whether the score makes the prediction a good one."""
        return self.score >= GOOD_SCORE

    @property
    def no_evidence(self) -> bool:
        """True when no check could be applied.

        Only ``unapplicable`` outcomes count as missing evidence. A query
        whose checks all ended in ``warning`` had evidence against it and
        is a bad prediction, not one without evidence.
        """
        return all(o.state == ValidationState.UNAPPLICABLE for o in self.outcomes)

    def count_failures(self, cause: FailureCause) -> int:
        """Number of outcomes that failed because of ``cause``."""
        return sum(o.failures.count(cause) for o in self.outcomes)

    @property
    def errored_checks(self) -> list[str]:
        """Aliases of checks whose outcome is ``error``."""
        return [o.alias for o in self.outcomes if o.state == ValidationState.ERROR]

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "index": self.index,
            "identifier": self.identifier,
            "definition": self.definition,
            "prediction_length": self.prediction_length,
            "n_hits": self.n_hits,
            "successes": self.successes,
            "fails": self.fails,
            "score": self.score,
            "validations": {o.alias: o.to_dict() for o in self.outcomes},
        }


def build_query_report(
    index: int,
    prediction: SequenceRecord,
    hits: list[SequenceRecord],
    outcomes: list[ValidationOutcome],
) -> QueryReport:
    """Score the outcomes of one query and wrap them in a report."""
    score = score_outcomes(outcomes)
    return QueryReport(
        index=index,
        identifier=prediction.identifier,
        definition=prediction.definition,
        prediction_length=prediction.length_protein,
        n_hits=len(hits),
        outcomes=tuple(outcomes),
        successes=score.successes,
        fails=score.fails,
        score=score.score,
    )


# =============================================================================
# Report Writer
# =============================================================================


class ReportWriter:
    """Write per-query fragments and merge them at the end of the run.

    ``write_fragment`` may be called from any worker. The registry of
    written fragments is guarded by its own lock.
    """

    def __init__(self, output_dir: Path | str, input_name: str) -> None:
        """Initialize writer.

        Args:
            output_dir: Run output directory (created if needed).
            input_name: Name of the predictions file; names the merged report.
        """
        self.output_dir = Path(output_dir)
        self.input_name = input_name
        self.fragment_dir = self.output_dir / FRAGMENT_DIR
        self.fragment_dir.mkdir(parents=True, exist_ok=True)

        self._fragments: dict[int, Path] = {}
        self._lock = threading.Lock()

    @property
    def report_path(self) -> Path:
        """Path of the merged report."""
        return self.output_dir / f"{self.input_name}.json"

    def fragment_path(self, report: QueryReport) -> Path:
        safe_id = UNSAFE_FILENAME.sub("_", report.identifier) or "query"
        return self.fragment_dir / f"{report.index}_{safe_id}.json"

    def write_fragment(self, report: QueryReport) -> Path:
        """Persist one query report.

        Returns:
            Path of the fragment.
        """
        path = self.fragment_path(report)
        path.write_text(json.dumps(report.to_dict(), indent=2))
        with self._lock:
            self._fragments[report.index] = path
        return path

    @property
    def n_fragments(self) -> int:
        with self._lock:
            return len(self._fragments)

    def write_merged(self, summary: dict[str, Any]) -> Path:
        """Merge every fragment of this run into the final report.

        Args:
            summary: Run summary from the aggregate.

        Returns:
            Path of the merged report.
        """
        with self._lock:
            fragments = sorted(self._fragments.items())

        queries = {}
        for _, path in fragments:
            data = json.loads(path.read_text())
            queries[data["identifier"]] = data

        report = {
            "generated_at": datetime.now().isoformat(),
            "input": self.input_name,
            "summary": summary,
            "queries": queries,
        }
        self.report_path.write_text(json.dumps(report, indent=2))
        logger.info(f"Wrote report for {len(queries)} queries to {self.report_path}")
        return self.report_path
