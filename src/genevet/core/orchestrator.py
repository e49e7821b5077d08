"""Top-level driver of a validation run.

A run moves through three phases:

1. INIT: type and index the predictions file, index the raw-sequence
   file, resolve the selected checks and open the hit reader.
2. Per query, in file order: queries before the start index are skipped
   (the reader cursor still advances); every other query is sliced from
   the input, paired with its hits, stripped of identical hits and
   validated. The first validated query runs on the calling thread, later
   ones on the bounded executor when concurrency is on.
3. FINALIZE: wait for every worker and merge the report fragments.

Example:
    >>> from genevet.config import RunConfig
    >>> from genevet.core.orchestrator import ValidationOrchestrator
    >>> config = RunConfig(search_results="results.xml", validations=["all"])
    >>> summary = ValidationOrchestrator("predictions.fa", config).run()
    >>> summary.aggregate.good_predictions
    42
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import attrs

from genevet.config import RunConfig
from genevet.homology.filters import filter_hits_best_effort
from genevet.homology.hits import SequenceKind, SequenceRecord
from genevet.homology.reader import HitReader, LiveHitReader, open_hit_reader
from genevet.homology.search import BlastSearch
from genevet.io.fasta import FastaIndex, RawSequenceIndex, parse_record
from genevet.parallel.executor import ExecutionStats, QueryExecutor
from genevet.qc.aggregate import RunAggregate
from genevet.qc.report import QueryReport, ReportWriter, build_query_report
from genevet.utils.logging import ProgressLogger
from genevet.utils.sequences import type_of_sequences
from genevet.validation.base import CheckContext, CheckRegistry, CheckRunner, default_registry

logger = logging.getLogger(__name__)


# =============================================================================
# Data Structures
# =============================================================================


@attrs.define(slots=True)
class RunSummary:
    """Result of a completed run.

    Attributes:
        input_path: Predictions file.
        kind: Sequence kind of the predictions.
        result_format: Format of the hit source ("xml" or "tabular").
        n_records: Records in the predictions file.
        n_validated: Queries validated.
        n_skipped: Queries skipped before the start index.
        aggregate: Run totals.
        report_path: Merged JSON report.
        stats: Executor statistics for the dispatched queries.
    """

    input_path: Path
    kind: SequenceKind
    result_format: str
    n_records: int
    n_validated: int
    n_skipped: int
    aggregate: RunAggregate
    report_path: Path
    stats: ExecutionStats | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "input_path": str(self.input_path),
            "kind": self.kind.value,
            "result_format": self.result_format,
            "n_records": self.n_records,
            "n_validated": self.n_validated,
            "n_skipped": self.n_skipped,
            "report_path": str(self.report_path),
            "summary": self.aggregate.summary(),
            "execution": self.stats.to_dict() if self.stats else None,
        }


# =============================================================================
# Orchestrator
# =============================================================================


class ValidationOrchestrator:
    """Validate every prediction of a FASTA file against its hits.

    The dispatch loop is single-threaded and owns the hit reader's cursor.
    Workers only touch their own prediction, hits and outcomes, plus the
    aggregate and report writer, which synchronize internally.
    """

    def __init__(
        self,
        input_path: Path | str,
        config: RunConfig | None = None,
        registry: CheckRegistry | None = None,
    ) -> None:
        """Initialize orchestrator.

        Args:
            input_path: FASTA file of predictions.
            config: Run configuration. Defaults to RunConfig().
            registry: Available checks. Defaults to the built-in checks.
        """
        self.input_path = Path(input_path)
        self.config = config or RunConfig()
        self.registry = registry

        self.kind = SequenceKind.PROTEIN
        self.index: FastaIndex | None = None
        self.raw_index: RawSequenceIndex | None = None
        self.reader: HitReader | None = None
        self.runner: CheckRunner | None = None
        self.writer: ReportWriter | None = None
        self.aggregate = RunAggregate()

    # -------------------------------------------------------------------------
    # INIT
    # -------------------------------------------------------------------------

    def prepare(self) -> None:
        """Set up everything a run needs before the first query.

        Raises:
            FileNotFoundError: If the input or a configured file is missing.
            FormatError: If the input has no FASTA records or the results
                are in no supported format.
            SequenceTypeError: If the input mixes nucleotide and protein.
            NoValidationError: If no registered check is selected.
            ValueError: If the configuration is invalid.
        """
        self.config.validate()

        if not self.input_path.is_file():
            raise FileNotFoundError(f"Input file not found: {self.input_path}")

        content = self.input_path.read_bytes()
        kind = type_of_sequences(content.decode("utf-8", errors="replace"))
        if kind is None:
            logger.warning(
                f"Could not determine the sequence kind of {self.input_path.name}; "
                "assuming protein"
            )
            kind = SequenceKind.PROTEIN
        self.kind = kind
        self.index = FastaIndex.build(content)
        logger.info(f"{self.input_path.name}: {len(self.index)} {kind.value} predictions")

        if self.config.raw_sequences is not None:
            self.raw_index = self._open_raw_index(self.config.raw_sequences)

        registry = self.registry or default_registry()
        checks = registry.select(self.config.selected_validations)
        logger.info(f"Running checks: {', '.join(check.alias for check in checks)}")

        output_dir = self.config.output_dir_for(self.input_path)
        self.runner = CheckRunner(
            checks,
            CheckContext(
                raw_index=self.raw_index,
                db=self.config.db,
                num_threads=self.config.num_threads,
                output_dir=output_dir,
            ),
        )
        self.reader = self._open_reader()
        self.writer = ReportWriter(output_dir, self.input_path.name)

    def _open_raw_index(self, path: Path) -> RawSequenceIndex:
        index = RawSequenceIndex(path=path)
        if index.is_current:
            logger.debug(f"Loading raw sequence index {index.index_path.name}")
            return RawSequenceIndex.load(path)
        if index.index_path.exists():
            logger.info(f"{path.name} changed since it was indexed; rebuilding the index")
        return RawSequenceIndex.build(path)

    def _open_reader(self) -> HitReader:
        if self.config.search_results is not None:
            return open_hit_reader(self.config.search_results, self.kind, self.config.fields)
        logger.info(f"No search results given; searching {self.config.db} for every query")
        search = BlastSearch(self.config.db, threads=self.config.num_threads)
        return LiveHitReader(search, self.kind)

    # -------------------------------------------------------------------------
    # Per query
    # -------------------------------------------------------------------------

    def validate_query(
        self,
        index: int,
        prediction: SequenceRecord,
        hits: list[SequenceRecord],
    ) -> QueryReport:
        """Run the checks of one query and record the result.

        Args:
            index: 1-based position of the query in the input.
            prediction: The prediction.
            hits: Its hits, identical hits already removed.

        Returns:
            The query report.
        """
        outcomes = self.runner.run(self.kind, prediction, hits)
        report = build_query_report(index, prediction, hits, outcomes)
        self.aggregate.merge(report)
        self.writer.write_fragment(report)
        logger.debug(f"{index}\t{prediction.identifier}\tscore={report.score}")
        return report

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    def run(self) -> RunSummary:
        """Validate every query and write the merged report.

        Returns:
            RunSummary of the run.

        Raises:
            GeneVetError: On malformed input or results, or a broken check
                contract in any query.
        """
        self.prepare()

        start_index = self.config.start_index
        n_workers = self.config.max_workers if self.config.concurrent else 1
        progress = ProgressLogger(logger, total=len(self.index), description="Queries dispatched")

        n_validated = 0
        n_skipped = 0

        with QueryExecutor(n_workers=n_workers) as executor:
            for i in range(1, len(self.index) + 1):
                executor.raise_failed()

                prediction = parse_record(self.index.read_record(self.input_path, i - 1), self.kind)

                if i < start_index:
                    self.reader.skip(prediction)
                    n_skipped += 1
                    continue

                hits = self.reader.next_hits(prediction)
                if hits is None:
                    logger.info(f"Search results end after query {i - 1}")
                    break
                hits = filter_hits_best_effort(prediction, hits)

                if n_validated == 0:
                    self.validate_query(i, prediction, hits)
                else:
                    executor.submit(self.validate_query, i, prediction, hits, task_id=prediction.identifier)
                n_validated += 1
                progress.update()

            progress.finish()
            stats = executor.join()

        report_path = self.writer.write_merged(self.aggregate.summary())

        return RunSummary(
            input_path=self.input_path,
            kind=self.kind,
            result_format=self.reader.format.value,
            n_records=len(self.index),
            n_validated=n_validated,
            n_skipped=n_skipped,
            aggregate=self.aggregate,
            report_path=report_path,
            stats=stats,
        )
