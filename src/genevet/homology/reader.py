"""Readers for BLAST search results.

Hits for each prediction can come from a BLAST XML report, from BLAST
tabular output (outfmt 6) with the default or a custom column layout, or
from a live search. The format of a results file is probed once and the
chosen reader is used for the whole run.

Features:
    - Two-stage format probe returning a tagged ResultFormat
    - Lazy, positional XML parsing with Biopython's SearchIO
    - Identifier-addressed tabular parsing with configurable columns
    - Nucleotide-to-protein query coordinate conversion
    - Rejection of non-protein alignments

Example:
    >>> from genevet.homology.reader import open_hit_reader
    >>> reader = open_hit_reader("results.xml", SequenceKind.PROTEIN)
    >>> hits = reader.next_hits(prediction)
"""

from __future__ import annotations

import io
import logging
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import IO, Any, Iterator

from Bio import SearchIO

from genevet.exceptions import FormatError, SequenceTypeError
from genevet.homology.hits import (
    HspRecord,
    SequenceKind,
    SequenceRecord,
    protein_coordinate,
)
from genevet.homology.search import BlastSearch
from genevet.utils.sequences import is_protein

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

DEFAULT_TABULAR_FIELDS = (
    "qseqid", "sseqid", "sacc", "slen",
    "qstart", "qend", "sstart", "send",
    "length", "qframe", "pident", "nident",
    "evalue", "qseq", "sseq",
)

REQUIRED_TABULAR_FIELDS = ("qseqid", "sseqid")

INT_FIELDS = frozenset({
    "slen", "qlen", "qstart", "qend", "sstart", "send", "length",
    "qframe", "sframe", "nident", "mismatch", "gapopen", "gaps", "positive",
})
FLOAT_FIELDS = frozenset({"pident", "evalue", "bitscore", "score", "ppos"})

XML_MARKERS = ("<?xml", "<BlastOutput", "<!DOCTYPE BlastOutput")


# =============================================================================
# Format Probe
# =============================================================================


class ResultFormat(Enum):
    """Outcome of probing a results file."""

    STRUCTURED = "xml"
    COLUMNAR = "tabular"
    UNRECOGNIZED = "unrecognized"


def parse_fields(layout: str | list[str] | tuple[str, ...] | None) -> tuple[str, ...] | None:
    """Normalize a tabular column layout.

    Accepts a space-separated string (optionally prefixed with the BLAST
    outfmt number, e.g. ``"6 qseqid sseqid ..."``) or a sequence of names.

    Returns:
        Column names, or None when no layout was given.
    """
    if layout is None:
        return None
    tokens = layout.split() if isinstance(layout, str) else [str(t) for t in layout]
    tokens = [t.strip().lower() for t in tokens if t.strip()]
    if tokens and tokens[0].isdigit():
        tokens = tokens[1:]
    return tuple(tokens) or None


def _row_matches(cells: list[str], fields: tuple[str, ...]) -> bool:
    """Whether a split tabular line fits the column layout."""
    if len(cells) != len(fields):
        return False
    for name, value in zip(fields, cells):
        try:
            if name in INT_FIELDS:
                int(value)
            elif name in FLOAT_FIELDS:
                float(value)
        except ValueError:
            return False
    return True


def probe_format(
    path: Path | str,
    fields: tuple[str, ...] | None = None,
) -> ResultFormat:
    """Determine the format of a results file.

    Stage one looks for the XML prolog or the BlastOutput root element.
    Stage two checks that the first data line has the layout's column count
    and that its numeric columns parse.

    Args:
        path: Results file.
        fields: Tabular layout. Defaults to DEFAULT_TABULAR_FIELDS.

    Returns:
        ResultFormat tag.
    """
    fields = fields or DEFAULT_TABULAR_FIELDS

    with open(path, errors="replace") as handle:
        for line in handle:
            text = line.strip()
            if not text:
                continue
            if text.startswith(XML_MARKERS):
                return ResultFormat.STRUCTURED
            if text.startswith("#"):
                continue
            cells = line.rstrip("\r\n").split("\t")
            if _row_matches(cells, fields):
                return ResultFormat.COLUMNAR
            return ResultFormat.UNRECOGNIZED

    return ResultFormat.UNRECOGNIZED


# =============================================================================
# Readers
# =============================================================================


def _check_protein(alignment: str, side: str) -> None:
    """Raise unless an aligned subsequence is recognizably protein."""
    if not is_protein(alignment):
        raise SequenceTypeError(
            f"{side} alignment {alignment[:20]!r} is not protein; "
            "results must come from a protein database (blastp or blastx)"
        )


class HitReader(ABC):
    """Sequential source of hit lists, one per prediction.

    Readers are driven by a single thread in input order.
    """

    format: ResultFormat

    def __init__(self, kind: SequenceKind) -> None:
        self.kind = kind

    @abstractmethod
    def next_hits(self, prediction: SequenceRecord) -> list[SequenceRecord] | None:
        """Return the hits of ``prediction``, or None when no query is left."""

    @abstractmethod
    def skip(self, prediction: SequenceRecord) -> None:
        """Advance past ``prediction`` without building its hits."""

    def _query_coordinates(self, start: int, end: int) -> tuple[int, int]:
        """Order and convert query coordinates to protein space."""
        query_from, query_to = min(start, end), max(start, end)
        if self.kind == SequenceKind.NUCLEOTIDE:
            return protein_coordinate(query_from), protein_coordinate(query_to)
        return query_from, query_to


class XmlHitReader(HitReader):
    """Positional reader over a BLAST XML report.

    The n-th call to ``next_hits`` returns the hits of the n-th query in
    the report.
    """

    format = ResultFormat.STRUCTURED

    def __init__(self, source: Path | str | IO[str], kind: SequenceKind) -> None:
        """Initialize reader.

        Args:
            source: Path to a BLAST XML file, or an open text handle.
            kind: Kind of the predictions that were searched.
        """
        super().__init__(kind)
        if isinstance(source, Path):
            source = str(source)
        self._results: Iterator[Any] = SearchIO.parse(source, "blast-xml")

    def _next_query(self) -> Any | None:
        try:
            return next(self._results)
        except StopIteration:
            return None
        except (SyntaxError, ValueError) as e:
            # xml.etree ParseError subclasses SyntaxError
            raise FormatError(f"Unreadable BLAST XML report: {e}") from e

    def next_hits(self, prediction: SequenceRecord) -> list[SequenceRecord] | None:
        qresult = self._next_query()
        if qresult is None:
            return None
        return [self._build_hit(hit) for hit in qresult]

    def skip(self, prediction: SequenceRecord) -> None:
        self._next_query()

    def _build_hit(self, hit: Any) -> SequenceRecord:
        record = SequenceRecord(
            identifier=hit.id,
            definition=hit.description or "",
            kind=SequenceKind.PROTEIN,
            length_protein=int(hit.seq_len or 0),
            accession=getattr(hit, "accession", None),
        )

        for hsp in hit.hsps:
            hit_alignment = str(hsp.hit.seq)
            query_alignment = str(hsp.query.seq)
            _check_protein(hit_alignment, "hit")
            _check_protein(query_alignment, "query")

            # SearchIO coordinates are 0-based half-open
            query_from, query_to = self._query_coordinates(hsp.query_start + 1, hsp.query_end)
            record.hsps.append(
                HspRecord(
                    evalue=float(hsp.evalue),
                    hit_from=hsp.hit_start + 1,
                    hit_to=hsp.hit_end,
                    query_from=query_from,
                    query_to=query_to,
                    query_frame=int(getattr(hsp, "query_frame", 0) or 0),
                    hit_alignment=hit_alignment,
                    query_alignment=query_alignment,
                    align_len=int(getattr(hsp, "aln_span", 0) or 0),
                    identity=int(getattr(hsp, "ident_num", 0) or 0),
                )
            )

        return record


class TabularHitReader(HitReader):
    """Identifier-addressed reader over BLAST tabular output.

    Rows are grouped by ``qseqid``; every row becomes one HSP and rows
    sharing an ``sseqid`` become one hit. Predictions without rows have no
    hits. The reader never reports end of stream.
    """

    format = ResultFormat.COLUMNAR

    def __init__(
        self,
        path: Path | str,
        kind: SequenceKind,
        fields: tuple[str, ...] | None = None,
    ) -> None:
        """Initialize reader.

        Args:
            path: BLAST tabular file.
            kind: Kind of the predictions that were searched.
            fields: Column layout. Defaults to DEFAULT_TABULAR_FIELDS.

        Raises:
            FormatError: If the layout lacks qseqid/sseqid or a row does
                not match it.
        """
        super().__init__(kind)
        self.path = Path(path)
        self.fields = fields or DEFAULT_TABULAR_FIELDS

        missing = [name for name in REQUIRED_TABULAR_FIELDS if name not in self.fields]
        if missing:
            raise FormatError(f"Tabular layout is missing required columns: {', '.join(missing)}")

        self._blocks: dict[str, list[dict[str, str]]] = {}
        self._load()

    def _load(self) -> None:
        n_rows = 0
        with open(self.path) as handle:
            for line_no, line in enumerate(handle, start=1):
                if not line.strip() or line.startswith("#"):
                    continue
                cells = line.rstrip("\r\n").split("\t")
                if len(cells) != len(self.fields):
                    raise FormatError(
                        f"{self.path.name}:{line_no}: expected {len(self.fields)} "
                        f"columns, got {len(cells)}"
                    )
                row = dict(zip(self.fields, cells))
                self._blocks.setdefault(row["qseqid"], []).append(row)
                n_rows += 1

        logger.debug(f"Loaded {n_rows} tabular rows for {len(self._blocks)} queries")

    def next_hits(self, prediction: SequenceRecord) -> list[SequenceRecord] | None:
        rows = self._blocks.pop(prediction.identifier, [])
        try:
            return self._build_hits(rows)
        except ValueError as e:
            raise FormatError(
                f"Malformed tabular row for {prediction.identifier}: {e}"
            ) from e

    def skip(self, prediction: SequenceRecord) -> None:
        self._blocks.pop(prediction.identifier, None)

    def _build_hits(self, rows: list[dict[str, str]]) -> list[SequenceRecord]:
        hits: dict[str, SequenceRecord] = {}

        for row in rows:
            subject_id = row["sseqid"]
            hit = hits.get(subject_id)
            if hit is None:
                hit = SequenceRecord(
                    identifier=subject_id,
                    kind=SequenceKind.PROTEIN,
                    length_protein=int(row.get("slen", 0)),
                    accession=row.get("sacc"),
                )
                hits[subject_id] = hit

            hit.hsps.append(self._build_hsp(row))

        return list(hits.values())

    def _build_hsp(self, row: dict[str, str]) -> HspRecord:
        hit_alignment = row.get("sseq", "")
        query_alignment = row.get("qseq", "")
        if "sseq" in row:
            _check_protein(hit_alignment, "hit")
        if "qseq" in row:
            _check_protein(query_alignment, "query")

        align_len = int(row.get("length", 0))
        if "nident" in row:
            identity = int(row["nident"])
        elif "pident" in row:
            identity = round(float(row["pident"]) * align_len / 100)
        else:
            identity = 0

        hit_start, hit_end = int(row.get("sstart", 0)), int(row.get("send", 0))
        query_from, query_to = self._query_coordinates(
            int(row.get("qstart", 0)), int(row.get("qend", 0))
        )

        return HspRecord(
            evalue=float(row.get("evalue", 0)),
            hit_from=min(hit_start, hit_end),
            hit_to=max(hit_start, hit_end),
            query_from=query_from,
            query_to=query_to,
            query_frame=int(row.get("qframe", 0)),
            hit_alignment=hit_alignment,
            query_alignment=query_alignment,
            align_len=align_len,
            identity=identity,
        )


class LiveHitReader(HitReader):
    """Searches every prediction on demand and parses the XML report."""

    format = ResultFormat.STRUCTURED

    def __init__(self, search: BlastSearch, kind: SequenceKind) -> None:
        super().__init__(kind)
        self.search = search

    def next_hits(self, prediction: SequenceRecord) -> list[SequenceRecord] | None:
        report = self.search.search(prediction.to_fasta(), self.kind)
        hits = XmlHitReader(io.StringIO(report), self.kind).next_hits(prediction)
        return hits if hits is not None else []

    def skip(self, prediction: SequenceRecord) -> None:
        pass


# =============================================================================
# Factory
# =============================================================================


def open_hit_reader(
    path: Path | str,
    kind: SequenceKind,
    fields: tuple[str, ...] | None = None,
) -> HitReader:
    """Probe a results file and open the matching reader.

    Args:
        path: BLAST XML or tabular results.
        kind: Kind of the predictions.
        fields: Explicit tabular layout, if any.

    Returns:
        XmlHitReader or TabularHitReader.

    Raises:
        FileNotFoundError: If the file does not exist.
        FormatError: If the file is neither BLAST XML nor tabular output
            matching the layout.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Results file not found: {path}")

    result_format = probe_format(path, fields)

    if result_format == ResultFormat.STRUCTURED:
        logger.info(f"Reading BLAST XML results from {path.name}")
        return XmlHitReader(path, kind)

    if result_format == ResultFormat.COLUMNAR:
        logger.info(f"Reading BLAST tabular results from {path.name}")
        if fields is None:
            logger.warning(
                "No tabular column layout given; assuming the default "
                f"'{' '.join(DEFAULT_TABULAR_FIELDS)}'. Pass --tabular-fields "
                "if the results use nonstandard columns."
            )
        return TabularHitReader(path, kind, fields)

    hint = "" if fields else " Pass --tabular-fields if the tabular output uses nonstandard columns."
    raise FormatError(f"{path.name} is neither BLAST XML nor BLAST tabular output.{hint}")
