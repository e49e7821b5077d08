"""FASTA handling for prediction and raw-sequence files.

This module provides byte-offset random access to multi-record FASTA
files. Records are addressed by their position in the file, so input with
irregular line widths or duplicate identifiers is still accessible.

Features:
    - Offset index over ``>``-prefixed records with a trailing sentinel
    - Record slicing by seek + read of the exact byte span
    - Identifier index for a companion raw-sequence file, persisted as JSON

Example:
    >>> from genevet.homology.hits import SequenceKind
    >>> from genevet.io.fasta import FastaIndex, parse_record
    >>> index = FastaIndex.from_file("predictions.fa")
    >>> text = index.read_record("predictions.fa", 0)
    >>> record = parse_record(text, SequenceKind.PROTEIN)
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Iterator

import attrs

from genevet.exceptions import FormatError
from genevet.homology.hits import SequenceKind, SequenceRecord

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

RECORD_START = re.compile(rb"^>", re.MULTILINE)


# =============================================================================
# Record Parsing
# =============================================================================


def parse_record(text: str, kind: SequenceKind) -> SequenceRecord:
    """Build a prediction record from the raw text of one FASTA entry.

    Args:
        text: One FASTA record including its ``>`` header line.
        kind: Kind of the input file.

    Returns:
        SequenceRecord with definition, identifier, residues and length.

    Raises:
        FormatError: If the text does not start with a header line.
    """
    if not text.startswith(">"):
        raise FormatError(f"FASTA record does not start with '>': {text[:30]!r}")

    header, _, body = text.partition("\n")
    definition = header[1:].strip()
    identifier = definition.split(maxsplit=1)[0] if definition else ""
    residues = "".join(ch for ch in body if ch.isalpha())

    length = len(residues)
    if kind == SequenceKind.NUCLEOTIDE:
        length //= 3

    return SequenceRecord(
        identifier=identifier,
        definition=definition,
        kind=kind,
        length_protein=length,
        raw_sequence=residues,
    )


# =============================================================================
# Offset Index
# =============================================================================


@attrs.define(frozen=True)
class FastaIndex:
    """Byte offsets of every record in a FASTA file.

    ``offsets`` holds the start of each record followed by a sentinel equal
    to the file length, so record ``i`` spans
    ``offsets[i]:offsets[i + 1]``. The index is immutable and safe to share
    between threads.

    Attributes:
        offsets: Record starts plus trailing sentinel.
    """

    offsets: tuple[int, ...]

    @classmethod
    def build(cls, content: bytes) -> FastaIndex:
        """Index raw FASTA bytes.

        Args:
            content: Whole file content.

        Returns:
            FastaIndex over the content.

        Raises:
            FormatError: If no ``>`` record marker is found.
        """
        starts = [match.start() for match in RECORD_START.finditer(content)]
        if not starts:
            raise FormatError("no FASTA records ('>' header lines) found")
        return cls(offsets=tuple(starts) + (len(content),))

    @classmethod
    def from_file(cls, path: Path | str) -> FastaIndex:
        """Index a FASTA file on disk.

        Raises:
            FileNotFoundError: If the file does not exist.
            FormatError: If no record marker is found.
        """
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"FASTA file not found: {path}")
        index = cls.build(path.read_bytes())
        logger.debug(f"Indexed {len(index)} records in {path.name}")
        return index

    def __len__(self) -> int:
        """Number of records."""
        return len(self.offsets) - 1

    def span(self, i: int) -> tuple[int, int]:
        """Return the ``[start, end)`` byte span of record ``i`` (0-based)."""
        if not 0 <= i < len(self):
            raise IndexError(f"record index {i} out of range (0-{len(self) - 1})")
        return self.offsets[i], self.offsets[i + 1]

    def iter_spans(self) -> Iterator[tuple[int, int]]:
        """Iterate over record spans in file order."""
        for i in range(len(self)):
            yield self.offsets[i], self.offsets[i + 1]

    def read_record(self, path: Path | str, i: int) -> str:
        """Read the raw text of record ``i`` from ``path``.

        Args:
            path: FASTA file this index was built from.
            i: 0-based record number.

        Returns:
            Record text including the header line.
        """
        start, end = self.span(i)
        with open(path, "rb") as handle:
            handle.seek(start)
            data = handle.read(end - start)
        return data.decode("utf-8", errors="replace")


# =============================================================================
# Raw Sequence Index
# =============================================================================


@attrs.define
class RawSequenceIndex:
    """Identifier lookup into a companion raw-sequence FASTA file.

    Building the index rewrites the raw file so that each header line holds
    only the record identifier, then stores ``identifier -> [start, end)``
    byte spans in ``<raw file>.idx`` as JSON.

    Attributes:
        path: Raw-sequence FASTA file.
        spans: Byte span of every record keyed by identifier.
    """

    path: Path
    spans: dict[str, tuple[int, int]] = attrs.Factory(dict)

    @property
    def index_path(self) -> Path:
        """Path of the persisted index."""
        return self.path.with_name(self.path.name + ".idx")

    @property
    def is_current(self) -> bool:
        """Whether the persisted index exists and is not older than the raw file."""
        if not self.index_path.exists():
            return False
        return self.index_path.stat().st_mtime >= self.path.stat().st_mtime

    @classmethod
    def build(cls, path: Path | str) -> RawSequenceIndex:
        """Truncate descriptions in place, index the file and persist it.

        Args:
            path: Raw-sequence FASTA file.

        Returns:
            The new index.

        Raises:
            FileNotFoundError: If the file does not exist.
            FormatError: If the file holds no FASTA record.
        """
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Raw sequence file not found: {path}")

        lines = path.read_text().splitlines(keepends=True)
        truncated = []
        for line in lines:
            if line.startswith(">"):
                ending = "\n" if line.endswith("\n") else ""
                fields = line[1:].split()
                line = ">" + (fields[0] if fields else "") + ending
            truncated.append(line)
        content = "".join(truncated)
        path.write_text(content)

        encoded = content.encode()
        offsets = FastaIndex.build(encoded).offsets
        spans: dict[str, tuple[int, int]] = {}
        for start, end in zip(offsets, offsets[1:]):
            header = encoded[start:end].split(b"\n", 1)[0]
            identifier = header[1:].decode().strip()
            if identifier in spans:
                logger.warning(f"Duplicate raw sequence identifier: {identifier}")
            spans[identifier] = (start, end)

        index = cls(path=path, spans=spans)
        index.save()
        logger.info(f"Indexed {len(spans)} raw sequences from {path.name}")
        return index

    @classmethod
    def load(cls, path: Path | str) -> RawSequenceIndex:
        """Load a previously persisted index for ``path``.

        Raises:
            FileNotFoundError: If the ``.idx`` file does not exist.
        """
        path = Path(path)
        index = cls(path=path)
        if not index.index_path.exists():
            raise FileNotFoundError(f"Raw sequence index not found: {index.index_path}")
        data = json.loads(index.index_path.read_text())
        index.spans = {key: (int(span[0]), int(span[1])) for key, span in data.items()}
        return index

    def save(self) -> Path:
        """Write the index next to the raw file."""
        self.index_path.write_text(
            json.dumps({key: list(span) for key, span in self.spans.items()}, indent=1)
        )
        return self.index_path

    def fetch(self, identifier: str) -> str | None:
        """Return the FASTA text of ``identifier`` or None if unknown."""
        span = self.spans.get(identifier)
        if span is None:
            return None
        start, end = span
        with open(self.path, "rb") as handle:
            handle.seek(start)
            return handle.read(end - start).decode("utf-8", errors="replace")

    def __contains__(self, identifier: str) -> bool:
        return identifier in self.spans

    def __len__(self) -> int:
        return len(self.spans)
