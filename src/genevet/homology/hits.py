"""Sequence and alignment records shared across GeneVet.

A prediction (query) and each database hit are both represented as a
SequenceRecord. The local alignments between a query and one hit are
HspRecords attached to the hit.

Example:
    >>> from genevet.homology.hits import HspRecord, SequenceKind, SequenceRecord
    >>> hit = SequenceRecord(identifier="sp|P12345|PROT", kind=SequenceKind.PROTEIN)
    >>> hit.hsps.append(HspRecord(query_from=1, query_to=120, align_len=120, identity=118))
    >>> round(hit.hsps[0].pidentity, 1)
    98.3
"""

from __future__ import annotations

from enum import Enum

import attrs


# =============================================================================
# Enums
# =============================================================================


class SequenceKind(Enum):
    """Residue alphabet of a sequence."""

    NUCLEOTIDE = "nucleotide"
    PROTEIN = "protein"


# =============================================================================
# Data Structures
# =============================================================================


@attrs.define(slots=True, frozen=True)
class HspRecord:
    """Single high-scoring segment pair between a query and one hit.

    Coordinates are 1-based and inclusive. Query coordinates of nucleotide
    queries are already converted to protein space.

    Attributes:
        evalue: E-value of the segment.
        hit_from: Start position on the hit.
        hit_to: End position on the hit.
        query_from: Start position on the query.
        query_to: End position on the query.
        query_frame: Reading frame of the query (0 for protein queries).
        hit_alignment: Aligned hit residues.
        query_alignment: Aligned query residues.
        align_len: Alignment length including gaps.
        identity: Number of identical positions.
    """

    evalue: float = 0.0
    hit_from: int = 0
    hit_to: int = 0
    query_from: int = 0
    query_to: int = 0
    query_frame: int = 0
    hit_alignment: str = ""
    query_alignment: str = ""
    align_len: int = 0
    identity: int = 0

    @property
    def pidentity(self) -> float | None:
        """Percent identity, or None for an empty alignment."""
        if self.align_len == 0:
            return None
        return 100 * self.identity / self.align_len

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "evalue": self.evalue,
            "hit_from": self.hit_from,
            "hit_to": self.hit_to,
            "query_from": self.query_from,
            "query_to": self.query_to,
            "query_frame": self.query_frame,
            "align_len": self.align_len,
            "identity": self.identity,
            "pidentity": self.pidentity,
        }


@attrs.define(slots=True)
class SequenceRecord:
    """A prediction or a database hit.

    Attributes:
        identifier: First token of the FASTA definition (or the hit id).
        definition: Full definition line without the leading ``>``.
        kind: Residue alphabet.
        length_protein: Length in protein residues. Nucleotide lengths are
            divided by 3.
        raw_sequence: Residues, when known.
        accession: Database accession of a hit.
        hsps: Alignment segments against the query, in report order.
    """

    identifier: str
    definition: str = ""
    kind: SequenceKind = SequenceKind.PROTEIN
    length_protein: int = 0
    raw_sequence: str | None = None
    accession: str | None = None
    hsps: list[HspRecord] = attrs.Factory(list)

    @property
    def n_hsps(self) -> int:
        """Number of alignment segments."""
        return len(self.hsps)

    def to_fasta(self) -> str:
        """Render the record as a FASTA entry."""
        return f">{self.definition or self.identifier}\n{self.raw_sequence or ''}\n"

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "identifier": self.identifier,
            "definition": self.definition,
            "kind": self.kind.value,
            "length_protein": self.length_protein,
            "accession": self.accession,
            "hsps": [hsp.to_dict() for hsp in self.hsps],
        }


def protein_coordinate(position: int) -> int:
    """Convert a nucleotide query position to protein space.

    Args:
        position: 1-based nucleotide coordinate.

    Returns:
        ``position // 3 + 1``.
    """
    return position // 3 + 1
