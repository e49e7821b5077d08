"""Homology evidence for GeneVet.

This package holds everything about the database hits a prediction is
compared against:

- Sequence and alignment records
- Readers for BLAST XML and tabular results, with format probing
- Live BLAST searches
- Removal of hits identical to the prediction

Example:
    >>> from genevet.homology import SequenceKind, SequenceRecord
    >>> from genevet.homology.reader import open_hit_reader
    >>> reader = open_hit_reader("results.xml", SequenceKind.PROTEIN)
"""

from genevet.homology.hits import (
    HspRecord,
    SequenceKind,
    SequenceRecord,
    protein_coordinate,
)

__all__ = [
    "HspRecord",
    "SequenceKind",
    "SequenceRecord",
    "protein_coordinate",
]
