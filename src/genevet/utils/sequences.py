"""Sequence utilities.

This module classifies residue strings as nucleotide or protein:

- Single-sequence guess from residue composition
- Whole-file typing that rejects mixed input

Example:
    >>> from genevet.utils.sequences import guess_sequence_type
    >>> guess_sequence_type("ATGGCGTACGATCGATCGA")
    <SequenceKind.NUCLEOTIDE: 'nucleotide'>
"""

import re

from genevet.exceptions import SequenceTypeError
from genevet.homology.hits import SequenceKind

# =============================================================================
# Constants
# =============================================================================

# Fewer usable residues than this and the kind is indeterminate
MIN_RESIDUES_FOR_GUESS = 10

# Minimum fraction of nucleotide letters for a nucleotide call
NUCLEOTIDE_THRESHOLD = 0.9

NUCLEOTIDE_LETTERS = frozenset("ACGTU")

HEADER_LINE = re.compile(r"^>.*$", re.MULTILINE)
NON_RESIDUE = re.compile(r"[^A-Za-z]|[NXnx]")


# =============================================================================
# Sequence Kind Detection
# =============================================================================


def guess_sequence_type(sequence: str) -> SequenceKind | None:
    """Guess whether a residue string is nucleotide or protein.

    Non-letter characters and the ambiguity codes N and X are ignored.

    Args:
        sequence: Residue string, may contain gaps and line breaks.

    Returns:
        SequenceKind, or None when fewer than 10 usable residues remain.
    """
    cleaned = NON_RESIDUE.sub("", sequence).upper()
    if len(cleaned) < MIN_RESIDUES_FOR_GUESS:
        return None

    n_nucleotide = sum(1 for residue in cleaned if residue in NUCLEOTIDE_LETTERS)
    if n_nucleotide / len(cleaned) >= NUCLEOTIDE_THRESHOLD:
        return SequenceKind.NUCLEOTIDE
    return SequenceKind.PROTEIN


def type_of_sequences(fasta_text: str) -> SequenceKind | None:
    """Determine the common kind of every record in a FASTA string.

    Records too short to classify are ignored.

    Args:
        fasta_text: FASTA formatted text. The first record may lack a header.

    Returns:
        The shared SequenceKind, or None if no record could be classified.

    Raises:
        SequenceTypeError: If records of different kinds are mixed.
    """
    sequences = [seq for seq in HEADER_LINE.split(fasta_text) if seq.strip()]
    kinds = {guess_sequence_type(seq) for seq in sequences}
    kinds.discard(None)

    if not kinds:
        return None
    if len(kinds) == 1:
        return kinds.pop()
    raise SequenceTypeError("input contains both nucleotide and protein sequences")


def is_protein(sequence: str) -> bool:
    """Whether a residue string is confidently protein."""
    return guess_sequence_type(sequence) == SequenceKind.PROTEIN
