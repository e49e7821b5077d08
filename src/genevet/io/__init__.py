"""Input handlers for GeneVet.

- FASTA: offset index over the predictions file, record parsing, and the
  identifier index of the companion raw-sequence file

Example:
    >>> from genevet.io.fasta import FastaIndex, RawSequenceIndex
    >>> index = FastaIndex.from_file("predictions.fa")
"""

__all__: list[str] = []
