"""Reading frame consistency of nucleotide predictions."""

from __future__ import annotations

from genevet.homology.hits import SequenceKind
from genevet.validation.base import ValidationCheck, ValidationOutcome


class ReadingFrameCheck(ValidationCheck):
    """All HSPs of a nucleotide prediction share one reading frame.

    HSPs in several frames suggest a frameshift inside the prediction.
    """

    alias = "frame"
    header = "Reading Frame"
    description = "Checks that every BLAST HSP lies in the same query reading frame."

    def run(self) -> ValidationOutcome:
        if self.kind != SequenceKind.NUCLEOTIDE:
            return self.unapplicable("protein prediction")

        frames: dict[int, int] = {}
        for hit in self.hits:
            for hsp in hit.hsps:
                frames[hsp.query_frame] = frames.get(hsp.query_frame, 0) + 1

        if not frames:
            return self.unapplicable("no HSPs")

        summary = ", ".join(f"{frame:+d}: {count}" for frame, count in sorted(frames.items()))
        return self.report(len(frames) == 1, f"HSPs per frame: {summary}")
