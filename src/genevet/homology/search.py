"""Live BLAST searches for single predictions.

When no precomputed results are supplied, each prediction is searched on
the fly and the BLAST XML report is parsed in memory.

Example:
    >>> from genevet.homology.search import BlastSearch
    >>> searcher = BlastSearch(database="swissprot", threads=4)
    >>> xml = searcher.search(">gene1\\nMKVLAAGIVGLLLA...\\n", SequenceKind.PROTEIN)
"""

from __future__ import annotations

import logging
import shutil
import subprocess

from genevet.exceptions import SearchToolError
from genevet.homology.hits import SequenceKind

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

DEFAULT_EVALUE = 1e-5
DEFAULT_MAX_TARGET_SEQS = 200
DEFAULT_GAPOPEN = 11
DEFAULT_GAPEXTEND = 1

# BLAST XML
XML_OUTFMT = "5"


# =============================================================================
# Search Class
# =============================================================================


class BlastSearch:
    """Run BLAST against a protein database, one query at a time.

    Protein predictions are searched with blastp, nucleotide predictions
    with blastx, so hits are always protein.

    Example:
        >>> searcher = BlastSearch(database="swissprot -remote")
        >>> xml = searcher.search(prediction.to_fasta(), SequenceKind.NUCLEOTIDE)
    """

    def __init__(
        self,
        database: str,
        threads: int = 1,
        evalue: float = DEFAULT_EVALUE,
        max_target_seqs: int = DEFAULT_MAX_TARGET_SEQS,
        gapopen: int = DEFAULT_GAPOPEN,
        gapextend: int = DEFAULT_GAPEXTEND,
    ) -> None:
        """Initialize search.

        Args:
            database: BLAST database name or path. A value containing
                ``remote`` runs against NCBI servers.
            threads: Number of BLAST threads (local databases only).
            evalue: E-value threshold.
            max_target_seqs: Maximum hits per query.
            gapopen: Gap opening penalty.
            gapextend: Gap extension penalty.
        """
        self.database = database
        self.threads = threads
        self.evalue = evalue
        self.max_target_seqs = max_target_seqs
        self.gapopen = gapopen
        self.gapextend = gapextend

    @property
    def is_remote(self) -> bool:
        """Whether the database is searched remotely."""
        return "remote" in self.database

    @staticmethod
    def program_for(kind: SequenceKind) -> str:
        """BLAST program that yields protein hits for ``kind``."""
        return "blastp" if kind == SequenceKind.PROTEIN else "blastx"

    def build_command(self, kind: SequenceKind) -> list[str]:
        """Build the BLAST command line for one query read from stdin."""
        cmd = [self.program_for(kind)]
        if self.is_remote:
            db_name = self.database.replace("-remote", "").strip() or "nr"
            cmd += ["-db", db_name, "-remote"]
        else:
            cmd += ["-db", self.database]
        cmd += [
            "-evalue", str(self.evalue),
            "-outfmt", XML_OUTFMT,
            "-max_target_seqs", str(self.max_target_seqs),
            "-gapopen", str(self.gapopen),
            "-gapextend", str(self.gapextend),
        ]
        # -num_threads is rejected for remote searches
        if not self.is_remote:
            cmd += ["-num_threads", str(self.threads)]
        return cmd

    def search(self, query_fasta: str, kind: SequenceKind) -> str:
        """Search one FASTA record.

        Args:
            query_fasta: FASTA text of a single prediction.
            kind: Kind of the prediction.

        Returns:
            BLAST XML report.

        Raises:
            SearchToolError: If BLAST is not installed or fails.
        """
        program = self.program_for(kind)
        if shutil.which(program) is None:
            raise SearchToolError(
                f"{program} not found in PATH. "
                f"Please install NCBI BLAST+ or supply precomputed results."
            )

        cmd = self.build_command(kind)
        logger.debug(f"BLAST command: {' '.join(cmd)}")

        try:
            result = subprocess.run(
                cmd,
                input=query_fasta,
                check=True,
                capture_output=True,
                text=True,
            )
        except subprocess.CalledProcessError as e:
            raise SearchToolError(f"{program} failed: {e.stderr.strip()}") from e

        return result.stdout
