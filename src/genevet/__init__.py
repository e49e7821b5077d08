"""GeneVet: homology-based validation of predicted genes.

GeneVet compares each predicted gene or protein against the homologous
database hits reported by BLAST, runs a configurable set of independent
checks, and combines their outcomes into a single 0-100 score per
prediction.

Example:
    >>> import genevet
    >>> genevet.__version__
    '0.1.0-alpha'

Modules:
    io: FASTA indexing and raw-sequence lookup
    homology: Hit model, BLAST result readers, live search, hit filters
    validation: Check contract, registry, built-in checks, scoring
    qc: Run-level aggregation and per-query reports
    parallel: Query executor
    core: Validation orchestrator
    config: Run configuration
    cli: Command-line interface
    utils: Sequence-kind detection, logging and timing
"""

__version__ = "0.1.0-alpha"
__author__ = "GeneVet developers"

__all__ = [
    "__version__",
    "__author__",
]
