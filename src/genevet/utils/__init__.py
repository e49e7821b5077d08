"""Utility functions for GeneVet.

- Sequence-kind classification
- Logging configuration and timing

Example:
    >>> from genevet.utils.sequences import type_of_sequences
    >>> from genevet.utils.logging import setup_logging
"""

__all__: list[str] = []
