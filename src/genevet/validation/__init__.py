"""Checks run against each prediction and the scoring of their outcomes.

- Check contract, outcomes, registry and runner
- Built-in length and reading-frame checks
- Score computation with the correlated length pair

Example:
    >>> from genevet.validation import default_registry, score_outcomes
    >>> registry = default_registry()
    >>> print(registry.aliases)
    ['lenc', 'lenr', 'frame']
"""

from genevet.validation.base import (
    CheckContext,
    CheckRegistry,
    CheckRunner,
    FailureCause,
    ValidationCheck,
    ValidationOutcome,
    ValidationState,
    default_registry,
    parse_validations,
)
from genevet.validation.frame import ReadingFrameCheck
from genevet.validation.length import LengthClusterCheck, LengthRankCheck
from genevet.validation.scoring import GOOD_SCORE, Score, score_outcomes

__all__ = [
    # Contract
    "ValidationCheck",
    "ValidationOutcome",
    "ValidationState",
    "FailureCause",
    "CheckContext",
    "CheckRegistry",
    "CheckRunner",
    "default_registry",
    "parse_validations",
    # Checks
    "LengthClusterCheck",
    "LengthRankCheck",
    "ReadingFrameCheck",
    # Scoring
    "Score",
    "score_outcomes",
    "GOOD_SCORE",
]
