"""Combination of check outcomes into one 0-100 score.

Outcomes whose result matches the expected value are successes. Outcomes
that ran normally (neither ``unapplicable`` nor ``error``) and did not
match are fails. The length-cluster and length-rank checks measure the
same property, so when both are present their pair is collapsed:

- both succeeded: one success instead of two
- both failed: one fail instead of two
- they disagree: half a success and half a fail

Example:
    >>> score = score_outcomes(outcomes)
    >>> score.score, score.is_good
    (75, True)
"""

from __future__ import annotations

import math

import attrs

from genevet.validation.base import ValidationOutcome, ValidationState

LENGTH_CLUSTER_ALIAS = "lenc"
LENGTH_RANK_ALIAS = "lenr"

# Scores at or above this are good predictions
GOOD_SCORE = 75

NOT_COUNTED = frozenset({ValidationState.UNAPPLICABLE, ValidationState.ERROR})


@attrs.define(slots=True, frozen=True)
class Score:
    """Score of one prediction.

    Attributes:
        successes: Success count after pair collapsing.
        fails: Fail count after pair collapsing.
        score: Rounded percentage of successes within 0-100, 0 without
            evidence.
    """

    successes: float
    fails: float
    score: int

    @property
    def is_good(self) -> bool:
        return self.score >= GOOD_SCORE


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    if value < 0:
        return -math.floor(-value + 0.5)
    return math.floor(value + 0.5)


def _is_fail(outcome: ValidationOutcome) -> bool:
    return outcome.state not in NOT_COUNTED and outcome.result != outcome.expected


def score_outcomes(outcomes: list[ValidationOutcome]) -> Score:
    """Score the outcomes of one prediction.

    Args:
        outcomes: Outcomes of every check run for the prediction.

    Returns:
        Score with collapsed counts.
    """
    successes: float = sum(1 for outcome in outcomes if outcome.passed)
    fails: float = sum(1 for outcome in outcomes if _is_fail(outcome))

    cluster = [o for o in outcomes if o.alias.lower() == LENGTH_CLUSTER_ALIAS]
    rank = [o for o in outcomes if o.alias.lower() == LENGTH_RANK_ALIAS]

    if len(cluster) == 1 and len(rank) == 1:
        n_passed = cluster[0].passed + rank[0].passed
        if n_passed == 2:
            successes -= 1
        elif n_passed == 0:
            fails -= 1
        else:
            successes -= 0.5
            fails -= 0.5

    total = successes + fails
    score = round_half_up(100 * successes / total) if total > 0 else 0
    # An uncounted pair member can leave negative counts
    score = min(max(score, 0), 100)
    return Score(successes=successes, fails=fails, score=score)
