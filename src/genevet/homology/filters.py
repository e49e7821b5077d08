"""Removal of hits identical to the prediction.

A database hit that is the prediction itself (the same sequence deposited
earlier) says nothing about whether the prediction is right, so it is
dropped before the checks run.
"""

from __future__ import annotations

import logging

from genevet.homology.hits import SequenceRecord

logger = logging.getLogger(__name__)

# Minimum percent identity of every HSP of an identical hit
IDENTICAL_PIDENTITY = 99.0


def is_identical_hit(hit: SequenceRecord, prediction_length: int) -> bool:
    """Whether ``hit`` is an identical copy of the prediction.

    Every HSP must have a known percent identity of at least 99 and the
    union of the HSP query spans must cover ``[1, prediction_length]``
    without gaps. A hit without HSPs is never identical.

    Args:
        hit: Database hit with its HSPs.
        prediction_length: Protein length of the prediction.

    Returns:
        True when the hit should be removed.
    """
    if not hit.hsps:
        return False

    for hsp in hit.hsps:
        if hsp.pidentity is None or hsp.pidentity < IDENTICAL_PIDENTITY:
            return False

    covered_to = 0
    for start, end in sorted((hsp.query_from, hsp.query_to) for hsp in hit.hsps):
        if start > covered_to + 1:
            return False
        covered_to = max(covered_to, end)
        if covered_to >= prediction_length:
            return True

    return covered_to >= prediction_length


def remove_identical_hits(
    prediction: SequenceRecord,
    hits: list[SequenceRecord],
) -> list[SequenceRecord]:
    """Drop hits identical to ``prediction``.

    Returns:
        New list of the remaining hits, in their original order.
    """
    kept = [hit for hit in hits if not is_identical_hit(hit, prediction.length_protein)]
    removed = len(hits) - len(kept)
    if removed:
        logger.debug(f"{prediction.identifier}: removed {removed} identical hit(s)")
    return kept


def filter_hits_best_effort(
    prediction: SequenceRecord,
    hits: list[SequenceRecord],
) -> list[SequenceRecord]:
    """Remove identical hits, keeping the unfiltered list if that fails.

    The filtering is not load-bearing: any error is logged and validation
    continues with every hit.
    """
    try:
        return remove_identical_hits(prediction, hits)
    except Exception as e:
        logger.warning(
            f"{prediction.identifier}: identical-hit filtering failed ({e}); "
            "using unfiltered hits"
        )
        return hits
