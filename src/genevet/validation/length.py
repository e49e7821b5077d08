"""Length plausibility checks.

Both checks compare the protein length of the prediction with the lengths
of its database hits. They measure the same property, so the scorer
counts them as one correlated pair.
"""

from __future__ import annotations

import logging

import numpy as np

from genevet.validation.base import ValidationCheck, ValidationOutcome

logger = logging.getLogger(__name__)

# Gap between consecutive sorted lengths that starts a new cluster,
# as a fraction of the median hit length
CLUSTER_GAP_FRACTION = 0.1

# Minimum fraction of hits more extreme than the prediction
RANK_THRESHOLD = 0.2


def hit_lengths(hits) -> np.ndarray:
    """Sorted protein lengths of the hits with a known length."""
    lengths = [hit.length_protein for hit in hits if hit.length_protein > 0]
    return np.sort(np.asarray(lengths, dtype=float))


def length_clusters(lengths: np.ndarray, gap_fraction: float = CLUSTER_GAP_FRACTION) -> list[np.ndarray]:
    """Split sorted lengths wherever consecutive values differ by more
    than ``gap_fraction`` of the median.

    Args:
        lengths: Sorted lengths.
        gap_fraction: Relative gap that separates two clusters.

    Returns:
        Clusters in ascending order.
    """
    if lengths.size == 0:
        return []
    max_gap = gap_fraction * float(np.median(lengths))
    breaks = np.flatnonzero(np.diff(lengths) > max_gap) + 1
    return np.split(lengths, breaks)


class LengthClusterCheck(ValidationCheck):
    """Prediction length lies inside the most populated length cluster.

    Ties between equally populated clusters go to the one whose centre is
    closest to the median hit length.
    """

    alias = "lenc"
    header = "Length Cluster"
    description = (
        "Clusters the hit lengths and checks whether the prediction length "
        "falls inside the most populated cluster."
    )

    def run(self) -> ValidationOutcome:
        lengths = hit_lengths(self.hits)
        if lengths.size == 0:
            return self.unapplicable("no hits with a known length")

        clusters = length_clusters(lengths)
        median = float(np.median(lengths))
        dominant = max(
            clusters,
            key=lambda cluster: (cluster.size, -abs(float(cluster.mean()) - median)),
        )
        low, high = int(dominant[0]), int(dominant[-1])
        length = self.prediction.length_protein

        return self.report(
            low <= length <= high,
            f"prediction length {length}; dominant cluster {low}-{high} "
            f"({dominant.size} of {lengths.size} hits)",
        )


class LengthRankCheck(ValidationCheck):
    """Prediction length is not an outlier among the hit lengths."""

    alias = "lenr"
    header = "Length Rank"
    description = (
        "Fraction of hits that are more extreme than the prediction "
        f"(shorter or longer); passes at {RANK_THRESHOLD:.0%} or more."
    )

    def run(self) -> ValidationOutcome:
        lengths = hit_lengths(self.hits)
        if lengths.size == 0:
            return self.unapplicable("no hits with a known length")

        length = self.prediction.length_protein
        median = float(np.median(lengths))

        if length == median:
            return self.report(True, f"prediction length {length} equals the median")

        if length < median:
            extreme = np.count_nonzero(lengths < length) / lengths.size
            side = "shorter"
        else:
            extreme = np.count_nonzero(lengths > length) / lengths.size
            side = "longer"

        return self.report(
            bool(extreme >= RANK_THRESHOLD),
            f"{extreme:.0%} of hits are {side} than the prediction "
            f"(length {length}, median {median:g})",
        )
