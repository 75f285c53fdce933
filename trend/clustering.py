"""
One-dimensional k-means over per-factor performance scores.

Every eligible bar the current scores are split into three tiers.  The
starting centroids are the 25th / 50th / 75th percentiles of *this bar's*
scores, so nothing carries over from earlier bars.  Lloyd iterations then
run until the centroids stop moving or ``max_iter`` is reached.

Cluster labels are assigned by sorted centroid value rather than by array
position: the lowest centroid is Worst, the highest is Best.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np

from ..config_structured import ClusterTier

logger = logging.getLogger(__name__)

N_CLUSTERS = 3
SEED_PERCENTILES = (25.0, 50.0, 75.0)


@dataclass(frozen=True)
class ClusterBucket:
    """Members of one tier and their centroid."""

    tier: ClusterTier
    centroid: float
    factors: Tuple[float, ...]
    scores: Tuple[float, ...]

    @property
    def size(self) -> int:
        return len(self.factors)

    @property
    def mean_factor(self) -> float:
        return float(np.mean(self.factors)) if self.factors else float("nan")

    @property
    def mean_score(self) -> float:
        return float(np.mean(self.scores)) if self.scores else float("nan")

    @property
    def dispersion(self) -> float:
        """Population standard deviation of member scores around the centroid."""
        if not self.scores:
            return float("nan")
        return float(np.std(self.scores))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tier": self.tier.value,
            "size": self.size,
            "centroid": self.centroid,
            "dispersion": self.dispersion,
            "factors": list(self.factors),
        }


@dataclass(frozen=True)
class ClusterAssignment:
    """Three buckets ordered Worst, Average, Best."""

    buckets: Tuple[ClusterBucket, ClusterBucket, ClusterBucket]
    n_iter: int
    converged: bool

    def bucket(self, tier: ClusterTier) -> ClusterBucket:
        return self.buckets[tier.rank]

    @property
    def sizes(self) -> Tuple[int, int, int]:
        return tuple(b.size for b in self.buckets)

    @property
    def centroids(self) -> Tuple[float, float, float]:
        return tuple(b.centroid for b in self.buckets)


def percentile_seeds(values: np.ndarray) -> np.ndarray:
    """25th / 50th / 75th percentiles using linear interpolation."""
    return np.percentile(np.asarray(values, dtype=np.float64), SEED_PERCENTILES)


def kmeans_1d(
    values: np.ndarray,
    seeds: Sequence[float],
    max_iter: int,
) -> Tuple[np.ndarray, np.ndarray, int, bool]:
    """Lloyd's algorithm on a 1-D sample.

    Parameters
    ----------
    values : np.ndarray
        Finite observations to partition.
    seeds : sequence of float
        Initial centroids; their count sets k.
    max_iter : int
        Maximum number of assign/update rounds.

    Returns
    -------
    centroids : np.ndarray of shape (k,)
        Mean of each cluster's members; an empty cluster keeps the centroid
        it had going into the last round.
    labels : np.ndarray of shape (n,)
        Cluster index per value.  Equidistant values go to the lowest index.
    n_iter : int
        Rounds actually run.
    converged : bool
        True when the last round left every centroid unchanged.
    """
    x = np.asarray(values, dtype=np.float64)
    centroids = np.array(seeds, dtype=np.float64)
    k = len(centroids)
    labels = np.zeros(len(x), dtype=np.int64)
    converged = False
    n_iter = 0

    for n_iter in range(1, max_iter + 1):
        dist = np.abs(x[:, None] - centroids[None, :])
        # argmin returns the first minimum, i.e. the lowest centroid index on ties
        labels = np.argmin(dist, axis=1)

        new_centroids = centroids.copy()
        for c in range(k):
            mask = labels == c
            if mask.any():
                new_centroids[c] = x[mask].mean()

        if np.array_equal(new_centroids, centroids):
            converged = True
            break
        centroids = new_centroids

    return centroids, labels, n_iter, converged


def cluster_scores(
    factors: Sequence[float],
    scores: Sequence[float],
    max_iter: int,
) -> Optional[ClusterAssignment]:
    """Partition factors into Worst / Average / Best by their scores.

    Returns None (skip this bar) when fewer than three scores are finite or
    when all finite scores are identical.
    """
    f = np.asarray(factors, dtype=np.float64)
    s = np.asarray(scores, dtype=np.float64)
    if f.shape != s.shape:
        raise ValueError(f"factors and scores must align, got {f.shape} vs {s.shape}")

    finite = np.isfinite(s)
    if finite.sum() < N_CLUSTERS:
        logger.debug("Clustering skipped: %d finite scores", int(finite.sum()))
        return None
    f, s = f[finite], s[finite]
    if s.max() == s.min():
        logger.debug("Clustering skipped: zero score dispersion")
        return None

    centroids, labels, n_iter, converged = kmeans_1d(s, percentile_seeds(s), max_iter)

    # Stable sort: equal centroids keep their seed order.
    order = sorted(range(N_CLUSTERS), key=lambda c: (centroids[c], c))
    buckets = []
    for rank, c in enumerate(order):
        mask = labels == c
        buckets.append(ClusterBucket(
            tier=ClusterTier.from_rank(rank),
            centroid=float(centroids[c]),
            factors=tuple(float(v) for v in f[mask]),
            scores=tuple(float(v) for v in s[mask]),
        ))

    return ClusterAssignment(buckets=tuple(buckets), n_iter=n_iter, converged=converged)
