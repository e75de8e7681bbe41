"""
engage.engine.clustering — Member Behavior Tiers (k-means, k = 3)
==================================================================

**Why this file exists:**
Cluster numbers are shown to admins as named tiers (Casual Participants,
Regular Attendees, Super Engaged Members).  Random initialization would
shuffle those labels between runs on the same data;
fixed seed centroids keep them stable.

Lloyd's algorithm over standardized (engagement score, RSVP rate) points,
one per member.  Initialization is deterministic: the seed centroids sit
at (-1,-1), (0,0) and (1,1), i.e. the low / medium / high engagement
regions.  The loop always runs the full iteration count.

Each iteration allocates a distance matrix, a one-hot assignment matrix
and partial sums; all three are released before the next iteration.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

import numpy as np

from engage.constants import N_CLUSTERS, SEED_CENTROIDS

logger = logging.getLogger(__name__)

# (fraction complete) → None
IterationCallback = Callable[[float], None]


@dataclass(frozen=True, slots=True)
class ClusterModel:
    """Final centroids (standardized space) and one label per input point."""

    centroids: np.ndarray  # (3, 2)
    labels: np.ndarray  # (n,) ints in {0, 1, 2}

    def predict(self, standardized: np.ndarray) -> np.ndarray:
        """Nearest-centroid label for each standardized point."""
        return assign_clusters(np.atleast_2d(standardized), self.centroids)


def squared_distances(points: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """``(n, k)`` matrix of squared Euclidean distances."""
    diff = points[:, np.newaxis, :] - centroids[np.newaxis, :, :]
    return np.sum(diff * diff, axis=2)


def assign_clusters(points: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    distances = squared_distances(points, centroids)
    labels = np.argmin(distances, axis=1)
    del distances
    return labels


def update_centroids(
    points: np.ndarray, labels: np.ndarray, centroids: np.ndarray
) -> np.ndarray:
    """Mean of each cluster's points; empty clusters keep their centroid."""
    k = centroids.shape[0]
    one_hot = np.eye(k)[labels].T  # (k, n)
    counts = one_hot.sum(axis=1)
    sums = one_hot @ points
    updated = centroids.copy()
    filled = counts > 0
    updated[filled] = sums[filled] / counts[filled, np.newaxis]
    del one_hot, counts, sums
    return updated


def kmeans(
    points: np.ndarray,
    *,
    iterations: int = 100,
    initial_centroids: np.ndarray | None = None,
    on_iteration: IterationCallback | None = None,
) -> ClusterModel:
    """Run k-means with fixed seed centroids for exactly *iterations* rounds.

    Parameters
    ----------
    points : standardized ``(n, 2)`` matrix
    iterations : number of assign / update rounds (no convergence exit)
    initial_centroids : override the seed centroids (must be ``(3, 2)``)
    on_iteration : called after each round with ``iteration / iterations``
    """
    data = np.asarray(points, dtype=np.float64)
    if data.ndim != 2 or data.shape[0] == 0:
        raise ValueError("kmeans needs a non-empty 2-D point matrix")

    centroids = np.array(
        SEED_CENTROIDS if initial_centroids is None else initial_centroids,
        dtype=np.float64,
    )
    if centroids.shape != (N_CLUSTERS, data.shape[1]):
        raise ValueError(
            f"Expected initial centroids of shape ({N_CLUSTERS}, {data.shape[1]}), "
            f"got {centroids.shape}"
        )

    for iteration in range(1, iterations + 1):
        labels = assign_clusters(data, centroids)
        centroids = update_centroids(data, labels, centroids)
        del labels
        if on_iteration is not None:
            on_iteration(iteration / iterations)

    final_labels = assign_clusters(data, centroids)
    sizes = np.bincount(final_labels, minlength=N_CLUSTERS)
    logger.info(
        "K-means finished — %d iterations, cluster sizes %s",
        iterations, sizes.tolist(),
    )
    return ClusterModel(centroids=centroids, labels=final_labels)
