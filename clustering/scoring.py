"""
clustering/scoring.py

Dunn index cluster-validity score.

    dunn = min distance between points of different clusters
           ----------------------------------------------------
           max distance between two points of the same cluster

Higher is better: well separated, compact clusters score high.
Every point pair is compared, so the cost is O(N^2 * D) per partition.
"""

from __future__ import annotations

import math
from typing import Iterator

import numpy as np

from clustering.engine import Partition
from clustering.errors import DegenerateMetricError
from clustering.points import PointSet

_DEFAULT_CHUNK_ROWS = 1024


def _pairwise_blocks(
    left: np.ndarray, right: np.ndarray, chunk_rows: int
) -> Iterator[np.ndarray]:
    """Euclidean distance blocks of at most ``chunk_rows`` x ``chunk_rows`` pairs."""
    for row in range(0, left.shape[0], chunk_rows):
        left_block = left[row:row + chunk_rows]
        for col in range(0, right.shape[0], chunk_rows):
            diff = left_block[:, np.newaxis, :] - right[np.newaxis, col:col + chunk_rows, :]
            yield np.sqrt(np.sum(diff ** 2, axis=2))


class DunnIndexScorer:
    """
    Computes the Dunn index of a finished partition.

    Args:
        points:     The PointSet the partition was built from.
        chunk_rows: Rows per distance block; bounds peak memory on large clusters.
    """

    def __init__(self, points: PointSet, chunk_rows: int = _DEFAULT_CHUNK_ROWS) -> None:
        self._points = points
        self._chunk_rows = max(1, chunk_rows)

    def score(self, partition: Partition) -> float:
        """
        Return the Dunn index of ``partition``.

        Raises:
            DegenerateMetricError: Fewer than two clusters, zero intra-cluster
                                   spread, or a non-finite result.
        """
        if len(partition) < 2:
            raise DegenerateMetricError(
                f"Dunn index needs at least 2 clusters, got {len(partition)}."
            )

        members = [cluster.features(self._points) for cluster in partition]

        min_inter = self.min_intercluster_distance(members)
        max_intra = self.max_intracluster_distance(members)

        if max_intra <= 0.0:
            raise DegenerateMetricError(
                "Maximum intra-cluster distance is zero; every cluster is a single location."
            )

        value = min_inter / max_intra
        if not math.isfinite(value):
            raise DegenerateMetricError(f"Dunn index is not finite ({value}).")
        return value

    def min_intercluster_distance(self, members: list[np.ndarray]) -> float:
        """Smallest distance between any two points in different clusters."""
        best = math.inf
        for i in range(len(members)):
            for j in range(i + 1, len(members)):
                for block in _pairwise_blocks(members[i], members[j], self._chunk_rows):
                    best = min(best, float(block.min()))
        return best

    def max_intracluster_distance(self, members: list[np.ndarray]) -> float:
        """
        Largest distance between two distinct points of the same cluster.

        Single-point clusters contribute nothing.
        """
        worst = 0.0
        for features in members:
            if features.shape[0] < 2:
                continue
            for block in _pairwise_blocks(features, features, self._chunk_rows):
                worst = max(worst, float(block.max()))
        return worst
