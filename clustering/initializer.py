"""
clustering/initializer.py

Initial centroid selection strategies.

Both strategies copy centroid coordinates from existing points and return
them in PointSet row order, so the engine sees the same centroid indices
for the same set of seed ids no matter how the ids were supplied.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable

import numpy as np
from sklearn.utils import check_random_state

from clustering.errors import InsufficientPointsError, InvalidSeedError
from clustering.points import PointSet


class CentroidInitializer(ABC):
    """
    Contract for initial centroid selection.

    Implementations choose k distinct seed points and return their ids;
    :meth:`initialize` turns those ids into a (k, D) centroid matrix.
    """

    @abstractmethod
    def seed_ids(self, points: PointSet, k: int) -> tuple[int, ...]:
        """Return k distinct point ids, in PointSet row order."""

    def initialize(self, points: PointSet, k: int) -> np.ndarray:
        """
        Return an array of shape (k, D) with the initial centroids.
        """
        ids = self.seed_ids(points, k)
        positions = [points.index_of(point_id) for point_id in ids]
        return points.take(positions)

    @staticmethod
    def _check_k(points: PointSet, k: int) -> None:
        if k < 1:
            raise InsufficientPointsError(f"k must be a positive integer, got {k!r}.")
        if k > len(points):
            raise InsufficientPointsError(
                f"k ({k}) cannot exceed number of points ({len(points)})."
            )


class SeededInitializer(CentroidInitializer):
    """
    Deterministic initializer that uses explicitly supplied point ids.

    Args:
        ids: Exactly k distinct ids, each present in the PointSet.
    """

    def __init__(self, ids: Iterable[int]) -> None:
        self._ids = [int(point_id) for point_id in ids]

    def seed_ids(self, points: PointSet, k: int) -> tuple[int, ...]:
        self._check_k(points, k)

        if len(self._ids) != k:
            raise InvalidSeedError(f"Expected {k} seed ids, got {len(self._ids)}.")
        if len(set(self._ids)) != len(self._ids):
            raise InvalidSeedError(f"Seed ids must be distinct, got {self._ids}.")

        missing = sorted(point_id for point_id in self._ids if not points.contains(point_id))
        if missing:
            raise InvalidSeedError(f"Seed ids not present in the input: {missing}.")

        return tuple(sorted(self._ids, key=points.index_of))


class RandomInitializer(CentroidInitializer):
    """
    Uniform random initializer, sampling k distinct rows without replacement.

    Sampling is a rejection loop: draw one row position at a time and keep
    it only if it has not been drawn before, until k positions are held.

    Args:
        random_state: ``None``, an int seed, or a ``numpy.random.RandomState``.
    """

    def __init__(self, random_state: int | np.random.RandomState | None = None) -> None:
        self._rng = check_random_state(random_state)

    def seed_ids(self, points: PointSet, k: int) -> tuple[int, ...]:
        self._check_k(points, k)

        height = len(points)
        positions: set[int] = set()
        while len(positions) < k:
            positions.add(int(self._rng.randint(0, height)))

        return tuple(int(points.ids[pos]) for pos in sorted(positions))
