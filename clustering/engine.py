"""
clustering/engine.py

Lloyd-style k-means engine.

The iteration is split into pure steps that each take and return
immutable values:

    distances  = compute_distances(features, centroids)
    labels     = nearest_centroid(distances)
    groups     = partition_points(labels, n_centroids)
    centroids  = update_centroids(features, groups)
    decision   = check_convergence(clusters, previous_clusters)

The engine loop only threads snapshots from one step into the next.
A centroid that receives no points is dropped for the rest of the run,
so the cluster count never increases.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Iterable, Iterator, Sequence

import numpy as np

from clustering.errors import NonConvergenceError
from clustering.initializer import CentroidInitializer, RandomInitializer, SeededInitializer
from clustering.points import PointSet

if TYPE_CHECKING:
    from reporting.exporter import ResultExporter

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 300


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------


class EngineState(str, Enum):
    INITIALIZED = "initialized"
    ASSIGNING = "assigning"
    UPDATING = "updating"
    CONVERGED = "converged"
    COLLAPSED = "collapsed"


class ConvergenceDecision(str, Enum):
    """Outcome of the per-iteration convergence check, in evaluation order."""

    SINGLE_CLUSTER = "single_cluster"
    COUNT_CHANGED = "count_changed"
    SET_EQUAL = "set_equal"
    FIRST_CLUSTER_EQUAL = "first_cluster_equal"
    NOT_CONVERGED = "not_converged"

    @property
    def stops(self) -> bool:
        return self in (
            ConvergenceDecision.SINGLE_CLUSTER,
            ConvergenceDecision.SET_EQUAL,
            ConvergenceDecision.FIRST_CLUSTER_EQUAL,
        )


@dataclass(frozen=True, eq=False)
class Cluster:
    """
    A group of points and their mean position.

    Two clusters are equal when they hold the same point ids; the centroid
    and the row positions are derived data and do not take part.
    """

    member_ids: frozenset[int]
    positions: tuple[int, ...]
    centroid: tuple[float, ...]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Cluster):
            return NotImplemented
        return self.member_ids == other.member_ids

    def __hash__(self) -> int:
        return hash(self.member_ids)

    def __len__(self) -> int:
        return len(self.positions)

    @property
    def size(self) -> int:
        return len(self.positions)

    def features(self, points: PointSet) -> np.ndarray:
        return points.take(self.positions)

    @classmethod
    def from_positions(
        cls, points: PointSet, positions: Sequence[int] | np.ndarray, centroid: np.ndarray
    ) -> "Cluster":
        ordered = tuple(int(pos) for pos in sorted(int(p) for p in positions))
        return cls(
            member_ids=frozenset(int(points.ids[pos]) for pos in ordered),
            positions=ordered,
            centroid=tuple(float(v) for v in centroid),
        )


@dataclass(frozen=True)
class Partition:
    """
    Final clusters of one engine run, in grouping order.

    ``iterations`` counts assign/update steps; ``requested_k`` is the k the
    run was started with, so ``collapsed`` tells whether centroids were lost.
    """

    clusters: tuple[Cluster, ...]
    iterations: int
    requested_k: int

    def __len__(self) -> int:
        return len(self.clusters)

    def __iter__(self) -> Iterator[Cluster]:
        return iter(self.clusters)

    @property
    def cluster_count(self) -> int:
        return len(self.clusters)

    @property
    def collapsed(self) -> bool:
        return len(self.clusters) != self.requested_k

    @property
    def centroids(self) -> np.ndarray:
        return np.array([cluster.centroid for cluster in self.clusters], dtype=np.float64)

    @property
    def sizes(self) -> list[int]:
        return [cluster.size for cluster in self.clusters]

    def labels(self, points: PointSet) -> np.ndarray:
        """Cluster index of every point, aligned with PointSet rows."""
        labels = np.full(len(points), -1, dtype=np.int64)
        for index, cluster in enumerate(self.clusters):
            labels[list(cluster.positions)] = index
        return labels


@dataclass(frozen=True)
class IterationSnapshot:
    step: int
    centroids: np.ndarray
    clusters: tuple[Cluster, ...]
    distances: np.ndarray = field(repr=False)
    decision: ConvergenceDecision

    @property
    def state(self) -> EngineState:
        if self.decision is ConvergenceDecision.SINGLE_CLUSTER:
            return EngineState.COLLAPSED
        if self.decision.stops:
            return EngineState.CONVERGED
        return EngineState.ASSIGNING


# ---------------------------------------------------------------------------
# Pure iteration steps
# ---------------------------------------------------------------------------


def compute_distances(features: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """
    Euclidean distance from every point to every centroid.

    Returns:
        Array of shape (n_points, n_centroids).
    """
    diff = features[:, np.newaxis, :] - centroids[np.newaxis, :, :]
    return np.sqrt(np.sum(diff ** 2, axis=2))


def nearest_centroid(distances: np.ndarray) -> np.ndarray:
    """
    Index of the closest centroid per point; ties go to the lowest index.
    """
    # argmin returns the first occurrence of the minimum
    return np.argmin(distances, axis=1)


def partition_points(labels: np.ndarray, n_centroids: int) -> list[np.ndarray]:
    """
    Group row positions by centroid index, ascending, dropping empty groups.
    """
    groups = []
    for index in range(n_centroids):
        members = np.flatnonzero(labels == index)
        if members.size:
            groups.append(members)
    return groups


def update_centroids(features: np.ndarray, groups: Sequence[np.ndarray]) -> np.ndarray:
    """
    Coordinate-wise mean of each group's features.

    Returns:
        Array of shape (len(groups), n_dimensions).
    """
    centroids = np.array([features[members].mean(axis=0) for members in groups], dtype=np.float64)
    centroids.setflags(write=False)
    return centroids


def check_convergence(
    current: Sequence[Cluster],
    previous: Sequence[Cluster],
    first_cluster_shortcut: bool = False,
) -> ConvergenceDecision:
    """
    Decide whether the run stops after this iteration.

    Rules are evaluated in order and the first match wins:
        1. one cluster left               -> SINGLE_CLUSTER (stop)
        2. cluster count changed          -> COUNT_CHANGED (continue)
        3. same clusters in any order     -> SET_EQUAL (stop)
        4. same first cluster (opt-in)    -> FIRST_CLUSTER_EQUAL (stop)
        5. otherwise                      -> NOT_CONVERGED (continue)
    """
    if len(current) <= 1:
        return ConvergenceDecision.SINGLE_CLUSTER

    if len(current) != len(previous):
        return ConvergenceDecision.COUNT_CHANGED

    if set(current) == set(previous):
        return ConvergenceDecision.SET_EQUAL

    if first_cluster_shortcut and current[0] == previous[0]:
        return ConvergenceDecision.FIRST_CLUSTER_EQUAL

    return ConvergenceDecision.NOT_CONVERGED


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class KMeansEngine:
    """
    Runs the assign/update loop until the partition is stable.

    Args:
        max_iterations:         Iteration guard; ``None`` runs until a stop rule
                                matches, however long that takes.
        first_cluster_shortcut: Also stop when only the first cluster is
                                unchanged from the previous iteration.
        exporter:               Writes per-step tables when a run is started
                                with ``persist_intermediate=True``.
    """

    def __init__(
        self,
        max_iterations: int | None = DEFAULT_MAX_ITERATIONS,
        first_cluster_shortcut: bool = False,
        exporter: "ResultExporter | None" = None,
    ) -> None:
        if max_iterations is not None and max_iterations < 1:
            raise ValueError(f"max_iterations must be positive or None, got {max_iterations!r}.")
        self._max_iterations = max_iterations
        self._first_cluster_shortcut = first_cluster_shortcut
        self._exporter = exporter

    @property
    def exporter(self) -> "ResultExporter | None":
        return self._exporter

    def evaluate(
        self,
        points: PointSet,
        k: int,
        seed_ids: Iterable[int] | None = None,
        persist_intermediate: bool = False,
        random_state: int | np.random.RandomState | None = None,
    ) -> Partition:
        """
        Initialize k centroids and run the engine to completion.

        Explicit ``seed_ids`` make the run deterministic; otherwise k distinct
        points are drawn at random.

        Raises:
            InvalidSeedError:        Seed ids are missing, duplicated or miscounted.
            InsufficientPointsError: k exceeds the number of points.
            NonConvergenceError:     The iteration guard was hit.
        """
        initializer: CentroidInitializer
        if seed_ids is not None:
            initializer = SeededInitializer(seed_ids)
        else:
            initializer = RandomInitializer(random_state)

        centroids = initializer.initialize(points, k)
        return self.run(points, centroids, requested_k=k, persist_intermediate=persist_intermediate)

    def run(
        self,
        points: PointSet,
        initial_centroids: np.ndarray,
        requested_k: int | None = None,
        persist_intermediate: bool = False,
    ) -> Partition:
        """
        Run from explicit starting centroids and return the final partition.
        """
        if requested_k is None:
            requested_k = len(initial_centroids)

        last: IterationSnapshot | None = None
        for snapshot in self.iterate(points, initial_centroids, requested_k, persist_intermediate):
            last = snapshot

        assert last is not None
        logger.debug(
            "k=%d finished after %d iterations with %d clusters (%s)",
            requested_k,
            last.step,
            len(last.clusters),
            last.decision.value,
        )
        return Partition(clusters=last.clusters, iterations=last.step, requested_k=requested_k)

    def iterate(
        self,
        points: PointSet,
        initial_centroids: np.ndarray,
        requested_k: int | None = None,
        persist_intermediate: bool = False,
    ) -> Iterator[IterationSnapshot]:
        """
        Yield one snapshot per completed iteration, ending with the stopping one.
        """
        centroids = np.array(initial_centroids, dtype=np.float64)
        if centroids.ndim != 2 or centroids.shape[1] != points.dimensions:
            raise ValueError(
                f"initial_centroids must have shape (k, {points.dimensions}), "
                f"got {centroids.shape}."
            )
        if requested_k is None:
            requested_k = centroids.shape[0]

        # Before the first step the whole input counts as a single cluster.
        previous: tuple[Cluster, ...] = (
            Cluster.from_positions(points, range(len(points)), points.features.mean(axis=0)),
        )
        features = points.features
        step = 1

        while True:
            if self._max_iterations is not None and step > self._max_iterations:
                raise NonConvergenceError(requested_k, self._max_iterations)

            distances = compute_distances(features, centroids)
            labels = nearest_centroid(distances)
            groups = partition_points(labels, centroids.shape[0])
            if len(groups) < centroids.shape[0]:
                logger.debug(
                    "k=%d step %d dropped %d empty cluster(s)",
                    requested_k,
                    step,
                    centroids.shape[0] - len(groups),
                )
            centroids = update_centroids(features, groups)
            clusters = tuple(
                Cluster.from_positions(points, members, centroid)
                for members, centroid in zip(groups, centroids)
            )

            if persist_intermediate and self._exporter is not None:
                self._exporter.write_iteration(step, points, distances, clusters)

            decision = check_convergence(clusters, previous, self._first_cluster_shortcut)

            distances.setflags(write=False)
            yield IterationSnapshot(
                step=step,
                centroids=centroids,
                clusters=clusters,
                distances=distances,
                decision=decision,
            )

            if decision.stops:
                return

            previous = clusters
            step += 1
