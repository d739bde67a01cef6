"""
clustering/selection.py

Model selection over a range of k.

Each candidate k is an isolated task: random seeding, one engine run,
one Dunn score. Tasks only read the shared PointSet, so the sweep fans
out over a thread pool and fans back in as a list ordered by k.

A candidate whose run loses clusters, whose score is undefined, or that
hits the iteration guard is skipped with a warning. Input and seeding
errors abort the sweep.
"""

from __future__ import annotations

import concurrent.futures
import logging
from dataclasses import dataclass, field
from enum import Enum

import numpy as np
from sklearn.utils import check_random_state

from app.logging_utils import log_event
from clustering.engine import KMeansEngine, Partition
from clustering.errors import (
    ClusterCollapseError,
    DegenerateMetricError,
    NoValidCandidateError,
    NonConvergenceError,
)
from clustering.initializer import RandomInitializer
from clustering.points import PointSet
from clustering.scoring import DunnIndexScorer

logger = logging.getLogger(__name__)

DEFAULT_K_MIN = 2
DEFAULT_K_MAX = 15


class CandidateStatus(str, Enum):
    SCORED = "scored"
    COLLAPSED = "collapsed"
    DEGENERATE = "degenerate"
    NOT_CONVERGED = "not_converged"


@dataclass(frozen=True)
class CandidateResult:
    """Outcome of one k in the sweep."""

    k: int
    status: CandidateStatus
    cluster_count: int | None
    seed_ids: tuple[int, ...]
    score: float | None = None
    iterations: int | None = None
    message: str | None = None

    @property
    def is_valid(self) -> bool:
        return self.status is CandidateStatus.SCORED

    def to_dict(self) -> dict:
        return {
            "k": self.k,
            "score": self.score,
            "status": self.status.value,
            "cluster_count": self.cluster_count,
            "iterations": self.iterations,
            "message": self.message,
        }


@dataclass(frozen=True)
class SelectionResult:
    best_k: int
    best_score: float
    candidates: tuple[CandidateResult, ...]
    partition: Partition | None = field(default=None, repr=False)

    @property
    def scores(self) -> list[tuple[int, float]]:
        """(k, score) pairs of every scored candidate, ascending k."""
        return [(c.k, c.score) for c in self.candidates if c.score is not None]


class ModelSelector:
    """
    Sweeps k over ``[k_min, k_max)`` and keeps the k with the highest Dunn index.

    Args:
        engine:       Engine used for every run, including the final one.
        k_min:        First candidate k (inclusive), at least 2.
        k_max:        Last candidate k (exclusive).
        max_workers:  Thread pool size; 1 runs the sweep sequentially.
        random_state: Seed for the per-k initializers. ``None`` is not
                      reproducible.
    """

    def __init__(
        self,
        engine: KMeansEngine,
        k_min: int = DEFAULT_K_MIN,
        k_max: int = DEFAULT_K_MAX,
        max_workers: int | None = None,
        random_state: int | np.random.RandomState | None = None,
    ) -> None:
        if k_min < 2:
            raise ValueError(f"k_min must be at least 2, got {k_min!r}.")
        if k_max <= k_min:
            raise ValueError(f"k_max ({k_max}) must be greater than k_min ({k_min}).")
        if max_workers is not None and max_workers < 1:
            raise ValueError(f"max_workers must be positive, got {max_workers!r}.")

        self._engine = engine
        self._k_min = k_min
        self._k_max = k_max
        self._max_workers = max_workers
        self._random_state = random_state

    @property
    def k_range(self) -> range:
        return range(self._k_min, self._k_max)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self, points: PointSet) -> SelectionResult:
        """
        Sweep, pick the best k, and re-run it with export enabled.

        Raises:
            NoValidCandidateError: Every candidate was skipped.
            ClusterCollapseError:  The final run lost clusters.
        """
        candidates = self.sweep(points)
        best = self.best_candidate(candidates)
        partition = self.finalize(points, best)
        return SelectionResult(
            best_k=best.k,
            best_score=float(best.score),
            candidates=tuple(candidates),
            partition=partition,
        )

    def select_best_k(self, points: PointSet) -> int:
        return self.best_candidate(self.sweep(points)).k

    def sweep(self, points: PointSet) -> list[CandidateResult]:
        """
        Evaluate every candidate k and return results in ascending k.
        """
        ks = list(self.k_range)
        rng = check_random_state(self._random_state)
        seeds = [int(seed) for seed in rng.randint(0, np.iinfo(np.int32).max, size=len(ks))]
        scorer = DunnIndexScorer(points)

        if self._max_workers == 1:
            results = [self._evaluate_candidate(points, scorer, k, seed) for k, seed in zip(ks, seeds)]
        else:
            with concurrent.futures.ThreadPoolExecutor(max_workers=self._max_workers) as ex:
                futs = [
                    ex.submit(self._evaluate_candidate, points, scorer, k, seed)
                    for k, seed in zip(ks, seeds)
                ]
                results = [fut.result() for fut in futs]

        results.sort(key=lambda result: result.k)
        return results

    @staticmethod
    def best_candidate(candidates: list[CandidateResult]) -> CandidateResult:
        """
        Highest-scoring candidate; the smallest k wins a tie.

        Raises:
            NoValidCandidateError: No candidate was scored.
        """
        best: CandidateResult | None = None
        for candidate in sorted(candidates, key=lambda c: c.k):
            if candidate.score is None:
                continue
            if best is None or candidate.score > best.score:
                best = candidate

        if best is None:
            raise NoValidCandidateError(
                "No candidate k produced a valid Dunn index "
                f"({len(candidates)} candidate(s) skipped)."
            )

        log_event(logger, logging.INFO, "kmeans.selection.best", k=best.k, score=best.score)
        return best

    def finalize(self, points: PointSet, best: CandidateResult) -> Partition:
        """
        Re-run the winning k from its seed points with per-step export enabled.

        Raises:
            ClusterCollapseError: The run finished with fewer than k clusters.
        """
        partition = self._engine.evaluate(
            points,
            best.k,
            seed_ids=best.seed_ids,
            persist_intermediate=True,
        )
        if partition.collapsed:
            raise ClusterCollapseError(best.k, len(partition))
        return partition

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _evaluate_candidate(
        self,
        points: PointSet,
        scorer: DunnIndexScorer,
        k: int,
        seed: int,
    ) -> CandidateResult:
        seed_ids = RandomInitializer(seed).seed_ids(points, k)

        try:
            partition = self._engine.evaluate(points, k, seed_ids=seed_ids)
        except NonConvergenceError as exc:
            logger.warning("%s Skipping k=%d.", exc, k)
            return CandidateResult(
                k=k,
                status=CandidateStatus.NOT_CONVERGED,
                cluster_count=None,
                seed_ids=seed_ids,
                message=str(exc),
            )

        if partition.collapsed:
            collapse = ClusterCollapseError(k, len(partition))
            logger.warning("%s", collapse)
            return CandidateResult(
                k=k,
                status=CandidateStatus.COLLAPSED,
                cluster_count=len(partition),
                seed_ids=seed_ids,
                iterations=partition.iterations,
                message=str(collapse),
            )

        try:
            score = scorer.score(partition)
        except DegenerateMetricError as exc:
            logger.warning("k=%d has no defined Dunn index: %s", k, exc)
            return CandidateResult(
                k=k,
                status=CandidateStatus.DEGENERATE,
                cluster_count=len(partition),
                seed_ids=seed_ids,
                iterations=partition.iterations,
                message=str(exc),
            )

        log_event(
            logger,
            logging.INFO,
            "kmeans.sweep.candidate",
            k=k,
            score=score,
            iterations=partition.iterations,
        )
        return CandidateResult(
            k=k,
            status=CandidateStatus.SCORED,
            cluster_count=len(partition),
            seed_ids=seed_ids,
            score=score,
            iterations=partition.iterations,
        )
