"""
clustering/errors.py

Exception taxonomy for the clustering pipeline.

Input and seeding failures are fatal. Collapse and degenerate-metric
failures are recoverable inside the k sweep and fatal everywhere else.
"""

from __future__ import annotations


class ClusteringError(Exception):
    """Base exception for clustering pipeline failures."""


class MalformedInputError(ClusteringError, ValueError):
    """Raised when the input table has a bad schema, bad types, or duplicate ids."""


class InvalidSeedError(ClusteringError, ValueError):
    """Raised when explicit seed ids are missing, duplicated, or the wrong count."""


class InsufficientPointsError(ClusteringError, ValueError):
    """Raised when the requested k exceeds the number of points."""


class ClusterCollapseError(ClusteringError):
    """
    Raised when a run finishes with fewer clusters than requested.
    """

    def __init__(self, requested_k: int, cluster_count: int) -> None:
        super().__init__(
            f"{requested_k} num of clusters decreased to {cluster_count}"
        )
        self.requested_k = requested_k
        self.cluster_count = cluster_count


class DegenerateMetricError(ClusteringError, ValueError):
    """Raised when the Dunn index is undefined for a partition."""


class NoValidCandidateError(ClusteringError):
    """Raised when every k in the sweep was skipped."""


class NonConvergenceError(ClusteringError):
    """
    Raised when the engine hits its iteration guard without converging.
    """

    def __init__(self, requested_k: int, max_iterations: int) -> None:
        super().__init__(
            f"k={requested_k} did not converge within {max_iterations} iterations."
        )
        self.requested_k = requested_k
        self.max_iterations = max_iterations
