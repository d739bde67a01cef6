"""
Shared fixtures for clustering tests.
"""

from __future__ import annotations

import os

import pytest

from app.config import get_clustering_settings
from clustering.points import PointSet


@pytest.fixture()
def two_pairs() -> PointSet:
    """Two tight pairs far apart: {0, 1} near the origin, {2, 3} near (10, 10, 10)."""
    return PointSet(
        [0, 1, 2, 3],
        [
            [0.0, 0.0, 0.0],
            [0.0, 0.0, 1.0],
            [10.0, 10.0, 10.0],
            [10.0, 10.0, 11.0],
        ],
        feature_names=["x", "y", "z"],
    )


@pytest.fixture()
def three_sites() -> PointSet:
    """Six points at three locations, two identical copies per location."""
    return PointSet(
        [0, 1, 2, 3, 4, 5],
        [
            [0.0, 0.0, 0.0],
            [0.0, 0.0, 0.0],
            [50.0, 0.0, 0.0],
            [50.0, 0.0, 0.0],
            [0.0, 50.0, 0.0],
            [0.0, 50.0, 0.0],
        ],
        feature_names=["x", "y", "z"],
    )


@pytest.fixture()
def line_clouds() -> PointSet:
    """Three pairs on the x axis: {0, 1} at 0..1, {2, 3} at 10..11, {4, 5} at 20..21."""
    return PointSet(
        [0, 1, 2, 3, 4, 5],
        [[x, 0.0, 0.0] for x in (0.0, 1.0, 10.0, 11.0, 20.0, 21.0)],
        feature_names=["x", "y", "z"],
    )


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch: pytest.MonkeyPatch):
    """Isolate tests from KMEANS_* variables set in the calling shell."""
    for name in list(os.environ):
        if name.startswith("KMEANS_"):
            monkeypatch.delenv(name, raising=False)
    get_clustering_settings.cache_clear()
    yield
    get_clustering_settings.cache_clear()
