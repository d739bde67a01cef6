"""
clustering/points.py

Immutable typed view of the input table.

A PointSet pairs a stable unsigned integer id per row with a fixed-width
float64 feature vector. It is built once, validated once, and then only
read: the backing numpy arrays are flagged non-writeable so the k sweep
can share one instance across worker threads.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

import numpy as np
import pandas as pd
from pandas.api.types import is_numeric_dtype

from clustering.errors import MalformedInputError

DEFAULT_ID_COLUMN = "n"
_MAX_ID = int(np.iinfo(np.int64).max)


@dataclass(frozen=True)
class Point:
    """One row of the input table."""

    id: int
    features: tuple[float, ...]


class PointSet:
    """
    Read-only collection of points with lookup by id.

    Args:
        ids:           1-D sequence of unique non-negative integers.
        features:      2-D array of shape (n_points, n_dimensions).
        id_column:     Name of the id column, used when writing tables.
        feature_names: Column names of the feature dimensions.

    Raises:
        MalformedInputError: On shape mismatch, missing values, or
                             non-unique / negative ids, or ids past the int64 range.
    """

    def __init__(
        self,
        ids: Sequence[int] | np.ndarray,
        features: Sequence[Sequence[float]] | np.ndarray,
        *,
        id_column: str = DEFAULT_ID_COLUMN,
        feature_names: Sequence[str] | None = None,
    ) -> None:
        id_array = np.asarray(ids)
        try:
            feature_array = np.array(features, dtype=np.float64)
        except (TypeError, ValueError) as exc:
            raise MalformedInputError(f"Feature values must be numeric: {exc}") from exc

        if id_array.ndim != 1:
            raise MalformedInputError(f"ids must be 1-D, got shape {id_array.shape}.")
        if feature_array.ndim != 2:
            raise MalformedInputError(
                f"features must be a 2-D array, got shape {feature_array.shape}."
            )
        if id_array.shape[0] != feature_array.shape[0]:
            raise MalformedInputError(
                f"Got {id_array.shape[0]} ids for {feature_array.shape[0]} feature rows."
            )
        if id_array.shape[0] == 0:
            raise MalformedInputError("Input table is empty (0 rows).")
        if feature_array.shape[1] == 0:
            raise MalformedInputError("Input table has no feature columns.")
        if not np.all(np.isfinite(feature_array)):
            raise MalformedInputError("Feature values must be finite numbers.")

        if id_array.dtype.kind not in "iu":
            raise MalformedInputError(
                f"Id column {id_column!r} must hold integers, got dtype {id_array.dtype}."
            )
        if np.any(id_array < 0):
            raise MalformedInputError(f"Id column {id_column!r} must be unsigned.")
        if id_array.dtype.kind == "u" and int(id_array.max()) > _MAX_ID:
            raise MalformedInputError(
                f"Id column {id_column!r} holds ids above {_MAX_ID}."
            )
        if np.unique(id_array).shape[0] != id_array.shape[0]:
            raise MalformedInputError(f"Id column {id_column!r} is not unique.")

        if feature_names is None:
            feature_names = [f"f{i}" for i in range(feature_array.shape[1])]
        if len(feature_names) != feature_array.shape[1]:
            raise MalformedInputError(
                f"Got {len(feature_names)} feature names for "
                f"{feature_array.shape[1]} feature columns."
            )

        self._ids = id_array.astype(np.int64)
        self._features = feature_array
        self._ids.setflags(write=False)
        self._features.setflags(write=False)
        self._id_column = id_column
        self._feature_names = tuple(str(name) for name in feature_names)
        self._index = {int(point_id): pos for pos, point_id in enumerate(self._ids)}

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_frame(
        cls, frame: pd.DataFrame, id_column: str = DEFAULT_ID_COLUMN
    ) -> "PointSet":
        """
        Build a PointSet from a DataFrame.

        Every column other than ``id_column`` is treated as a feature.

        Raises:
            MalformedInputError: If the id column is missing, or any value
                                 is missing or non-numeric.
        """
        if id_column not in frame.columns:
            raise MalformedInputError(
                f"Id column {id_column!r} not found in columns {list(frame.columns)}."
            )

        feature_names = [str(col) for col in frame.columns if col != id_column]
        if not feature_names:
            raise MalformedInputError("Input table has no feature columns.")

        for column in frame.columns:
            series = frame[column]
            if series.isna().any():
                raise MalformedInputError(f"Column {column!r} contains missing values.")
            if not is_numeric_dtype(series) or series.dtype == bool:
                raise MalformedInputError(f"Column {column!r} is not numeric.")

        raw_ids = frame[id_column].to_numpy()
        if raw_ids.dtype.kind == "f":
            if not np.all(np.equal(np.mod(raw_ids, 1), 0)):
                raise MalformedInputError(f"Id column {id_column!r} must hold integers.")
            if np.any(np.abs(raw_ids) >= 2.0 ** 63):
                raise MalformedInputError(
                    f"Id column {id_column!r} holds ids above {_MAX_ID}."
                )
            raw_ids = raw_ids.astype(np.int64)

        return cls(
            raw_ids,
            frame[feature_names].to_numpy(dtype=np.float64),
            id_column=id_column,
            feature_names=feature_names,
        )

    @classmethod
    def from_csv(
        cls, path: str | Path, id_column: str = DEFAULT_ID_COLUMN
    ) -> "PointSet":
        """
        Read a headered CSV file fully into memory and build a PointSet.
        """
        try:
            frame = pd.read_csv(path)
        except FileNotFoundError as exc:
            raise MalformedInputError(f"Input file not found: {path}") from exc
        except (pd.errors.EmptyDataError, pd.errors.ParserError) as exc:
            raise MalformedInputError(f"Could not parse input file {path}: {exc}") from exc
        return cls.from_frame(frame, id_column=id_column)

    @classmethod
    def from_points(
        cls,
        points: Iterable[Point],
        *,
        id_column: str = DEFAULT_ID_COLUMN,
        feature_names: Sequence[str] | None = None,
    ) -> "PointSet":
        points = list(points)
        return cls(
            [point.id for point in points],
            [list(point.features) for point in points],
            id_column=id_column,
            feature_names=feature_names,
        )

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return int(self._ids.shape[0])

    @property
    def ids(self) -> np.ndarray:
        return self._ids

    @property
    def features(self) -> np.ndarray:
        return self._features

    @property
    def dimensions(self) -> int:
        return int(self._features.shape[1])

    @property
    def id_column(self) -> str:
        return self._id_column

    @property
    def feature_names(self) -> tuple[str, ...]:
        return self._feature_names

    def contains(self, point_id: int) -> bool:
        return int(point_id) in self._index

    def index_of(self, point_id: int) -> int:
        """
        Return the row position of ``point_id``.

        Raises:
            KeyError: If the id is not present.
        """
        return self._index[int(point_id)]

    def point(self, point_id: int) -> Point:
        pos = self.index_of(point_id)
        return Point(id=int(self._ids[pos]), features=tuple(float(v) for v in self._features[pos]))

    def take(self, positions: Sequence[int] | np.ndarray) -> np.ndarray:
        """Feature rows at the given positions, as a fresh array."""
        return self._features[np.asarray(positions, dtype=np.intp)].copy()

    def to_frame(self, positions: Sequence[int] | np.ndarray | None = None) -> pd.DataFrame:
        """
        Render the points (optionally a subset, in the given order) as a DataFrame
        with the id column first.
        """
        if positions is None:
            rows = np.arange(len(self))
        else:
            rows = np.asarray(positions, dtype=np.intp)
        frame = pd.DataFrame(self._features[rows], columns=list(self._feature_names))
        frame.insert(0, self._id_column, self._ids[rows].astype(np.uint64))
        return frame
