"""
tests/test_points.py

Pytest unit tests for PointSet construction and lookup.
"""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from clustering.errors import MalformedInputError
from clustering.points import Point, PointSet


def _frame(**overrides) -> pd.DataFrame:
    data = {
        "n": [0, 1, 2],
        "x": [0.0, 1.0, 2.0],
        "y": [0.5, 1.5, 2.5],
        "z": [1.0, 1.0, 1.0],
    }
    data.update(overrides)
    return pd.DataFrame(data)


class TestFromFrame:
    def test_id_column_split_from_features(self) -> None:
        points = PointSet.from_frame(_frame())
        assert len(points) == 3
        assert points.dimensions == 3
        assert points.feature_names == ("x", "y", "z")
        assert points.id_column == "n"
        assert list(points.ids) == [0, 1, 2]

    def test_custom_id_column(self) -> None:
        frame = _frame().rename(columns={"n": "row"})
        points = PointSet.from_frame(frame, id_column="row")
        assert points.id_column == "row"
        assert points.feature_names == ("x", "y", "z")

    def test_any_dimensionality(self) -> None:
        frame = pd.DataFrame({"n": [0, 1], "a": [1.0, 2.0], "b": [3.0, 4.0], "c": [0, 0], "d": [9, 9]})
        assert PointSet.from_frame(frame).dimensions == 4

    def test_integral_float_ids_accepted(self) -> None:
        points = PointSet.from_frame(_frame(n=[0.0, 1.0, 2.0]))
        assert list(points.ids) == [0, 1, 2]

    def test_unsigned_ids_past_int64_rejected(self) -> None:
        frame = pd.DataFrame(
            {"n": np.array([2**64 - 1, 1], dtype=np.uint64), "x": [0.0, 1.0]}
        )
        with pytest.raises(MalformedInputError, match="above"):
            PointSet.from_frame(frame)

    def test_largest_int64_id_kept(self) -> None:
        big = np.iinfo(np.int64).max
        frame = pd.DataFrame({"n": np.array([big, 1], dtype=np.uint64), "x": [0.0, 1.0]})
        points = PointSet.from_frame(frame)
        assert points.contains(int(big))
        assert points.index_of(int(big)) == 0

    def test_float_ids_past_int64_rejected(self) -> None:
        with pytest.raises(MalformedInputError):
            PointSet.from_frame(_frame(n=[0.0, 1.0, 2.0**63]))

    def test_missing_id_column_raises(self) -> None:
        with pytest.raises(MalformedInputError):
            PointSet.from_frame(_frame().drop(columns=["n"]))

    def test_no_feature_columns_raises(self) -> None:
        with pytest.raises(MalformedInputError):
            PointSet.from_frame(pd.DataFrame({"n": [0, 1]}))

    def test_non_numeric_feature_raises(self) -> None:
        with pytest.raises(MalformedInputError):
            PointSet.from_frame(_frame(y=["a", "b", "c"]))

    def test_missing_value_raises(self) -> None:
        with pytest.raises(MalformedInputError):
            PointSet.from_frame(_frame(x=[0.0, np.nan, 2.0]))

    def test_duplicate_ids_raise(self) -> None:
        with pytest.raises(MalformedInputError, match="not unique"):
            PointSet.from_frame(_frame(n=[0, 1, 1]))

    def test_negative_ids_raise(self) -> None:
        with pytest.raises(MalformedInputError, match="unsigned"):
            PointSet.from_frame(_frame(n=[0, -1, 2]))

    def test_fractional_ids_raise(self) -> None:
        with pytest.raises(MalformedInputError):
            PointSet.from_frame(_frame(n=[0.0, 0.5, 2.0]))

    def test_empty_frame_raises(self) -> None:
        with pytest.raises(MalformedInputError):
            PointSet.from_frame(pd.DataFrame({"n": [], "x": []}))

    def test_malformed_input_is_a_value_error(self) -> None:
        with pytest.raises(ValueError):
            PointSet.from_frame(_frame(n=[0, 0, 0]))


class TestFromCSV:
    def test_reads_headered_file(self, tmp_path) -> None:
        path = tmp_path / "kmeans.csv"
        path.write_text("n,x,y,z\n0,0,0,0\n1,0,0,1\n2,10,10,10\n", encoding="utf-8")
        points = PointSet.from_csv(path)
        assert len(points) == 3
        assert points.point(2) == Point(id=2, features=(10.0, 10.0, 10.0))

    def test_missing_file_raises(self, tmp_path) -> None:
        with pytest.raises(MalformedInputError, match="not found"):
            PointSet.from_csv(tmp_path / "absent.csv")

    def test_empty_file_raises(self, tmp_path) -> None:
        path = tmp_path / "empty.csv"
        path.write_text("", encoding="utf-8")
        with pytest.raises(MalformedInputError):
            PointSet.from_csv(path)


class TestLookupAndImmutability:
    def test_index_of_and_contains(self, two_pairs: PointSet) -> None:
        assert two_pairs.index_of(3) == 3
        assert two_pairs.contains(2)
        assert not two_pairs.contains(99)

    def test_unknown_id_raises_key_error(self, two_pairs: PointSet) -> None:
        with pytest.raises(KeyError):
            two_pairs.point(99)

    def test_arrays_are_read_only(self, two_pairs: PointSet) -> None:
        with pytest.raises(ValueError):
            two_pairs.features[0, 0] = 5.0
        with pytest.raises(ValueError):
            two_pairs.ids[0] = 5

    def test_take_returns_copy(self, two_pairs: PointSet) -> None:
        rows = two_pairs.take([2, 3])
        rows[0, 0] = -1.0
        assert two_pairs.features[2, 0] == 10.0

    def test_to_frame_puts_id_first(self, two_pairs: PointSet) -> None:
        frame = two_pairs.to_frame([3, 1])
        assert list(frame.columns) == ["n", "x", "y", "z"]
        assert list(frame["n"]) == [3, 1]

    def test_from_points(self) -> None:
        points = PointSet.from_points([Point(7, (1.0, 2.0)), Point(9, (3.0, 4.0))])
        assert list(points.ids) == [7, 9]
        assert points.dimensions == 2

    def test_ragged_features_raise(self) -> None:
        with pytest.raises(MalformedInputError):
            PointSet([0, 1], [[1.0, 2.0], [3.0]])
