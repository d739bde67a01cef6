"""
tests/test_orchestrator.py

End-to-end tests for ClusteringOrchestrator and the CLI driver.
"""

from __future__ import annotations

import json

import pytest

from app.config import ClusteringSettings
from clustering.errors import MalformedInputError, NoValidCandidateError
from clustering.orchestrator import ClusteringOrchestrator
from scripts.run_clustering import main

_TWO_CLOUDS = (
    "n,x,y,z\n"
    "0,0,0,0\n"
    "1,0,0,1\n"
    "2,0,1,0\n"
    "3,10,10,10\n"
    "4,10,10,11\n"
    "5,10,11,10\n"
)


@pytest.fixture()
def input_csv(tmp_path):
    path = tmp_path / "kmeans.csv"
    path.write_text(_TWO_CLOUDS, encoding="utf-8")
    return path


def _settings(tmp_path, **overrides) -> ClusteringSettings:
    values = {
        "result_dir": str(tmp_path / "result"),
        "k_min": 2,
        "k_max": 3,
        "max_workers": 1,
        "random_state": 5,
    }
    values.update(overrides)
    return ClusteringSettings(**values)


class TestClusteringOrchestrator:
    def test_full_pipeline_outputs(self, tmp_path, input_csv) -> None:
        result_dir = tmp_path / "result"
        result_dir.mkdir()
        (result_dir / "stale.csv").write_text("old", encoding="utf-8")

        summary = ClusteringOrchestrator(_settings(tmp_path)).run_clustering(input_csv)

        assert summary["best_k"] == 2
        assert summary["best_score"] > 0
        assert sum(summary["cluster_sizes"]) == 6
        assert [s["k"] for s in summary["scores"]] == [2]

        names = {p.name for p in result_dir.iterdir()}
        assert "stale.csv" not in names
        assert {"res_0_cluster.csv", "res_1_cluster.csv", "dann_index.png", "1__dist.csv"} <= names
        assert summary["chart_path"].endswith("dann_index.png")

    def test_input_path_from_settings(self, tmp_path, input_csv) -> None:
        settings = _settings(tmp_path, input_path=str(input_csv))
        assert ClusteringOrchestrator(settings).run_clustering()["best_k"] == 2

    def test_all_identical_points_abort_without_chart(self, tmp_path) -> None:
        path = tmp_path / "same.csv"
        path.write_text("n,x,y,z\n0,1,1,1\n1,1,1,1\n2,1,1,1\n", encoding="utf-8")

        with pytest.raises(NoValidCandidateError):
            ClusteringOrchestrator(_settings(tmp_path)).run_clustering(path)

        assert not (tmp_path / "result" / "dann_index.png").exists()

    def test_malformed_input_aborts(self, tmp_path) -> None:
        path = tmp_path / "bad.csv"
        path.write_text("n,x,y,z\n0,1,1,1\n0,2,2,2\n", encoding="utf-8")

        with pytest.raises(MalformedInputError):
            ClusteringOrchestrator(_settings(tmp_path)).run_clustering(path)


class TestCLI:
    def test_success_prints_summary(self, tmp_path, input_csv, capsys) -> None:
        code = main(
            [
                "--input", str(input_csv),
                "--result-dir", str(tmp_path / "out"),
                "--k-min", "2",
                "--k-max", "3",
                "--workers", "1",
                "--seed", "1",
            ]
        )

        assert code == 0
        summary = json.loads(capsys.readouterr().out)
        assert summary["best_k"] == 2
        assert (tmp_path / "out" / "res_0_cluster.csv").exists()

    def test_fatal_error_exits_non_zero(self, tmp_path, capsys) -> None:
        code = main(["--input", str(tmp_path / "missing.csv"), "--result-dir", str(tmp_path / "out")])

        assert code == 1
        assert "not found" in capsys.readouterr().err

    def test_negative_iteration_guard_rejected(self, tmp_path, input_csv) -> None:
        assert main(["--input", str(input_csv), "--max-iterations", "-1"]) == 2
