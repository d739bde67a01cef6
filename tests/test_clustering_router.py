"""
tests/test_clustering_router.py

HTTP tests for the clustering router via FastAPI's TestClient.
"""

from __future__ import annotations

import math

import pytest
from fastapi.testclient import TestClient

from app.main import create_app

_PAIRS = [
    {"id": 0, "features": [0.0, 0.0, 0.0]},
    {"id": 1, "features": [0.0, 0.0, 1.0]},
    {"id": 2, "features": [10.0, 10.0, 10.0]},
    {"id": 3, "features": [10.0, 10.0, 11.0]},
]


@pytest.fixture()
def client() -> TestClient:
    return TestClient(create_app())


class TestHealth:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestEvaluate:
    def test_two_pairs_scenario(self, client: TestClient) -> None:
        response = client.post(
            "/clustering/evaluate", json={"points": _PAIRS, "k": 2, "seed_ids": [0, 2]}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["iterations"] == 2
        assert body["cluster_count"] == 2
        assert [c["member_ids"] for c in body["clusters"]] == [[0, 1], [2, 3]]
        assert body["clusters"][1]["centroid"] == pytest.approx([10.0, 10.0, 10.5])
        assert body["score"] == pytest.approx(math.sqrt(281.0))

    def test_collapsed_run_has_no_score(self, client: TestClient) -> None:
        points = [{"id": i, "features": [1.0, 1.0]} for i in range(3)]
        response = client.post(
            "/clustering/evaluate", json={"points": points, "k": 2, "seed_ids": [0, 1]}
        )

        assert response.status_code == 200
        assert response.json()["cluster_count"] == 1
        assert response.json()["score"] is None

    def test_unknown_seed_is_422(self, client: TestClient) -> None:
        response = client.post(
            "/clustering/evaluate", json={"points": _PAIRS, "k": 2, "seed_ids": [0, 99]}
        )
        assert response.status_code == 422
        assert "99" in response.json()["detail"]

    def test_k_above_population_is_422(self, client: TestClient) -> None:
        response = client.post("/clustering/evaluate", json={"points": _PAIRS, "k": 5})
        assert response.status_code == 422

    def test_duplicate_ids_are_422(self, client: TestClient) -> None:
        points = [{"id": 0, "features": [0.0]}, {"id": 0, "features": [1.0]}]
        response = client.post("/clustering/evaluate", json={"points": points, "k": 1})
        assert response.status_code == 422

    def test_mixed_dimensions_rejected(self, client: TestClient) -> None:
        points = [{"id": 0, "features": [0.0]}, {"id": 1, "features": [1.0, 2.0]}]
        response = client.post("/clustering/evaluate", json={"points": points, "k": 1})
        assert response.status_code == 422


class TestSelect:
    def test_two_clouds_pick_two(self, client: TestClient) -> None:
        response = client.post(
            "/clustering/select",
            json={"points": _PAIRS, "k_min": 2, "k_max": 3, "random_state": 1},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["best_k"] == 2
        assert body["best_score"] == pytest.approx(math.sqrt(281.0))
        assert [c["k"] for c in body["candidates"]] == [2]
        assert body["candidates"][0]["status"] == "scored"

    def test_identical_points_are_409(self, client: TestClient) -> None:
        points = [{"id": i, "features": [3.0, 3.0, 3.0]} for i in range(4)]
        response = client.post(
            "/clustering/select", json={"points": points, "k_min": 2, "k_max": 4}
        )
        assert response.status_code == 409

    def test_empty_range_rejected(self, client: TestClient) -> None:
        response = client.post(
            "/clustering/select", json={"points": _PAIRS, "k_min": 3, "k_max": 3}
        )
        assert response.status_code == 422


class TestSelectCsv:
    def test_csv_upload(self, client: TestClient) -> None:
        content = b"n,x,y,z\n0,0,0,0\n1,0,0,1\n2,10,10,10\n3,10,10,11\n"
        response = client.post(
            "/clustering/select-csv",
            params={"k_max": 3, "random_state": 4},
            files={"file": ("points.csv", content, "text/csv")},
        )

        assert response.status_code == 200
        assert response.json()["best_k"] == 2

    def test_missing_id_column_is_422(self, client: TestClient) -> None:
        content = b"id,x\n0,0\n1,1\n"
        response = client.post(
            "/clustering/select-csv",
            params={"k_max": 3},
            files={"file": ("points.csv", content, "text/csv")},
        )
        assert response.status_code == 422

    def test_empty_upload_is_422(self, client: TestClient) -> None:
        response = client.post(
            "/clustering/select-csv",
            files={"file": ("points.csv", b"", "text/csv")},
        )
        assert response.status_code == 422
        assert "empty" in response.json()["detail"]

    def test_non_csv_upload_is_400(self, client: TestClient) -> None:
        response = client.post(
            "/clustering/select-csv",
            files={"file": ("points.json", b"{}", "application/json")},
        )
        assert response.status_code == 400


class TestStartupValidation:
    @pytest.mark.parametrize(
        "k_min, k_max",
        [("5", "3"), ("4", "4"), ("1", "10"), ("two", "10")],
    )
    def test_bad_k_range_refuses_to_start(
        self, monkeypatch: pytest.MonkeyPatch, k_min: str, k_max: str
    ) -> None:
        monkeypatch.setenv("KMEANS_K_MIN", k_min)
        monkeypatch.setenv("KMEANS_K_MAX", k_max)

        with pytest.raises(RuntimeError, match="KMEANS_K_M"):
            create_app()

    def test_valid_k_range_starts(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("KMEANS_K_MIN", "3")
        monkeypatch.setenv("KMEANS_K_MAX", "6")
        assert create_app().title == "KMeans Selection API"
