"""
app/schemas/clustering.py

Request and response schemas for clustering endpoints.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator


class PointPayload(BaseModel):
    """
    One input point.
    """

    model_config = ConfigDict(extra="forbid")

    id: int = Field(..., ge=0)
    features: list[float] = Field(..., min_length=1)


class _PointsRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    points: list[PointPayload] = Field(..., min_length=1)

    @model_validator(mode="after")
    def _check_dimensions(self) -> "_PointsRequest":
        widths = {len(point.features) for point in self.points}
        if len(widths) > 1:
            raise ValueError(f"All points must have the same dimensionality, got {sorted(widths)}.")
        return self


class EvaluateRequest(_PointsRequest):
    """
    Run the engine once at a fixed k.
    """

    k: int = Field(..., ge=1)
    seed_ids: list[int] | None = None
    random_state: int | None = None


class SelectRequest(_PointsRequest):
    """
    Sweep k over ``[k_min, k_max)`` and pick the best by Dunn index.
    """

    k_min: int = Field(2, ge=2)
    k_max: int = Field(15, ge=3)
    random_state: int | None = None

    @model_validator(mode="after")
    def _check_range(self) -> "SelectRequest":
        if self.k_max <= self.k_min:
            raise ValueError(f"k_max ({self.k_max}) must be greater than k_min ({self.k_min}).")
        return self


class ClusterResponse(BaseModel):
    index: int = Field(..., ge=0)
    member_ids: list[int]
    centroid: list[float]


class EvaluateResponse(BaseModel):
    k: int
    cluster_count: int
    iterations: int
    clusters: list[ClusterResponse]
    score: float | None = None


class CandidateResponse(BaseModel):
    k: int
    score: float | None = None
    status: str
    cluster_count: int | None = None
    iterations: int | None = None
    message: str | None = None


class SelectResponse(BaseModel):
    best_k: int
    best_score: float
    candidates: list[CandidateResponse] = Field(default_factory=list)
