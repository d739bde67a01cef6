"""
app/api/routers/clustering_router.py

Clustering endpoints.

POST /clustering/evaluate    one engine run at a fixed k
POST /clustering/select      k sweep over JSON points
POST /clustering/select-csv  k sweep over an uploaded CSV file

Nothing is written to disk; file exports belong to the CLI pipeline.
All clustering logic lives in the ``clustering`` package; the router only
handles HTTP plumbing (payload conversion and error mapping).
"""

from __future__ import annotations

import logging
from typing import NoReturn

import pandas as pd
from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile, status

from app.api.dependencies import get_points_csv_upload
from app.config import get_clustering_settings
from app.schemas.clustering import (
    CandidateResponse,
    ClusterResponse,
    EvaluateRequest,
    EvaluateResponse,
    PointPayload,
    SelectRequest,
    SelectResponse,
)
from clustering.engine import KMeansEngine, Partition
from clustering.errors import (
    ClusteringError,
    DegenerateMetricError,
    InsufficientPointsError,
    InvalidSeedError,
    MalformedInputError,
    NoValidCandidateError,
    NonConvergenceError,
)
from clustering.points import PointSet
from clustering.scoring import DunnIndexScorer
from clustering.selection import CandidateResult, ModelSelector

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clustering", tags=["clustering"])

_HTTP_UNPROCESSABLE = 422

_UNPROCESSABLE = (MalformedInputError, InvalidSeedError, InsufficientPointsError)
_CONFLICT = (NoValidCandidateError, NonConvergenceError)


# ---------------------------------------------------------------------------
# Helpers (no clustering logic)
# ---------------------------------------------------------------------------


def _build_engine() -> KMeansEngine:
    settings = get_clustering_settings()
    return KMeansEngine(
        max_iterations=settings.max_iterations,
        first_cluster_shortcut=settings.first_cluster_shortcut,
    )


def _to_point_set(points: list[PointPayload]) -> PointSet:
    return PointSet(
        [point.id for point in points],
        [point.features for point in points],
    )


def _raise_http(exc: ClusteringError) -> NoReturn:
    if isinstance(exc, _UNPROCESSABLE):
        raise HTTPException(status_code=_HTTP_UNPROCESSABLE, detail=str(exc)) from exc
    if isinstance(exc, _CONFLICT):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc


def _score_or_none(points: PointSet, partition: Partition) -> float | None:
    if len(partition) < 2:
        return None
    try:
        return DunnIndexScorer(points).score(partition)
    except DegenerateMetricError:
        return None


def _select(
    points: PointSet, k_min: int, k_max: int, random_state: int | None
) -> SelectResponse:
    settings = get_clustering_settings()
    try:
        selector = ModelSelector(
            _build_engine(),
            k_min=k_min,
            k_max=k_max,
            max_workers=settings.max_workers,
            random_state=random_state,
        )
    except ValueError as exc:
        raise HTTPException(status_code=_HTTP_UNPROCESSABLE, detail=str(exc)) from exc

    try:
        candidates = selector.sweep(points)
        best = selector.best_candidate(candidates)
    except ClusteringError as exc:
        _raise_http(exc)

    return SelectResponse(
        best_k=best.k,
        best_score=float(best.score),
        candidates=[_candidate_response(candidate) for candidate in candidates],
    )


def _candidate_response(candidate: CandidateResult) -> CandidateResponse:
    return CandidateResponse(**candidate.to_dict())


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/evaluate", response_model=EvaluateResponse, status_code=status.HTTP_200_OK)
def evaluate(body: EvaluateRequest) -> EvaluateResponse:
    """
    Run the engine once at ``k``.

    ``score`` is null when the run ended with fewer than two clusters or
    the Dunn index is undefined.
    """
    try:
        points = _to_point_set(body.points)
        partition = _build_engine().evaluate(
            points,
            body.k,
            seed_ids=body.seed_ids,
            random_state=body.random_state,
        )
    except ClusteringError as exc:
        _raise_http(exc)

    if partition.collapsed:
        logger.warning("%d num of clusters decreased to %d", body.k, len(partition))

    return EvaluateResponse(
        k=body.k,
        cluster_count=len(partition),
        iterations=partition.iterations,
        clusters=[
            ClusterResponse(
                index=index,
                member_ids=sorted(cluster.member_ids),
                centroid=list(cluster.centroid),
            )
            for index, cluster in enumerate(partition)
        ],
        score=_score_or_none(points, partition),
    )


@router.post("/select", response_model=SelectResponse, status_code=status.HTTP_200_OK)
def select(body: SelectRequest) -> SelectResponse:
    """
    Sweep k over ``[k_min, k_max)`` and return every candidate's outcome.

    Returns HTTP 409 when every candidate collapsed or had no defined score.
    """
    try:
        points = _to_point_set(body.points)
    except ClusteringError as exc:
        _raise_http(exc)
    return _select(points, body.k_min, body.k_max, body.random_state)


@router.post("/select-csv", response_model=SelectResponse, status_code=status.HTTP_200_OK)
def select_csv(
    file: UploadFile = Depends(get_points_csv_upload),
    id_column: str = Query("n", min_length=1),
    k_min: int = Query(2, ge=2),
    k_max: int = Query(15, ge=3),
    random_state: int | None = Query(None),
) -> SelectResponse:
    """
    Same as ``/select`` for a headered CSV upload with an id column.
    """
    try:
        frame = pd.read_csv(file.file)
    except (pd.errors.EmptyDataError, pd.errors.ParserError, UnicodeDecodeError) as exc:
        raise HTTPException(
            status_code=_HTTP_UNPROCESSABLE,
            detail=f"Could not parse CSV upload: {exc}",
        ) from exc

    try:
        points = PointSet.from_frame(frame, id_column=id_column)
    except ClusteringError as exc:
        _raise_http(exc)
    return _select(points, k_min, k_max, random_state)
