"""
app/schemas package marker.
"""

from app.schemas.clustering import (
    CandidateResponse,
    ClusterResponse,
    EvaluateRequest,
    EvaluateResponse,
    PointPayload,
    SelectRequest,
    SelectResponse,
)

__all__ = [
    "CandidateResponse",
    "ClusterResponse",
    "EvaluateRequest",
    "EvaluateResponse",
    "PointPayload",
    "SelectRequest",
    "SelectResponse",
]
