"""
app/api/routers package marker.
"""

from app.api.routers.clustering_router import router as clustering_router

__all__ = [
    "clustering_router",
]
