from __future__ import annotations

import logging
import os

from fastapi import FastAPI

from app.config import get_clustering_settings
from app.logging_utils import configure_logging


def _raw_int(name: str, default: int, errors: list[str]) -> int | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        errors.append(f"{name} must be an integer, got {raw!r}.")
        return None


def _validate_settings() -> None:
    """
    Validate clustering settings at startup.

    The k range is read from the raw environment, before
    get_clustering_settings clamps it.
    Raises RuntimeError listing every invalid value so the operator can
    fix all problems in one restart cycle.
    """

    settings = get_clustering_settings()
    errors: list[str] = []

    k_min = _raw_int("KMEANS_K_MIN", 2, errors)
    k_max = _raw_int("KMEANS_K_MAX", 15, errors)
    if k_min is not None and k_min < 2:
        errors.append(f"KMEANS_K_MIN ({k_min}) must be at least 2.")
    if k_min is not None and k_max is not None and k_max <= k_min:
        errors.append(
            f"KMEANS_K_MAX ({k_max}) must be greater than KMEANS_K_MIN ({k_min})."
        )
    if settings.csv_separator == settings.csv_quote_char:
        errors.append("KMEANS_CSV_SEPARATOR and KMEANS_CSV_QUOTE_CHAR must differ.")

    if errors:
        raise RuntimeError(
            "Startup validation failed - invalid clustering settings:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_settings()
    configure_logging(get_clustering_settings().log_level)

    application = FastAPI(
        title="KMeans Selection API",
        version="1.0.0",
    )

    from app.api.routers import clustering_router

    application.include_router(clustering_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    logging.getLogger(__name__).info("Clustering API initialised")
    return application


app = create_app()
