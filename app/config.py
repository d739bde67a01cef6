"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

_PROJECT_ROOT = Path(__file__).resolve().parents[1]


def load_env_files(project_root: Path | None = None) -> None:
    """
    Load simple KEY=VALUE pairs from `.env` and `.env.local` (if present).
    Existing process environment variables are not overwritten.
    """

    root = project_root or _PROJECT_ROOT
    for filename in (".env", ".env.local"):
        env_path = root / filename
        if not env_path.exists():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_optional_int_env(name: str) -> int | None:
    """
    Read an optional integer; unset, empty, or unparsable values give None.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None or not raw_value.strip():
        return None
    try:
        return int(raw_value)
    except ValueError:
        return None


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_char_env(name: str, default: str) -> str:
    """
    Read a single character. Whitespace is kept so a tab separator works.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None or len(value) != 1:
        return default
    return value


@dataclass(frozen=True)
class ClusteringSettings:
    """
    Runtime settings for the k-means model selection pipeline.
    """

    input_path: str = "kmeans.csv"
    result_dir: str = "./result"
    id_column: str = "n"
    k_min: int = 2
    k_max: int = 15
    max_iterations: int | None = 300
    max_workers: int = 4
    random_state: int | None = None
    first_cluster_shortcut: bool = False
    float_precision: int = 5
    csv_separator: str = ","
    csv_quote_char: str = "~"
    csv_null: str = "None"
    chart_filename: str = "dann_index.png"
    log_level: str = "INFO"


@lru_cache(maxsize=1)
def get_clustering_settings() -> ClusteringSettings:
    """
    Return cached clustering settings from environment variables.

    KMEANS_MAX_ITERATIONS=0 disables the iteration guard.
    """

    max_iterations = max(0, _get_int_env("KMEANS_MAX_ITERATIONS", 300))
    k_min = max(2, _get_int_env("KMEANS_K_MIN", 2))

    return ClusteringSettings(
        input_path=_get_str_env("KMEANS_INPUT_PATH", "kmeans.csv"),
        result_dir=_get_str_env("KMEANS_RESULT_DIR", "./result"),
        id_column=_get_str_env("KMEANS_ID_COLUMN", "n"),
        k_min=k_min,
        k_max=max(k_min + 1, _get_int_env("KMEANS_K_MAX", 15)),
        max_iterations=max_iterations or None,
        max_workers=max(1, _get_int_env("KMEANS_MAX_WORKERS", 4)),
        random_state=_get_optional_int_env("KMEANS_RANDOM_STATE"),
        first_cluster_shortcut=_get_bool_env("KMEANS_FIRST_CLUSTER_SHORTCUT", False),
        float_precision=max(0, _get_int_env("KMEANS_FLOAT_PRECISION", 5)),
        csv_separator=_get_char_env("KMEANS_CSV_SEPARATOR", ","),
        csv_quote_char=_get_char_env("KMEANS_CSV_QUOTE_CHAR", "~"),
        csv_null=_get_str_env("KMEANS_CSV_NULL", "None"),
        chart_filename=_get_str_env("KMEANS_CHART_FILENAME", "dann_index.png"),
        log_level=_get_str_env("LOG_LEVEL", "INFO").upper(),
    )
