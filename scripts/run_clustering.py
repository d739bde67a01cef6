"""
Run k-means model selection from CLI.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace

from app.config import get_clustering_settings
from app.logging_utils import configure_logging
from clustering.errors import ClusteringError
from clustering.orchestrator import ClusteringOrchestrator

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Cluster a CSV of points with k-means and pick k by Dunn index."
    )
    parser.add_argument("--input", dest="input_path", default=None, help="Input CSV path.")
    parser.add_argument("--result-dir", dest="result_dir", default=None, help="Output directory (wiped on start).")
    parser.add_argument("--id-column", dest="id_column", default=None, help="Name of the id column.")
    parser.add_argument("--k-min", dest="k_min", type=int, default=None, help="First candidate k (inclusive).")
    parser.add_argument("--k-max", dest="k_max", type=int, default=None, help="Last candidate k (exclusive).")
    parser.add_argument("--max-iterations", dest="max_iterations", type=int, default=None, help="Iteration guard; 0 disables it.")
    parser.add_argument("--workers", dest="max_workers", type=int, default=None, help="Sweep thread pool size.")
    parser.add_argument("--seed", dest="random_state", type=int, default=None, help="Random seed for reproducible runs.")
    parser.add_argument(
        "--first-cluster-shortcut",
        dest="first_cluster_shortcut",
        action="store_true",
        default=None,
        help="Also stop when only the first cluster is unchanged.",
    )
    parser.add_argument("--log-level", dest="log_level", default=None, help="Logging level.")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    settings = get_clustering_settings()
    configure_logging(args.log_level or settings.log_level)

    overrides = {
        key: value
        for key, value in vars(args).items()
        if value is not None and key != "log_level"
    }
    if overrides.get("max_iterations") == 0:
        overrides["max_iterations"] = None
    elif "max_iterations" in overrides and overrides["max_iterations"] < 0:
        print("error: --max-iterations must be >= 0", file=sys.stderr)
        return 2

    try:
        orchestrator = ClusteringOrchestrator(replace(settings, **overrides))
        summary = orchestrator.run_clustering()
    except (ClusteringError, ValueError) as exc:
        logger.error("Clustering failed: %s", exc)
        print(f"error: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(summary, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
