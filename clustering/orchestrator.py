"""
Clustering orchestrator.

Wires together input loading, the k sweep, the final export run, and the
score chart into a single pipeline call. No clustering math here.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from app.config import ClusteringSettings, get_clustering_settings
from app.logging_utils import log_event
from clustering.engine import KMeansEngine
from clustering.points import PointSet
from clustering.selection import ModelSelector
from reporting.chart import ChartRenderer
from reporting.exporter import CSVFormat, ResultExporter

logger = logging.getLogger(__name__)


class ClusteringOrchestrator:
    """
    Coordinates the end-to-end model selection pipeline.

    Each pipeline step is delegated to its dedicated module:
        1. ResultExporter  - clears and recreates the result directory.
        2. PointSet        - loads and validates the input table.
        3. ModelSelector   - sweeps k, scores each run, picks the best.
        4. KMeansEngine    - re-runs the winning k with per-step exports.
        5. ResultExporter  - writes the final per-cluster tables.
        6. ChartRenderer   - plots the score of every candidate k.

    Args:
        settings: Pipeline settings. Defaults to the environment-driven
                  :func:`get_clustering_settings`.
    """

    def __init__(self, settings: Optional[ClusteringSettings] = None) -> None:
        self._settings = settings or get_clustering_settings()
        self._exporter = ResultExporter(
            self._settings.result_dir,
            CSVFormat(
                float_precision=self._settings.float_precision,
                separator=self._settings.csv_separator,
                quote_char=self._settings.csv_quote_char,
                null_value=self._settings.csv_null,
            ),
        )
        self._engine = KMeansEngine(
            max_iterations=self._settings.max_iterations,
            first_cluster_shortcut=self._settings.first_cluster_shortcut,
            exporter=self._exporter,
        )
        self._selector = ModelSelector(
            self._engine,
            k_min=self._settings.k_min,
            k_max=self._settings.k_max,
            max_workers=self._settings.max_workers,
            random_state=self._settings.random_state,
        )
        self._chart = ChartRenderer()

    @property
    def settings(self) -> ClusteringSettings:
        return self._settings

    def run_clustering(self, input_path: str | Path | None = None) -> dict:
        """
        Execute the full pipeline.

        Args:
            input_path: CSV file to cluster; defaults to ``settings.input_path``.

        Returns:
            Pipeline result dict::

                {
                    "best_k":        int,
                    "best_score":    float,
                    "scores":        list[dict],   # one entry per candidate k
                    "cluster_sizes": list[int],
                    "result_dir":    str,
                    "cluster_files": list[str],
                    "chart_path":    str,
                }

        Raises:
            MalformedInputError, InsufficientPointsError: Bad input.
            NoValidCandidateError: Every candidate k was skipped.
            ClusterCollapseError:  The final run lost clusters.
        """
        path = Path(input_path or self._settings.input_path)

        # Step 1 - Fresh result directory
        self._exporter.reset()

        # Step 2 - Input
        points = PointSet.from_csv(path, id_column=self._settings.id_column)
        log_event(
            logger,
            logging.INFO,
            "kmeans.input.loaded",
            path=str(path),
            points=len(points),
            dimensions=points.dimensions,
        )

        # Steps 3 & 4 - Sweep, then the exported final run
        selection = self._selector.run(points)
        partition = selection.partition

        # Step 5 - Final cluster tables
        cluster_files = self._exporter.write_partition(points, partition)

        # Step 6 - Chart
        chart_path = self._chart.render(
            selection.scores,
            self._exporter.result_dir / self._settings.chart_filename,
        )

        log_event(
            logger,
            logging.INFO,
            "kmeans.pipeline.completed",
            best_k=selection.best_k,
            best_score=selection.best_score,
            iterations=partition.iterations,
        )

        return {
            "best_k": selection.best_k,
            "best_score": selection.best_score,
            "scores": [candidate.to_dict() for candidate in selection.candidates],
            "cluster_sizes": partition.sizes,
            "result_dir": str(self._exporter.result_dir),
            "cluster_files": [str(p) for p in cluster_files],
            "chart_path": str(chart_path),
        }
