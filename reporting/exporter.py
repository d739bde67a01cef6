"""
reporting/exporter.py

Delimited-text export of clustering results.

File layout inside the result directory:

    {step}__dist.csv          points plus their distance to every centroid
    {step}_{i}_cluster.csv    members of cluster i after step ``step``
    res_{i}_cluster.csv       members of final cluster i

All tables share one serialisation: fixed float precision, a configurable
separator and quote character, and a sentinel for missing values.
"""

from __future__ import annotations

import csv
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

import numpy as np
import pandas as pd

from clustering.engine import Cluster, Partition
from clustering.points import PointSet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CSVFormat:
    """
    Serialisation options shared by every exported table.
    """

    float_precision: int = 5
    separator: str = ","
    quote_char: str = "~"
    null_value: str = "None"
    line_terminator: str = "\n"

    def __post_init__(self) -> None:
        if self.float_precision < 0:
            raise ValueError(f"float_precision must be >= 0, got {self.float_precision!r}.")
        if len(self.separator) != 1:
            raise ValueError(f"separator must be a single character, got {self.separator!r}.")
        if len(self.quote_char) != 1:
            raise ValueError(f"quote_char must be a single character, got {self.quote_char!r}.")


class ResultExporter:
    """
    Writes clustering tables under one result directory.

    Args:
        result_dir: Target directory. :meth:`reset` wipes and recreates it.
        csv_format: Serialisation options.
    """

    def __init__(self, result_dir: str | Path, csv_format: CSVFormat | None = None) -> None:
        self._result_dir = Path(result_dir)
        self._format = csv_format or CSVFormat()

    @property
    def result_dir(self) -> Path:
        return self._result_dir

    @property
    def csv_format(self) -> CSVFormat:
        return self._format

    def reset(self) -> None:
        """
        Remove the result directory and everything in it, then recreate it empty.
        """
        if self._result_dir.exists():
            shutil.rmtree(self._result_dir)
        self._result_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Result directory reset: %s", self._result_dir)

    # ------------------------------------------------------------------
    # Table writers
    # ------------------------------------------------------------------

    def write_iteration(
        self,
        step: int,
        points: PointSet,
        distances: np.ndarray,
        clusters: Sequence[Cluster],
    ) -> list[Path]:
        """
        Write the distance table and every cluster table for one engine step.
        """
        written = [self.write_distance_table(step, points, distances)]
        for index, cluster in enumerate(clusters):
            written.append(
                self._write(self.cluster_frame(points, cluster), f"{step}_{index}_cluster.csv")
            )
        return written

    def write_distance_table(self, step: int, points: PointSet, distances: np.ndarray) -> Path:
        frame = points.to_frame()
        for index in range(distances.shape[1]):
            frame[f"cluster{index}dist"] = distances[:, index]
        return self._write(frame, f"{step}__dist.csv")

    def write_partition(self, points: PointSet, partition: Partition) -> list[Path]:
        """
        Write the final clusters as ``res_{i}_cluster.csv``.
        """
        return [
            self._write(self.cluster_frame(points, cluster), f"res_{index}_cluster.csv")
            for index, cluster in enumerate(partition)
        ]

    @staticmethod
    def cluster_frame(points: PointSet, cluster: Cluster) -> pd.DataFrame:
        return points.to_frame(cluster.positions)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _write(self, frame: pd.DataFrame, filename: str) -> Path:
        path = self._result_dir / filename
        self._result_dir.mkdir(parents=True, exist_ok=True)
        frame.to_csv(
            path,
            index=False,
            sep=self._format.separator,
            quotechar=self._format.quote_char,
            quoting=csv.QUOTE_MINIMAL,
            na_rep=self._format.null_value,
            float_format=f"%.{self._format.float_precision}f",
            lineterminator=self._format.line_terminator,
        )
        return path
