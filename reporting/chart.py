"""
reporting/chart.py

Score-versus-k line chart.
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

import matplotlib

matplotlib.use("Agg")  # Non-interactive backend
import matplotlib.pyplot as plt  # noqa: E402

_CANVAS_PX = (1024, 768)
_DPI = 100


class ChartRenderer:
    """
    Renders Dunn index scores against candidate k as a PNG.

    The canvas is fixed at 1024x768 pixels. The y axis starts at 0 and
    covers at least [0, 1].
    """

    def __init__(self, title: str = "Dann Index over Clusters") -> None:
        self._title = title

    def render(self, scores: Sequence[tuple[int, float]], path: str | Path) -> Path:
        """
        Draw ``scores`` as a red line with blue point markers and save to ``path``.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        ks = [k for k, _ in scores]
        values = [value for _, value in scores]

        fig, ax = plt.subplots(figsize=(_CANVAS_PX[0] / _DPI, _CANVAS_PX[1] / _DPI), dpi=_DPI)
        try:
            ax.plot(ks, values, color="red", linewidth=1.5)
            ax.scatter(ks, values, color="blue", s=25, zorder=3)

            ax.set_title(self._title, fontsize=20)
            ax.set_xlabel("Clusters")
            ax.set_ylabel("Score")
            if ks:
                ax.set_xlim(min(ks) - 1, max(ks) + 1)
                ax.set_xticks(range(min(ks) - 1, max(ks) + 2))
            ax.set_ylim(0.0, max([1.0] + [v * 1.05 for v in values]))
            ax.grid(False)

            fig.savefig(path, dpi=_DPI)
        finally:
            plt.close(fig)

        return path
