from __future__ import annotations

import logging
from typing import Protocol

import numpy as np

from terrain.grid import CellGrid

logger = logging.getLogger(__name__)


class HeightSink(Protocol):
    """Consumer of a finished height grid, e.g. a terrain renderer."""

    def set_heights(self, heights: np.ndarray, resolution: int) -> None:
        ...  # pragma: no cover


def export_heights(grid: CellGrid) -> np.ndarray:
    """Return the terrain heights as a new row-major (N, N) float64 array.

    The grid is not modified and the result shares no memory with it.
    """

    if not isinstance(grid, CellGrid):
        raise TypeError("grid must be a CellGrid")
    return np.array(grid.terrain, dtype=np.float64, order="C", copy=True)


def push_heights(grid: CellGrid, sink: HeightSink) -> np.ndarray:
    """Export the grid and hand the heights to ``sink``."""
    heights = export_heights(grid)
    n = grid.map_size
    logger.info("Pushing %dx%d heights to %s", n, n, type(sink).__name__)
    sink.set_heights(heights, n)
    return heights
