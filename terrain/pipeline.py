from __future__ import annotations

import logging
import threading

import numpy as np

from terrain.config import (
    ErosionParams,
    ExecutionMode,
    FBMVariant,
    NoiseParameters,
    PipelineMode,
)
from terrain.erosion import TraceHook, log_sample_cells, run_erosion
from terrain.export import export_heights
from terrain.grid import build_grid
from terrain.heightfield import generate_heightfield

logger = logging.getLogger(__name__)


def erode_terrain(
    *,
    noise_params: NoiseParameters,
    map_size: int,
    erosion_params: ErosionParams,
    variant: FBMVariant | str = FBMVariant.PLAIN,
    iterations: int = 1000,
    mode: ExecutionMode | str = ExecutionMode.DOUBLE_BUFFER,
    pipeline: PipelineMode | str = PipelineMode.REFERENCE,
    initial_hardness: float = 1.0,
    basis_seed: int = 0,
    workers: int | None = None,
    cancel: threading.Event | None = None,
    trace: TraceHook | None = None,
    trace_every: int = 1,
    progress: bool = False,
    dtype: np.dtype | type[np.floating] = np.float64,
) -> dict[str, np.ndarray | int]:
    """Noise -> normalize -> grid -> erosion -> export.

    This is a pure function of its inputs (no shared state between calls).
    The simulation always runs in float64; ``dtype`` only applies to the
    returned arrays.
    """

    base01 = generate_heightfield(
        noise_params,
        map_size,
        variant,
        basis_seed=int(basis_seed),
        workers=workers,
    )

    grid = build_grid(base01, initial_hardness=float(initial_hardness))
    log_sample_cells(grid, height_scale=erosion_params.height_scale, log=logger)

    run_erosion(
        grid,
        erosion_params,
        iterations,
        mode,
        pipeline=pipeline,
        cancel=cancel,
        trace=trace,
        trace_every=trace_every,
        progress=progress,
    )
    log_sample_cells(grid, height_scale=erosion_params.height_scale, log=logger)

    out: dict[str, np.ndarray | int] = {
        "base01": np.asarray(base01, dtype=dtype),
        "terrain": np.asarray(export_heights(grid), dtype=dtype),
        "water": np.asarray(grid.water, dtype=dtype).copy(),
        "sediment": np.asarray(grid.sediment, dtype=dtype).copy(),
        "hardness": np.asarray(grid.hardness, dtype=dtype).copy(),
        "iterations": int(grid.iterations),
    }
    return out
