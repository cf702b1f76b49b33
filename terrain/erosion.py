from __future__ import annotations

import dataclasses
import logging
import threading
from collections.abc import Callable
from enum import Enum

import numpy as np
from tqdm import tqdm

from terrain.config import (
    ErosionParams,
    ExecutionMode,
    PipelineMode,
    coerce_mode,
    coerce_pipeline,
    validate_iterations,
)
from terrain.errors import ConfigurationError, NumericFaultError
from terrain.grid import BOTTOM, LEFT, RIGHT, TOP, CellGrid, DoubleBuffer

logger = logging.getLogger(__name__)

# Mean water depth below which a cell counts as dry when deriving velocity.
MIN_FLOW_DEPTH = 1e-6

StageFn = Callable[[CellGrid, ErosionParams], None]
TraceHook = Callable[[int, CellGrid], None]


class Stage(str, Enum):
    RAINFALL = "rainfall"
    OUTFLOW_FLUX = "outflow_flux"
    WATER_VELOCITY = "water_velocity"
    EROSION_DEPOSITION = "erosion_deposition"
    SEDIMENT_TRANSPORT = "sediment_transport"
    EVAPORATION = "evaporation"


def rainfall(grid: CellGrid, p: ErosionParams) -> None:
    """Uniform precipitation."""
    grid.water += p.rain_rate * p.delta_time


def _head_drop(head: np.ndarray) -> np.ndarray:
    """Hydraulic head difference to each neighbor; 0 across the grid edge."""
    dh = np.zeros(head.shape + (4,), dtype=np.float64)
    dh[:, 1:, LEFT] = head[:, 1:] - head[:, :-1]
    dh[:, :-1, RIGHT] = head[:, :-1] - head[:, 1:]
    dh[1:, :, TOP] = head[1:, :] - head[:-1, :]
    dh[:-1, :, BOTTOM] = head[:-1, :] - head[1:, :]
    return dh


def outflow_flux(grid: CellGrid, p: ErosionParams) -> None:
    """Pipe-model outflow toward the four neighbors.

    Only lower neighbors receive flow. All four components are scaled by one
    factor K in [0, 1] so a cell never sends more water than it holds.
    """

    dt = p.delta_time
    head = grid.terrain * p.height_scale + grid.water
    dh = _head_drop(head)

    gain = dt * p.pipe_cross_area * p.gravity / p.pipe_length
    candidate = np.where(dh > 0.0, np.maximum(0.0, grid.flux + gain * dh), 0.0)

    total = candidate.sum(axis=-1)
    volume = grid.water * p.cell_area
    k = np.ones_like(total)
    np.divide(volume, total * dt, out=k, where=total > 0.0)
    np.clip(k, 0.0, 1.0, out=k)

    np.multiply(candidate, k[..., None], out=grid.flux)


def _inflow(flux: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """Flux arriving from the left, right, top and bottom neighbors."""
    from_left = np.zeros(flux.shape[:2], dtype=np.float64)
    from_right = np.zeros_like(from_left)
    from_top = np.zeros_like(from_left)
    from_bottom = np.zeros_like(from_left)

    from_left[:, 1:] = flux[:, :-1, RIGHT]
    from_right[:, :-1] = flux[:, 1:, LEFT]
    from_top[1:, :] = flux[:-1, :, BOTTOM]
    from_bottom[:-1, :] = flux[1:, :, TOP]
    return from_left, from_right, from_top, from_bottom


def water_velocity(grid: CellGrid, p: ErosionParams) -> None:
    """Apply the net flux to the water column and derive the velocity field."""

    dt = p.delta_time
    cx, cy = p.cell_size
    f = grid.flux
    from_left, from_right, from_top, from_bottom = _inflow(f)

    inflow = from_left + from_right + from_top + from_bottom
    outflow = f.sum(axis=-1)

    before = grid.water.copy()
    grid.water += dt * (inflow - outflow) / p.cell_area
    np.maximum(grid.water, 0.0, out=grid.water)

    depth = 0.5 * (before + grid.water)
    dwx = 0.5 * (from_left - f[..., LEFT] + f[..., RIGHT] - from_right)
    dwy = 0.5 * (from_top - f[..., TOP] + f[..., BOTTOM] - from_bottom)

    wet = depth > MIN_FLOW_DEPTH
    u = np.zeros_like(depth)
    v = np.zeros_like(depth)
    np.divide(dwx, cy * depth, out=u, where=wet)
    np.divide(dwy, cx * depth, out=v, where=wet)
    grid.velocity[..., 0] = u
    grid.velocity[..., 1] = v


def _sin_tilt(terrain: np.ndarray, p: ErosionParams) -> np.ndarray:
    cx, cy = p.cell_size
    dzdy, dzdx = np.gradient(terrain * p.height_scale, cy, cx)
    slope = np.hypot(dzdx, dzdy)
    return slope / np.sqrt(1.0 + slope * slope)


def erosion_deposition(grid: CellGrid, p: ErosionParams) -> None:
    """Dissolve terrain below transport capacity, deposit sediment above it.

    Soft cells (low hardness) dissolve faster; a single iteration never
    removes more than ``max_erosion_depth`` (world units) from a cell.
    Dissolving softens the cell down to ``min_hardness``.
    """

    speed = np.hypot(grid.velocity[..., 0], grid.velocity[..., 1])
    capacity = np.maximum(0.0, _sin_tilt(grid.terrain, p)) * speed * p.sediment_capacity

    deficit = capacity - grid.sediment
    eroding = deficit > 0.0
    shortfall = np.maximum(deficit, 0.0)

    dissolve = p.soil_suspension_rate * shortfall / grid.hardness
    dissolve = np.minimum(dissolve, shortfall)
    dissolve = np.minimum(dissolve, p.max_erosion_depth / p.height_scale)
    excess = np.maximum(-deficit, 0.0)
    deposit = np.where(eroding, 0.0, p.sediment_deposition_rate * excess)

    delta = deposit - dissolve
    grid.terrain += delta
    grid.sediment -= delta
    np.maximum(grid.sediment, 0.0, out=grid.sediment)

    softening = p.delta_time * p.sediment_softening_rate * p.soil_suspension_rate
    softened = grid.hardness - softening * shortfall
    np.clip(softened, p.min_hardness, 1.0, out=grid.hardness)


def _advect_sediment(grid: CellGrid, p: ErosionParams) -> None:
    # Sediment follows the water through the outflow pipes: each face carries
    # the share of the water passing through the cell that leaves by it.
    # Cells with no outflow keep their sediment; edge faces carry nothing.
    leaving = grid.flux * p.delta_time
    passing = grid.water * p.cell_area + leaving.sum(axis=-1)

    share = np.zeros_like(leaving)
    np.divide(leaving, passing[..., None], out=share, where=passing[..., None] > 0.0)
    sent = grid.sediment[..., None] * share
    sent[:, 0, LEFT] = 0.0
    sent[:, -1, RIGHT] = 0.0
    sent[0, :, TOP] = 0.0
    sent[-1, :, BOTTOM] = 0.0

    received = sum(_inflow(sent))
    grid.sediment += received - sent.sum(axis=-1)
    np.maximum(grid.sediment, 0.0, out=grid.sediment)


def evaporation(grid: CellGrid, p: ErosionParams) -> None:
    grid.water *= 1.0 - p.evaporation_rate * p.delta_time


def sediment_transport(grid: CellGrid, p: ErosionParams) -> None:
    """Carry suspended sediment along the outflow pipes, then evaporate."""
    _advect_sediment(grid, p)
    evaporation(grid, p)


STAGES: dict[Stage, StageFn] = {
    Stage.RAINFALL: rainfall,
    Stage.OUTFLOW_FLUX: outflow_flux,
    Stage.WATER_VELOCITY: water_velocity,
    Stage.EROSION_DEPOSITION: erosion_deposition,
    Stage.SEDIMENT_TRANSPORT: sediment_transport,
    Stage.EVAPORATION: evaporation,
}

PIPELINES: dict[PipelineMode, tuple[Stage, ...]] = {
    PipelineMode.REFERENCE: (
        Stage.RAINFALL,
        Stage.OUTFLOW_FLUX,
        Stage.WATER_VELOCITY,
        Stage.EROSION_DEPOSITION,
        Stage.SEDIMENT_TRANSPORT,
    ),
    # Earlier engine variant: sediment settles where it was dissolved.
    PipelineMode.SIMPLIFIED: (
        Stage.RAINFALL,
        Stage.OUTFLOW_FLUX,
        Stage.WATER_VELOCITY,
        Stage.EROSION_DEPOSITION,
        Stage.EVAPORATION,
    ),
}


class ErosionEngine:
    """Runs the per-iteration stage pipeline over a CellGrid.

    Every stage updates the whole grid before the next one starts. In
    ``double_buffer`` mode each iteration works on a scratch copy of the last
    committed state and is committed by swapping buffers; a fault therefore
    leaves the caller's grid at the last completed iteration. In ``in_place``
    mode the caller's grid is updated directly. Both modes give identical
    results.
    """

    def __init__(
        self,
        params: ErosionParams,
        *,
        mode: ExecutionMode | str = ExecutionMode.DOUBLE_BUFFER,
        pipeline: PipelineMode | str = PipelineMode.REFERENCE,
        trace: TraceHook | None = None,
        trace_every: int = 1,
        progress: bool = False,
    ):
        if not isinstance(params, ErosionParams):
            raise ConfigurationError("params must be ErosionParams")
        trace_every = int(trace_every)
        if trace_every <= 0:
            raise ConfigurationError("trace_every must be >= 1")

        self.params = params
        self.mode = coerce_mode(mode)
        self.pipeline = coerce_pipeline(pipeline)
        self.trace = trace
        self.trace_every = trace_every
        self.progress = bool(progress)

    @property
    def stages(self) -> tuple[Stage, ...]:
        return PIPELINES[self.pipeline]

    def run_stage(self, grid: CellGrid, stage: Stage | str) -> None:
        """Run a single stage on ``grid`` and check the result."""
        stage = Stage(stage)
        STAGES[stage](grid, self.params)
        self._check(grid, stage)

    def step(self, grid: CellGrid) -> None:
        """Run one full iteration on ``grid`` in place."""
        for stage in self.stages:
            self.run_stage(grid, stage)
        grid.iterations += 1

    def run(
        self,
        grid: CellGrid,
        iterations: int = 1000,
        *,
        cancel: threading.Event | None = None,
    ) -> CellGrid:
        """Run ``iterations`` iterations and return ``grid`` updated.

        ``cancel`` is checked between iterations; iterations completed before
        it was set stay committed.
        """

        iterations = validate_iterations(iterations)
        if not isinstance(grid, CellGrid):
            raise ConfigurationError("grid must be a CellGrid")

        logger.info(
            "Eroding %dx%d grid: %d iterations (%s, %s pipeline)",
            grid.map_size,
            grid.map_size,
            iterations,
            self.mode.value,
            self.pipeline.value,
        )
        start_mass = grid.total_mass()

        buffers = None
        if self.mode is ExecutionMode.DOUBLE_BUFFER:
            buffers = DoubleBuffer(grid)
        completed = 0
        try:
            for _ in tqdm(range(iterations), desc="erosion", disable=not self.progress):
                if cancel is not None and cancel.is_set():
                    logger.warning(
                        "Erosion cancelled after %d of %d iterations",
                        completed,
                        iterations,
                    )
                    break

                if buffers is None:
                    current = grid
                    self.step(current)
                else:
                    self.step(buffers.begin())
                    buffers.swap()
                    current = buffers.front
                completed += 1

                traced = current.iterations % self.trace_every == 0
                if self.trace is not None and traced:
                    self.trace(current.iterations, current)
        finally:
            if buffers is not None and buffers.front is not grid:
                grid.assign(buffers.front)

        logger.info(
            "Erosion finished: %d iterations, mass %.6g -> %.6g",
            completed,
            start_mass,
            grid.total_mass(),
        )
        return grid

    def _check(self, grid: CellGrid, stage: Stage) -> None:
        fault = grid.find_nonfinite()
        if fault is None:
            return
        field, row, col = fault
        raise NumericFaultError(
            stage=stage.value,
            iteration=grid.iterations,
            field=field,
            row=row,
            col=col,
        )


def run_erosion(
    grid: CellGrid,
    erosion_params: ErosionParams,
    iterations: int = 1000,
    mode: ExecutionMode | str = ExecutionMode.DOUBLE_BUFFER,
    *,
    pipeline: PipelineMode | str = PipelineMode.REFERENCE,
    cancel: threading.Event | None = None,
    trace: TraceHook | None = None,
    trace_every: int = 1,
    progress: bool = False,
) -> CellGrid:
    engine = ErosionEngine(
        erosion_params,
        mode=mode,
        pipeline=pipeline,
        trace=trace,
        trace_every=trace_every,
        progress=progress,
    )
    return engine.run(grid, iterations, cancel=cancel)


def log_sample_cells(
    grid: CellGrid,
    *,
    row: int = 5,
    count: int = 5,
    height_scale: float = 1.0,
    log: logging.Logger | None = None,
) -> None:
    """Log a few cells of one row at DEBUG, terrain scaled to world units."""
    log = logger if log is None else log
    if not log.isEnabledFor(logging.DEBUG):
        return
    for cell in grid.sample_cells(row=row, count=count):
        scaled = dataclasses.replace(
            cell, terrain_height=cell.terrain_height * float(height_scale)
        )
        log.debug("%s", scaled)
