from __future__ import annotations

from terrain.config import (
    ErosionParams,
    ExecutionMode,
    FBMVariant,
    NoiseParameters,
    PipelineMode,
    resolve_variant,
)
from terrain.erosion import (
    PIPELINES,
    STAGES,
    ErosionEngine,
    Stage,
    log_sample_cells,
    run_erosion,
)
from terrain.errors import (
    ConfigurationError,
    DegenerateNormalizationError,
    NumericFaultError,
    TerrainError,
)
from terrain.export import HeightSink, export_heights, push_heights
from terrain.grid import Cell, CellGrid, DoubleBuffer, build_grid
from terrain.heightfield import NoiseField, generate_heightfield
from terrain.logger import setup_logger
from terrain.normalize import merge_min_max, min_max_partial, normalize01
from terrain.pipeline import erode_terrain

__all__ = [
    "Cell",
    "CellGrid",
    "ConfigurationError",
    "DegenerateNormalizationError",
    "DoubleBuffer",
    "ErosionEngine",
    "ErosionParams",
    "ExecutionMode",
    "FBMVariant",
    "HeightSink",
    "NoiseField",
    "NoiseParameters",
    "NumericFaultError",
    "PIPELINES",
    "PipelineMode",
    "STAGES",
    "Stage",
    "TerrainError",
    "build_grid",
    "erode_terrain",
    "export_heights",
    "generate_heightfield",
    "log_sample_cells",
    "merge_min_max",
    "min_max_partial",
    "normalize01",
    "push_heights",
    "resolve_variant",
    "run_erosion",
    "setup_logger",
]
