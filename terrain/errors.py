from __future__ import annotations


class TerrainError(Exception):
    """Base class for heightfield and erosion failures."""


class ConfigurationError(TerrainError, ValueError):
    """Invalid parameters, detected before any computation starts."""


class DegenerateNormalizationError(TerrainError, ArithmeticError):
    """Global minimum equals global maximum, so the field cannot be remapped."""

    def __init__(self, value: float):
        super().__init__(f"cannot normalize a constant field (min == max == {value!r})")
        self.value = float(value)


class NumericFaultError(TerrainError, FloatingPointError):
    """A stage produced NaN or Inf. The run is aborted at the first bad cell."""

    def __init__(self, *, stage: str, iteration: int, field: str, row: int, col: int):
        super().__init__(
            f"non-finite {field} at cell (row={row}, col={col}) "
            f"after stage {stage!r} of iteration {iteration}"
        )
        self.stage = stage
        self.iteration = int(iteration)
        self.field = field
        self.row = int(row)
        self.col = int(col)
