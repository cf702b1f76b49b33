from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from terrain.errors import ConfigurationError

# Order of the outflow flux components along the last axis of CellGrid.flux.
LEFT, RIGHT, TOP, BOTTOM = 0, 1, 2, 3

FIELDS = ("terrain", "water", "sediment", "hardness", "flux", "velocity")


@dataclass(frozen=True)
class Cell:
    """Snapshot of one grid position."""

    terrain_height: float
    water_height: float
    sediment: float
    hardness: float
    outflow_flux: tuple[float, float, float, float]
    velocity: tuple[float, float]

    def __str__(self) -> str:
        flux = ", ".join(f"{f:.5f}" for f in self.outflow_flux)
        vel = ", ".join(f"{v:.5f}" for v in self.velocity)
        return (
            f"TerrainHeight: {self.terrain_height:.5f}, "
            f"WaterHeight: {self.water_height:.5f}, "
            f"Sediment: {self.sediment:.5f}, Hardness: {self.hardness:.5f},\n"
            f"WaterOutflowFlux: ({flux}), Velocity: ({vel})"
        )


class CellGrid:
    """Per-cell simulation state for a square grid, stored as arrays.

    All arrays are row-major with shape (map_size, map_size[, k]): ``flux``
    holds the outflow toward the left/right/top/bottom neighbors and
    ``velocity`` the (x, y) water velocity, x along columns and y along rows.
    """

    def __init__(
        self,
        terrain: np.ndarray,
        water: np.ndarray,
        sediment: np.ndarray,
        hardness: np.ndarray,
        flux: np.ndarray,
        velocity: np.ndarray,
        *,
        iterations: int = 0,
    ):
        self.terrain = terrain
        self.water = water
        self.sediment = sediment
        self.hardness = hardness
        self.flux = flux
        self.velocity = velocity
        self.iterations = int(iterations)

    @classmethod
    def zeros(cls, map_size: int) -> CellGrid:
        n = int(map_size)
        return cls(
            terrain=np.zeros((n, n), dtype=np.float64),
            water=np.zeros((n, n), dtype=np.float64),
            sediment=np.zeros((n, n), dtype=np.float64),
            hardness=np.ones((n, n), dtype=np.float64),
            flux=np.zeros((n, n, 4), dtype=np.float64),
            velocity=np.zeros((n, n, 2), dtype=np.float64),
        )

    @property
    def map_size(self) -> int:
        return int(self.terrain.shape[0])

    def copy(self) -> CellGrid:
        return CellGrid(
            *(getattr(self, name).copy() for name in FIELDS),
            iterations=self.iterations,
        )

    def assign(self, other: CellGrid) -> None:
        """Overwrite this grid's state with ``other`` without reallocating."""
        if other.map_size != self.map_size:
            raise ValueError("grids must have the same map_size")
        for name in FIELDS:
            np.copyto(getattr(self, name), getattr(other, name))
        self.iterations = other.iterations

    def cell(self, row: int, col: int) -> Cell:
        return Cell(
            terrain_height=float(self.terrain[row, col]),
            water_height=float(self.water[row, col]),
            sediment=float(self.sediment[row, col]),
            hardness=float(self.hardness[row, col]),
            outflow_flux=tuple(float(f) for f in self.flux[row, col]),
            velocity=tuple(float(v) for v in self.velocity[row, col]),
        )

    def sample_cells(self, row: int = 5, start: int = 0, count: int = 5) -> list[Cell]:
        """Consecutive cells of one row, clamped to the grid."""
        n = self.map_size
        row = min(max(int(row), 0), n - 1)
        stop = min(int(start) + int(count), n)
        return [self.cell(row, col) for col in range(max(int(start), 0), stop)]

    def total_mass(self) -> float:
        """Sum of terrain, water and sediment over the grid."""
        return float(np.sum(self.terrain) + np.sum(self.water) + np.sum(self.sediment))

    def find_nonfinite(self) -> tuple[str, int, int] | None:
        """Return (field, row, col) of the first NaN/Inf cell, or None."""
        for name in FIELDS:
            a = getattr(self, name)
            bad = ~np.isfinite(a)
            if a.ndim == 3:
                bad = np.any(bad, axis=-1)
            if bool(np.any(bad)):
                row, col = np.argwhere(bad)[0]
                return name, int(row), int(col)
        return None


class DoubleBuffer:
    """Front/back pair of grids for ping-pong updates.

    The front grid holds the last committed iteration. Work happens on the
    back grid, which becomes the front on :meth:`swap`.
    """

    def __init__(self, grid: CellGrid):
        self.front = grid
        self.back = grid.copy()

    def begin(self) -> CellGrid:
        self.back.assign(self.front)
        return self.back

    def swap(self) -> None:
        self.front, self.back = self.back, self.front


def build_grid(height_field: np.ndarray, initial_hardness: float = 1.0) -> CellGrid:
    """Create the initial simulation state from a normalized height field."""

    h = np.asarray(height_field, dtype=np.float64)
    if h.ndim != 2:
        raise ConfigurationError("height_field must be a 2D array")
    if h.shape[0] != h.shape[1]:
        raise ConfigurationError("height_field must be square")
    if h.shape[0] < 2:
        raise ConfigurationError("height_field must be at least 2x2")
    if not bool(np.all(np.isfinite(h))):
        raise ConfigurationError("height_field must be finite")

    initial_hardness = float(initial_hardness)
    if not (0.0 < initial_hardness <= 1.0):
        raise ConfigurationError("initial_hardness must be in (0, 1]")

    grid = CellGrid.zeros(h.shape[0])
    np.copyto(grid.terrain, h)
    grid.hardness.fill(initial_hardness)
    return grid
