from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from perlin.noise_2d import Noise2D, Perlin2D, combined2, fbm2, ridged2
from terrain.config import (
    FBMVariant,
    NoiseParameters,
    coerce_variant,
    validate_map_size,
)
from terrain.errors import ConfigurationError, DegenerateNormalizationError
from terrain.normalize import check_range, merge_min_max, min_max_partial, remap01

logger = logging.getLogger(__name__)

_FBM = {
    FBMVariant.PLAIN: fbm2,
    FBMVariant.RIDGED: ridged2,
    FBMVariant.COMBINED: combined2,
}


class NoiseField:
    """Unnormalized FBM height as a pure function of grid coordinates.

    ``x`` is the column index and ``y`` the row index. Coordinates are divided
    by ``params.scale`` and offset by ``params.seed`` before sampling; the
    permutation table of the basis noise is seeded by ``basis_seed``.
    """

    def __init__(
        self,
        params: NoiseParameters,
        *,
        variant: FBMVariant | str = FBMVariant.PLAIN,
        basis: Noise2D | None = None,
        basis_seed: int = 0,
    ):
        self.params = params
        self.variant = coerce_variant(variant)
        self.basis = basis if basis is not None else Perlin2D(seed=int(basis_seed))

    def __call__(self, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        p = self.params
        x = np.asarray(x, dtype=np.float64) / p.scale
        y = np.asarray(y, dtype=np.float64) / p.scale
        kwargs = dict(
            octaves=p.octaves,
            persistence=p.persistence,
            lacunarity=p.lacunarity,
            amplitude=p.amplitude,
            frequency=p.frequency,
            offset=p.seed,
        )
        if self.variant is not FBMVariant.PLAIN:
            kwargs["exponentiation"] = p.exponentiation
        return _FBM[self.variant](self.basis, x, y, **kwargs)

    def sample_rows(self, row_start: int, row_stop: int, map_size: int) -> np.ndarray:
        """Evaluate rows [row_start, row_stop) of a map_size x map_size grid."""
        xs = np.arange(map_size, dtype=np.float64)
        ys = np.arange(row_start, row_stop, dtype=np.float64)
        xg, yg = np.meshgrid(xs, ys)
        return self(xg, yg)


def _row_bands(map_size: int, tile_rows: int) -> list[tuple[int, int]]:
    return [
        (start, min(start + tile_rows, map_size))
        for start in range(0, map_size, tile_rows)
    ]


def generate_heightfield(
    params: NoiseParameters,
    map_size: int,
    variant: FBMVariant | str = FBMVariant.PLAIN,
    *,
    basis_seed: int = 0,
    tile_rows: int = 64,
    workers: int | None = None,
    fixed_point_scalar: int | None = None,
    strict: bool = False,
) -> np.ndarray:
    """Generate a normalized [0, 1] heightfield of shape (map_size, map_size).

    Pass 1 evaluates the noise field in bands of ``tile_rows`` rows and
    reduces each band to a (min, max) partial; the partials are merged on the
    calling thread. Pass 2 remaps every band. ``workers`` > 1 runs both passes
    on a thread pool; the result does not depend on it.

    ``fixed_point_scalar`` quantizes the band extrema (see
    :func:`terrain.normalize.min_max_partial`); the output then stays inside
    [0, 1] but need not touch either end.

    A constant field yields all zeros unless ``strict`` is set, in which case
    :class:`DegenerateNormalizationError` is raised.
    """

    map_size = validate_map_size(map_size)
    if not isinstance(params, NoiseParameters):
        raise ConfigurationError("params must be NoiseParameters")
    tile_rows = int(tile_rows)
    if tile_rows <= 0:
        raise ConfigurationError("tile_rows must be >= 1")
    if workers is not None and int(workers) <= 0:
        raise ConfigurationError("workers must be >= 1")

    field = NoiseField(params, variant=variant, basis_seed=basis_seed)
    bands = _row_bands(map_size, tile_rows)
    out = np.empty((map_size, map_size), dtype=np.float64)

    def pass1(band: tuple[int, int]) -> tuple[float, float]:
        start, stop = band
        out[start:stop] = field.sample_rows(start, stop, map_size)
        return min_max_partial(out[start:stop], fixed_point_scalar=fixed_point_scalar)

    with ThreadPoolExecutor(max_workers=1 if workers is None else int(workers)) as pool:
        partials = list(pool.map(pass1, bands))
        zmin, zmax = merge_min_max(partials)
        logger.debug(
            "Reduced %d bands of %s FBM: min=%.6g max=%.6g",
            len(bands),
            field.variant.value,
            zmin,
            zmax,
        )

        try:
            check_range(zmin, zmax)
        except DegenerateNormalizationError as exc:
            if strict:
                raise
            logger.warning("%s; using a constant 0.0 field", exc)
            out.fill(0.0)
            return out

        def pass2(band: tuple[int, int]) -> None:
            start, stop = band
            out[start:stop] = remap01(out[start:stop], zmin, zmax)

        list(pool.map(pass2, bands))

    logger.info(
        "Generated %dx%d %s heightfield (octaves=%d)",
        map_size,
        map_size,
        field.variant.value,
        params.octaves,
    )
    return out
