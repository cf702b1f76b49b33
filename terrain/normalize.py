from __future__ import annotations

import logging
import math
from collections.abc import Iterable

import numpy as np

from terrain.errors import DegenerateNormalizationError

logger = logging.getLogger(__name__)


def min_max_partial(
    values: np.ndarray, *, fixed_point_scalar: int | None = None
) -> tuple[float, float]:
    """Return the (min, max) of one tile.

    With ``fixed_point_scalar`` the extrema are quantized to multiples of
    ``1 / fixed_point_scalar``: the minimum rounds down and the maximum rounds
    up, so the quantized range always encloses the data.
    """

    v = np.asarray(values, dtype=np.float64)
    if v.size == 0:
        raise ValueError("cannot reduce an empty tile")

    lo = float(np.min(v))
    hi = float(np.max(v))
    if fixed_point_scalar is None:
        return lo, hi

    s = int(fixed_point_scalar)
    if s <= 0:
        raise ValueError("fixed_point_scalar must be > 0")
    return math.floor(lo * s) / s, math.ceil(hi * s) / s


def merge_min_max(partials: Iterable[tuple[float, float]]) -> tuple[float, float]:
    """Fold per-tile partials into the global (min, max) on the calling thread."""
    zmin = math.inf
    zmax = -math.inf
    count = 0
    for lo, hi in partials:
        zmin = min(zmin, float(lo))
        zmax = max(zmax, float(hi))
        count += 1
    if count == 0:
        raise ValueError("no partials to merge")
    return zmin, zmax


def check_range(zmin: float, zmax: float) -> None:
    if not float(zmax) > float(zmin):
        raise DegenerateNormalizationError(zmin)


def remap01(z: np.ndarray, zmin: float, zmax: float) -> np.ndarray:
    """Linear remap so zmin -> 0 and zmax -> 1, clipped to [0, 1]."""
    zmin = float(zmin)
    zmax = float(zmax)
    check_range(zmin, zmax)
    out = (np.asarray(z, dtype=np.float64) - zmin) / (zmax - zmin)
    return np.clip(out, 0.0, 1.0)


def normalize01(
    z: np.ndarray,
    *,
    strict: bool = False,
    fixed_point_scalar: int | None = None,
) -> np.ndarray:
    """Two-pass global normalization of a whole array.

    A constant field is degenerate: with ``strict`` the
    :class:`DegenerateNormalizationError` propagates, otherwise the result is
    an all-zero field.

    With ``fixed_point_scalar`` the remap uses the quantized extrema, which
    enclose the data, so the result only reaches 0.0 and 1.0 when the true
    extrema lie on the quantization grid.
    """

    z = np.asarray(z, dtype=np.float64)
    zmin, zmax = min_max_partial(z, fixed_point_scalar=fixed_point_scalar)
    try:
        return remap01(z, zmin, zmax)
    except DegenerateNormalizationError as exc:
        if strict:
            raise
        logger.warning("%s; using a constant 0.0 field", exc)
        return np.zeros_like(z)
