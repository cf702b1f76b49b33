from __future__ import annotations

from collections.abc import Iterator
from typing import Protocol

import numpy as np

from .core import fade, grad2_dot, hash2, lattice, lerp, make_permutation


class Noise2D(Protocol):
    def noise(self, x: np.ndarray, y: np.ndarray) -> np.ndarray:  # pragma: no cover
        ...


class Perlin2D:
    def __init__(self, *, seed: int = 0):
        self.seed = int(seed)
        self.perm = make_permutation(self.seed)

    def noise(self, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        xi0, xi1, xf = lattice(x)
        yi0, yi1, yf = lattice(y)
        u = fade(xf)
        v = fade(yf)

        p = self.perm
        d00 = grad2_dot(hash2(p, xi0, yi0), xf, yf)
        d01 = grad2_dot(hash2(p, xi0, yi1), xf, yf - 1.0)
        d10 = grad2_dot(hash2(p, xi1, yi0), xf - 1.0, yf)
        d11 = grad2_dot(hash2(p, xi1, yi1), xf - 1.0, yf - 1.0)

        x_lerp0 = lerp(d00, d10, u)
        x_lerp1 = lerp(d01, d11, u)
        return lerp(x_lerp0, x_lerp1, v)


def _layers(
    noise: Noise2D,
    x: np.ndarray,
    y: np.ndarray,
    *,
    octaves: int,
    persistence: float,
    lacunarity: float,
    amplitude: float,
    frequency: float,
    offset: float,
) -> Iterator[tuple[float, np.ndarray]]:
    """Yield (weight, signed noise) for each octave layer."""

    octaves = int(octaves)
    if octaves < 1:
        raise ValueError("octaves must be >= 1")

    amp = float(amplitude)
    freq = float(frequency)
    offset = float(offset)
    for _ in range(octaves):
        yield amp, noise.noise(x * freq + offset, y * freq + offset)
        amp *= float(persistence)
        freq *= float(lacunarity)


def fbm2(
    noise: Noise2D,
    x: np.ndarray,
    y: np.ndarray,
    *,
    octaves: int = 4,
    persistence: float = 0.5,
    lacunarity: float = 2.0,
    amplitude: float = 1.0,
    frequency: float = 1.0,
    offset: float = 0.0,
) -> np.ndarray:
    """Fractal Brownian motion: weighted sum of signed noise layers.

    Layer ``i`` samples ``noise(p * frequency * lacunarity**i + offset)`` and
    is weighted by ``amplitude * persistence**i``. The sum is not normalized.
    """

    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)

    total = np.zeros(np.broadcast(x, y).shape, dtype=np.float64)
    for w, n in _layers(
        noise,
        x,
        y,
        octaves=octaves,
        persistence=persistence,
        lacunarity=lacunarity,
        amplitude=amplitude,
        frequency=frequency,
        offset=offset,
    ):
        total += w * n
    return total


def ridged2(
    noise: Noise2D,
    x: np.ndarray,
    y: np.ndarray,
    *,
    octaves: int = 4,
    persistence: float = 0.5,
    lacunarity: float = 2.0,
    exponentiation: float = 2.0,
    amplitude: float = 1.0,
    frequency: float = 1.0,
    offset: float = 0.0,
) -> np.ndarray:
    """Ridged FBM: each layer becomes ``(1 - |n|) ** exponentiation``."""

    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    exponentiation = float(exponentiation)

    total = np.zeros(np.broadcast(x, y).shape, dtype=np.float64)
    for w, n in _layers(
        noise,
        x,
        y,
        octaves=octaves,
        persistence=persistence,
        lacunarity=lacunarity,
        amplitude=amplitude,
        frequency=frequency,
        offset=offset,
    ):
        ridge = np.clip(1.0 - np.abs(n), 0.0, None)
        total += w * np.power(ridge, exponentiation)
    return total


def combined2(
    noise: Noise2D,
    x: np.ndarray,
    y: np.ndarray,
    *,
    octaves: int = 4,
    persistence: float = 0.5,
    lacunarity: float = 2.0,
    exponentiation: float = 2.0,
    amplitude: float = 1.0,
    frequency: float = 1.0,
    offset: float = 0.0,
) -> np.ndarray:
    """Equal-weight average of the plain and ridged sums.

    Both sums are accumulated from the same layer samples, so this equals
    ``0.5 * (fbm2(...) + ridged2(...))``.
    """

    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    exponentiation = float(exponentiation)

    plain = np.zeros(np.broadcast(x, y).shape, dtype=np.float64)
    ridged = np.zeros_like(plain)
    for w, n in _layers(
        noise,
        x,
        y,
        octaves=octaves,
        persistence=persistence,
        lacunarity=lacunarity,
        amplitude=amplitude,
        frequency=frequency,
        offset=offset,
    ):
        plain += w * n
        ridged += w * np.power(np.clip(1.0 - np.abs(n), 0.0, None), exponentiation)
    return 0.5 * (plain + ridged)
