from __future__ import annotations

import numpy as np


def fade(t: np.ndarray) -> np.ndarray:
    """Quintic fade curve used by Improved Perlin Noise (2002)."""
    return t * t * t * (t * (t * 6.0 - 15.0) + 10.0)


def lerp(a: np.ndarray, b: np.ndarray, t: np.ndarray) -> np.ndarray:
    return a + t * (b - a)


def make_permutation(seed: int) -> np.ndarray:
    rng = np.random.default_rng(int(seed))
    p = rng.permutation(256).astype(np.int32)
    return np.concatenate([p, p])


def lattice(v: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Split coordinates into wrapped lattice indices and the fractional part.

    Returns (i0, i1, frac) where i0/i1 are the surrounding lattice indices in
    [0, 255].
    """

    v = np.asarray(v, dtype=np.float64)
    base = np.floor(v)
    i0 = base.astype(np.int64) & 255
    i1 = (i0 + 1) & 255
    return i0, i1, v - base


def hash2(perm: np.ndarray, xi: np.ndarray, yi: np.ndarray) -> np.ndarray:
    return perm[perm[xi] + yi]


_GRAD2_DIAG8 = np.array(
    [
        [1.0, 0.0],
        [-1.0, 0.0],
        [0.0, 1.0],
        [0.0, -1.0],
        [1.0, 1.0],
        [-1.0, 1.0],
        [1.0, -1.0],
        [-1.0, -1.0],
    ],
    dtype=np.float64,
)
_GRAD2_DIAG8 /= np.linalg.norm(_GRAD2_DIAG8, axis=1, keepdims=True)


def grad2_dot(h: np.ndarray, dx: np.ndarray, dy: np.ndarray) -> np.ndarray:
    """Dot product of the hashed corner gradient with the offset (dx, dy)."""
    g = _GRAD2_DIAG8[(h % 8).astype(np.int32)]
    return g[..., 0] * dx + g[..., 1] * dy
