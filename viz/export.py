from __future__ import annotations

import io
import logging
from pathlib import Path

import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)


def heights_to_png_bytes(heights: np.ndarray) -> bytes:
    """Encode a 2D height grid as an 8-bit grayscale PNG.

    Values are min/max normalized to [0, 255]. Degenerate (constant) grids
    become all zeros.
    """

    z = np.asarray(heights, dtype=np.float64)
    if z.ndim != 2:
        raise ValueError("expected a 2D array")

    zmin = float(np.min(z))
    zmax = float(np.max(z))
    if zmax == zmin:
        img = np.zeros(z.shape, dtype=np.uint8)
    else:
        zn = (z - zmin) / (zmax - zmin)
        img = np.clip(zn * 255.0, 0.0, 255.0).astype(np.uint8)

    out = io.BytesIO()
    Image.fromarray(img, mode="L").save(out, format="PNG")
    return out.getvalue()


def heights_to_npy_bytes(heights: np.ndarray) -> bytes:
    out = io.BytesIO()
    np.save(out, np.asarray(heights))
    return out.getvalue()


def heights_to_obj_bytes(heights: np.ndarray, *, z_scale: float = 1.0) -> bytes:
    """Triangulated OBJ mesh with one vertex per cell."""
    z = np.asarray(heights, dtype=np.float64)
    if z.ndim != 2:
        raise ValueError("expected a 2D array")

    z_scale = float(z_scale)
    h, w = z.shape
    if h < 2 or w < 2:
        raise ValueError("height grid must be at least 2x2")

    def vid(x: int, y: int) -> int:
        return y * w + x + 1

    lines: list[str] = ["# eroded heightfield\n", f"# grid={w}x{h}\n"]
    for y in range(h):
        for x in range(w):
            lines.append(f"v {x:.6f} {y:.6f} {(z[y, x] * z_scale):.6f}\n")

    for y in range(h - 1):
        for x in range(w - 1):
            v00 = vid(x, y)
            v10 = vid(x + 1, y)
            v01 = vid(x, y + 1)
            v11 = vid(x + 1, y + 1)
            lines.append(f"f {v00} {v10} {v01}\n")
            lines.append(f"f {v10} {v11} {v01}\n")

    return "".join(lines).encode("utf-8")


_ENCODERS = {
    ".png": heights_to_png_bytes,
    ".npy": heights_to_npy_bytes,
    ".obj": heights_to_obj_bytes,
}


class FileHeightSink:
    """Height sink that writes each received grid to ``path``.

    The format follows the suffix (.png, .npy or .obj).
    """

    def __init__(self, path: str | Path, *, z_scale: float = 1.0):
        self.path = Path(path)
        suffix = self.path.suffix.lower()
        if suffix not in _ENCODERS:
            raise ValueError(
                f"unsupported height sink format: {suffix or self.path.name}"
            )
        self.suffix = suffix
        self.z_scale = float(z_scale)

    def encode(self, heights: np.ndarray) -> bytes:
        if self.suffix == ".obj":
            return heights_to_obj_bytes(heights, z_scale=self.z_scale)
        return _ENCODERS[self.suffix](heights)

    def set_heights(self, heights: np.ndarray, resolution: int) -> None:
        z = np.asarray(heights)
        if z.shape != (int(resolution), int(resolution)):
            raise ValueError(
                f"expected a {resolution}x{resolution} grid, got {z.shape}"
            )
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_bytes(self.encode(z))
        logger.info("Wrote %s", self.path)
