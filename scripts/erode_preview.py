from __future__ import annotations

import argparse
import json
import logging
import math
import sys
from pathlib import Path

import numpy as np
from PIL import Image


def _gray01_to_pil(gray01: np.ndarray) -> Image.Image:
    g = np.asarray(gray01, dtype=np.float64)
    gmin = float(np.min(g))
    gmax = float(np.max(g))
    g = (g - gmin) / (gmax - gmin) if gmax > gmin else np.zeros_like(g)
    img = (np.clip(g, 0.0, 1.0) * 255.0).astype(np.uint8)
    return Image.fromarray(img, mode="L")


def _load_json(path: str | None) -> dict:
    if path is None:
        return {}
    with open(path, encoding="utf-8") as fh:
        return json.load(fh)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Generate an FBM heightfield, erode it and write previews."
    )
    parser.add_argument("--size", type=int, default=256, help="grid side length")
    parser.add_argument("--iterations", type=int, default=1000)
    parser.add_argument(
        "--variant", choices=["plain", "ridged", "combined"], default="plain"
    )
    parser.add_argument(
        "--mode", choices=["in_place", "double_buffer"], default="double_buffer"
    )
    parser.add_argument(
        "--pipeline", choices=["reference", "simplified"], default="reference"
    )
    parser.add_argument("--hardness", type=float, default=1.0, help="initial hardness")
    parser.add_argument("--noise-config", help="JSON file with NoiseParameters fields")
    parser.add_argument("--config", help="JSON file with ErosionParams fields")
    parser.add_argument("--out", default="assets", help="output directory")
    parser.add_argument(
        "--frames-every", type=int, default=0, help="GIF frame interval (0 = off)"
    )
    parser.add_argument("--log-dir", default=None)
    parser.add_argument("--verbose", "-v", action="store_true", help="debug logging")
    parser.add_argument("--progress", action="store_true", help="show a progress bar")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(root))

    from terrain import (
        ErosionParams,
        NoiseParameters,
        build_grid,
        export_heights,
        generate_heightfield,
        log_sample_cells,
        push_heights,
        run_erosion,
        setup_logger,
    )
    from viz.export import FileHeightSink

    args = _parse_args(argv)
    setup_logger(logging.DEBUG if args.verbose else logging.INFO, log_dir=args.log_dir)
    log = logging.getLogger("erode_preview")

    noise_params = NoiseParameters.from_mapping(_load_json(args.noise_config))
    erosion_params = ErosionParams.from_mapping(_load_json(args.config))

    out_dir = Path(args.out)
    out_dir.mkdir(parents=True, exist_ok=True)

    base01 = generate_heightfield(noise_params, args.size, args.variant)
    _gray01_to_pil(base01).save(out_dir / "heightfield_before.png")

    grid = build_grid(base01, initial_hardness=args.hardness)
    log_sample_cells(grid, height_scale=erosion_params.height_scale)

    frames: list[Image.Image] = []

    def collect(iteration: int, state) -> None:
        frames.append(_gray01_to_pil(state.terrain))

    run_erosion(
        grid,
        erosion_params,
        args.iterations,
        args.mode,
        pipeline=args.pipeline,
        trace=collect if args.frames_every > 0 else None,
        trace_every=max(args.frames_every, 1),
        progress=args.progress,
    )
    log_sample_cells(grid, height_scale=erosion_params.height_scale)

    heights = export_heights(grid)
    _gray01_to_pil(heights).save(out_dir / "heightfield_after.png")
    _gray01_to_pil(grid.water).save(out_dir / "water.png")
    _gray01_to_pil(heights - base01).save(out_dir / "height_change.png")

    z_scale = erosion_params.height_scale
    push_heights(grid, FileHeightSink(out_dir / "terrain.obj", z_scale=z_scale))
    push_heights(grid, FileHeightSink(out_dir / "terrain.npy"))

    if frames:
        duration_ms = int(math.ceil(1000.0 / 12.0))
        frames[0].save(
            out_dir / "erosion.gif",
            save_all=True,
            append_images=frames[1:],
            duration=duration_ms,
            loop=0,
            optimize=True,
        )

    log.info(
        "Height change: min=%.5f max=%.5f",
        float(np.min(heights - base01)),
        float(np.max(heights - base01)),
    )


if __name__ == "__main__":
    main()
