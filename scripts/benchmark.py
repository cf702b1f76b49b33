from __future__ import annotations

import sys
import time
from pathlib import Path


def _timeit(label: str, fn) -> float:
    t0 = time.perf_counter()
    fn()
    t1 = time.perf_counter()
    ms = (t1 - t0) * 1000.0
    print(f"{label}: {ms:.2f} ms")
    return ms


def main() -> None:
    """Quick CPU benchmark.

    Rough targets (laptop-class CPU):
    - heightfield 512x512, 6 octaves: < ~300ms
    - erosion 128x128, 100 iterations: < ~1s per execution mode
    """

    root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(root))

    from terrain import (
        ErosionParams,
        NoiseParameters,
        build_grid,
        generate_heightfield,
        run_erosion,
    )

    noise_params = NoiseParameters(octaves=6, scale=120.0)
    erosion_params = ErosionParams()

    for variant in ("plain", "ridged", "combined"):
        _timeit(
            f"generate_heightfield 512x512 ({variant})",
            lambda: generate_heightfield(noise_params, 512, variant),
        )

    _timeit(
        "generate_heightfield 512x512 (plain, 4 workers)",
        lambda: generate_heightfield(noise_params, 512, "plain", workers=4),
    )

    base01 = generate_heightfield(noise_params, 128, "plain")
    for mode in ("in_place", "double_buffer"):
        _timeit(
            f"run_erosion 128x128 x100 ({mode})",
            lambda: run_erosion(build_grid(base01), erosion_params, 100, mode),
        )
    _timeit(
        "run_erosion 128x128 x100 (simplified pipeline)",
        lambda: run_erosion(
            build_grid(base01), erosion_params, 100, pipeline="simplified"
        ),
    )


if __name__ == "__main__":
    main()
