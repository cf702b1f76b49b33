from __future__ import annotations

import numpy as np
import pytest

from perlin.noise_2d import Perlin2D, fbm2
from terrain.config import NoiseParameters
from terrain.errors import ConfigurationError, DegenerateNormalizationError
from terrain.heightfield import NoiseField, generate_heightfield


class FlatNoise:
    def noise(self, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        return np.zeros(np.broadcast(x, y).shape, dtype=np.float64)


@pytest.mark.parametrize("variant", ["plain", "ridged", "combined"])
def test_heightfield_normalized(variant: str) -> None:
    params = NoiseParameters(octaves=4, scale=16.0)
    z = generate_heightfield(params, 48, variant)
    assert z.shape == (48, 48)
    assert z.dtype == np.float64
    assert float(np.min(z)) == 0.0
    assert float(np.max(z)) == 1.0


def test_heightfield_deterministic() -> None:
    params = NoiseParameters(octaves=5, scale=20.0, seed=3.5)
    a = generate_heightfield(params, 40)
    b = generate_heightfield(params, 40)
    assert np.array_equal(a, b)


def test_heightfield_independent_of_tiling_and_workers() -> None:
    params = NoiseParameters(octaves=4, scale=12.0)
    ref = generate_heightfield(params, 50, "combined", tile_rows=50)
    tiled = generate_heightfield(params, 50, "combined", tile_rows=7, workers=4)
    assert np.allclose(ref, tiled, rtol=0.0, atol=1e-12)


def test_seed_offsets_the_field() -> None:
    a = generate_heightfield(NoiseParameters(scale=10.0, seed=0.0), 32)
    b = generate_heightfield(NoiseParameters(scale=10.0, seed=17.25), 32)
    assert not np.allclose(a, b)


def test_noise_field_matches_fbm_of_scaled_coordinates() -> None:
    params = NoiseParameters(octaves=3, scale=8.0, seed=1.5, frequency=0.5)
    field = NoiseField(params)
    rows = field.sample_rows(2, 5, 10)
    assert rows.shape == (3, 10)

    xg, yg = np.meshgrid(np.arange(10.0), np.arange(2.0, 5.0))
    expected = fbm2(
        Perlin2D(seed=0),
        xg / 8.0,
        yg / 8.0,
        octaves=3,
        persistence=0.5,
        lacunarity=2.0,
        frequency=0.5,
        offset=1.5,
    )
    assert np.allclose(rows, expected)


def test_unnormalized_field_range_is_not_unit() -> None:
    params = NoiseParameters(octaves=6, scale=10.0)
    raw = NoiseField(params).sample_rows(0, 32, 32)
    assert float(np.min(raw)) < 0.0


def test_flat_basis_gives_zero_field(monkeypatch) -> None:
    monkeypatch.setattr("terrain.heightfield.Perlin2D", lambda seed=0: FlatNoise())
    z = generate_heightfield(NoiseParameters(), 8)
    assert np.array_equal(z, np.zeros((8, 8)))

    with pytest.raises(DegenerateNormalizationError):
        generate_heightfield(NoiseParameters(), 8, strict=True)


def test_heightfield_rejects_bad_arguments() -> None:
    params = NoiseParameters()
    with pytest.raises(ConfigurationError):
        generate_heightfield(params, 1)
    with pytest.raises(ConfigurationError):
        generate_heightfield(params, 16, "billow")
    with pytest.raises(ConfigurationError):
        generate_heightfield(params, 16, tile_rows=0)
    with pytest.raises(ConfigurationError):
        generate_heightfield({"octaves": 4}, 16)
