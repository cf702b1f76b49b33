import numpy as np
import pytest

from perlin.noise_2d import Perlin2D, combined2, fbm2, ridged2


def test_perlin2d_deterministic_for_seed():
    p1 = Perlin2D(seed=123)
    p2 = Perlin2D(seed=123)
    x = np.array([0.1, 1.25, 10.5])
    y = np.array([0.2, 2.75, 9.0])
    assert np.allclose(p1.noise(x, y), p2.noise(x, y))


def test_perlin2d_changes_with_seed():
    p1 = Perlin2D(seed=1)
    p2 = Perlin2D(seed=2)
    x = np.array([0.1, 1.25, 10.5])
    y = np.array([0.2, 2.75, 9.0])
    assert not np.allclose(p1.noise(x, y), p2.noise(x, y))


def test_fbm2_shape_and_finite():
    p = Perlin2D(seed=0)
    xg, yg = np.meshgrid(np.linspace(0, 3, 64), np.linspace(0, 3, 32))
    z = fbm2(p, xg, yg, octaves=4, lacunarity=2.0, persistence=0.5)
    assert z.shape == xg.shape
    assert np.isfinite(z).all()


def test_perlin2d_reasonable_range():
    p = Perlin2D(seed=0)
    xg, yg = np.meshgrid(np.linspace(0, 5, 64), np.linspace(0, 5, 64))
    z = p.noise(xg, yg)
    assert float(np.max(np.abs(z))) < 2.0


def test_perlin2d_continuity_small_step():
    p = Perlin2D(seed=0)
    xg, yg = np.meshgrid(np.linspace(0, 5, 64), np.linspace(0, 5, 64))
    d = 1e-4
    z0 = p.noise(xg, yg)
    z1 = p.noise(xg + d, yg)
    assert float(np.max(np.abs(z1 - z0))) < 0.1


def test_perlin2d_reference_values():
    p = Perlin2D(seed=0)
    pts = np.array(
        [
            [0.1, 0.2],
            [1.25, 2.75],
            [10.5, 9.0],
            [2.25, 3.75],
        ],
        dtype=np.float64,
    )
    out = p.noise(pts[:, 0], pts[:, 1])
    expected = np.array(
        [
            -0.19122562499637968,
            0.024773190814829205,
            -0.07322330470336313,
            -0.2761086726516018,
        ],
        dtype=np.float64,
    )
    assert np.allclose(out, expected)


def test_fbm2_single_octave_is_scaled_noise():
    p = Perlin2D(seed=0)
    x = np.array([0.1, 1.25, 10.5])
    y = np.array([0.2, 2.75, 9.0])
    z = fbm2(p, x, y, octaves=1, amplitude=2.0, frequency=1.5, offset=0.25)
    assert np.allclose(z, 2.0 * p.noise(x * 1.5 + 0.25, y * 1.5 + 0.25))


def test_fbm2_layers_weighted_by_persistence():
    p = Perlin2D(seed=3)
    x = np.array([0.3, 4.7, 7.1])
    y = np.array([1.9, 0.4, 5.5])
    z = fbm2(p, x, y, octaves=3, persistence=0.5, lacunarity=2.0)
    expected = (
        p.noise(x, y)
        + 0.5 * p.noise(2.0 * x, 2.0 * y)
        + 0.25 * p.noise(4.0 * x, 4.0 * y)
    )
    assert np.allclose(z, expected)


def test_ridged2_non_negative_and_bounded():
    p = Perlin2D(seed=0)
    xg, yg = np.meshgrid(np.linspace(0, 3, 64), np.linspace(0, 3, 32))
    z = ridged2(p, xg, yg, octaves=4, persistence=0.5, exponentiation=2.0)
    assert z.shape == xg.shape
    assert float(np.min(z)) >= 0.0
    assert float(np.max(z)) <= 1.0 + 0.5 + 0.25 + 0.125


def test_ridged2_deterministic():
    p1 = Perlin2D(seed=0)
    p2 = Perlin2D(seed=0)
    xg, yg = np.meshgrid(np.linspace(0, 3, 64), np.linspace(0, 3, 32))
    z1 = ridged2(p1, xg, yg, octaves=4, lacunarity=2.0, persistence=0.5)
    z2 = ridged2(p2, xg, yg, octaves=4, lacunarity=2.0, persistence=0.5)
    assert np.allclose(z1, z2)


def test_combined2_is_mean_of_plain_and_ridged():
    p = Perlin2D(seed=5)
    xg, yg = np.meshgrid(np.linspace(0, 6, 40), np.linspace(0, 6, 40))
    kwargs = dict(octaves=5, persistence=0.45, lacunarity=2.1, offset=3.0)
    plain = fbm2(p, xg, yg, **kwargs)
    ridged = ridged2(p, xg, yg, exponentiation=1.5, **kwargs)
    combined = combined2(p, xg, yg, exponentiation=1.5, **kwargs)
    assert np.allclose(combined, 0.5 * (plain + ridged))


def test_fbm2_rejects_zero_octaves():
    p = Perlin2D(seed=0)
    with pytest.raises(ValueError):
        fbm2(p, np.zeros(3), np.zeros(3), octaves=0)
