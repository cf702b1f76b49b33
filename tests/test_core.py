import numpy as np

from perlin.core import (
    fade,
    grad2_dot,
    lattice,
    lerp,
    make_permutation,
)


def test_fade_endpoints():
    t = np.array([0.0, 1.0], dtype=np.float64)
    out = fade(t)
    assert out[0] == 0.0
    assert out[1] == 1.0


def test_lerp_basic():
    a = np.array([0.0, 10.0])
    b = np.array([10.0, 20.0])
    t = np.array([0.0, 0.5])
    out = lerp(a, b, t)
    assert np.allclose(out, np.array([0.0, 15.0]))


def test_lattice_wraps_and_splits():
    i0, i1, frac = lattice(np.array([0.25, 255.5, -0.75]))
    assert i0.tolist() == [0, 255, 255]
    assert i1.tolist() == [1, 0, 0]
    assert np.allclose(frac, [0.25, 0.5, 0.25])


def test_permutation_is_doubled_and_complete():
    p = make_permutation(7)
    assert p.shape == (512,)
    assert np.array_equal(p[:256], p[256:])
    assert sorted(p[:256].tolist()) == list(range(256))


def test_grad2_dot_uses_unit_gradients():
    h = np.arange(8)
    gx = grad2_dot(h, np.ones(8), np.zeros(8))
    gy = grad2_dot(h, np.zeros(8), np.ones(8))
    assert np.allclose(np.hypot(gx, gy), 1.0)
    assert np.allclose(grad2_dot(h + 8, np.ones(8), np.zeros(8)), gx)
