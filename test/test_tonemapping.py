import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import itertools

import numpy as np
import pytest

from stages import tonemapping

# 在 [0, 1] 上单调递增
COEFFS = [-0.5, 0.8, 0.7, 0.0]


def hue(rgb):
    s = np.sort(rgb, axis=-1)
    return (s[..., 1] - s[..., 0]) / (s[..., 2] - s[..., 0])


def test_hue_preserved():
    rng = np.random.default_rng(2)
    rgb = rng.uniform(0.0, 1.0, size=(2000, 3)).astype(np.float32)
    rgb = rgb[np.ptp(rgb, axis=-1) > 1e-2]

    out = tonemapping.apply(rgb, COEFFS)

    np.testing.assert_allclose(hue(out), hue(rgb), atol=1e-4)
    # 通道大小顺序不变
    np.testing.assert_array_equal(np.argmax(out, axis=-1), np.argmax(rgb, axis=-1))
    np.testing.assert_array_equal(np.argmin(out, axis=-1), np.argmin(rgb, axis=-1))


def test_gray_pixel_maps_to_curve_of_max():
    out = tonemapping.apply([0.4, 0.4, 0.4], COEFFS)
    expected = -0.5 * 0.4 ** 3 + 0.8 * 0.4 ** 2 + 0.7 * 0.4
    np.testing.assert_allclose(out, [expected] * 3, rtol=1e-5)


def test_identity_curve():
    rgb = np.array([[0.9, 0.1, 0.5], [0.2, 0.7, 0.3]], dtype=np.float32)
    np.testing.assert_allclose(tonemapping.apply(rgb, [0, 0, 1, 0]), rgb, atol=1e-6)


def test_sort_network_never_produces_impossible_codes():
    values = list(itertools.product([0.0, 1.0, 2.0], repeat=3))
    sorted_rgb, code = tonemapping.sort_network(np.array(values, dtype=np.float32))

    assert set(code.tolist()) <= set(tonemapping.UNSORT_ORDER)
    np.testing.assert_array_equal(sorted_rgb, np.sort(values, axis=-1))


@pytest.mark.parametrize("rgb", list(itertools.permutations([0.1, 0.5, 0.9])))
def test_unsort_inverts_sort(rgb):
    sorted_rgb, code = tonemapping.sort_network(np.array(rgb, dtype=np.float32))
    np.testing.assert_allclose(tonemapping.unsort(sorted_rgb, code), rgb)


@pytest.mark.parametrize("code", [4, 5])
def test_impossible_code_fails_loudly(code):
    with pytest.raises(RuntimeError):
        tonemapping.unsort(np.array([0.1, 0.2, 0.3], dtype=np.float32), code)
