import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import numpy as np
import pytest

from stages import lsc


def make_gain_map():
    # 2x2 格子，4 通道各自不同
    gain_map = np.zeros((2, 2, 4), dtype=np.float32)
    gain_map[0, 0] = [1.0, 1.0, 1.0, 1.0]
    gain_map[0, 1] = [3.0, 3.0, 3.0, 3.0]
    gain_map[1, 0] = [5.0, 5.0, 5.0, 5.0]
    gain_map[1, 1] = [7.0, 7.0, 7.0, 7.0]
    gain_map[..., 1] *= 2
    return gain_map


def test_cell_origin():
    gains = lsc.sample_gain(make_gain_map(), 0, 0, 4, 4)
    np.testing.assert_allclose(gains, [1.0, 2.0, 1.0, 1.0])


def test_bilinear_between_cells():
    # x=1 → 网格位置 0.5
    gains = lsc.sample_gain(make_gain_map(), 1, 0, 4, 4)
    np.testing.assert_allclose(gains, [2.0, 4.0, 2.0, 2.0])

    gains = lsc.sample_gain(make_gain_map(), 1, 1, 4, 4)
    np.testing.assert_allclose(gains[0], (1 + 3 + 5 + 7) / 4)


def test_clamps_at_last_cell():
    # x=3 → 网格位置 1.5，下一格越界，取最后一格
    gains = lsc.sample_gain(make_gain_map(), 3, 0, 4, 4)
    np.testing.assert_allclose(gains[0], 3.0)

    gains = lsc.sample_gain(make_gain_map(), 3, 3, 4, 4)
    np.testing.assert_allclose(gains[0], 7.0)


def test_shape_follows_coordinates():
    ys, xs = np.meshgrid(np.arange(4), np.arange(4), indexing="ij")
    gains = lsc.sample_gain(make_gain_map(), xs[..., None] + np.zeros(9, int), ys[..., None], 4, 4)
    assert gains.shape == (4, 4, 9, 4)


class _Calib:
    gain_map = None


class _Context:
    calibration = _Calib()
    raw_width = 4
    raw_height = 4


def test_apply_without_gain_map():
    gains = lsc.apply(np.zeros((2, 3), int), np.zeros((2, 3), int), _Context())
    assert gains.shape == (2, 3, 4)
    assert np.all(gains == 1.0)


def test_apply_with_gain_map():
    context = _Context()
    context.calibration = _Calib()
    context.calibration.gain_map = make_gain_map()
    assert lsc.apply(0, 0, context)[1] == pytest.approx(2.0)
