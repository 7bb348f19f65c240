import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import concurrent.futures

import numpy as np
import pytest

from stages import histogram
from stages.histogram import HISTOGRAM_SLICES, HistogramAccumulator


def test_histogram_index_clamps():
    idx = histogram.histogram_index([-0.5, 0.0, 0.5, 0.99999, 1.0, 3.0, np.nan])
    np.testing.assert_array_equal(idx, [0, 0, 2048, 4095, 4095, 4095, 0])


def test_remap_monotonic_and_ends_at_one():
    rng = np.random.default_rng(3)
    acc = HistogramAccumulator()
    acc.add(rng.beta(2, 5, size=10000))

    remap = acc.build_remap()

    assert remap.shape == (HISTOGRAM_SLICES,)
    assert np.all(np.diff(remap) >= 0)
    assert remap[-1] == pytest.approx(1.0)
    assert remap[0] >= 0.0


def test_remap_uses_pixel_count():
    acc = HistogramAccumulator()
    acc.add(np.full(10, 0.25))
    remap = acc.build_remap(pixel_count=20)
    assert remap[1023] == 0.0
    assert remap[1024] == pytest.approx(0.5)


def test_empty_histogram_gives_zero_remap():
    remap = HistogramAccumulator().build_remap()
    assert np.all(remap == 0.0)


def test_concurrent_add_loses_nothing():
    acc = HistogramAccumulator()
    chunk = np.linspace(0.0, 1.0, 1000)

    with concurrent.futures.ThreadPoolExecutor(max_workers=8) as executor:
        for future in [executor.submit(acc.add, chunk) for _ in range(64)]:
            future.result()

    assert acc.total == 64 * 1000
    np.testing.assert_array_equal(acc.counts, 64 * np.bincount(
        histogram.histogram_index(chunk), minlength=HISTOGRAM_SLICES))


def test_add_after_remap_is_rejected():
    acc = HistogramAccumulator()
    acc.add([0.5])
    acc.build_remap()
    with pytest.raises(RuntimeError):
        acc.add([0.5])


def test_remap_is_read_only():
    acc = HistogramAccumulator()
    acc.add([0.5])
    remap = acc.build_remap()
    with pytest.raises(ValueError):
        remap[0] = 1.0


def test_equalize_blend():
    remap = np.linspace(0.0, 1.0, HISTOGRAM_SLICES, dtype=np.float32) ** 2
    y = np.array([0.25, 0.5], dtype=np.float32)

    np.testing.assert_allclose(histogram.equalize(y, remap, 0.0), y)
    np.testing.assert_allclose(histogram.equalize(y, remap, 1.0),
                               remap[histogram.histogram_index(y)])
    np.testing.assert_allclose(histogram.equalize(y, remap, 0.5),
                               0.5 * y + 0.5 * remap[histogram.histogram_index(y)], rtol=1e-6)
