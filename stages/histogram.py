# stages/histogram.py
# ---------------------
# 亮度直方图 + 均衡化查找表
# ✅ Pass 1 中所有任务并发累加直方图；Pass 1 结束后一次性生成 remap 表，Pass 2 只读。

import threading

import numpy as np

HISTOGRAM_SLICES = 4096


def histogram_index(values):
    """floor(v * 4096)，限制在 [0, 4095]"""
    v = np.nan_to_num(np.asarray(values, dtype=np.float32), nan=0.0)
    index = np.floor(v * HISTOGRAM_SLICES)
    return np.clip(index, 0, HISTOGRAM_SLICES - 1).astype(np.intp)


class HistogramAccumulator:
    """
    线程安全的亮度直方图。

    每次 add 先在本地 bincount，再在锁内合并，顺序无关。
    build_remap 之后直方图冻结，继续 add 会报错。
    """

    def __init__(self, slices=HISTOGRAM_SLICES):
        self.slices = slices
        self._counts = np.zeros(slices, dtype=np.int64)
        self._lock = threading.Lock()
        self._remap = None

    def add(self, luminance):
        local = np.bincount(histogram_index(luminance).ravel(), minlength=self.slices)
        with self._lock:
            if self._remap is not None:
                raise RuntimeError("直方图已生成 remap 表，不能再累加")
            self._counts += local[:self.slices]

    @property
    def counts(self):
        with self._lock:
            return self._counts.copy()

    @property
    def total(self):
        with self._lock:
            return int(self._counts.sum())

    @property
    def remap(self):
        return self._remap

    def build_remap(self, pixel_count=None):
        """
        remap[i] = sum(histogram[0..i]) / pixel_count

        pixel_count 默认为累加的像素总数。总数为 0 时返回全 0。
        """
        with self._lock:
            cumulative = np.cumsum(self._counts)
            if pixel_count is None:
                pixel_count = int(cumulative[-1])

            if pixel_count > 0:
                remap = (cumulative / pixel_count).astype(np.float32)
            else:
                remap = np.zeros(self.slices, dtype=np.float32)

            remap.setflags(write=False)
            self._remap = remap

        print(f"Histogram: 像素总数 {pixel_count}, remap 范围 [{remap[0]:.4f}, {remap[-1]:.4f}]")
        return remap


def equalize(luminance, remap, histo_factor):
    """原始亮度与 remap 查表结果按 histo_factor 混合"""
    luminance = np.asarray(luminance, dtype=np.float32)
    looked_up = np.asarray(remap, dtype=np.float32)[histogram_index(luminance)]
    h = np.float32(histo_factor)
    return (h * looked_up + (1 - h) * luminance).astype(np.float32)
