# utils/dispatch.py
# ---------------------
# 逐像素 kernel 的并行调度
# ✅ 把图像按行切成条带，每个条带一次调用 kernel(xs, ys)，每个输出格子只由一个任务写入。

import concurrent.futures
import os

import numpy as np

DEFAULT_ROWS_PER_TASK = 16


def row_bands(height, rows_per_task):
    """[(y0, y1), ...]，覆盖 [0, height)"""
    rows_per_task = max(1, int(rows_per_task))
    return [(y0, min(y0 + rows_per_task, height)) for y0 in range(0, height, rows_per_task)]


def parallel_for(kernel, width, height, channels, dtype=np.float32,
                 rows_per_task=DEFAULT_ROWS_PER_TASK, max_workers=None):
    """
    在 width x height 网格上执行 kernel。

    Args:
        kernel: callable(xs, ys) -> (rows, width, channels) 数组，xs/ys 为同形状的坐标网格
        width, height: 网格尺寸
        channels: 每个像素的分量数
        rows_per_task: 每个任务处理的行数
        max_workers: 线程数，None 表示 CPU 核数

    Returns:
        np.ndarray: (height, width, channels)
    """
    output = np.empty((height, width, channels), dtype=dtype)
    if width == 0 or height == 0:
        return output

    if max_workers is None:
        max_workers = os.cpu_count() or 1

    xs_row = np.arange(width, dtype=np.intp)

    def run_band(y0, y1):
        ys, xs = np.meshgrid(np.arange(y0, y1, dtype=np.intp), xs_row, indexing="ij")
        output[y0:y1] = kernel(xs, ys)

    with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [executor.submit(run_band, y0, y1) for y0, y1 in row_bands(height, rows_per_task)]
        for future in concurrent.futures.as_completed(futures):
            # kernel 抛出的异常在这里重新抛出
            future.result()

    return output
