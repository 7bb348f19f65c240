# stages/denoise.py
# ---------------------
# 去噪模块（xyY 空间）
# ✅ Pass 2 的第一步。沿左右上下四个方向各走最多 RADIUS_DENOISE 个像素，
# 色度距离超过阈值就停在那个方向，累加到的邻居取平均作为新色度。
# 亮度走锐化 + 直方图均衡。

import numpy as np

from stages import histogram, sharpen

RADIUS = 1
SIZE = 2 * RADIUS + 1
AREA = SIZE * SIZE

# 搜索半径上限，限制最坏情况的耗时
RADIUS_DENOISE = 35

DIRECTIONS = ((-1, 0), (1, 0), (0, -1), (0, 1))  # 左 右 上 下


def load_patch(intermediate, xs, ys):
    """读取 3x3 邻域，形状 (..., 9, 3)；越界坐标取边缘像素"""
    height, width = intermediate.shape[:2]
    xs = np.asarray(xs, dtype=np.intp)
    ys = np.asarray(ys, dtype=np.intp)

    offsets = np.arange(-RADIUS, RADIUS + 1)
    dy, dx = np.meshgrid(offsets, offsets, indexing="ij")
    px = np.clip(xs[..., None] + dx.ravel(), 0, width - 1)
    py = np.clip(ys[..., None] + dy.ravel(), 0, height - 1)
    return intermediate[py, px]


def denoise_threshold(patch, center):
    """
    阈值 = 3x3 窗口内色度最小角与最大角的距离。
    暗部（Y < 0.1）阈值放大 20 * (0.15 - Y) 倍，即最多约 3 倍。

    Returns:
        (threshold, blur)
    """
    min_xy = patch[..., :2].min(axis=-2)
    max_xy = patch[..., :2].max(axis=-2)
    threshold = np.linalg.norm(max_xy - min_xy, axis=-1).astype(np.float32)

    y = center[..., 2]
    threshold = np.where(y < 0.1, threshold * 20 * (0.15 - y), threshold).astype(np.float32)

    # 阈值高说明噪声大，相应减弱锐化
    blur = 2 * threshold + np.float32(0.8)
    return threshold, blur


def directional_mean(intermediate, xs, ys, center, threshold):
    """
    四个方向的提前退出搜索。

    Returns:
        (total, count): 包含中心像素在内的累加和 (..., 3) 与个数 (...)
    """
    height, width = intermediate.shape[:2]
    xs = np.asarray(xs, dtype=np.intp)
    ys = np.asarray(ys, dtype=np.intp)
    steps = np.arange(1, RADIUS_DENOISE + 1)

    total = center.astype(np.float32).copy()
    count = np.ones(xs.shape, dtype=np.int32)

    for dx, dy in DIRECTIONS:
        cx = xs[..., None] + dx * steps
        cy = ys[..., None] + dy * steps
        inside = (cx >= 0) & (cx < width) & (cy >= 0) & (cy < height)

        neighbours = intermediate[np.clip(cy, 0, height - 1), np.clip(cx, 0, width - 1)]
        distance = np.linalg.norm(neighbours[..., :2] - center[..., None, :2], axis=-1)
        close = inside & (distance <= threshold[..., None])

        # 第一个不满足的位置之后全部丢弃
        keep = np.logical_and.accumulate(close, axis=-1)

        total += (neighbours * keep[..., None]).sum(axis=-2)
        count += keep.sum(axis=-1, dtype=np.int32)

    return total, count


def apply(intermediate, xs, ys, context, remap):
    """
    Denoise, sharpen and equalize the intermediate pixels at (xs, ys).

    Chromaticity becomes the mean of the accepted neighbours; luminance is
    the sharpened centre value blended with its histogram remap entry.
    """
    settings = context.settings
    intermediate = np.asarray(intermediate, dtype=np.float32)

    patch = load_patch(intermediate, xs, ys)
    center = patch[..., AREA // 2, :]

    threshold, blur = denoise_threshold(patch, center)
    total, count = directional_mean(intermediate, xs, ys, center, threshold)

    result = total / count[..., None]
    luminance = sharpen.sharpen_luminance(center[..., 2], patch[..., 2],
                                          settings.sharpen_factor, blur)
    result[..., 2] = histogram.equalize(luminance, remap, settings.histo_factor)
    return result.astype(np.float32)
