# stages/lsc.py
# ---------------------
# 镜头阴影校正（Lens Shading Correction）：增益图采样
# ✅ 增益图分辨率比 RAW 低，按归一化位置双线性插值，越界时取最后一个有效格子。

import numpy as np
from scipy.ndimage import map_coordinates


def sample_gain(gain_map, xs, ys, raw_width, raw_height):
    """
    在 (xs, ys) 处采样 4 通道增益。

    Args:
        gain_map (np.ndarray): 形状 (map_height, map_width, 4) 的增益图
        xs, ys: RAW 坐标（任意形状，两者相同）
        raw_width, raw_height: RAW 尺寸，用于归一化

    Returns:
        np.ndarray: 形状 (*xs.shape, 4) 的 float32 增益
    """
    gain_map = np.asarray(gain_map, dtype=np.float32)
    map_height, map_width = gain_map.shape[:2]

    xs, ys = np.broadcast_arrays(np.asarray(xs, dtype=np.float32),
                                 np.asarray(ys, dtype=np.float32))

    # 像素位置映射到增益图网格
    interp_x = xs / raw_width * map_width
    interp_y = ys / raw_height * map_height
    coords = np.stack([interp_y.ravel(), interp_x.ravel()])

    # order=1 即双线性；mode='nearest' 让右/下边界退化成最后一个格子
    channels = [
        map_coordinates(gain_map[:, :, c], coords, order=1, mode="nearest")
        for c in range(gain_map.shape[2])
    ]
    gains = np.stack(channels, axis=-1).astype(np.float32)
    return gains.reshape(xs.shape + (gain_map.shape[2],))


def apply(xs, ys, context):
    """没有增益图时返回全 1"""
    xs = np.asarray(xs)
    gain_map = context.calibration.gain_map
    if gain_map is None:
        return np.ones(xs.shape + (4,), dtype=np.float32)

    return sample_gain(gain_map, xs, ys, context.raw_width, context.raw_height)
