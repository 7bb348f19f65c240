# ---------------------
# 去马赛克（Demosaic）模块
# ✅ 在 BLC 之后、色彩转换之前执行。3x3 双线性插值，同色邻居取平均。

import numpy as np

from stages import bayer


def clamp_coordinates(xs, ys, width, height):
    """把坐标限制在 [1, dim-2]，保证 3x3 窗口总在图内"""
    xs = np.clip(np.asarray(xs, dtype=np.intp), 1, width - 2)
    ys = np.clip(np.asarray(ys, dtype=np.intp), 1, height - 2)
    return xs, ys


def demosaic(patch, xs, ys, cfa):
    """
    由线性化后的 3x3 邻域重建中心像素的 RGB。

    Args:
        patch: (..., 9) 行优先邻域
        xs, ys: 中心坐标，决定中心像素的 CFA 位置
        cfa: cfa id (0~3)

    Returns:
        np.ndarray: (..., 3) float32
    """
    p = np.asarray(patch, dtype=np.float32)
    kind = bayer.CENTER_KIND[cfa][bayer.cfa_phase(xs, ys)]

    center = p[..., 4]
    diagonal = (p[..., 0] + p[..., 2] + p[..., 6] + p[..., 8]) / 4
    cross = (p[..., 1] + p[..., 3] + p[..., 5] + p[..., 7]) / 4
    horizontal = (p[..., 3] + p[..., 5]) / 2
    vertical = (p[..., 1] + p[..., 7]) / 2

    # B G B
    # G R G
    # B G B
    red = np.stack([center, cross, diagonal], axis=-1)
    # G B G
    # R G R
    # G B G
    green_red_row = np.stack([horizontal, center, vertical], axis=-1)
    # G R G
    # B G B
    # G R G
    green_blue_row = np.stack([vertical, center, horizontal], axis=-1)
    # R G R
    # G B G
    # R G R
    blue = np.stack([diagonal, cross, center], axis=-1)

    kind = kind[..., None]
    rgb = np.select(
        [kind == bayer.RED, kind == bayer.GREEN_RED_ROW, kind == bayer.GREEN_BLUE_ROW],
        [red, green_red_row, green_blue_row],
        default=blue,
    )
    return rgb.astype(np.float32)


def apply(patch, xs, ys, context):
    return demosaic(patch, xs, ys, context.calibration.cfa_pattern)
