# stages/blc.py
# ---------------------
# 黑电平校正 + 归一化 + 增益图（Black Level Correction / Linearization）
# ✅ 在 demosaic 之前做：对 3x3 邻域的每个采样按自己的 CFA 位置减黑电平、除以动态范围、乘增益。
# 不做显式 clip，黑白电平不一致时结果可能超出 [0, 1]。

import numpy as np

from stages import bayer, lsc

# 3x3 邻域偏移，行优先：
# 0 1 2
# 3 4 5
# 6 7 8
PATCH_DY, PATCH_DX = np.divmod(np.arange(9), 3)
PATCH_DY = PATCH_DY - 1
PATCH_DX = PATCH_DX - 1


def patch_coordinates(xs, ys):
    """返回 3x3 邻域中每个采样的绝对坐标，形状 (..., 9)"""
    xs = np.asarray(xs, dtype=np.intp)
    ys = np.asarray(ys, dtype=np.intp)
    return xs[..., None] + PATCH_DX, ys[..., None] + PATCH_DY


def load_patch3x3(raw, xs, ys):
    """读取 (xs, ys) 周围的 3x3 RAW 采样，调用方保证窗口不越界"""
    px, py = patch_coordinates(xs, ys)
    return raw[py, px].astype(np.float32)


def linearize(patch, xs, ys, black_level, white_level, cfa, gains=None):
    """
    gain * (sample - black) / (white - black)

    Args:
        patch: (..., 9) RAW 采样
        xs, ys: 中心坐标
        black_level: 4 个按 CFA 顺序给出的黑电平
        white_level: 白电平
        cfa: cfa id (0~3)
        gains: (..., 9, 4) 每个采样处的增益；None 表示增益为 1
    """
    px, py = patch_coordinates(xs, ys)
    phase = bayer.cfa_phase(px, py)

    black_level = np.asarray(black_level, dtype=np.float32)
    bl = black_level[bayer.BLACK_LEVEL_CHANNEL[cfa][phase]]

    if gains is None:
        g = np.float32(1.0)
    else:
        channel = bayer.GAIN_CHANNEL[cfa][phase]
        g = np.take_along_axis(gains, channel[..., None], axis=-1)[..., 0]

    patch = np.asarray(patch, dtype=np.float32)
    return (g * (patch - bl) / (np.float32(white_level) - bl)).astype(np.float32)


def apply(raw, xs, ys, context):
    calib = context.calibration
    patch = load_patch3x3(raw, xs, ys)

    gains = None
    if calib.gain_map is not None:
        px, py = patch_coordinates(xs, ys)
        gains = lsc.apply(px, py, context)

    return linearize(patch, xs, ys, calib.black_level, calib.white_level,
                     calib.cfa_pattern, gains)
