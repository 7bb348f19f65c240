# stages/gamma.py
# ---------------------
# Gamma 校正模块
# ✅ 放在色彩转换末尾，线性 sRGB → 标准 sRGB 传递曲线。

import numpy as np


def srgb_encode(values):
    """线性段 12.92 * v，阈值 0.0031308 以上走 1.055 * v^(1/2.4) - 0.055"""
    v = np.asarray(values, dtype=np.float32)
    # 负值不进 power，避免 nan
    power = np.float32(1.055) * np.power(np.maximum(v, 0.0), np.float32(1.0 / 2.4)) - np.float32(0.055)
    return np.where(v <= 0.0031308, v * np.float32(12.92), power).astype(np.float32)


def apply(rgb):
    return srgb_encode(rgb)
