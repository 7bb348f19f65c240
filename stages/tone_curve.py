# ---------------------
# 对比度曲线 + 饱和度
# ✅ Gamma 之后执行：每个通道独立走三次多项式，再向亮度方向混合。

import numpy as np

# 去饱和用的亮度系数
MONO_MULT = np.array([0.299, 0.587, 0.114], dtype=np.float32)


def apply_curve(rgb, curve):
    """curve = [c3, c2, c1, c0]，out = c3*v^3 + c2*v^2 + c1*v + c0"""
    c3, c2, c1, c0 = [np.float32(c) for c in curve]
    v = np.asarray(rgb, dtype=np.float32)
    out = v * c1 + c0
    out = v ** 2 * c2 + out
    out = v ** 3 * c3 + out
    return out.astype(np.float32)


def saturate(rgb, saturation_factor):
    """1.0 不变，0.0 完全去饱和"""
    rgb = np.asarray(rgb, dtype=np.float32)
    gray = (rgb @ MONO_MULT)[..., None]
    return (gray + (rgb - gray) * np.float32(saturation_factor)).astype(np.float32)


def apply(srgb, settings):
    out = apply_curve(srgb, settings.contrast_curve)
    out = saturate(out, settings.saturation)
    return np.clip(out, 0.0, 1.0)
