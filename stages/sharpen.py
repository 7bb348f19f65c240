# ---------------------
# 锐化模块
# ✅ 只锐化亮度：中心与 3x3 邻域的拉普拉斯残差，阈值越大（越像噪声）锐化越弱。

import numpy as np


def sharpen_luminance(center_y, patch_y, sharpen_factor, blur):
    """
    Args:
        center_y: 中心亮度 (...)
        patch_y: 3x3 邻域亮度 (..., 9)
        sharpen_factor: 锐化强度
        blur: 阻尼系数，来自去噪阈值

    Returns:
        np.ndarray: [0, 1] 范围内的锐化亮度
    """
    center_y = np.asarray(center_y, dtype=np.float32)
    patch_y = np.asarray(patch_y, dtype=np.float32)
    area = patch_y.shape[-1]

    residual = area * center_y - patch_y.sum(axis=-1)
    sharpened = center_y + np.float32(sharpen_factor) * residual / area / blur
    return np.clip(sharpened, 0.0, 1.0).astype(np.float32)
