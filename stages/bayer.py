# stages/bayer.py
# ---------------------
# Bayer (CFA) 排列查找表
# ✅ 线性化 / 去马赛克都依赖这里：通道选择 = f(x&1, y&1, cfa)

import numpy as np

# cfa id 按此顺序编号
CFA_PATTERNS = ("rggb", "grbg", "gbrg", "bggr")

# 黑电平按 CFA 顺序给出，所以黑电平下标就是 phase
BLACK_LEVEL_CHANNEL = np.array([
    [0, 1, 2, 3],  # RGGB
    [0, 1, 2, 3],  # GRBG
    [0, 1, 2, 3],  # GBRG
    [0, 1, 2, 3],  # BGGR
], dtype=np.intp)

# 增益图通道
GAIN_CHANNEL = np.array([
    [0, 1, 2, 3],  # RGGB
    [1, 0, 3, 2],  # GRBG
    [1, 3, 0, 2],  # GBRG
    [3, 1, 2, 0],  # BGGR
], dtype=np.intp)

# 中心像素类型
RED = 0
GREEN_RED_ROW = 1   # 左右是 R
GREEN_BLUE_ROW = 2  # 左右是 B
BLUE = 3

CENTER_KIND = np.array([
    [RED, GREEN_RED_ROW, GREEN_BLUE_ROW, BLUE],  # RGGB
    [GREEN_RED_ROW, RED, BLUE, GREEN_BLUE_ROW],  # GRBG
    [GREEN_BLUE_ROW, BLUE, RED, GREEN_RED_ROW],  # GBRG
    [BLUE, GREEN_BLUE_ROW, GREEN_RED_ROW, RED],  # BGGR
], dtype=np.intp)


def parse_cfa_pattern(value):
    """把 'rggb' / 'RGGB' / 0 之类的配置值统一成 cfa id (0~3)"""
    if isinstance(value, str):
        name = value.strip().lower()
        if name not in CFA_PATTERNS:
            raise ValueError(f"未知Bayer模式 '{value}'，仅支持 {CFA_PATTERNS}")
        return CFA_PATTERNS.index(name)

    if isinstance(value, (bool, np.bool_)):
        raise ValueError(f"无效的 cfa_pattern: {value!r}")

    if isinstance(value, (int, np.integer)) and 0 <= int(value) < len(CFA_PATTERNS):
        return int(value)

    raise ValueError(f"无效的 cfa_pattern: {value!r}")


def cfa_phase(xs, ys):
    """2x2 周期内的位置：bit0 = x 奇偶，bit1 = y 奇偶"""
    xs = np.asarray(xs, dtype=np.intp)
    ys = np.asarray(ys, dtype=np.intp)
    return (xs & 1) | ((ys & 1) << 1)
