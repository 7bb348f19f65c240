# ---------------------
# 颜色矩阵模块（Color Correction Matrix）
# ✅ sensor RGB → XYZ → 宽色域 → sRGB 的 3x3 矩阵都走这里。

import numpy as np


def apply_matrix(vectors, matrix):
    """对 (..., 3) 的每个向量做 M @ v（矩阵按行给出）"""
    matrix = np.asarray(matrix, dtype=np.float32)
    vectors = np.asarray(vectors, dtype=np.float32)
    return np.einsum("ij,...j->...i", matrix, vectors).astype(np.float32)


def clamp_to_neutral(rgb, neutral_point):
    """把 sensor RGB 限制到 [0, neutral]，避免高光溢出带来的偏色继续传播"""
    neutral_point = np.asarray(neutral_point, dtype=np.float32)
    return np.clip(rgb, 0.0, neutral_point).astype(np.float32)
