# utils/calibration.py
# ---------------------
# 标定参数 + 后处理参数
# ✅ 从 config.yaml 的 calibration / postprocess 段读取，一次转换中只读。

import numpy as np

from stages import bayer


def _vector(values, length, name):
    arr = np.asarray(values, dtype=np.float32)
    if arr.shape != (length,):
        raise ValueError(f"{name} 需要 {length} 个数值，得到形状 {arr.shape}")
    return arr


def _matrix(values, name):
    arr = np.asarray(values, dtype=np.float32)
    if arr.shape != (3, 3):
        raise ValueError(f"{name} 必须是 3x3 矩阵，得到形状 {arr.shape}")
    return arr


class Calibration:
    """传感器标定：黑白电平、CFA、三个颜色矩阵、neutral 点、tonemap 曲线、可选增益图"""

    def __init__(self, black_level, white_level, cfa_pattern, sensor_to_xyz,
                 xyz_to_prophoto, prophoto_to_srgb, neutral_point, tonemap_coeffs,
                 gain_map=None):
        self.black_level = _vector(black_level, 4, "black_level")
        self.white_level = float(white_level)
        self.cfa_pattern = bayer.parse_cfa_pattern(cfa_pattern)
        self.sensor_to_xyz = _matrix(sensor_to_xyz, "sensor_to_xyz")
        self.xyz_to_prophoto = _matrix(xyz_to_prophoto, "xyz_to_prophoto")
        self.prophoto_to_srgb = _matrix(prophoto_to_srgb, "prophoto_to_srgb")
        self.neutral_point = _vector(neutral_point, 3, "neutral_point")
        self.tonemap_coeffs = _vector(tonemap_coeffs, 4, "tonemap_coeffs")

        # 白电平必须高于每个黑电平，否则线性化会除以 0 或翻转
        if np.any(self.black_level >= self.white_level):
            raise ValueError(
                f"无效标定: white_level={self.white_level} 必须大于所有 black_level {self.black_level.tolist()}"
            )

        if gain_map is not None:
            gain_map = np.asarray(gain_map, dtype=np.float32)
            if gain_map.ndim != 3 or gain_map.shape[2] != 4 or 0 in gain_map.shape[:2]:
                raise ValueError(f"增益图形状必须是 (h, w, 4)，得到 {gain_map.shape}")
        self.gain_map = gain_map

    @classmethod
    def from_config(cls, config, gain_map=None):
        identity = np.eye(3).tolist()
        return cls(
            black_level=config.get("black_level", [0, 0, 0, 0]),
            white_level=config.get("white_level", 1023),
            cfa_pattern=config.get("cfa_pattern", "rggb"),
            sensor_to_xyz=config.get("sensor_to_xyz", identity),
            xyz_to_prophoto=config.get("xyz_to_prophoto", identity),
            prophoto_to_srgb=config.get("prophoto_to_srgb", identity),
            neutral_point=config.get("neutral_point", [1.0, 1.0, 1.0]),
            tonemap_coeffs=config.get("tonemap_coeffs", [0.0, 0.0, 1.0, 0.0]),
            gain_map=gain_map,
        )


class PostProcessSettings:
    """对比度曲线、饱和度、锐化强度、直方图均衡混合比例"""

    def __init__(self, contrast_curve=(0.0, 0.0, 1.0, 0.0), saturation=1.0,
                 sharpen=0.0, histo_factor=0.0):
        self.contrast_curve = _vector(contrast_curve, 4, "contrast_curve")
        self.saturation = float(saturation)
        self.sharpen_factor = float(sharpen)
        self.histo_factor = float(histo_factor)

        if not 0.0 <= self.histo_factor <= 1.0:
            raise ValueError(f"histo_factor 必须在 [0, 1] 内，得到 {self.histo_factor}")

    @classmethod
    def from_config(cls, config):
        return cls(
            contrast_curve=config.get("contrast_curve", [0.0, 0.0, 1.0, 0.0]),
            saturation=config.get("saturation", 1.0),
            sharpen=config.get("sharpen", 0.0),
            histo_factor=config.get("histo_factor", 0.0),
        )
