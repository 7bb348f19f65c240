# ---------------------
# 读取 RAW 图像（16bit 对齐的 unpacked 格式）和增益图
# 返回 numpy 格式，供后续处理
# 确保 raw 的路径和分辨率与 config.yaml 一致

import os

import numpy as np

SUPPORTED_BIT_DEPTHS = (10, 12, 14, 16)


def read_raw(cfg):
    path = cfg['path']
    width = cfg['width']
    height = cfg['height']
    bit_depth = cfg.get('sensor_bit_depth', 10)
    stride = cfg.get('stride', width)  # 每行的采样数，可能大于 width

    if bit_depth not in SUPPORTED_BIT_DEPTHS:
        raise NotImplementedError(f"不支持 {bit_depth}bit RAW，仅支持 {SUPPORTED_BIT_DEPTHS}")
    if stride < width:
        raise ValueError(f"stride ({stride}) 不能小于 width ({width})")

    # 每像素2字节对齐（常见 unpacked 格式）
    raw = np.fromfile(path, dtype='<u2')
    if raw.size < stride * height:
        raise ValueError(f"RAW 文件 '{path}' 太小: {raw.size} 个采样，需要 {stride * height}")

    raw = raw[:stride * height].reshape((height, stride))[:, :width]
    return np.ascontiguousarray(raw, dtype=np.uint16)


def read_gain_map(cfg):
    """
    增益图可以是 .npy 文件（path）或直接写在配置里的嵌套列表（data），
    形状 (map_height, map_width, 4)。未配置时返回 None。
    """
    if not cfg or not cfg.get('enable', True):
        return None

    if cfg.get('path'):
        path = cfg['path']
        if not os.path.exists(path):
            raise FileNotFoundError(f"增益图文件不存在: {path}")
        gain_map = np.load(path)
    elif cfg.get('data') is not None:
        gain_map = np.array(cfg['data'], dtype=np.float32)
    else:
        return None

    return gain_map.astype(np.float32)
