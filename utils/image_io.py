# image_io.py
import cv2
import numpy as np


def pack_rgba8888(rgb):
    """[0,1] RGB → uint8 RGBA，alpha 固定 255"""
    rgb = np.clip(np.asarray(rgb, dtype=np.float32), 0.0, 1.0)
    packed = np.empty(rgb.shape[:-1] + (4,), dtype=np.uint8)
    packed[..., :3] = (rgb * 255.0 + 0.5).astype(np.uint8)
    packed[..., 3] = 255
    return packed


def save_image_debug(img, path, scale=False, reference_max=None):
    img_float = img.astype(np.float32)

    if scale:
        if reference_max is not None:
            max_val = reference_max
        else:
            max_val = img_float.max()

        if max_val > 0:
            img_scaled = img_float / max_val * 255.0
            # 防止uint8溢出
            img_processed = np.clip(img_scaled, 0, 255).astype(np.uint8)
        else:
            img_processed = np.zeros_like(img_float, dtype=np.uint8)
    else:
        img_processed = np.clip(img_float * 255.0, 0, 255).astype(np.uint8)

    cv2.imwrite(path, img_processed)


def save_image(rgba, path):
    """保存打包好的 RGBA 图像；OpenCV 需要 BGRA 顺序"""
    rgba = np.asarray(rgba, dtype=np.uint8)
    if not cv2.imwrite(path, cv2.cvtColor(rgba, cv2.COLOR_RGBA2BGRA)):
        raise IOError(f"图像保存失败: {path}")
