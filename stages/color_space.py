import numpy as np

from stages import ccm, gamma, tonemapping


def XYZ_to_xyY(XYZ):
    """XYZ → (x, y, Y)；X+Y+Z == 0 时结果为 0"""
    XYZ = np.asarray(XYZ, dtype=np.float32)
    total = XYZ.sum(axis=-1)
    zero = total == 0
    safe = np.where(zero, np.float32(1.0), total)

    xyY = np.stack([XYZ[..., 0] / safe, XYZ[..., 1] / safe, XYZ[..., 1]], axis=-1)
    return np.where(zero[..., None], np.float32(0.0), xyY).astype(np.float32)


def xyY_to_XYZ(xyY):
    """(x, y, Y) → XYZ；y == 0 时结果为 0"""
    xyY = np.asarray(xyY, dtype=np.float32)
    x, y, Y = xyY[..., 0], xyY[..., 1], xyY[..., 2]
    zero = y == 0
    safe = np.where(zero, np.float32(1.0), y)

    XYZ = np.stack([x * Y / safe, Y, (1 - x - y) * Y / safe], axis=-1)
    return np.where(zero[..., None], np.float32(0.0), XYZ).astype(np.float32)


def sensor_to_intermediate(sensor, context):
    """第一步色彩转换：sensor RGB → (限幅) → XYZ → xyY"""
    calib = context.calibration
    sensor = ccm.clamp_to_neutral(sensor, calib.neutral_point)
    XYZ = ccm.apply_matrix(sensor, calib.sensor_to_xyz)
    return XYZ_to_xyY(XYZ)


def intermediate_to_srgb(xyY, context):
    """xyY → XYZ → 宽色域 → tonemap → sRGB → gamma"""
    calib = context.calibration
    XYZ = xyY_to_XYZ(xyY)

    wide = ccm.apply_matrix(XYZ, calib.xyz_to_prophoto)
    wide = tonemapping.apply(wide, calib.tonemap_coeffs)

    srgb = ccm.apply_matrix(wide, calib.prophoto_to_srgb)
    return gamma.apply(srgb)
