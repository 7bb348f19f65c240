import numpy as np

# 排序网络交换记录 → 输出通道取 (min, mid, max) 中的哪一个
# 只有 6 种合法组合，4 和 5 排序网络产生不出来
UNSORT_ORDER = {
    0: (0, 1, 2),  # b >= g >= r
    1: (0, 2, 1),  # g >= b >= r
    2: (1, 0, 2),  # b >= r >= g
    3: (1, 2, 0),  # g >= r >= b
    6: (2, 0, 1),  # r >= b >= g
    7: (2, 1, 0),  # r >= g >= b
}


def sort_network(rgb):
    """
    三次比较的排序网络。

    Returns:
        (sorted_rgb, code): sorted_rgb 为 (..., 3) 升序；code 的 bit 0/1/2
        分别记录三次比较是否发生了交换。
    """
    rgb = np.asarray(rgb, dtype=np.float32)
    a, b, c = rgb[..., 0], rgb[..., 1], rgb[..., 2]
    code = np.zeros(a.shape, dtype=np.intp)

    swap = c < b
    b, c = np.where(swap, c, b), np.where(swap, b, c)
    code |= swap.astype(np.intp)

    swap = b < a
    a, b = np.where(swap, b, a), np.where(swap, a, b)
    code |= swap.astype(np.intp) << 1

    swap = c < b
    b, c = np.where(swap, c, b), np.where(swap, b, c)
    code |= swap.astype(np.intp) << 2

    return np.stack([a, b, c], axis=-1), code


def apply_curve(values, coeffs):
    """c0 * v^3 + c1 * v^2 + c2 * v + c3"""
    c0, c1, c2, c3 = [np.float32(c) for c in coeffs]
    v = np.asarray(values, dtype=np.float32)
    return (c0 * v ** 3 + c1 * v ** 2 + c2 * v + c3).astype(np.float32)


def unsort(sorted_rgb, code):
    """按排序码把 (min, mid, max) 放回 RGB 位置"""
    sorted_rgb = np.asarray(sorted_rgb, dtype=np.float32)
    code = np.asarray(code, dtype=np.intp)

    bad = ~np.isin(code, list(UNSORT_ORDER))
    if np.any(bad):
        print(f"Tonemap: 逻辑错误，出现非法排序码 {np.unique(code[bad]).tolist()}")
        raise RuntimeError("tonemap 排序网络产生了不可能的排列")

    table = np.zeros((8, 3), dtype=np.intp)
    for key, order in UNSORT_ORDER.items():
        table[key] = order

    return np.take_along_axis(sorted_rgb, table[code], axis=-1)


def apply(rgb, coeffs):
    """
    Apply the polynomial tone curve without shifting hue.

    Only the min and max channels go through the curve; the middle channel is
    rescaled linearly into the new [min, max] range so that
    H = (mid - min) / (max - min) is the same before and after.

    Args:
        rgb (np.ndarray): (..., 3) wide-gamut linear RGB.
        coeffs: 4 cubic coefficients, highest power first.

    Returns:
        np.ndarray: tone mapped (..., 3) float32.
    """
    sorted_rgb, code = sort_network(rgb)
    lo, mid, hi = sorted_rgb[..., 0], sorted_rgb[..., 1], sorted_rgb[..., 2]

    new_lo = apply_curve(lo, coeffs)
    new_hi = apply_curve(hi, coeffs)

    chroma = hi - lo
    flat = chroma == 0
    safe_chroma = np.where(flat, np.float32(1.0), chroma)
    new_mid = np.where(flat, new_hi, new_lo + (new_hi - new_lo) * (mid - lo) / safe_chroma)

    mapped = np.stack([new_lo, new_mid, new_hi], axis=-1).astype(np.float32)
    return unsort(mapped, code)
