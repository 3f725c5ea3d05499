# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
ShapeCaptcha — Bilinear Resampler
Scales an image between arbitrary pixel dimensions.

Destination pixel (x, y) maps back to the fractional source coordinate
(x · srcW / dstW, y · srcH / dstH). The four surrounding source pixels
(high neighbour clamped to the last row/column) are blended with bilinear
weights from the fractional parts.

Arithmetic is float64 per channel; rounding to uint8 happens once, at
output. Only the 4 · dstW · dstH source samples are gathered, so a
4480×4480 mask asset costs no more than a 70×70 one.
"""

from __future__ import annotations

import numpy as np


def _axis_taps(src_len: int, dst_len: int) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Return (low index, high index, fractional weight) for one axis."""
    pos = np.arange(dst_len, dtype=np.float64) * src_len / dst_len
    lo = pos.astype(np.intp)
    hi = np.minimum(lo + 1, src_len - 1)
    frac = pos - lo
    return lo, hi, frac


def resize_bilinear(src: np.ndarray, target_w: int, target_h: int) -> np.ndarray:
    """
    Resize an (H, W) or (H, W, C) uint8 image to target_w × target_h.

    Args:
        src:      uint8 image, any channel count
        target_w: destination width  (≥ 1)
        target_h: destination height (≥ 1)

    Returns:
        New uint8 array of shape (target_h, target_w[, C]).
        Resizing to the source's own size reproduces it exactly.
    """
    if target_w < 1 or target_h < 1:
        raise ValueError(f"Target size must be ≥ 1×1, got {target_w}×{target_h}")
    src_h, src_w = src.shape[:2]
    if src_w < 1 or src_h < 1:
        raise ValueError(f"Source image is empty: {src_w}×{src_h}")

    x0, x1, fx = _axis_taps(src_w, target_w)
    y0, y1, fy = _axis_taps(src_h, target_h)

    # Broadcast weights over any trailing channel axis
    extra = (1,) * (src.ndim - 2)
    fx = fx.reshape((1, target_w) + extra)
    fy = fy.reshape((target_h, 1) + extra)

    rows0 = src[y0]
    rows1 = src[y1]
    c00 = rows0[:, x0].astype(np.float64)
    c10 = rows0[:, x1].astype(np.float64)
    c01 = rows1[:, x0].astype(np.float64)
    c11 = rows1[:, x1].astype(np.float64)

    top = c00 * (1.0 - fx) + c10 * fx
    bottom = c01 * (1.0 - fx) + c11 * fx
    out = top * (1.0 - fy) + bottom * fy

    return np.clip(np.floor(out + 0.5), 0, 255).astype(np.uint8)
