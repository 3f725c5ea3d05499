# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
ShapeCaptcha — Geometry Utilities
Frame/canvas overlap, bounding box and clamping helpers shared by the
compositing and placement modules.
"""

from typing import Optional

import numpy as np


# ─── Frame ↔ canvas mapping ──────────────────────────────────────────────────

def frame_window(
    canvas_shape: tuple[int, ...],
    x: int,
    y: int,
    frame_shape: tuple[int, int],
) -> Optional[tuple[slice, slice, slice, slice]]:
    """
    Overlap between a frame anchored at (x, y) and the canvas.
    Returns (canvas_rows, canvas_cols, frame_rows, frame_cols), or None
    when the frame lies entirely off-canvas.
    """
    ch, cw = canvas_shape[:2]
    fh, fw = frame_shape[:2]
    x0, y0 = max(0, x), max(0, y)
    x1, y1 = min(cw, x + fw), min(ch, y + fh)
    if x1 <= x0 or y1 <= y0:
        return None
    return (
        slice(y0, y1),
        slice(x0, x1),
        slice(y0 - y, y1 - y),
        slice(x0 - x, x1 - x),
    )


def project_frame(
    canvas_shape: tuple[int, ...],
    x: int,
    y: int,
    frame_mask: np.ndarray,
) -> np.ndarray:
    """Canvas-sized boolean field holding frame_mask at (x, y), clipped."""
    region = np.zeros(canvas_shape[:2], dtype=bool)
    window = frame_window(canvas_shape, x, y, frame_mask.shape)
    if window is not None:
        rows, cols, frows, fcols = window
        region[rows, cols] = frame_mask[frows, fcols]
    return region


# ─── Bounding Box ────────────────────────────────────────────────────────────

def mask_to_bbox(mask: np.ndarray) -> tuple[int, int, int, int]:
    """
    Compute tight bounding box of a binary mask.
    Returns (x, y, w, h) — top-left corner + dimensions.
    Raises ValueError if mask is entirely zero.
    """
    rows = np.any(mask, axis=1)
    cols = np.any(mask, axis=0)
    if not rows.any():
        raise ValueError("mask_to_bbox: mask is entirely zero.")
    y_min, y_max = np.where(rows)[0][[0, -1]]
    x_min, x_max = np.where(cols)[0][[0, -1]]
    return int(x_min), int(y_min), int(x_max - x_min + 1), int(y_max - y_min + 1)


def grow_bbox(
    bbox: tuple[int, int, int, int],
    margin: int,
    bounds: tuple[int, int],
) -> tuple[int, int, int, int]:
    """Expand (x, y, w, h) by margin on every side, clipped to (width, height)."""
    x, y, w, h = bbox
    bw, bh = bounds
    x0, y0 = max(0, x - margin), max(0, y - margin)
    x1, y1 = min(bw, x + w + margin), min(bh, y + h + margin)
    return x0, y0, x1 - x0, y1 - y0


# ─── Scalars ─────────────────────────────────────────────────────────────────

def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))
