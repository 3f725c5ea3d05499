# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
ShapeCaptcha — Hole Compositor
Renders the "background with hole" image.

Steps (in order):
  1. Copy the canvas (the input is never mutated)
  2. Wash masked pixels toward warm white, alpha forced opaque
  3. Paint the hole border (disabled by default: transparent colour)
  4. Two iterations of a 3×3 Gaussian over the hole, edge-clamped

Mask pixels that land outside the canvas are clipped away; no placement
raises.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from app.models.shape import Placement, ShapeMask
from app.modules.compositing.smoothing import (
    to_u8,
    clamped_gaussian_blur,
    edge_footprint,
)
from app.utils.geometry_utils import project_frame

# Fraction of the original pixel kept per channel, BGRA order.
# Red keeps less than green/blue.
_WASH_KEEP = np.array([0.6, 0.6, 0.5], dtype=np.float64)
_WASH_WHITE = 255.0 * (1.0 - _WASH_KEEP)

DEFAULT_HOLE_BORDER = (0, 0, 0, 0)


def cut_hole(
    canvas: np.ndarray,
    placement: Placement,
    mask: ShapeMask,
    border_color: Optional[tuple[int, int, int, int]] = DEFAULT_HOLE_BORDER,
) -> np.ndarray:
    """
    Render the hole into a copy of the canvas.

    Args:
        canvas:       BGRA uint8 delivered-size background
        placement:    top-left anchor of the mask on the canvas
        mask:         shape mask to cut
        border_color: BGRA border colour; None or alpha 0 skips the border

    Returns:
        New BGRA uint8 array, same shape as canvas.
    """
    footprint = mask.footprint
    hole = project_frame(canvas.shape, placement.x, placement.y, footprint)

    result = canvas.copy()
    washed = result[hole, :3].astype(np.float64) * _WASH_KEEP + _WASH_WHITE
    result[hole, :3] = to_u8(washed)
    result[hole, 3] = 255

    if border_color is not None and border_color[3] > 0:
        edge = project_frame(
            canvas.shape, placement.x, placement.y, edge_footprint(footprint)
        )
        result[edge] = border_color

    return clamped_gaussian_blur(result, hole)
