# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
ShapeCaptcha — Piece Extractor
Lifts the masked region out of the canvas as a 70×70 sliding piece.

Pipeline:
  copy masked pixels → paint border → anti-alias → diagonal smoothing
  → global smoothing → 3D highlight → masked Gaussian blur (×2)

Pixels outside the mask are fully transparent in the output. The canvas
passed in is never modified.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from app.models.shape import PUZZLE_HEIGHT, PUZZLE_WIDTH, Placement, ShapeMask
from app.modules.compositing.smoothing import mask_geometry, paint_border, run_chain
from app.utils.geometry_utils import frame_window

DEFAULT_PIECE_BORDER = (255, 255, 255, 255)


def copy_masked_pixels(
    canvas: np.ndarray,
    placement: Placement,
    mask: ShapeMask,
) -> np.ndarray:
    """70×70 BGRA with in-canvas masked pixels copied verbatim, the rest zero."""
    piece = np.zeros((PUZZLE_HEIGHT, PUZZLE_WIDTH, 4), dtype=np.uint8)
    window = frame_window(canvas.shape, placement.x, placement.y, mask.alpha.shape)
    if window is None:
        return piece

    rows, cols, mrows, mcols = window
    footprint = mask.footprint[mrows, mcols]
    piece[mrows, mcols][footprint] = canvas[rows, cols][footprint]
    return piece


def extract_piece(
    canvas: np.ndarray,
    placement: Placement,
    mask: ShapeMask,
    border_color: Optional[tuple[int, int, int, int]] = DEFAULT_PIECE_BORDER,
) -> np.ndarray:
    """
    Extract and finish the sliding piece.

    Args:
        canvas:       BGRA uint8 delivered-size background (pre-hole)
        placement:    top-left anchor of the mask on the canvas
        mask:         shape mask to extract
        border_color: BGRA outline colour; None draws no outline

    Returns:
        New 70×70 BGRA uint8 array.
    """
    piece = copy_masked_pixels(canvas, placement, mask)
    geometry = mask_geometry(mask.alpha, with_border=border_color is not None)
    piece = paint_border(piece, geometry, border_color)
    return run_chain(piece, geometry)
