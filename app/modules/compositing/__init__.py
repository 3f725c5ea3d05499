# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
ShapeCaptcha — Compositing Module
Public API for the hole compositor, piece extractor and smoothing chain.
"""

from app.modules.compositing.hole_compositor import DEFAULT_HOLE_BORDER, cut_hole
from app.modules.compositing.piece_extractor import (
    DEFAULT_PIECE_BORDER,
    copy_masked_pixels,
    extract_piece,
)
from app.modules.compositing.smoothing import (
    PIECE_SMOOTHING_CHAIN,
    MaskGeometry,
    mask_geometry,
    run_chain,
)

__all__ = [
    # Hole
    "DEFAULT_HOLE_BORDER",
    "cut_hole",
    # Piece
    "DEFAULT_PIECE_BORDER",
    "copy_masked_pixels",
    "extract_piece",
    # Smoothing
    "PIECE_SMOOTHING_CHAIN",
    "MaskGeometry",
    "mask_geometry",
    "run_chain",
]
