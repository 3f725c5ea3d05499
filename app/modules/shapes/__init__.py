# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
ShapeCaptcha — Shapes Module
Public API for shape predicates, mask building and asset rendering.
"""

from app.modules.shapes.asset_renderer import render_mask_asset, write_mask_assets
from app.modules.shapes.mask_builder import (
    asset_path,
    build_mask,
    build_mask_set,
    mask_from_asset,
    procedural_mask,
    select_mask_strategy,
)
from app.modules.shapes.predicates import is_inside, shape_outline

__all__ = [
    # Predicates
    "is_inside",
    "shape_outline",
    # Mask builder
    "asset_path",
    "build_mask",
    "build_mask_set",
    "mask_from_asset",
    "procedural_mask",
    "select_mask_strategy",
    # Asset renderer
    "render_mask_asset",
    "write_mask_assets",
]
