# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
ShapeCaptcha — Mask Asset Renderer
Renders the high-resolution shape masks consumed by the ASSET strategy
of the mask builder.

Each shape is drawn at 64× the mask frame (4480×4480) from the same
outline the predicates describe, then softened with a Gaussian blur of
half a mask pixel. Downsampling to 70×70 point-samples the render at
multiples of 64, so the softening is what survives as the mask's
anti-aliased edge.
"""

from __future__ import annotations

from pathlib import Path

from PIL import Image, ImageDraw, ImageFilter

from app.models.shape import PUZZLE_HEIGHT, PUZZLE_WIDTH, ShapeKind
from app.modules.shapes.mask_builder import asset_path
from app.modules.shapes.predicates import shape_outline
from app.utils.logger import get_logger

log = get_logger(__name__)

DEFAULT_SCALE = 64


def render_mask_asset(kind: ShapeKind, scale: int = DEFAULT_SCALE) -> Image.Image:
    """
    Render one shape as a white RGBA image whose alpha holds the shape.

    Args:
        kind:  Shape to render
        scale: Supersampling factor relative to the 70×70 frame

    Returns:
        PIL RGBA image of size (70·scale, 70·scale).
    """
    size = (PUZZLE_WIDTH * scale, PUZZLE_HEIGHT * scale)
    outline = [(x * scale, y * scale) for x, y in shape_outline(kind)]

    coverage = Image.new("L", size, 0)
    ImageDraw.Draw(coverage).polygon(outline, fill=255)
    coverage = coverage.filter(ImageFilter.GaussianBlur(radius=scale / 2))

    asset = Image.new("RGBA", size, (255, 255, 255, 0))
    asset.putalpha(coverage)
    return asset


def write_mask_assets(out_dir: Path, scale: int = DEFAULT_SCALE) -> list[Path]:
    """Render all four shapes into out_dir using the builder's file names."""
    out_dir.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for kind in ShapeKind:
        path = asset_path(out_dir, kind)
        render_mask_asset(kind, scale).save(path, format="PNG")
        written.append(path)
        log.info("mask_asset_written", shape=kind.value, path=str(path), scale=scale)
    return written
