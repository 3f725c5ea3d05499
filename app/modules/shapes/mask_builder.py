# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
ShapeCaptcha — Mask Builder
Produces the fixed 70×70 alpha mask for each shape kind.

Two strategies, chosen by asset availability:
  ASSET       — decode <asset_dir>/<kind>.png (rendered at 4480×4480),
                resample to 70×70 and keep its alpha plane verbatim,
                anti-aliased falloff included
  PROCEDURAL  — evaluate the shape predicate per pixel: 255 inside,
                0 outside (hard edge)

The result is tagged with the strategy that produced it. Callers never
handle a loading failure: an unreadable asset simply selects PROCEDURAL.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import cv2
import numpy as np

from app.models.shape import (
    PUZZLE_HEIGHT,
    PUZZLE_WIDTH,
    MaskSource,
    ShapeKind,
    ShapeMask,
)
from app.modules.imaging.resampler import resize_bilinear
from app.modules.shapes.predicates import is_inside
from app.utils.logger import get_logger

log = get_logger(__name__)


def asset_path(asset_dir: Path, kind: ShapeKind) -> Path:
    return asset_dir / f"{kind.value}.png"


def select_mask_strategy(
    kind: ShapeKind, asset_dir: Optional[Path]
) -> tuple[MaskSource, Optional[np.ndarray]]:
    """
    Pick the strategy for one kind: ASSET with the decoded image when the
    asset exists and decodes, PROCEDURAL with None otherwise.
    """
    if asset_dir is None:
        return MaskSource.PROCEDURAL, None
    path = asset_path(asset_dir, kind)
    if not path.is_file():
        log.warning("mask_asset_missing", shape=kind.value, path=str(path))
        return MaskSource.PROCEDURAL, None
    img = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if img is None or img.size == 0:
        log.warning("mask_asset_undecodable", shape=kind.value, path=str(path))
        return MaskSource.PROCEDURAL, None
    return MaskSource.ASSET, img


def _alpha_plane(img: np.ndarray) -> np.ndarray:
    """Alpha channel of an RGBA asset; grey level for assets without alpha."""
    if img.dtype == np.uint16:
        img = (img >> 8).astype(np.uint8)
    if img.ndim == 2:
        return img
    channels = img.shape[2]
    if channels == 4:
        return img[:, :, 3]
    if channels == 3:
        return cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)
    return img[:, :, 0]


def _freeze(alpha: np.ndarray) -> np.ndarray:
    alpha = np.ascontiguousarray(alpha, dtype=np.uint8)
    alpha.setflags(write=False)
    return alpha


def mask_from_asset(kind: ShapeKind, img: np.ndarray) -> ShapeMask:
    """Downscale a decoded high-resolution asset into a 70×70 mask."""
    alpha = resize_bilinear(_alpha_plane(img), PUZZLE_WIDTH, PUZZLE_HEIGHT)
    return ShapeMask(kind=kind, alpha=_freeze(alpha), source=MaskSource.ASSET)


def procedural_mask(kind: ShapeKind) -> ShapeMask:
    """Rasterise the shape predicate over the 70×70 frame."""
    ys, xs = np.mgrid[0:PUZZLE_HEIGHT, 0:PUZZLE_WIDTH]
    inside = is_inside(kind, xs, ys)
    alpha = np.where(inside, 255, 0).astype(np.uint8)
    return ShapeMask(kind=kind, alpha=_freeze(alpha), source=MaskSource.PROCEDURAL)


def build_mask(kind: ShapeKind, asset_dir: Optional[Path] = None) -> ShapeMask:
    """
    Build the mask for one shape kind. Deterministic for a given kind
    and asset directory contents.
    """
    source, asset = select_mask_strategy(kind, asset_dir)
    if source is MaskSource.ASSET:
        return mask_from_asset(kind, asset)
    return procedural_mask(kind)


def build_mask_set(asset_dir: Optional[Path] = None) -> dict[ShapeKind, ShapeMask]:
    """Build all four masks once — called while constructing the captcha context."""
    masks: dict[ShapeKind, ShapeMask] = {}
    for kind in ShapeKind:
        mask = build_mask(kind, asset_dir)
        masks[kind] = mask
        log.info(
            "mask_built",
            shape=kind.value,
            source=mask.source.value,
            area_px=mask.area_px,
        )
    return masks
