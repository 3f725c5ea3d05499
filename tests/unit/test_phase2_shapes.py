# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
Phase 2 — Resampler and shape mask tests.
Pure numpy / OpenCV / Pillow — no network required.
"""

import cv2
import numpy as np
import pytest

from app.models.shape import MaskSource, ShapeKind


# ─── Resampler ───────────────────────────────────────────────────────────────

def test_resize_same_size_is_identity():
    from app.modules.imaging import resize_bilinear

    rng = np.random.default_rng(7)
    img = rng.integers(0, 256, size=(37, 53, 4), dtype=np.uint8)
    out = resize_bilinear(img, 53, 37)
    assert out.shape == img.shape
    assert np.array_equal(out, img)


def test_resize_upsample_interpolates():
    from app.modules.imaging import resize_bilinear

    src = np.array([[0, 100]], dtype=np.uint8)
    out = resize_bilinear(src, 4, 1)
    # Source x = 0, 0.5, 1, 1.5 (high tap clamped at the edge)
    assert out.tolist() == [[0, 50, 100, 100]]


def test_resize_rounds_half_up():
    from app.modules.imaging import resize_bilinear

    src = np.array([[0, 1]], dtype=np.uint8)
    assert resize_bilinear(src, 4, 1).tolist() == [[0, 1, 1, 1]]


def test_resize_channels_independent():
    from app.modules.imaging import resize_bilinear

    src = np.zeros((10, 10, 4), dtype=np.uint8)
    src[..., 0] = 10
    src[..., 3] = 250
    out = resize_bilinear(src, 3, 7)
    assert out.shape == (7, 3, 4)
    assert (out[..., 0] == 10).all()
    assert (out[..., 1] == 0).all()
    assert (out[..., 3] == 250).all()


def test_resize_rejects_degenerate_target():
    from app.modules.imaging import resize_bilinear

    with pytest.raises(ValueError):
        resize_bilinear(np.zeros((5, 5), dtype=np.uint8), 0, 5)


# ─── Predicates ──────────────────────────────────────────────────────────────

def test_triangle_apex_and_base():
    from app.modules.shapes import is_inside

    assert is_inside(ShapeKind.TRIANGLE, 35, 8)
    assert is_inside(ShapeKind.TRIANGLE, 9, 61)
    assert not is_inside(ShapeKind.TRIANGLE, 20, 10)
    assert not is_inside(ShapeKind.TRIANGLE, 35, 62)


def test_hexagon_is_flat_topped():
    from app.modules.shapes import is_inside

    assert is_inside(ShapeKind.HEXAGON, 35, 35)
    assert is_inside(ShapeKind.HEXAGON, 35 + 24, 35)   # towards a vertex
    assert not is_inside(ShapeKind.HEXAGON, 35, 35 - 22)  # past the flat top


def test_trapezoid_widens_downwards():
    from app.modules.shapes import is_inside

    assert not is_inside(ShapeKind.TRAPEZOID, 35 - 20, 11)
    assert is_inside(ShapeKind.TRAPEZOID, 35 - 20, 59)


def test_star_points_and_valleys():
    from app.modules.shapes import is_inside

    # Straight down is a point, straight up is a valley
    assert is_inside(ShapeKind.STAR, 35, 35 + 26)
    assert is_inside(ShapeKind.STAR, 35, 35 - 10)
    assert not is_inside(ShapeKind.STAR, 35, 35 - 12)


# ─── Procedural masks ────────────────────────────────────────────────────────

@pytest.mark.parametrize("kind", list(ShapeKind))
def test_procedural_mask_properties(kind):
    from app.modules.shapes import procedural_mask

    mask = procedural_mask(kind)
    assert mask.alpha.shape == (70, 70)
    assert mask.alpha.dtype == np.uint8
    assert mask.source is MaskSource.PROCEDURAL
    assert set(np.unique(mask.alpha).tolist()) == {0, 255}
    assert mask.area_px > 0

    # Footprint never touches the outer 1-pixel ring of the frame
    fp = mask.footprint
    assert not fp[0, :].any() and not fp[-1, :].any()
    assert not fp[:, 0].any() and not fp[:, -1].any()


@pytest.mark.parametrize("kind", list(ShapeKind))
def test_build_mask_is_deterministic(kind, tmp_path):
    from app.modules.shapes import build_mask

    a = build_mask(kind, tmp_path)
    b = build_mask(kind, tmp_path)
    assert np.array_equal(a.alpha, b.alpha)


def test_mask_alpha_is_read_only():
    from app.modules.shapes import build_mask

    mask = build_mask(ShapeKind.STAR)
    with pytest.raises(ValueError):
        mask.alpha[0, 0] = 1


def test_build_mask_without_asset_dir_is_procedural():
    from app.modules.shapes import build_mask
    assert build_mask(ShapeKind.HEXAGON).source is MaskSource.PROCEDURAL


# ─── Asset path ──────────────────────────────────────────────────────────────

def test_render_mask_asset_size():
    from app.modules.shapes import render_mask_asset

    img = render_mask_asset(ShapeKind.TRAPEZOID, scale=3)
    assert img.mode == "RGBA"
    assert img.size == (210, 210)


def test_build_mask_from_rendered_asset(tmp_path):
    from app.modules.shapes import build_mask, procedural_mask, write_mask_assets

    written = write_mask_assets(tmp_path, scale=4)
    assert {p.name for p in written} == {
        "triangle.png", "hexagon.png", "trapezoid.png", "star.png",
    }

    mask = build_mask(ShapeKind.HEXAGON, tmp_path)
    assert mask.source is MaskSource.ASSET
    assert mask.alpha.shape == (70, 70)
    # Interior fully opaque, far corners transparent
    assert mask.alpha[35, 35] == 255
    assert mask.alpha[0, 0] == 0
    # The asset path keeps intermediate (anti-aliased) alpha values
    assert ((mask.alpha > 0) & (mask.alpha < 255)).any()
    # Same shape as the predicate, give or take the soft edge
    overlap = mask.footprint & procedural_mask(ShapeKind.HEXAGON).footprint
    assert overlap.sum() >= 0.9 * procedural_mask(ShapeKind.HEXAGON).area_px


def test_asset_without_alpha_uses_grey_level(tmp_path):
    from app.modules.shapes import asset_path, build_mask

    grey = np.zeros((140, 140), dtype=np.uint8)
    grey[40:100, 40:100] = 255
    cv2.imwrite(str(asset_path(tmp_path, ShapeKind.TRIANGLE)), grey)

    mask = build_mask(ShapeKind.TRIANGLE, tmp_path)
    assert mask.source is MaskSource.ASSET
    assert mask.alpha[35, 35] == 255
    assert mask.alpha[5, 5] == 0


def test_undecodable_asset_falls_back(tmp_path):
    from app.modules.shapes import asset_path, build_mask, select_mask_strategy

    asset_path(tmp_path, ShapeKind.STAR).write_bytes(b"\x89PNG broken")
    source, img = select_mask_strategy(ShapeKind.STAR, tmp_path)
    assert source is MaskSource.PROCEDURAL and img is None
    assert build_mask(ShapeKind.STAR, tmp_path).source is MaskSource.PROCEDURAL


def test_build_mask_set_covers_every_kind(tmp_path):
    from app.modules.shapes import build_mask_set

    masks = build_mask_set(tmp_path)
    assert set(masks) == set(ShapeKind)
    assert all(m.kind is k for k, m in masks.items())
