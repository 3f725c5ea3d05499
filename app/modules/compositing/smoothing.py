# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
ShapeCaptcha — Edge Smoothing Passes
Pixel passes that hide the raster staircase along a mask boundary.

Every pass is a pure function  (piece, geometry) -> piece : it reads the
BGRA uint8 input, never mutates it, and returns a new BGRA uint8 array.
Shape-specific behaviour lives entirely in the MaskGeometry; the passes
themselves are shape-agnostic.

Neighbourhood sums use cv2.filter2D with zero-constant borders, so pixels
outside the 70×70 frame never contribute. Weighted averages are taken only
over "sources": masked pixels that are not part of the painted border.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

import cv2
import numpy as np

from app.utils.geometry_utils import grow_bbox, mask_to_bbox

# ─── Kernels & tuning constants ──────────────────────────────────────────────

GAUSSIAN_KERNEL = np.array(
    [[1.0, 2.0, 1.0],
     [2.0, 4.0, 2.0],
     [1.0, 2.0, 1.0]],
    dtype=np.float64,
)
GAUSSIAN_KERNEL_SUM = 16.0
BLUR_ITERATIONS = 2

# Anti-alias: 7×7 window, weight 1 / (d + 1)^1.5, blend 50 % → 90 %
ANTIALIAS_RADIUS = 3
ANTIALIAS_FALLOFF = 1.5
ANTIALIAS_BASE_RATIO = 0.5
ANTIALIAS_RATIO_SPAN = 0.4

# Diagonal edges: 5×5 window, weight 1 / (d + 1), fixed 60 % blend
DIAGONAL_RADIUS = 2
DIAGONAL_FALLOFF = 1.0
DIAGONAL_RATIO = 0.6

# Global smoothing toward the 8-neighbour mean
GLOBAL_SMOOTH_RATIO = 0.2

# Highlight: 5 % → 20 % brighter with more exposed neighbours
HIGHLIGHT_BASE_RATIO = 0.05
HIGHLIGHT_RATIO_SPAN = 0.15

_NEIGHBOURHOOD = 9.0  # 3×3 window size the ratios are normalised by
_TRUNCATION_SLACK = 1e-6

_EIGHT_NEIGHBOURS = np.array(
    [[1.0, 1.0, 1.0],
     [1.0, 0.0, 1.0],
     [1.0, 1.0, 1.0]],
    dtype=np.float64,
)


# ─── Mask geometry ───────────────────────────────────────────────────────────

@dataclass(frozen=True, eq=False)
class MaskGeometry:
    """
    Per-mask boolean/count fields shared by every pass.

    footprint   — alpha > 0
    edge        — masked pixels with an 8-neighbour that is transparent
                  or outside the frame
    border      — pixels painted with the border colour (edge, or empty
                  when the border is disabled)
    exposure    — number of in-frame transparent 8-neighbours (0–8)
    """
    footprint: np.ndarray
    edge: np.ndarray
    border: np.ndarray
    exposure: np.ndarray

    @property
    def sources(self) -> np.ndarray:
        return self.footprint & ~self.border

    @property
    def exposed(self) -> np.ndarray:
        """Non-border masked pixels touching transparency."""
        return self.sources & (self.exposure > 0)


def edge_footprint(footprint: np.ndarray) -> np.ndarray:
    """Masked pixels whose 3×3 neighbourhood leaves the footprint or the frame."""
    eroded = cv2.erode(
        footprint.astype(np.uint8),
        np.ones((3, 3), dtype=np.uint8),
        borderType=cv2.BORDER_CONSTANT,
        borderValue=0,
    )
    return footprint & (eroded == 0)


def transparent_neighbour_count(footprint: np.ndarray) -> np.ndarray:
    """Count of transparent 8-neighbours inside the frame (out-of-frame ignored)."""
    counts = _correlate((~footprint).astype(np.float64), _EIGHT_NEIGHBOURS)
    return np.rint(counts).astype(np.int32)


def mask_geometry(alpha: np.ndarray, with_border: bool) -> MaskGeometry:
    footprint = np.asarray(alpha) > 0
    edge = edge_footprint(footprint)
    border = edge if with_border else np.zeros_like(footprint)
    return MaskGeometry(
        footprint=footprint,
        edge=edge,
        border=border,
        exposure=transparent_neighbour_count(footprint),
    )


# ─── Helpers ─────────────────────────────────────────────────────────────────

def _correlate(
    values: np.ndarray,
    kernel: np.ndarray,
    border_type: int = cv2.BORDER_CONSTANT,
) -> np.ndarray:
    return cv2.filter2D(values, cv2.CV_64F, kernel, borderType=border_type)


def to_u8(values: np.ndarray) -> np.ndarray:
    """Truncate to 8 bits, the way every pass writes its output buffer."""
    # Weighted sums of equal colours can land a hair under the integer
    return np.clip(np.floor(values + _TRUNCATION_SLACK), 0, 255).astype(np.uint8)


def distance_kernel(radius: int, falloff: float) -> np.ndarray:
    """(2r+1)² inverse-distance weights 1 / (d + 1)^falloff, centre excluded."""
    offsets = np.arange(-radius, radius + 1, dtype=np.float64)
    dy, dx = np.meshgrid(offsets, offsets, indexing="ij")
    kernel = 1.0 / np.power(np.hypot(dx, dy) + 1.0, falloff)
    kernel[radius, radius] = 0.0
    return kernel


def _weighted_average(
    piece: np.ndarray,
    sources: np.ndarray,
    kernel: np.ndarray,
) -> tuple[np.ndarray, np.ndarray]:
    """Kernel-weighted BGR average over source pixels; returns (avg, weight_sum)."""
    weights = sources.astype(np.float64)
    colour = piece[:, :, :3].astype(np.float64) * weights[:, :, None]
    num = _correlate(colour, kernel)
    den = _correlate(weights, kernel)
    avg = np.divide(
        num, den[:, :, None],
        out=np.zeros_like(num),
        where=den[:, :, None] > 0,
    )
    return avg, den


def _blend_toward(
    piece: np.ndarray,
    targets: np.ndarray,
    average: np.ndarray,
    ratio,
) -> np.ndarray:
    """Blend target pixels toward `average` by `ratio` (scalar or per-pixel)."""
    out = piece.copy()
    if not targets.any():
        return out
    ratio = np.broadcast_to(np.asarray(ratio, dtype=np.float64), targets.shape)
    cur = piece[:, :, :3].astype(np.float64)
    blended = cur + (average - cur) * ratio[:, :, None]
    out[targets, :3] = to_u8(blended[targets])
    out[targets, 3] = 255
    return out


# ─── Passes ──────────────────────────────────────────────────────────────────

def paint_border(
    piece: np.ndarray,
    geometry: MaskGeometry,
    color: Optional[tuple[int, int, int, int]],
) -> np.ndarray:
    """Overwrite the border pixels with a solid BGRA colour."""
    out = piece.copy()
    if color is not None:
        out[geometry.border] = color
    return out


def antialias_edges(piece: np.ndarray, geometry: MaskGeometry) -> np.ndarray:
    """
    Exposed edge pixels blend toward a steep inverse-distance average of
    the 7×7 neighbourhood. The more transparent neighbours a pixel has,
    the stronger the blend (about 54 % with one, 86 % with all eight).
    """
    avg, weight = _weighted_average(
        piece,
        geometry.sources,
        distance_kernel(ANTIALIAS_RADIUS, ANTIALIAS_FALLOFF),
    )
    targets = geometry.exposed & (weight > 0)
    ratio = ANTIALIAS_BASE_RATIO + geometry.exposure / _NEIGHBOURHOOD * ANTIALIAS_RATIO_SPAN
    return _blend_toward(piece, targets, avg, ratio)


def diagonal_targets(geometry: MaskGeometry) -> np.ndarray:
    """Source pixels with a transparent 4-neighbour both horizontally and vertically."""
    t = np.pad(~geometry.footprint, 1, constant_values=False)
    horizontal = t[1:-1, :-2] | t[1:-1, 2:]
    vertical = t[:-2, 1:-1] | t[2:, 1:-1]
    return geometry.sources & horizontal & vertical


def smooth_diagonal_edges(piece: np.ndarray, geometry: MaskGeometry) -> np.ndarray:
    """Staircase corners on slanted edges get an extra 60 % blend over 5×5."""
    avg, weight = _weighted_average(
        piece,
        geometry.sources,
        distance_kernel(DIAGONAL_RADIUS, DIAGONAL_FALLOFF),
    )
    targets = diagonal_targets(geometry) & (weight > 0)
    return _blend_toward(piece, targets, avg, DIAGONAL_RATIO)


def global_smooth(piece: np.ndarray, geometry: MaskGeometry) -> np.ndarray:
    """Light 80/20 blend of every source pixel toward its 8-neighbour mean."""
    avg, count = _weighted_average(piece, geometry.sources, _EIGHT_NEIGHBOURS)
    targets = geometry.sources & (count > 0)
    return _blend_toward(piece, targets, avg, GLOBAL_SMOOTH_RATIO)


def highlight_edges(piece: np.ndarray, geometry: MaskGeometry) -> np.ndarray:
    """Brighten exposed pixels to fake a bevel; clamped per channel."""
    out = piece.copy()
    targets = geometry.exposed
    if not targets.any():
        return out
    ratio = HIGHLIGHT_BASE_RATIO + geometry.exposure / _NEIGHBOURHOOD * HIGHLIGHT_RATIO_SPAN
    boosted = piece[:, :, :3].astype(np.float64) * (1.0 + ratio[:, :, None])
    out[targets, :3] = to_u8(np.floor(boosted[targets]))
    out[targets, 3] = 255
    return out


def masked_gaussian_blur(
    piece: np.ndarray,
    geometry: MaskGeometry,
    iterations: int = BLUR_ITERATIONS,
) -> np.ndarray:
    """
    3×3 Gaussian restricted to the footprint. Taps outside the mask or the
    frame are dropped and the result renormalised over the taps that
    remain. Masked pixels end fully opaque; everything else is cleared to
    (0, 0, 0, 0).
    """
    footprint = geometry.footprint
    weights = footprint.astype(np.float64)
    den = _correlate(weights, GAUSSIAN_KERNEL)

    out = piece.copy()
    for _ in range(iterations):
        colour = out[:, :, :3].astype(np.float64) * weights[:, :, None]
        num = _correlate(colour, GAUSSIAN_KERNEL)
        blurred = np.divide(
            num, den[:, :, None],
            out=np.zeros_like(num),
            where=den[:, :, None] > 0,
        )
        out = np.zeros_like(piece)
        out[footprint, :3] = to_u8(blurred[footprint])
        out[footprint, 3] = 255
    return out


def clamped_gaussian_blur(
    canvas: np.ndarray,
    region: np.ndarray,
    iterations: int = BLUR_ITERATIONS,
) -> np.ndarray:
    """
    3×3 Gaussian (÷ 16) applied only to `region` pixels of a full canvas,
    sampling the whole composite with edge-of-canvas clamping. Each
    iteration reads the previous iteration's output. Region pixels end
    fully opaque.
    """
    out = canvas.copy()
    if not region.any():
        return out

    # Region bounding box plus a 1-px ring; the ring is only ever clipped
    # at the canvas edge, where replication matches clamping.
    h, w = region.shape
    x0, y0, bw, bh = grow_bbox(mask_to_bbox(region), 1, (w, h))
    y1, x1 = y0 + bh, x0 + bw
    sub_region = region[y0:y1, x0:x1]
    kernel = GAUSSIAN_KERNEL / GAUSSIAN_KERNEL_SUM

    for _ in range(iterations):
        window = out[y0:y1, x0:x1]
        blurred = _correlate(
            window[:, :, :3].astype(np.float64),
            kernel,
            border_type=cv2.BORDER_REPLICATE,
        )
        window[sub_region, :3] = to_u8(blurred[sub_region])
        window[sub_region, 3] = 255
    return out


# ─── Pass chain ──────────────────────────────────────────────────────────────

SmoothingPass = Callable[[np.ndarray, MaskGeometry], np.ndarray]

# Order matters: each pass assumes the colour distribution the previous
# one leaves behind (anti-alias → diagonal → global → highlight → blur).
PIECE_SMOOTHING_CHAIN: tuple[SmoothingPass, ...] = (
    antialias_edges,
    smooth_diagonal_edges,
    global_smooth,
    highlight_edges,
    masked_gaussian_blur,
)


def run_chain(
    piece: np.ndarray,
    geometry: MaskGeometry,
    chain: tuple[SmoothingPass, ...] = PIECE_SMOOTHING_CHAIN,
) -> np.ndarray:
    for smoothing_pass in chain:
        piece = smoothing_pass(piece, geometry)
    return piece
