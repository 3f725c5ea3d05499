# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
ShapeCaptcha — Shape Predicates
Closed-form inside/outside tests for the four puzzle shapes on the fixed
70×70 mask frame, plus the matching outlines used to render mask assets.

Predicates take integer pixel coordinates (scalars or numpy arrays of any
matching shape) and return booleans, so the whole frame is evaluated in
one vectorised call. All geometry is fixed relative to the frame; nothing
here is configurable at runtime.
"""

from __future__ import annotations

import math

import numpy as np

from app.models.shape import PUZZLE_HEIGHT, PUZZLE_WIDTH, ShapeKind

_CX = PUZZLE_WIDTH // 2
_CY = PUZZLE_HEIGHT // 2

# ─── Shape constants ─────────────────────────────────────────────────────────

# Triangle: apex up, margins on all four sides
TRIANGLE_MARGIN = 8

# Hexagon: flat-topped, vertices at 0°, 60°, … 300°
HEXAGON_RADIUS = PUZZLE_WIDTH // 2 - 10

# Trapezoid: narrow top, wide bottom
TRAPEZOID_HEIGHT = PUZZLE_HEIGHT - 20
TRAPEZOID_TOP_WIDTH = PUZZLE_WIDTH - 40
TRAPEZOID_BOTTOM_WIDTH = PUZZLE_WIDTH - 20

# Star: five points; the inner radius ratio is hand-tuned
STAR_POINTS = 5
STAR_OUTER_RADIUS = PUZZLE_WIDTH // 2 - 8
STAR_INNER_RATIO = 0.4
STAR_INNER_RADIUS = STAR_OUTER_RADIUS * STAR_INNER_RATIO


# ─── Triangle ────────────────────────────────────────────────────────────────

def inside_triangle(x, y):
    """Width grows linearly from 0 at the top margin to the full base width."""
    m = TRIANGLE_MARGIN
    height = PUZZLE_HEIGHT - 2 * m
    base_width = PUZZLE_WIDTH - 2 * m

    in_band = (x >= m) & (x < PUZZLE_WIDTH - m) & (y >= m) & (y < PUZZLE_HEIGHT - m)
    rel_y = (np.asarray(y, dtype=np.float64) - m) / height
    width = base_width * rel_y
    return in_band & (np.abs(np.asarray(x) - _CX) <= width / 2)


# ─── Hexagon ─────────────────────────────────────────────────────────────────

def hexagon_vertices(radius: float = HEXAGON_RADIUS) -> list[tuple[float, float]]:
    """Vertices relative to the frame centre, clockwise on screen (y down)."""
    h = radius * math.sqrt(3) / 2
    return [
        (radius, 0.0),
        (radius / 2, h),
        (-radius / 2, h),
        (-radius, 0.0),
        (-radius / 2, -h),
        (radius / 2, -h),
    ]


def inside_hexagon(x, y):
    """Half-plane test: the point must be on the non-negative side of every edge."""
    px = np.asarray(x, dtype=np.float64) - _CX
    py = np.asarray(y, dtype=np.float64) - _CY
    verts = hexagon_vertices()

    inside = np.ones(np.broadcast(px, py).shape, dtype=bool)
    for i, (vx, vy) in enumerate(verts):
        wx, wy = verts[(i + 1) % len(verts)]
        cross = (wx - vx) * (py - vy) - (wy - vy) * (px - vx)
        inside &= cross >= 0
    return inside


# ─── Trapezoid ───────────────────────────────────────────────────────────────

def inside_trapezoid(x, y):
    dx = np.asarray(x, dtype=np.float64) - _CX
    dy = np.asarray(y, dtype=np.float64) - _CY
    half_h = TRAPEZOID_HEIGHT / 2

    norm_y = (dy + half_h) / TRAPEZOID_HEIGHT  # 0 at top edge, 1 at bottom
    width = TRAPEZOID_TOP_WIDTH + (TRAPEZOID_BOTTOM_WIDTH - TRAPEZOID_TOP_WIDTH) * norm_y
    return (np.abs(dy) <= half_h) & (np.abs(dx) <= width / 2)


# ─── Star ────────────────────────────────────────────────────────────────────

def star_radius(angle):
    """
    Boundary radius at a screen angle (radians, atan2 convention).
    Ramps from the outer radius at each sector centre down to the inner
    radius at the sector edges, once per 72° sector.
    """
    segment = 2 * math.pi / STAR_POINTS
    half = segment / 2

    a = np.mod(np.asarray(angle, dtype=np.float64) + math.pi / 2, 2 * math.pi)
    in_segment = np.mod(a, segment)
    offset = np.abs(in_segment - half)
    return STAR_INNER_RADIUS + (STAR_OUTER_RADIUS - STAR_INNER_RADIUS) * (1 - offset / half)


def inside_star(x, y):
    dx = np.asarray(x, dtype=np.float64) - _CX
    dy = np.asarray(y, dtype=np.float64) - _CY
    dist = np.hypot(dx, dy)
    return dist <= star_radius(np.arctan2(dy, dx))


# ─── Dispatch ────────────────────────────────────────────────────────────────

_PREDICATES = {
    ShapeKind.TRIANGLE: inside_triangle,
    ShapeKind.HEXAGON: inside_hexagon,
    ShapeKind.TRAPEZOID: inside_trapezoid,
    ShapeKind.STAR: inside_star,
}


def is_inside(kind: ShapeKind, x, y):
    return _PREDICATES[kind](x, y)


def shape_outline(kind: ShapeKind, samples: int = 720) -> list[tuple[float, float]]:
    """
    Closed outline of a shape in frame coordinates (pixels, y down).
    Describes the same region the predicate accepts; the star's boundary
    is curved in polar form so it is sampled at `samples` angles.
    """
    if kind is ShapeKind.TRIANGLE:
        m = TRIANGLE_MARGIN
        return [
            (_CX, m),
            (PUZZLE_WIDTH - m, PUZZLE_HEIGHT - m),
            (m, PUZZLE_HEIGHT - m),
        ]
    if kind is ShapeKind.HEXAGON:
        return [(_CX + vx, _CY + vy) for vx, vy in hexagon_vertices()]
    if kind is ShapeKind.TRAPEZOID:
        top = _CY - TRAPEZOID_HEIGHT / 2
        bottom = _CY + TRAPEZOID_HEIGHT / 2
        return [
            (_CX - TRAPEZOID_TOP_WIDTH / 2, top),
            (_CX + TRAPEZOID_TOP_WIDTH / 2, top),
            (_CX + TRAPEZOID_BOTTOM_WIDTH / 2, bottom),
            (_CX - TRAPEZOID_BOTTOM_WIDTH / 2, bottom),
        ]
    # Star
    angles = np.linspace(-math.pi, math.pi, samples, endpoint=False)
    radii = star_radius(angles)
    return [
        (_CX + r * math.cos(a), _CY + r * math.sin(a))
        for a, r in zip(angles.tolist(), radii.tolist())
    ]
