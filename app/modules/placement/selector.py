# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
ShapeCaptcha — Placement Selector
Picks where the hole goes and which shape cuts it.

The anchor is drawn uniformly from a window around the canvas centre:
±25 % of the width horizontally, ±15 % of the height vertically, always
leaving room for the full 70×70 frame.
"""

from __future__ import annotations

import random
from typing import Optional

from app.models.shape import PUZZLE_HEIGHT, PUZZLE_WIDTH, Placement, ShapeKind

X_SPREAD = 0.25
Y_SPREAD = 0.15

_SHAPES = tuple(ShapeKind)


def placement_range(length: int, spread: float, frame: int) -> tuple[int, int]:
    """
    Inclusive [lo, hi] range for one axis.

    When the centred window is too narrow for the frame it is replaced by
    one frame-width window ending at the nearest valid boundary.
    Raises ValueError if the axis is shorter than the frame.
    """
    if length < frame:
        raise ValueError(
            f"Canvas axis of {length}px cannot hold a {frame}px puzzle piece."
        )
    half, reach = length // 2, int(length * spread)
    lo = max(0, half - reach)
    hi = min(length - frame, half + reach - frame)
    if hi <= lo:
        hi = min(lo + frame, length - frame)
        lo = max(0, hi - frame)
    return lo, hi


def choose_placement(
    canvas_w: int,
    canvas_h: int,
    rng: Optional[random.Random] = None,
) -> tuple[Placement, ShapeKind]:
    """
    Choose a placement and shape for a canvas of the given size.
    Guarantees 0 ≤ x ≤ W − 70 and 0 ≤ y ≤ H − 70.
    """
    rng = rng or random.Random()
    x_lo, x_hi = placement_range(canvas_w, X_SPREAD, PUZZLE_WIDTH)
    y_lo, y_hi = placement_range(canvas_h, Y_SPREAD, PUZZLE_HEIGHT)
    placement = Placement(rng.randint(x_lo, x_hi), rng.randint(y_lo, y_hi))
    return placement, rng.choice(_SHAPES)
