# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
ShapeCaptcha — Shape & Placement Models
Shape kinds, the tagged mask produced by the mask builder, and the
anchor coordinate a mask is cut at.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

# Fixed size of every mask and every extracted piece
PUZZLE_WIDTH = 70
PUZZLE_HEIGHT = 70


class ShapeKind(str, Enum):
    TRIANGLE = "triangle"
    HEXAGON = "hexagon"
    TRAPEZOID = "trapezoid"
    STAR = "star"


class MaskSource(str, Enum):
    """Which strategy produced a mask."""
    ASSET = "asset"
    PROCEDURAL = "procedural"


@dataclass(frozen=True)
class Placement:
    """Top-left anchor of a 70×70 mask on a canvas."""
    x: int
    y: int

    def scaled(self, sx: float, sy: float) -> "Placement":
        """Map into another canvas size; truncates like the delivered coordinates."""
        return Placement(int(self.x * sx), int(self.y * sy))


class ShapeMask(BaseModel):
    """
    A built 70×70 opacity field, tagged with the strategy that made it.
    The alpha array is made read-only so it can be shared across requests.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    kind: ShapeKind
    # uint8 (70, 70); 0 = outside the shape
    alpha: Any = Field(..., description="np.ndarray uint8 (70, 70) opacity field")
    source: MaskSource

    @property
    def footprint(self) -> np.ndarray:
        """Boolean (70, 70) array — True where the mask is non-transparent."""
        return np.asarray(self.alpha) > 0

    @property
    def area_px(self) -> int:
        return int(self.footprint.sum())
