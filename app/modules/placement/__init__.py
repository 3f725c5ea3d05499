# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
ShapeCaptcha — Placement Module
Public API for choosing hole placement and shape.
"""

from app.modules.placement.selector import choose_placement, placement_range

__all__ = [
    "choose_placement",
    "placement_range",
]
