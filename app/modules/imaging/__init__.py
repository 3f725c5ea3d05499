# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
ShapeCaptcha — Imaging Module
Public API for resampling.
"""

from app.modules.imaging.resampler import resize_bilinear

__all__ = [
    "resize_bilinear",
]
