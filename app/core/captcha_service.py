# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
ShapeCaptcha — Captcha Service
Orchestrates generation and verification.

Startup builds an immutable CaptchaContext (decoded backgrounds + the
four masks). Each generate() call then runs:

  pick background → choose placement (full-size canvas)
  → resize canvas to the delivered size → scale placement
  → cut hole → extract piece → encode PNGs → record session

The context is shared read-only across worker threads; every request
works on its own copies. The session store is the only mutable state.
"""

from __future__ import annotations

import random
import uuid
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Callable, Mapping, Optional

import numpy as np
import structlog

from app.api.middleware.error_handler import SourceUnavailableError
from app.config import BGRAColor, Settings
from app.core.session_store import SessionStore
from app.models.captcha import GeneratedCaptcha, VerifyResult
from app.models.shape import (
    PUZZLE_HEIGHT,
    PUZZLE_WIDTH,
    Placement,
    ShapeKind,
    ShapeMask,
)
from app.modules.compositing import cut_hole, extract_piece
from app.modules.imaging import resize_bilinear
from app.modules.placement import choose_placement
from app.modules.shapes import build_mask_set
from app.utils.geometry_utils import clamp
from app.utils.image_utils import bgra_to_png_bytes, fetch_image
from app.utils.logger import get_logger

log = get_logger(__name__)

ImageFetcher = Callable[..., np.ndarray]


# ─── Context ─────────────────────────────────────────────────────────────────

@dataclass(frozen=True, eq=False)
class CaptchaContext:
    """Everything generation needs, loaded once and never mutated."""
    backgrounds: tuple[np.ndarray, ...]
    masks: Mapping[ShapeKind, ShapeMask]
    delivered_size: tuple[int, int]
    hole_border_color: Optional[BGRAColor] = (0, 0, 0, 0)
    piece_border_color: Optional[BGRAColor] = (255, 255, 255, 255)

    @property
    def mask_sources(self) -> dict[str, str]:
        return {kind.value: mask.source.value for kind, mask in self.masks.items()}


def _read_only(img: np.ndarray) -> np.ndarray:
    img = np.ascontiguousarray(img)
    img.setflags(write=False)
    return img


def build_context(
    settings: Settings,
    fetch: ImageFetcher = fetch_image,
) -> CaptchaContext:
    """
    Preload every background and build the mask set.

    Raises:
        SourceUnavailableError: no background configured, or any one of
            them cannot be fetched or decoded. The service must not start
            with a partial background set.
    """
    if not settings.background_sources:
        raise SourceUnavailableError("No background sources configured.")

    backgrounds = []
    for source in settings.background_sources:
        img = fetch(source, timeout=settings.fetch_timeout_seconds)
        h, w = img.shape[:2]
        if w < PUZZLE_WIDTH or h < PUZZLE_HEIGHT:
            raise SourceUnavailableError(
                f"Background {source!r} is {w}×{h}; "
                f"at least {PUZZLE_WIDTH}×{PUZZLE_HEIGHT} is required."
            )
        backgrounds.append(_read_only(img))
        log.info("background_loaded", source=source, width=w, height=h)

    masks = build_mask_set(Path(settings.mask_asset_dir))

    return CaptchaContext(
        backgrounds=tuple(backgrounds),
        masks=MappingProxyType(dict(masks)),
        delivered_size=settings.delivered_size,
        hole_border_color=settings.hole_border_color,
        piece_border_color=settings.piece_border_color,
    )


# ─── Service ─────────────────────────────────────────────────────────────────

class CaptchaService:
    """
    Façade over the pipeline and the session store.
    generate() and verify() are synchronous; routes run generate() in a
    worker thread.
    """

    def __init__(
        self,
        context: CaptchaContext,
        store: SessionStore,
        tolerance: int = 5,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._context = context
        self._store = store
        self._tolerance = tolerance
        self._rng = rng or random.Random()

    @property
    def context(self) -> CaptchaContext:
        return self._context

    def generate(self) -> GeneratedCaptcha:
        """Render one captcha and record its true placement."""
        ctx = self._context
        session_id = str(uuid.uuid4())
        structlog.contextvars.bind_contextvars(session_id=session_id)
        try:
            background = self._rng.choice(ctx.backgrounds)
            src_h, src_w = background.shape[:2]
            placement, shape = choose_placement(src_w, src_h, self._rng)

            out_w, out_h = ctx.delivered_size
            canvas = resize_bilinear(background, out_w, out_h)
            scaled = placement.scaled(out_w / src_w, out_h / src_h)
            x = clamp(scaled.x, 0, out_w - PUZZLE_WIDTH)
            y = clamp(scaled.y, 0, out_h - PUZZLE_HEIGHT)
            delivered = Placement(x, y)

            mask = ctx.masks[shape]
            with_hole = cut_hole(canvas, delivered, mask, ctx.hole_border_color)
            piece = extract_piece(canvas, delivered, mask, ctx.piece_border_color)

            captcha = GeneratedCaptcha(
                session_id=session_id,
                background_png=bgra_to_png_bytes(with_hole),
                piece_png=bgra_to_png_bytes(piece),
                position_y=y,
                shape=shape,
            )
            self._store.put(session_id, x, y)
            log.info(
                "captcha_generated",
                shape=shape.value,
                mask_source=mask.source.value,
                source_size=(src_w, src_h),
                position=(x, y),
            )
            return captcha
        finally:
            structlog.contextvars.unbind_contextvars("session_id")

    def verify(self, session_id: str, x: int) -> VerifyResult:
        """
        Check a claimed horizontal offset. The session is consumed by the
        attempt whatever the outcome.
        """
        session = self._store.take_if_present(session_id)
        if session is None:
            log.info("captcha_not_found", session_id=session_id)
            return VerifyResult.NOT_FOUND

        if abs(x - session.position_x) <= self._tolerance:
            result = VerifyResult.SUCCESS
        else:
            result = VerifyResult.MISMATCH
        log.info(
            "captcha_verified",
            session_id=session_id,
            result=result.value,
            delta=x - session.position_x,
        )
        return result
