# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
ShapeCaptcha — Captcha Session & API Models
The stored session record, the generation/verification results of the
service façade, and the request/response bodies of the HTTP routes.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from app.models.shape import ShapeKind


class CaptchaSession(BaseModel):
    """Server-side record of a generated captcha's true placement."""
    session_id: str
    # Delivered-canvas (350×200) coordinates of the hole's top-left corner
    position_x: int
    position_y: int
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    def is_expired(self, ttl: timedelta, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now - self.created_at > ttl


class VerifyResult(str, Enum):
    SUCCESS = "success"
    MISMATCH = "mismatch"
    NOT_FOUND = "not_found"

    @property
    def success(self) -> bool:
        return self is VerifyResult.SUCCESS


@dataclass
class GeneratedCaptcha:
    """Output of CaptchaService.generate — PNG bytes, not yet wire-encoded."""
    session_id: str
    background_png: bytes
    piece_png: bytes
    position_y: int
    shape: ShapeKind


def png_data_uri(data: bytes) -> str:
    """Encode PNG bytes as a data URI the browser can use directly as <img src>."""
    return "data:image/png;base64," + base64.b64encode(data).decode("ascii")


# ─── API Request/Response Schemas ────────────────────────────────────────────

class CaptchaPayload(BaseModel):
    """Body of data for GET /api/captcha/generate."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    background: str = Field(..., description="data URI of the background with the hole")
    slider: str = Field(..., description="data URI of the 70×70 puzzle piece")
    position_y: int = Field(..., alias="positionY")

    @classmethod
    def from_generated(cls, captcha: GeneratedCaptcha) -> "CaptchaPayload":
        return cls(
            id=captcha.session_id,
            background=png_data_uri(captcha.background_png),
            slider=png_data_uri(captcha.piece_png),
            position_y=captcha.position_y,
        )


class GenerateResponse(BaseModel):
    code: int = 200
    message: str = "success"
    data: CaptchaPayload


class VerifyRequest(BaseModel):
    """Request body for POST /api/captcha/verify."""
    id: str = Field(..., min_length=1)
    x: int = Field(..., description="Claimed horizontal offset in delivered pixels")


class VerifyData(BaseModel):
    success: bool
    result: VerifyResult


class VerifyResponse(BaseModel):
    code: int
    message: str
    data: VerifyData

    @classmethod
    def from_result(cls, result: VerifyResult) -> "VerifyResponse":
        if result is VerifyResult.NOT_FOUND:
            return cls(
                code=400,
                message="captcha not found or expired",
                data=VerifyData(success=False, result=result),
            )
        message = (
            "Verification successful" if result.success else "Verification failed"
        )
        return cls(
            code=200,
            message=message,
            data=VerifyData(success=result.success, result=result),
        )
