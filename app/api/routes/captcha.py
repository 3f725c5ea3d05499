# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
ShapeCaptcha — GET /api/captcha/generate + POST /api/captcha/verify
Thin wrappers over CaptchaService. Rendering runs in a worker thread so
the event loop keeps serving while pixels are pushed around.
"""

from __future__ import annotations

import asyncio

from fastapi import APIRouter

from app.dependencies import CaptchaServiceDep
from app.models.captcha import (
    CaptchaPayload,
    GenerateResponse,
    VerifyRequest,
    VerifyResponse,
)
from app.utils.logger import get_logger

router = APIRouter(prefix="/api/captcha", tags=["captcha"])
log = get_logger(__name__)


@router.get(
    "/generate",
    response_model=GenerateResponse,
    response_model_by_alias=True,
    summary="Generate a slider captcha",
    description=(
        "Returns the background with the hole, the 70×70 puzzle piece "
        "(both as PNG data URIs), the session id and the piece's vertical "
        "offset. The horizontal offset is withheld."
    ),
)
async def generate_captcha(service: CaptchaServiceDep) -> GenerateResponse:
    captcha = await asyncio.to_thread(service.generate)
    return GenerateResponse(data=CaptchaPayload.from_generated(captcha))


@router.post(
    "/verify",
    response_model=VerifyResponse,
    summary="Verify a slider position",
    description=(
        "Checks the submitted horizontal offset against the stored one "
        "(±tolerance). Each session can be verified once. Unknown or "
        "expired ids answer with code 400 in the body."
    ),
)
async def verify_captcha(body: VerifyRequest, service: CaptchaServiceDep) -> VerifyResponse:
    result = service.verify(body.id, body.x)
    log.debug("verify_requested", session_id=body.id, result=result.value)
    return VerifyResponse.from_result(result)
