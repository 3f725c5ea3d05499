# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
ShapeCaptcha — Global Error Handler
Converts unhandled exceptions into structured JSON error responses.
Registered on the FastAPI app in main.py.

Unknown or expired captcha sessions are NOT errors: verification reports
them as a failed result, so there is no handler for them here.
"""

from __future__ import annotations

import traceback

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.utils.logger import get_logger

log = get_logger(__name__)


class SourceUnavailableError(RuntimeError):
    """Raised when a background image or mask asset cannot be read or decoded."""


class CaptchaUnavailableError(RuntimeError):
    """Raised when generation is requested before the captcha context is built."""


def _error_body(code: str, message: str, detail: str | None = None) -> dict:
    body = {"error": {"code": code, "message": message}}
    if detail:
        body["error"]["detail"] = detail
    return body


def register_error_handlers(app: FastAPI) -> None:
    """
    Register all global exception handlers on the FastAPI application.
    Call this in main.py after creating the app instance.
    """

    @app.exception_handler(SourceUnavailableError)
    async def source_unavailable_handler(
        req: Request, exc: SourceUnavailableError
    ) -> JSONResponse:
        log.error("source_unavailable", path=str(req.url), error=str(exc))
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content=_error_body(
                code="SOURCE_UNAVAILABLE",
                message=str(exc),
            ),
        )

    @app.exception_handler(CaptchaUnavailableError)
    async def captcha_unavailable_handler(
        req: Request, exc: CaptchaUnavailableError
    ) -> JSONResponse:
        log.warning("captcha_unavailable", path=str(req.url), error=str(exc))
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=_error_body(
                code="CAPTCHA_UNAVAILABLE",
                message="Captcha service is not ready.",
                detail=str(exc),
            ),
        )

    @app.exception_handler(Exception)
    async def generic_handler(req: Request, exc: Exception) -> JSONResponse:
        tb = traceback.format_exc()
        log.error(
            "unhandled_exception",
            path=str(req.url),
            error=str(exc),
            exc_type=type(exc).__name__,
            traceback=tb,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(
                code="INTERNAL_SERVER_ERROR",
                message="An unexpected error occurred.",
            ),
        )
