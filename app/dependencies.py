# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
ShapeCaptcha — FastAPI Dependencies
Singleton providers for the SessionStore and the CaptchaService.
Both are instantiated once at startup via the lifespan event in main.py
and stored here as module-level singletons.
Route handlers access them via FastAPI's Depends() injection.
"""

from __future__ import annotations

from typing import Annotated, Optional

from fastapi import Depends

from app.api.middleware.error_handler import CaptchaUnavailableError
from app.config import get_settings
from app.core.captcha_service import CaptchaContext, CaptchaService
from app.core.session_store import (
    InMemorySessionStore,
    RedisSessionStore,
    SessionStore,
)
from app.utils.logger import get_logger

log = get_logger(__name__)

# ─── SessionStore Singleton ──────────────────────────────────────────────────

_session_store: SessionStore | None = None


def init_session_store() -> SessionStore:
    """
    Initialise the SessionStore singleton based on SESSION_STORE_BACKEND config.
    Called once during application lifespan startup.
    """
    global _session_store
    settings = get_settings()

    if settings.session_store_backend == "redis":
        log.info("init_session_store", backend="redis", url=settings.redis_url)
        _session_store = RedisSessionStore(
            redis_url=settings.redis_url,
            ttl_seconds=settings.session_ttl_seconds,
        )
    else:
        log.info("init_session_store", backend="memory")
        _session_store = InMemorySessionStore(
            ttl_seconds=settings.session_ttl_seconds,
        )
    return _session_store


def get_session_store() -> SessionStore:
    """FastAPI dependency: inject the SessionStore singleton."""
    if _session_store is None:
        raise RuntimeError(
            "SessionStore has not been initialised. "
            "Ensure init_session_store() is called during app lifespan startup."
        )
    return _session_store


SessionStoreDep = Annotated[SessionStore, Depends(get_session_store)]


# ─── CaptchaService Singleton ────────────────────────────────────────────────

_captcha_service: CaptchaService | None = None


def init_captcha_service(
    context: CaptchaContext,
    store: Optional[SessionStore] = None,
) -> CaptchaService:
    """
    Wire the service over a built context. Called once during lifespan
    startup, after the session store exists.
    """
    global _captcha_service
    settings = get_settings()
    _captcha_service = CaptchaService(
        context=context,
        store=store or get_session_store(),
        tolerance=settings.verify_tolerance_px,
    )
    log.info(
        "init_captcha_service",
        backgrounds=len(context.backgrounds),
        masks=context.mask_sources,
        tolerance=settings.verify_tolerance_px,
    )
    return _captcha_service


def reset_captcha_service() -> None:
    """Drop the service singleton (lifespan shutdown)."""
    global _captcha_service
    _captcha_service = None


def get_captcha_service() -> CaptchaService:
    """
    FastAPI dependency: inject the CaptchaService singleton.

    Usage in a route:
        @router.get("/api/captcha/generate")
        async def generate(service: CaptchaServiceDep):
            captcha = await asyncio.to_thread(service.generate)
            ...
    """
    if _captcha_service is None:
        raise CaptchaUnavailableError(
            "Captcha context has not been built. "
            "Ensure init_captcha_service() is called during app lifespan startup."
        )
    return _captcha_service


CaptchaServiceDep = Annotated[CaptchaService, Depends(get_captcha_service)]
