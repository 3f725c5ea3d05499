# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
ShapeCaptcha — FastAPI Application Entry Point
Creates the app, registers lifespan events, CORS, routers,
and global error handlers.
"""

from __future__ import annotations

import asyncio
import contextlib
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.middleware.error_handler import register_error_handlers
from app.api.routes import captcha
from app.config import Settings, get_settings
from app.core.captcha_service import build_context
from app.core.session_store import SessionStore
from app.dependencies import (
    get_captcha_service,
    init_captcha_service,
    init_session_store,
    reset_captcha_service,
)
from app.utils.logger import configure_logging, get_logger

log = get_logger(__name__)


async def _sweep_sessions(store: SessionStore, settings: Settings) -> None:
    """Evict expired sessions every sweep interval until cancelled."""
    while True:
        await asyncio.sleep(settings.session_sweep_interval_seconds)
        removed = await asyncio.to_thread(store.evict, settings.session_ttl)
        if removed:
            log.debug("session_sweep", removed=removed)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Startup: configure logging, initialise the SessionStore, preload
    backgrounds and masks, start the expiry sweeper.
    Shutdown: stop the sweeper and drop the service.
    """
    # ── Startup ──────────────────────────────────────────────────────────────
    configure_logging()
    settings = get_settings()

    log.info(
        "shapecaptcha_startup",
        version="1.0.0",
        backgrounds=len(settings.background_sources),
        mask_asset_dir=str(settings.mask_asset_dir),
        session_store=settings.session_store_backend,
        delivered_size=settings.delivered_size,
    )

    store = init_session_store()

    # A missing background is fatal: the app must not start half-loaded
    try:
        context = await asyncio.to_thread(build_context, settings)
    except Exception as e:
        log.error("captcha_context_failed", error=str(e))
        raise
    init_captcha_service(context, store)

    sweeper = asyncio.create_task(_sweep_sessions(store, settings))

    log.info("shapecaptcha_ready", masks=context.mask_sources)
    yield

    # ── Shutdown ─────────────────────────────────────────────────────────────
    sweeper.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweeper
    reset_captcha_service()
    log.info("shapecaptcha_shutdown")


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="ShapeCaptcha",
        summary="Slider puzzle captcha — drag the shape into its hole.",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # ── CORS ─────────────────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Error Handlers ───────────────────────────────────────────────────────
    register_error_handlers(app)

    # ── Routers ──────────────────────────────────────────────────────────────
    app.include_router(captcha.router)

    # ── Health Check ─────────────────────────────────────────────────────────
    @app.get("/health", tags=["health"], summary="Health check")
    async def health() -> dict:
        context = get_captcha_service().context
        return {
            "status": "ok",
            "service": "shapecaptcha",
            "version": "1.0.0",
            "backgrounds": len(context.backgrounds),
            "masks": context.mask_sources,
            "session_store": settings.session_store_backend,
        }

    return app


# Module-level app instance for uvicorn
app = create_app()
