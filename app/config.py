# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
ShapeCaptcha — Application Configuration
All settings are loaded from environment variables with defaults tuned
for the 350×200 slider widget. Override via .env or environment.
"""

from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# BGRA colour tuple, matching the internal channel order
BGRAColor = tuple[int, int, int, int]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_parse_none_str="null",
    )

    # ─── Background Images ───────────────────────────────────────────────────
    # Local paths or http(s) URLs, all preloaded once at startup.
    # Env var form is JSON: BACKGROUND_SOURCES='["images/a.jpg", "https://..."]'
    background_sources: list[str] = Field(default_factory=list)
    fetch_timeout_seconds: float = 10.0

    # ─── Shape Masks ─────────────────────────────────────────────────────────
    # Holds triangle.png / hexagon.png / trapezoid.png / star.png.
    # Missing files fall back to procedurally generated masks.
    mask_asset_dir: Path = Path("./assets/masks")

    # ─── Delivered Canvas ────────────────────────────────────────────────────
    delivered_width: int = 350
    delivered_height: int = 200

    # ─── Verification ────────────────────────────────────────────────────────
    verify_tolerance_px: int = 5

    # ─── Session Store ───────────────────────────────────────────────────────
    session_store_backend: Literal["memory", "redis"] = "memory"
    redis_url: str = "redis://localhost:6379/0"
    session_ttl_seconds: int = 300  # 5 minutes
    session_sweep_interval_seconds: float = 60.0

    # ─── Rendering ───────────────────────────────────────────────────────────
    # Alpha 0 disables the hole border entirely
    hole_border_color: BGRAColor = (0, 0, 0, 0)
    # None disables the piece border (env: PIECE_BORDER_COLOR=null)
    piece_border_color: Optional[BGRAColor] = (255, 255, 255, 255)

    # ─── Logging ─────────────────────────────────────────────────────────────
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # ─── Server ──────────────────────────────────────────────────────────────
    host: str = "0.0.0.0"
    port: int = 8087
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # ─── Derived helpers ─────────────────────────────────────────────────────
    @property
    def delivered_size(self) -> tuple[int, int]:
        return self.delivered_width, self.delivered_height

    @property
    def session_ttl(self) -> timedelta:
        return timedelta(seconds=self.session_ttl_seconds)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached singleton Settings instance."""
    return Settings()
