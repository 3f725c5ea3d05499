# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
Phase 1 infrastructure smoke tests.
Tests config loading, SessionStore behaviour, image I/O utilities,
geometry helpers, and the API skeleton.
"""

import json
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path

import cv2
import numpy as np
import pytest

# ─── Config ──────────────────────────────────────────────────────────────────

def test_settings_load_defaults():
    from app.config import Settings
    # Explicit kwargs so CI environment variables do not interfere
    s = Settings(
        _env_file=None,
        background_sources=[],
        log_level="INFO",
        session_store_backend="memory",
    )
    assert s.delivered_size == (350, 200)
    assert s.verify_tolerance_px == 5
    assert s.session_ttl_seconds == 300
    assert s.session_sweep_interval_seconds == 60.0
    assert s.hole_border_color == (0, 0, 0, 0)
    assert s.piece_border_color == (255, 255, 255, 255)
    assert s.port == 8087


def test_settings_env_override(monkeypatch):
    from app.config import Settings

    monkeypatch.setenv("BACKGROUND_SOURCES", json.dumps(["a.jpg", "https://x/b.png"]))
    monkeypatch.setenv("PIECE_BORDER_COLOR", "null")
    monkeypatch.setenv("VERIFY_TOLERANCE_PX", "3")
    s = Settings(_env_file=None)
    assert s.background_sources == ["a.jpg", "https://x/b.png"]
    assert s.piece_border_color is None
    assert s.verify_tolerance_px == 3


def test_settings_session_ttl():
    from app.config import Settings
    s = Settings(_env_file=None, session_ttl_seconds=90)
    assert s.session_ttl == timedelta(seconds=90)


# ─── InMemorySessionStore ────────────────────────────────────────────────────

def test_session_store_put_and_take():
    from app.core.session_store import InMemorySessionStore

    store = InMemorySessionStore()
    stored = store.put("abc", 120, 64)
    assert stored.position_x == 120

    taken = store.take_if_present("abc")
    assert taken is not None
    assert (taken.position_x, taken.position_y) == (120, 64)


def test_session_store_take_is_single_use():
    from app.core.session_store import InMemorySessionStore

    store = InMemorySessionStore()
    store.put("abc", 1, 2)
    assert store.take_if_present("abc") is not None
    assert store.take_if_present("abc") is None
    assert store.count() == 0


def test_session_store_take_nonexistent():
    from app.core.session_store import InMemorySessionStore

    store = InMemorySessionStore()
    assert store.take_if_present("does-not-exist") is None


def test_session_store_expired_entry_is_inert():
    from app.core.session_store import InMemorySessionStore

    store = InMemorySessionStore(ttl_seconds=300)
    session = store.put("old", 10, 10)
    # Age the record past the TTL without waiting
    store._store["old"] = session.model_copy(
        update={"created_at": datetime.now(timezone.utc) - timedelta(minutes=6)}
    )
    assert store.take_if_present("old") is None


def test_session_store_evict():
    from app.core.session_store import InMemorySessionStore

    store = InMemorySessionStore()
    old = store.put("old", 1, 1)
    store.put("fresh", 2, 2)
    store._store["old"] = old.model_copy(
        update={"created_at": datetime.now(timezone.utc) - timedelta(minutes=10)}
    )

    assert store.evict(timedelta(minutes=5)) == 1
    assert store.count() == 1
    assert store.take_if_present("fresh") is not None
    # Evicting again is a no-op
    assert store.evict(timedelta(minutes=5)) == 0


# ─── RedisSessionStore ───────────────────────────────────────────────────────

class _FakePipeline:
    def __init__(self, data: dict):
        self._data = data
        self._ops = []

    def get(self, key):
        self._ops.append(("get", key))

    def delete(self, key):
        self._ops.append(("delete", key))

    def execute(self):
        results = []
        for op, key in self._ops:
            if op == "get":
                results.append(self._data.get(key))
            else:
                results.append(1 if self._data.pop(key, None) is not None else 0)
        return results


class _FakeRedis:
    def __init__(self):
        self.data: dict = {}
        self.ttls: dict = {}

    def ping(self):
        return True

    def setex(self, key, ttl, value):
        self.data[key] = value
        self.ttls[key] = ttl

    def pipeline(self, transaction=True):
        return _FakePipeline(self.data)


def test_redis_session_store_round_trip(monkeypatch):
    redis = pytest.importorskip("redis")
    fake = _FakeRedis()
    monkeypatch.setattr(redis, "from_url", lambda url, decode_responses: fake)

    from app.core.session_store import RedisSessionStore

    store = RedisSessionStore("redis://localhost:6379/0", ttl_seconds=300)
    store.put("sid", 77, 33)

    assert fake.ttls["shapecaptcha:session:sid"] == 300
    taken = store.take_if_present("sid")
    assert (taken.position_x, taken.position_y) == (77, 33)
    assert store.take_if_present("sid") is None
    assert store.evict(timedelta(minutes=5)) == 0


# ─── Image Utilities ─────────────────────────────────────────────────────────

def test_to_bgra_channel_counts():
    from app.utils.image_utils import to_bgra

    gray = np.full((4, 5), 9, dtype=np.uint8)
    bgr = np.zeros((4, 5, 3), dtype=np.uint8)
    deep = np.full((4, 5, 3), 0x1234, dtype=np.uint16)

    assert to_bgra(gray).shape == (4, 5, 4)
    assert to_bgra(bgr)[..., 3].min() == 255
    assert to_bgra(deep)[0, 0, 0] == 0x12


def test_fetch_image_local(tmp_path):
    from app.utils.image_utils import fetch_image

    path = tmp_path / "bg.png"
    cv2.imwrite(str(path), np.full((80, 120, 3), 200, dtype=np.uint8))

    img = fetch_image(str(path))
    assert img.shape == (80, 120, 4)
    assert img.dtype == np.uint8


def test_fetch_image_missing_raises(tmp_path):
    from app.api.middleware.error_handler import SourceUnavailableError
    from app.utils.image_utils import fetch_image

    with pytest.raises(SourceUnavailableError):
        fetch_image(str(tmp_path / "nope.jpg"))


def test_fetch_image_undecodable_raises(tmp_path):
    from app.api.middleware.error_handler import SourceUnavailableError
    from app.utils.image_utils import fetch_image

    path = tmp_path / "garbage.png"
    path.write_bytes(b"not an image")
    with pytest.raises(SourceUnavailableError):
        fetch_image(str(path))


def test_fetch_image_remote(monkeypatch):
    import httpx
    from app.utils import image_utils

    ok, buf = cv2.imencode(".png", np.zeros((90, 90, 3), dtype=np.uint8))
    assert ok

    def fake_get(url, timeout, follow_redirects):
        return httpx.Response(200, content=buf.tobytes(), request=httpx.Request("GET", url))

    monkeypatch.setattr(image_utils.httpx, "get", fake_get)
    img = image_utils.fetch_image("https://example.com/bg.png")
    assert img.shape == (90, 90, 4)


def test_fetch_image_remote_http_error(monkeypatch):
    import httpx
    from app.api.middleware.error_handler import SourceUnavailableError
    from app.utils import image_utils

    def fake_get(url, timeout, follow_redirects):
        return httpx.Response(404, request=httpx.Request("GET", url))

    monkeypatch.setattr(image_utils.httpx, "get", fake_get)
    with pytest.raises(SourceUnavailableError):
        image_utils.fetch_image("https://example.com/missing.png")


def test_fetch_image_remote_empty_body(monkeypatch):
    import httpx
    from app.api.middleware.error_handler import SourceUnavailableError
    from app.utils import image_utils

    def fake_get(url, timeout, follow_redirects):
        return httpx.Response(200, content=b"", request=httpx.Request("GET", url))

    monkeypatch.setattr(image_utils.httpx, "get", fake_get)
    with pytest.raises(SourceUnavailableError):
        image_utils.fetch_image("https://example.com/empty.jpg")


def test_bytes_to_bgra_empty_raises():
    from app.utils.image_utils import bytes_to_bgra

    with pytest.raises(ValueError):
        bytes_to_bgra(b"")


def test_png_bytes_keep_alpha():
    from app.utils.image_utils import bgra_to_png_bytes, bytes_to_bgra

    img = np.zeros((10, 10, 4), dtype=np.uint8)
    img[2:5, 2:5] = (10, 20, 30, 255)
    decoded = bytes_to_bgra(bgra_to_png_bytes(img))
    assert decoded[0, 0, 3] == 0
    assert tuple(decoded[3, 3]) == (10, 20, 30, 255)


# ─── Geometry Utilities ──────────────────────────────────────────────────────

def test_frame_window_clips_off_canvas():
    from app.utils.geometry_utils import frame_window

    rows, cols, frows, fcols = frame_window((100, 100, 4), -10, 60, (70, 70))
    assert (cols.start, cols.stop) == (0, 60)
    assert (rows.start, rows.stop) == (60, 100)
    assert (fcols.start, fcols.stop) == (10, 70)
    assert (frows.start, frows.stop) == (0, 40)


def test_frame_window_entirely_off_canvas():
    from app.utils.geometry_utils import frame_window
    assert frame_window((100, 100), 200, 0, (70, 70)) is None


def test_project_frame_shape():
    from app.utils.geometry_utils import project_frame

    frame = np.ones((70, 70), dtype=bool)
    region = project_frame((200, 350), 300, 150, frame)
    assert region.shape == (200, 350)
    assert region.sum() == 50 * 50


def test_mask_to_bbox_and_grow():
    from app.utils.geometry_utils import grow_bbox, mask_to_bbox

    mask = np.zeros((20, 30), dtype=bool)
    mask[5:8, 0:4] = True
    assert mask_to_bbox(mask) == (0, 5, 4, 3)
    assert grow_bbox((0, 5, 4, 3), 1, (30, 20)) == (0, 4, 5, 5)


def test_mask_to_bbox_empty_raises():
    from app.utils.geometry_utils import mask_to_bbox
    with pytest.raises(ValueError):
        mask_to_bbox(np.zeros((5, 5), dtype=bool))


# ─── API Smoke Tests ─────────────────────────────────────────────────────────
# Use ASGITransport and asgi_lifespan so the FastAPI lifespan runs
# (which builds the session store and the captcha context).

from httpx import AsyncClient, ASGITransport
from asgi_lifespan import LifespanManager


def _write_background(directory: Path, name: str = "bg.png", size=(400, 300)) -> Path:
    w, h = size
    yy, xx = np.mgrid[0:h, 0:w]
    img = np.dstack([(xx * 255 // w), (yy * 255 // h), np.full((h, w), 128)]).astype(np.uint8)
    path = directory / name
    cv2.imwrite(str(path), img)
    return path


@asynccontextmanager
async def lifespan_client(monkeypatch, sources: list[str], mask_dir: Path):
    """
    Spin up the full FastAPI app including its lifespan (startup/shutdown),
    then yield an AsyncClient pointed at it.
    """
    monkeypatch.setenv("SESSION_STORE_BACKEND", "memory")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    monkeypatch.setenv("BACKGROUND_SOURCES", json.dumps(sources))
    monkeypatch.setenv("MASK_ASSET_DIR", str(mask_dir))

    # Clear settings cache so env overrides above take effect
    from app.config import get_settings
    get_settings.cache_clear()

    from app.main import create_app
    test_app = create_app()

    try:
        async with LifespanManager(test_app) as manager:
            transport = ASGITransport(app=manager.app)
            async with AsyncClient(transport=transport, base_url="http://test") as client:
                yield client
    finally:
        get_settings.cache_clear()


@pytest.mark.asyncio
async def test_health_endpoint(monkeypatch, tmp_path):
    bg = _write_background(tmp_path)
    async with lifespan_client(monkeypatch, [str(bg)], tmp_path / "masks") as c:
        resp = await c.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["service"] == "shapecaptcha"
    assert data["backgrounds"] == 1
    assert set(data["masks"].values()) == {"procedural"}


@pytest.mark.asyncio
async def test_generate_and_verify_over_http(monkeypatch, tmp_path):
    bg = _write_background(tmp_path)
    async with lifespan_client(monkeypatch, [str(bg)], tmp_path / "masks") as c:
        gen = await c.get("/api/captcha/generate")
        assert gen.status_code == 200
        body = gen.json()
        assert body["code"] == 200
        data = body["data"]
        assert data["background"].startswith("data:image/png;base64,")
        assert data["slider"].startswith("data:image/png;base64,")
        assert 0 <= data["positionY"] <= 200 - 70

        from app.dependencies import get_session_store
        true_x = get_session_store()._store[data["id"]].position_x

        ver = await c.post("/api/captcha/verify", json={"id": data["id"], "x": true_x + 5})
        assert ver.status_code == 200
        assert ver.json()["data"]["success"] is True

        again = await c.post("/api/captcha/verify", json={"id": data["id"], "x": true_x})
    assert again.status_code == 200
    assert again.json()["code"] == 400
    assert again.json()["message"] == "captcha not found or expired"


@pytest.mark.asyncio
async def test_verify_unknown_id(monkeypatch, tmp_path):
    bg = _write_background(tmp_path)
    async with lifespan_client(monkeypatch, [str(bg)], tmp_path / "masks") as c:
        resp = await c.post("/api/captcha/verify", json={"id": "nope", "x": 10})
    assert resp.status_code == 200
    assert resp.json()["code"] == 400
    assert resp.json()["data"]["success"] is False


@pytest.mark.asyncio
async def test_verify_rejects_malformed_body(monkeypatch, tmp_path):
    bg = _write_background(tmp_path)
    async with lifespan_client(monkeypatch, [str(bg)], tmp_path / "masks") as c:
        resp = await c.post("/api/captcha/verify", json={"id": "", "x": "left"})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_docs_available(monkeypatch, tmp_path):
    bg = _write_background(tmp_path)
    async with lifespan_client(monkeypatch, [str(bg)], tmp_path / "masks") as c:
        resp = await c.get("/docs")
    assert resp.status_code == 200
