# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
ShapeCaptcha — Abstract SessionStore
Clean interface over captcha session storage.
Swap InMemorySessionStore for RedisSessionStore with zero service changes.

InMemorySessionStore  — development / single-worker deployments
RedisSessionStore     — production / multi-worker deployments

Sessions are single use: take_if_present removes the entry it returns.
An expired entry is never returned, even before the sweeper removes it.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional

from app.models.captcha import CaptchaSession
from app.utils.logger import get_logger

log = get_logger(__name__)


# ─── Abstract Interface ──────────────────────────────────────────────────────

class SessionStore(ABC):
    """
    Abstract base class for all session backends.
    All methods are synchronous and safe to call from worker threads.
    """

    @abstractmethod
    def put(self, session_id: str, position_x: int, position_y: int) -> CaptchaSession:
        """Record a new session. Returns the stored CaptchaSession."""

    @abstractmethod
    def take_if_present(self, session_id: str) -> Optional[CaptchaSession]:
        """Remove and return a live session, or None if absent or expired."""

    @abstractmethod
    def evict(self, older_than: timedelta) -> int:
        """Drop sessions created more than `older_than` ago. Returns the count removed."""


# ─── In-Memory Implementation ────────────────────────────────────────────────

class InMemorySessionStore(SessionStore):
    """
    Thread-safe in-memory session store using a dict + RLock.
    All data is lost on process restart.
    """

    def __init__(self, ttl_seconds: int = 300) -> None:
        self._store: dict[str, CaptchaSession] = {}
        self._lock = threading.RLock()
        self._ttl = timedelta(seconds=ttl_seconds)

    def put(self, session_id: str, position_x: int, position_y: int) -> CaptchaSession:
        session = CaptchaSession(
            session_id=session_id,
            position_x=position_x,
            position_y=position_y,
        )
        with self._lock:
            self._store[session_id] = session
        log.debug("session_stored", session_id=session_id, backend="memory")
        return session

    def take_if_present(self, session_id: str) -> Optional[CaptchaSession]:
        with self._lock:
            session = self._store.pop(session_id, None)
        if session is None:
            return None
        if session.is_expired(self._ttl):
            log.debug("session_expired_on_take", session_id=session_id)
            return None
        return session

    def evict(self, older_than: timedelta) -> int:
        now = datetime.now(timezone.utc)
        with self._lock:
            stale = [
                sid for sid, session in self._store.items()
                if session.is_expired(older_than, now)
            ]
            for sid in stale:
                del self._store[sid]
        if stale:
            log.info("sessions_evicted", count=len(stale), backend="memory")
        return len(stale)

    def count(self) -> int:
        """Return total number of sessions held (useful for health checks)."""
        with self._lock:
            return len(self._store)


# ─── Redis Implementation ────────────────────────────────────────────────────

class RedisSessionStore(SessionStore):
    """
    Redis-backed session store for multi-worker deployments.
    Sessions are JSON-serialised and stored with TTL expiry, so Redis
    itself handles eviction.
    Requires redis-py and a running Redis instance.
    """

    def __init__(self, redis_url: str, ttl_seconds: int = 300) -> None:
        try:
            import redis as redis_lib
        except ImportError as e:
            raise ImportError(
                "redis package required for RedisSessionStore. "
                "Install with: pip install redis"
            ) from e

        self._client = redis_lib.from_url(redis_url, decode_responses=True)
        self._ttl = ttl_seconds
        self._prefix = "shapecaptcha:session:"

        # Verify connection on init
        self._client.ping()
        log.info("redis_session_store_connected", url=redis_url)

    def _key(self, session_id: str) -> str:
        return f"{self._prefix}{session_id}"

    def put(self, session_id: str, position_x: int, position_y: int) -> CaptchaSession:
        session = CaptchaSession(
            session_id=session_id,
            position_x=position_x,
            position_y=position_y,
        )
        self._client.setex(self._key(session_id), self._ttl, session.model_dump_json())
        log.debug("session_stored", session_id=session_id, backend="redis")
        return session

    def take_if_present(self, session_id: str) -> Optional[CaptchaSession]:
        # GET + DEL in one MULTI/EXEC so two verifiers cannot both win
        pipe = self._client.pipeline(transaction=True)
        pipe.get(self._key(session_id))
        pipe.delete(self._key(session_id))
        raw, _ = pipe.execute()
        if raw is None:
            return None
        return CaptchaSession.model_validate_json(raw)

    def evict(self, older_than: timedelta) -> int:
        # Keys carry their own TTL
        return 0
