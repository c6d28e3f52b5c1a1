"""Short-lived key/value cache with in-memory and Redis backends.

Used by the tier resolver to bound calls to the billing provider. Both
backends share an async get/set/delete API; the app hands one instance
to the tier resolver on ``app.state.tier_resolver``.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta
from typing import Any, Protocol

from mirrorplay.clock import Clock

logger = logging.getLogger(__name__)


# ── Protocol ───────────────────────────────────────────────


class TTLCache(Protocol):
    async def get(self, key: str) -> Any | None: ...
    async def set(self, key: str, value: Any, ttl: int) -> None: ...
    async def delete(self, key: str) -> None: ...


# ── In-Memory Implementation ──────────────────────────────


class InMemoryTTLCache:
    """Process-local cache; expiry is judged by the injected clock."""

    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._store: dict[str, tuple[Any, datetime]] = {}

    async def get(self, key: str) -> Any | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock.now() >= expires_at:
            self._store.pop(key, None)
            return None
        return value

    async def set(self, key: str, value: Any, ttl: int) -> None:
        self._store[key] = (value, self._clock.now() + timedelta(seconds=ttl))

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)

    def __len__(self) -> int:
        return len(self._store)


# ── Redis Implementation ──────────────────────────────────


class RedisTTLCache:
    """Wraps redis.asyncio with graceful error handling; errors read as a miss."""

    def __init__(self, redis: Any, prefix: str = "cache:") -> None:  # noqa: ANN401
        self._redis = redis
        self._prefix = prefix

    async def get(self, key: str) -> Any | None:
        try:
            raw = await self._redis.get(self._prefix + key)
        except Exception as e:
            logger.warning("Redis GET error (key=%s): %s", key, e)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return raw

    async def set(self, key: str, value: Any, ttl: int) -> None:
        try:
            await self._redis.setex(self._prefix + key, ttl, json.dumps(value))
        except Exception as e:
            logger.warning("Redis SET error (key=%s): %s", key, e)

    async def delete(self, key: str) -> None:
        try:
            await self._redis.delete(self._prefix + key)
        except Exception as e:
            logger.warning("Redis DELETE error (key=%s): %s", key, e)
