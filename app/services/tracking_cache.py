from __future__ import annotations

import logging
import time
from typing import Protocol

import redis

logger = logging.getLogger(__name__)


class TrackingCache(Protocol):
    def set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> None: ...


class MemoryTrackingCache:
    def __init__(self) -> None:
        self._entries: dict[str, tuple[str, float]] = {}

    def set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> None:
        now = time.monotonic()
        for stale in [k for k, (_, expires_at) in self._entries.items() if expires_at <= now]:
            del self._entries[stale]
        self._entries[key] = (value, now + ttl_seconds)

    def get(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at <= time.monotonic():
            del self._entries[key]
            return None
        return value


class RedisTrackingCache:
    """Tracking id -> phone entries read back by the delivery-status callback."""

    def __init__(self, url: str) -> None:
        self.client = redis.Redis.from_url(url, decode_responses=True)

    def set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            self.client.setex(key, ttl_seconds, value)
        except redis.RedisError as exc:
            logger.warning('Tracking cache write failed for %s: %s', key, exc)
