from __future__ import annotations

from functools import lru_cache

from app.config import settings
from app.services.google_sheet_source import GoogleSheetSource
from app.services.mock_message_dispatcher import MockMessageDispatcher
from app.services.mock_sheet_source import MockSheetSource
from app.services.tracking_cache import MemoryTrackingCache, RedisTrackingCache
from app.services.zalo_message_dispatcher import ZaloMessageDispatcher


@lru_cache(maxsize=1)
def get_sheet_source():
    provider = settings.sheet_source.strip().lower()
    if provider == 'google':
        return GoogleSheetSource()
    return MockSheetSource()


@lru_cache(maxsize=1)
def get_message_dispatcher():
    provider = settings.message_dispatcher.strip().lower()
    if provider == 'zalo':
        return ZaloMessageDispatcher()
    return MockMessageDispatcher()


@lru_cache(maxsize=1)
def get_tracking_cache():
    backend = settings.tracking_cache.strip().lower()
    if backend == 'redis':
        return RedisTrackingCache(settings.redis_url)
    return MemoryTrackingCache()
