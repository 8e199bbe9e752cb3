from __future__ import annotations

from typing import Any

from app.services.message_dispatcher import MessageDispatcher
from app.services.provider_factory import get_message_dispatcher, get_sheet_source, get_tracking_cache
from app.services.sheet_source import SheetSource
from app.services.tracking_cache import TrackingCache


def sheet_source() -> SheetSource:
    return get_sheet_source()


def message_dispatcher() -> MessageDispatcher:
    return get_message_dispatcher()


def tracking_cache() -> TrackingCache:
    return get_tracking_cache()


def success(message: str, data: Any = None) -> dict:
    return {'status': 'success', 'message': message, 'data': data}
