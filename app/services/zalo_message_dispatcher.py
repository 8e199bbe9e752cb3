from __future__ import annotations

import json
import logging
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from app.config import settings
from app.errors import DispatchFailure
from app.services.message_dispatcher import DispatchResult

logger = logging.getLogger(__name__)


class ZaloMessageDispatcher:
    """Sends templated ZNS messages to a phone number in international form."""

    def __init__(self) -> None:
        if not settings.zalo_access_token:
            raise ValueError('ZALO_ACCESS_TOKEN is required when MESSAGE_DISPATCHER=zalo')
        self.url = settings.zalo_zns_api_url
        self.headers = {
            'access_token': settings.zalo_access_token,
            'Content-Type': 'application/json',
        }

    def send(self, *, phone: str, template_id: str, template_data: dict, tracking_id: str) -> DispatchResult:
        payload = {
            'phone': phone,
            'template_id': template_id,
            'template_data': template_data,
            'tracking_id': tracking_id,
        }
        req = Request(
            url=self.url,
            data=json.dumps(payload, ensure_ascii=False).encode('utf-8'),
            headers=self.headers,
            method='POST',
        )
        try:
            with urlopen(req, timeout=settings.zalo_timeout_seconds) as response:
                parsed = json.loads(response.read().decode('utf-8'))
        except HTTPError as exc:
            body = exc.read().decode('utf-8', errors='ignore') if exc.fp else ''
            return DispatchResult(success=False, message=f'ZNS API error {exc.code}: {body}')
        except URLError as exc:
            raise DispatchFailure(f'ZNS network error: {exc.reason}') from exc
        except OSError as exc:
            # Socket timeouts during the read surface as bare TimeoutError.
            raise DispatchFailure(f'ZNS network error: {exc}') from exc
        except ValueError as exc:
            raise DispatchFailure(f'ZNS returned an unreadable response: {exc}') from exc

        error_code = parsed.get('error', 0)
        message = str(parsed.get('message') or '')
        logger.info('ZNS response for %s: error=%s message=%s', tracking_id, error_code, message)
        if error_code != 0:
            return DispatchResult(success=False, message=message or f'ZNS error {error_code}')
        return DispatchResult(success=True, message=message or 'Success')
