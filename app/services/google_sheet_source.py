from __future__ import annotations

import json
import logging
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

from app.config import settings
from app.errors import SourceAuthError, SourceUnavailableError
from app.services.sheet_source import SheetRange

logger = logging.getLogger(__name__)


class GoogleSheetSource:
    """Read-only client for the Sheets API v4 `values.get` endpoint."""

    def __init__(self) -> None:
        if not settings.google_sheets_access_token and not settings.google_sheets_api_key:
            raise ValueError('GOOGLE_SHEETS_ACCESS_TOKEN or GOOGLE_SHEETS_API_KEY is required when SHEET_SOURCE=google')

        self.base_url = settings.google_sheets_api_base_url.rstrip('/')
        self.headers = {'Accept': 'application/json'}
        if settings.google_sheets_access_token:
            self.headers['Authorization'] = f'Bearer {settings.google_sheets_access_token}'

    def _values_url(self, spreadsheet_id: str, sheet_range: SheetRange) -> str:
        url = (
            f'{self.base_url}/v4/spreadsheets/{quote(spreadsheet_id, safe="")}'
            f'/values/{quote(sheet_range.a1_notation(), safe="")}'
        )
        params = {'majorDimension': 'ROWS', 'valueRenderOption': 'FORMATTED_VALUE'}
        if settings.google_sheets_api_key and not settings.google_sheets_access_token:
            params['key'] = settings.google_sheets_api_key
        return f'{url}?{urlencode(params)}'

    def fetch_rows(self, *, spreadsheet_id: str, sheet_range: SheetRange) -> list[list[str]]:
        req = Request(url=self._values_url(spreadsheet_id, sheet_range), headers=self.headers, method='GET')
        try:
            with urlopen(req, timeout=settings.google_sheets_timeout_seconds) as response:
                parsed = json.loads(response.read().decode('utf-8'))
        except HTTPError as exc:
            body = exc.read().decode('utf-8', errors='ignore') if exc.fp else ''
            if exc.code in (401, 403):
                raise SourceAuthError(f'Google Sheets rejected the credentials ({exc.code}): {body}') from exc
            raise SourceUnavailableError(f'Google Sheets API error {exc.code}: {body}') from exc
        except URLError as exc:
            raise SourceUnavailableError(f'Google Sheets network error: {exc.reason}') from exc
        except OSError as exc:
            raise SourceUnavailableError(f'Google Sheets network error: {exc}') from exc
        except ValueError as exc:
            raise SourceUnavailableError(f'Google Sheets returned an unreadable response: {exc}') from exc

        rows = parsed.get('values', [])
        logger.info('Fetched %d row(s) from %s', len(rows), sheet_range.a1_notation())
        return [[str(value) for value in row] for row in rows]
