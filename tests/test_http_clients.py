from __future__ import annotations

import json
import unittest
from io import BytesIO
from unittest.mock import MagicMock, patch
from urllib.error import HTTPError, URLError

from app.config import settings
from app.errors import DispatchFailure, SourceAuthError, SourceUnavailableError
from app.services.google_sheet_source import GoogleSheetSource
from app.services.sheet_source import SheetRange
from app.services.zalo_message_dispatcher import ZaloMessageDispatcher


def raw_response(body: bytes) -> MagicMock:
    response = MagicMock()
    response.__enter__.return_value.read.return_value = body
    return response


def fake_response(payload: dict) -> MagicMock:
    return raw_response(json.dumps(payload).encode('utf-8'))


def http_error(code: int, body: bytes) -> HTTPError:
    return HTTPError('https://example.invalid', code, 'error', {}, BytesIO(body))


@patch.object(settings, 'google_sheets_api_key', None)
@patch.object(settings, 'google_sheets_access_token', 'sheets-token')
class GoogleSheetSourceTests(unittest.TestCase):
    def test_range_and_auth_header(self) -> None:
        with patch('app.services.google_sheet_source.urlopen', return_value=fake_response({'values': [['101', 5]]})) as urlopen_mock:
            rows = GoogleSheetSource().fetch_rows(spreadsheet_id='abc', sheet_range=SheetRange(sheet_name='P1'))

        request = urlopen_mock.call_args.args[0]
        self.assertEqual(rows, [['101', '5']])
        self.assertIn('/v4/spreadsheets/abc/values/P1%21A15%3AAD1000', request.full_url)
        self.assertEqual(request.get_header('Authorization'), 'Bearer sheets-token')

    def test_empty_range_returns_no_rows(self) -> None:
        with patch('app.services.google_sheet_source.urlopen', return_value=fake_response({'range': 'P1!A15:AD1000'})):
            rows = GoogleSheetSource().fetch_rows(spreadsheet_id='abc', sheet_range=SheetRange(sheet_name='P1'))
        self.assertEqual(rows, [])

    def test_forbidden_maps_to_auth_error(self) -> None:
        with patch('app.services.google_sheet_source.urlopen', side_effect=http_error(403, b'denied')):
            with self.assertRaises(SourceAuthError):
                GoogleSheetSource().fetch_rows(spreadsheet_id='abc', sheet_range=SheetRange(sheet_name='P1'))

    def test_server_and_network_errors_map_to_unavailable(self) -> None:
        source = GoogleSheetSource()
        with patch('app.services.google_sheet_source.urlopen', side_effect=http_error(400, b'bad range')):
            with self.assertRaises(SourceUnavailableError):
                source.fetch_rows(spreadsheet_id='abc', sheet_range=SheetRange(sheet_name='P9'))
        with patch('app.services.google_sheet_source.urlopen', side_effect=URLError('timed out')):
            with self.assertRaises(SourceUnavailableError):
                source.fetch_rows(spreadsheet_id='abc', sheet_range=SheetRange(sheet_name='P1'))

    def test_read_timeout_and_garbled_body_map_to_unavailable(self) -> None:
        source = GoogleSheetSource()
        with patch('app.services.google_sheet_source.urlopen', side_effect=TimeoutError('timed out')):
            with self.assertRaises(SourceUnavailableError):
                source.fetch_rows(spreadsheet_id='abc', sheet_range=SheetRange(sheet_name='P1'))
        with patch('app.services.google_sheet_source.urlopen', return_value=raw_response(b'<html>proxy error</html>')):
            with self.assertRaises(SourceUnavailableError):
                source.fetch_rows(spreadsheet_id='abc', sheet_range=SheetRange(sheet_name='P1'))


@patch.object(settings, 'zalo_access_token', 'zalo-token')
class ZaloMessageDispatcherTests(unittest.TestCase):
    def _send(self):
        return ZaloMessageDispatcher().send(
            phone='84901111111', template_id='420761', template_data={'roomCode': '101'}, tracking_id='invoice_1'
        )

    def test_success(self) -> None:
        with patch('app.services.zalo_message_dispatcher.urlopen', return_value=fake_response({'error': 0, 'message': 'Success'})) as urlopen_mock:
            result = self._send()

        request = urlopen_mock.call_args.args[0]
        self.assertTrue(result.success)
        self.assertEqual(json.loads(request.data)['tracking_id'], 'invoice_1')
        self.assertEqual(request.get_method(), 'POST')

    def test_provider_error_code_is_a_failure(self) -> None:
        with patch('app.services.zalo_message_dispatcher.urlopen', return_value=fake_response({'error': -124, 'message': 'timeout'})):
            result = self._send()
        self.assertFalse(result.success)
        self.assertEqual(result.message, 'timeout')

    def test_http_error_is_a_failure_result(self) -> None:
        with patch('app.services.zalo_message_dispatcher.urlopen', side_effect=http_error(500, b'oops')):
            result = self._send()
        self.assertFalse(result.success)
        self.assertIn('500', result.message)

    def test_network_error_raises(self) -> None:
        with patch('app.services.zalo_message_dispatcher.urlopen', side_effect=URLError('unreachable')):
            with self.assertRaises(DispatchFailure):
                self._send()

    def test_read_timeout_raises(self) -> None:
        with patch('app.services.zalo_message_dispatcher.urlopen', side_effect=TimeoutError('timed out')):
            with self.assertRaises(DispatchFailure):
                self._send()

    def test_non_json_body_raises(self) -> None:
        with patch('app.services.zalo_message_dispatcher.urlopen', return_value=raw_response(b'<html>Bad Gateway</html>')):
            with self.assertRaises(DispatchFailure):
                self._send()

    def test_token_is_required(self) -> None:
        with patch.object(settings, 'zalo_access_token', None):
            with self.assertRaises(ValueError):
                ZaloMessageDispatcher()


if __name__ == '__main__':
    unittest.main()
