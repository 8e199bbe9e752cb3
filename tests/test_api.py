from __future__ import annotations

import unittest

from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app.db import get_db
from app.dependencies import message_dispatcher, sheet_source, tracking_cache
from app.main import app
from app.services.mock_message_dispatcher import MockMessageDispatcher
from app.services.mock_sheet_source import MockSheetSource
from app.services.tracking_cache import MemoryTrackingCache
from sqlite_support import make_engine


class ApiTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = make_engine()
        session_factory = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)
        self.source = MockSheetSource()
        self.dispatcher = MockMessageDispatcher(failures={'84903333333': 'timeout'})
        self.cache = MemoryTrackingCache()

        def override_db():
            with session_factory() as db:
                yield db

        app.dependency_overrides[get_db] = override_db
        app.dependency_overrides[sheet_source] = lambda: self.source
        app.dependency_overrides[message_dispatcher] = lambda: self.dispatcher
        app.dependency_overrides[tracking_cache] = lambda: self.cache
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()
        self.engine.dispose()

    def _sync(self) -> dict:
        response = self.client.post(
            '/api/v1/invoices/sync-file-sheet',
            json={'spreadsheet_id': 'sheet-1', 'sheet_name': 'P1', 'month': 6, 'year': 2024},
        )
        self.assertEqual(response.status_code, 200, response.text)
        return response.json()

    def test_health_sets_response_headers(self) -> None:
        response = self.client.get('/health')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers['X-Content-Type-Options'], 'nosniff')
        self.assertEqual(response.headers['X-Robots-Tag'], 'noindex, nofollow, noarchive')

    def test_sync_then_send_and_report(self) -> None:
        body = self._sync()
        self.assertEqual(body['status'], 'success')
        self.assertEqual(body['data']['processed_count'], 2)
        self.assertEqual(body['data']['invoices_created'], 3)

        invoices = self.client.get('/api/v1/invoices', params={'month': 6, 'year': 2024}).json()['data']
        self.assertEqual(invoices['total'], 3)
        ids = sorted(row['id'] for row in invoices['rows'])

        response = self.client.post('/api/v1/invoices/send-many', json={'invoice_ids': ids})
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual([r['success'] for r in response.json()['data']], [True, True, False])

        report = self.client.get('/api/v1/invoices/report', params={'month': 6, 'year': 2024}).json()['data']
        by_name = {row['customer_name']: row for row in report}
        self.assertEqual(by_name['Le Van C']['latest_send_status'], 4)
        self.assertEqual(by_name['Le Van C']['latest_send_message'], 'timeout')
        self.assertEqual(by_name['Le Van C']['remaining_amount'], 2820000)

        detail = self.client.get(f"/api/v1/invoices/{by_name['Nguyen Van A']['invoice_id']}").json()['data']
        self.assertEqual(detail['invoice_status'], 2)
        self.assertEqual(len(detail['history']), 1)

    def test_send_one_reports_failure_in_envelope(self) -> None:
        self._sync()
        report = self.client.get('/api/v1/invoices/report', params={'month': 6, 'year': 2024}).json()['data']
        invoice_id = next(row['invoice_id'] for row in report if row['customer_name'] == 'Le Van C')

        response = self.client.post(f'/api/v1/invoices/{invoice_id}/send')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['message'], 'Invoice sending failed')
        self.assertEqual(response.json()['data']['invoice_message'], 'timeout')

    def test_unknown_sheet_maps_to_bad_gateway(self) -> None:
        response = self.client.post(
            '/api/v1/invoices/sync-file-sheet',
            json={'spreadsheet_id': 'sheet-1', 'sheet_name': 'P9', 'month': 6, 'year': 2024},
        )
        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.json()['status'], 'error')

    def test_invalid_period_is_a_client_error(self) -> None:
        response = self.client.post(
            '/api/v1/invoices/sync-file-sheet',
            json={'spreadsheet_id': 'sheet-1', 'sheet_name': 'P1', 'month': 13, 'year': 2024},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['status'], 'fail')

    def test_apartment_lifecycle(self) -> None:
        created = self.client.post('/api/v1/apartments', json={'code': 'P2', 'name': 'Nha P2'})
        self.assertEqual(created.status_code, 201)
        apartment_id = created.json()['data']['id']

        duplicate = self.client.post('/api/v1/apartments', json={'code': 'P2'})
        self.assertEqual(duplicate.status_code, 409)
        self.assertEqual(duplicate.json()['status'], 'fail')

        room = self.client.post('/api/v1/rooms', json={'code': '201', 'apartment_id': apartment_id})
        self.assertEqual(room.status_code, 201)
        blocked = self.client.delete(f'/api/v1/apartments/{apartment_id}')
        self.assertEqual(blocked.status_code, 409)

        self.client.delete(f"/api/v1/rooms/{room.json()['data']['id']}")
        deleted = self.client.delete(f'/api/v1/apartments/{apartment_id}')
        self.assertEqual(deleted.json()['data']['deleted_code'], 'P2')
        self.assertEqual(self.client.get(f'/api/v1/apartments/{apartment_id}').status_code, 404)

    def test_customer_assign_room_and_chatbot_check(self) -> None:
        apartment_id = self.client.post('/api/v1/apartments', json={'code': 'P3'}).json()['data']['id']
        room_id = self.client.post('/api/v1/rooms', json={'code': '301', 'apartment_id': apartment_id}).json()[
            'data'
        ]['id']
        customer = self.client.post('/api/v1/customers', json={'name': 'Pham Van D', 'phone': '0904444444'})
        self.assertEqual(customer.status_code, 201)

        assigned = self.client.post(
            f"/api/v1/customers/{customer.json()['data']['id']}/assign-room", json={'room_id': room_id}
        )
        self.assertEqual(assigned.json()['data']['apartment_code'], 'P3')

        check = self.client.post('/api/v1/rooms/check', json={'message': 'Phòng 301 ơi'}).json()
        self.assertTrue(check['data']['found'])
        self.assertEqual(check['data']['room']['code'], '301')

    def test_manual_invoice_payload_validation(self) -> None:
        response = self.client.post(
            '/api/v1/invoices',
            json={'room_code': '101', 'customer_name': 'A', 'phone': '0901111111', 'month': 0, 'year': 2024},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['message'], 'Invalid request payload')

    def test_notification_send(self) -> None:
        self._sync()
        apartments = self.client.get('/api/v1/apartments').json()['data']['rows']
        response = self.client.post(
            '/api/v1/notifications/send',
            json={'title': 'Thong bao', 'content': 'Chao {{ customer.name }}', 'apartment_ids': [apartments[0]['id']]},
        )
        self.assertEqual(response.status_code, 201, response.text)
        self.assertEqual(len(response.json()['data']['logs']), 3)
        self.assertEqual(len(self.client.get('/api/v1/notifications').json()['data']), 1)


if __name__ == '__main__':
    unittest.main()
