from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from app.config import settings
from app.errors import ConflictError, DispatchFailure, DomainError, ValidationError
from app.models import Invoice, InvoiceHistoryEntry, InvoiceStatus
from app.services.invoice_service import get_invoice
from app.services.message_dispatcher import DispatchResult, MessageDispatcher
from app.services.sheet_row_parser import to_international_phone
from app.services.tracking_cache import TrackingCache

logger = logging.getLogger(__name__)

INVOICE_TYPE_LABEL = 'Hóa đơn'
PAYMENT_NOTE = (
    'Vui lòng chuyển đúng nội dung và thanh toán vào ngày 01, hạn cuối là ngày 05. Xin cảm ơn quý khách!'
)


def format_vnd(amount: int) -> str:
    return f'{amount:,}'.replace(',', '.') + 'đ'


def tracking_id_for_invoice(invoice: Invoice) -> str:
    return f'invoice_{invoice.id}'


def build_invoice_template_fields(invoice: Invoice) -> dict:
    return {
        'transfer_amount': invoice.total_amount,
        'bank_transfer_note': f'{invoice.room_code} {invoice.month} {invoice.year}',
        'typeInvoice': INVOICE_TYPE_LABEL,
        'billingMonth': f'{invoice.month}/{invoice.year}',
        'tenantName': invoice.customer_name,
        'roomCode': invoice.room_code,
        'rentPrice': format_vnd(invoice.actual_room_fee),
        'electricityCost': (
            f'{invoice.electricity_new_index} - {invoice.electricity_old_index} = '
            f'{invoice.electricity_used_kwh} kWh = {format_vnd(invoice.electricity_price)}'
        ),
        'waterCost': format_vnd(invoice.water_fee),
        'serviceFee': format_vnd(invoice.management_fee),
        'oldDebt': format_vnd(invoice.old_debt),
        'deductions': format_vnd(invoice.deduction),
        'totalCost': format_vnd(invoice.total_amount),
        'invoiceNote': PAYMENT_NOTE,
    }


def record_dispatch_outcome(db: Session, invoice: Invoice, outcome: DispatchResult) -> Invoice:
    status = InvoiceStatus.SENT if outcome.success else InvoiceStatus.FAILED
    invoice.invoice_status = status.value
    invoice.invoice_message = outcome.message
    db.add(
        InvoiceHistoryEntry(
            invoice_id=invoice.id,
            status=status.value,
            message=outcome.message,
            created_at=datetime.now(timezone.utc),
        )
    )
    db.flush()
    return invoice


def send_invoice(
    db: Session,
    *,
    invoice_id: int,
    dispatcher: MessageDispatcher,
    tracking_cache: TrackingCache,
) -> Invoice:
    invoice = get_invoice(db, invoice_id)
    if invoice.invoice_status == InvoiceStatus.PAID.value:
        raise ConflictError('Invoice is already paid')

    phone = to_international_phone(invoice.phone)
    tracking_id = tracking_id_for_invoice(invoice)
    tracking_cache.set_with_expiry(tracking_id, phone, settings.tracking_ttl_seconds)

    try:
        outcome = dispatcher.send(
            phone=phone,
            template_id=settings.zns_invoice_template_id,
            template_data=build_invoice_template_fields(invoice),
            tracking_id=tracking_id,
        )
    except DispatchFailure as exc:
        outcome = DispatchResult(success=False, message=str(exc))

    if not outcome.success:
        logger.warning('Invoice %s dispatch to %s failed: %s', invoice.id, phone, outcome.message)
    return record_dispatch_outcome(db, invoice, outcome)


def send_invoices_bulk(
    db: Session,
    *,
    invoice_ids: list[int],
    dispatcher: MessageDispatcher,
    tracking_cache: TrackingCache,
) -> list[dict]:
    if not invoice_ids:
        raise ValidationError('invoice_ids must be a non-empty list')

    results = []
    for invoice_id in invoice_ids:
        try:
            with db.begin_nested():
                invoice = send_invoice(
                    db, invoice_id=invoice_id, dispatcher=dispatcher, tracking_cache=tracking_cache
                )
        except DomainError as exc:
            results.append({'invoice_id': invoice_id, 'success': False, 'status': None, 'message': str(exc)})
            continue
        except Exception as exc:
            logger.exception('Unexpected error while sending invoice %s', invoice_id)
            results.append({'invoice_id': invoice_id, 'success': False, 'status': None, 'message': str(exc)})
            continue

        results.append(
            {
                'invoice_id': invoice_id,
                'success': invoice.invoice_status == InvoiceStatus.SENT.value,
                'status': invoice.invoice_status,
                'message': invoice.invoice_message,
            }
        )
    return results
