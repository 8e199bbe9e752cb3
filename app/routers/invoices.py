from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.config import settings
from app.db import get_db
from app.dependencies import message_dispatcher, sheet_source, success, tracking_cache
from app.errors import ValidationError
from app.models import InvoiceStatus
from app.schemas import InvoiceCreate, SendManyInvoices, SheetSyncRequest
from app.services.invoice_dispatch_service import send_invoice, send_invoices_bulk
from app.services.invoice_service import (
    ManualInvoiceInput,
    create_invoice,
    describe_invoice,
    get_invoice_report,
    list_invoices,
)
from app.services.invoice_sync_service import sync_invoices_from_source
from app.services.message_dispatcher import MessageDispatcher
from app.services.sheet_source import SheetRange, SheetSource
from app.services.tracking_cache import TrackingCache

router = APIRouter(prefix='/api/v1/invoices', tags=['invoices'])


@router.get('')
def invoices_index(
    page: int = 1,
    limit: int = 10,
    month: int | None = None,
    year: int | None = None,
    apartment_code: str | None = None,
    search: str | None = None,
    exclude_recent: bool = False,
    sort_by: str | None = None,
    sort_desc: bool = False,
    db: Session = Depends(get_db),
):
    data = list_invoices(
        db,
        page=page,
        limit=limit,
        month=month,
        year=year,
        apartment_code=apartment_code,
        search=search,
        exclude_recent=exclude_recent,
        sort_by=sort_by,
        sort_desc=sort_desc,
    )
    return success('Invoices retrieved successfully', data)


@router.post('', status_code=201)
def invoices_create(payload: InvoiceCreate, db: Session = Depends(get_db)):
    data = ManualInvoiceInput(
        room_code=payload.room_code,
        customer_name=payload.customer_name,
        phone=payload.phone,
        month=payload.month,
        year=payload.year,
        apartment_code=payload.apartment_code,
        gender=payload.gender,
        birth_date=payload.birth_date,
        contract_start_date=payload.contract.start_date,
        contract_end_date=payload.contract.end_date,
        contract_duration_months=payload.contract.duration_months,
        deposit_amount=payload.deposit_amount,
        room_price=payload.room_price,
        stay_days=payload.stay_days,
        electricity_old_index=payload.electricity.old_index,
        electricity_new_index=payload.electricity.new_index,
        electricity_staff=payload.electricity.staff,
        water_usage=payload.water_usage,
        water_fee=payload.water_fee,
        management_fee=payload.management_fee,
        old_debt=payload.old_debt,
        deduction=payload.deduction,
        note=payload.note,
        extra_note=payload.extra_note,
    )
    invoice = create_invoice(db, data)
    db.commit()
    return success('Invoice created successfully', describe_invoice(db, invoice.id))


@router.get('/report')
def invoices_report(month: int, year: int, db: Session = Depends(get_db)):
    return success('Invoice report generated successfully', get_invoice_report(db, month=month, year=year))


@router.post('/send-many')
def invoices_send_many(
    payload: SendManyInvoices,
    db: Session = Depends(get_db),
    dispatcher: MessageDispatcher = Depends(message_dispatcher),
    cache: TrackingCache = Depends(tracking_cache),
):
    results = send_invoices_bulk(db, invoice_ids=payload.invoice_ids, dispatcher=dispatcher, tracking_cache=cache)
    db.commit()
    sent = sum(1 for result in results if result['success'])
    return success(f'Sent {sent} of {len(results)} invoice(s)', results)


@router.post('/sync-file-sheet')
def invoices_sync_sheet(
    payload: SheetSyncRequest,
    db: Session = Depends(get_db),
    source: SheetSource = Depends(sheet_source),
):
    spreadsheet_id = payload.spreadsheet_id or settings.default_spreadsheet_id
    if not spreadsheet_id:
        raise ValidationError('spreadsheet_id is required')
    sheet_range = SheetRange(
        sheet_name=payload.sheet_name,
        start_row=payload.start_row or settings.sheet_start_row,
        end_row=payload.end_row or settings.sheet_end_row,
        start_column=payload.start_column or settings.sheet_start_column,
        end_column=payload.end_column or settings.sheet_end_column,
    )
    result = sync_invoices_from_source(
        db,
        source,
        spreadsheet_id=spreadsheet_id,
        sheet_range=sheet_range,
        month=payload.month,
        year=payload.year,
    )
    db.commit()
    return success(f'Synced {result.processed_count} row(s) from sheet {payload.sheet_name}', result.as_dict())


@router.get('/{invoice_id}')
def invoices_show(invoice_id: int, db: Session = Depends(get_db)):
    return success('Invoice retrieved successfully', describe_invoice(db, invoice_id))


@router.post('/{invoice_id}/send')
def invoices_send(
    invoice_id: int,
    db: Session = Depends(get_db),
    dispatcher: MessageDispatcher = Depends(message_dispatcher),
    cache: TrackingCache = Depends(tracking_cache),
):
    invoice = send_invoice(db, invoice_id=invoice_id, dispatcher=dispatcher, tracking_cache=cache)
    db.commit()
    sent = invoice.invoice_status == InvoiceStatus.SENT.value
    message = 'Invoice sent successfully' if sent else 'Invoice sending failed'
    return success(message, describe_invoice(db, invoice.id))
