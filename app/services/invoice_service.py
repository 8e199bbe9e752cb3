from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from app.errors import ConflictError, NotFoundError, ValidationError
from app.models import Gender, Invoice, InvoiceHistoryEntry, InvoiceStatus
from app.services.billing_service import ChargeInput, compute_totals, manual_electricity
from app.services.sheet_row_parser import normalize_gender, to_international_phone

SORTABLE_FIELDS = {
    'created_at': Invoice.created_at,
    'customer_name': Invoice.customer_name,
    'room_code': Invoice.room_code,
    'total_amount': Invoice.total_amount,
    'remaining_amount': Invoice.remaining_amount,
    'invoice_status': Invoice.invoice_status,
}


@dataclass(frozen=True)
class ManualInvoiceInput:
    room_code: str
    customer_name: str
    phone: str
    month: int
    year: int
    apartment_code: str | None = None
    gender: str = Gender.MALE.value
    birth_date: date | None = None
    contract_start_date: date | None = None
    contract_end_date: date | None = None
    contract_duration_months: int | None = None
    deposit_amount: int = 0
    room_price: int = 0
    stay_days: int = 30
    electricity_old_index: int = 0
    electricity_new_index: int = 0
    electricity_staff: str | None = None
    water_usage: int = 1
    water_fee: int = 0
    management_fee: int = 0
    old_debt: int = 0
    deduction: int = 0
    note: str = ''
    extra_note: str = ''


def validate_period(month: int, year: int) -> None:
    if not 1 <= month <= 12:
        raise ValidationError('Month must be between 1 and 12')
    if year <= 0:
        raise ValidationError('Year must be a positive number')


def find_invoice_by_period_key(
    db: Session,
    *,
    room_code: str,
    customer_name: str,
    month: int,
    year: int,
) -> Invoice | None:
    return db.execute(
        select(Invoice).where(
            Invoice.room_code == room_code,
            Invoice.customer_name == customer_name,
            Invoice.month == month,
            Invoice.year == year,
        )
    ).scalar_one_or_none()


def get_invoice(db: Session, invoice_id: int) -> Invoice:
    invoice = db.get(Invoice, invoice_id)
    if not invoice:
        raise NotFoundError('Invoice not found')
    return invoice


def list_history(db: Session, invoice_id: int) -> list[InvoiceHistoryEntry]:
    return db.execute(
        select(InvoiceHistoryEntry)
        .where(InvoiceHistoryEntry.invoice_id == invoice_id)
        .order_by(InvoiceHistoryEntry.id.asc())
    ).scalars().all()


def history_to_dict(entry: InvoiceHistoryEntry) -> dict:
    return {'status': entry.status, 'message': entry.message, 'created_at': entry.created_at}


def invoice_to_dict(invoice: Invoice, history: list[InvoiceHistoryEntry] | None = None) -> dict:
    return {
        'id': invoice.id,
        'room_code': invoice.room_code,
        'apartment_code': invoice.apartment_code,
        'customer_name': invoice.customer_name,
        'gender': invoice.gender,
        'birth_date': invoice.birth_date,
        'phone': invoice.phone,
        'contract': {
            'start_date': invoice.contract_start_date,
            'end_date': invoice.contract_end_date,
            'duration_months': invoice.contract_duration_months,
        },
        'deposit_amount': invoice.deposit_amount,
        'room_price': invoice.room_price,
        'stay_days': invoice.stay_days,
        'actual_room_fee': invoice.actual_room_fee,
        'electricity': {
            'old_index': invoice.electricity_old_index,
            'new_index': invoice.electricity_new_index,
            'used_kwh': invoice.electricity_used_kwh,
            'price': invoice.electricity_price,
            'staff': invoice.electricity_staff,
        },
        'water_usage': invoice.water_usage,
        'water_fee': invoice.water_fee,
        'management_fee': invoice.management_fee,
        'old_debt': invoice.old_debt,
        'deduction': invoice.deduction,
        'total_amount': invoice.total_amount,
        'amount_paid': invoice.amount_paid,
        'remaining_amount': invoice.remaining_amount,
        'source_total_amount': invoice.source_total_amount,
        'note': invoice.note,
        'extra_note': invoice.extra_note,
        'invoice_status': invoice.invoice_status,
        'invoice_message': invoice.invoice_message,
        'month': invoice.month,
        'year': invoice.year,
        'history': [history_to_dict(entry) for entry in history or []],
        'created_at': invoice.created_at,
        'updated_at': invoice.updated_at,
    }


def describe_invoice(db: Session, invoice_id: int) -> dict:
    invoice = get_invoice(db, invoice_id)
    return invoice_to_dict(invoice, list_history(db, invoice.id))


def create_invoice(db: Session, data: ManualInvoiceInput) -> Invoice:
    room_code = data.room_code.strip()
    customer_name = data.customer_name.strip()
    phone = data.phone.strip()
    if not room_code or not customer_name:
        raise ValidationError('room_code and customer_name are required')
    if not phone:
        raise ValidationError('phone is required')
    validate_period(data.month, data.year)

    if find_invoice_by_period_key(db, room_code=room_code, customer_name=customer_name, month=data.month, year=data.year):
        raise ConflictError(
            f'Invoice for {customer_name} in room {room_code} already exists for {data.month}/{data.year}'
        )

    electricity = manual_electricity(data.electricity_old_index, data.electricity_new_index)
    totals = compute_totals(
        ChargeInput(
            room_price=data.room_price,
            water_fee=data.water_fee,
            management_fee=data.management_fee,
            electricity_price=electricity.price,
            old_debt=data.old_debt,
            deduction=data.deduction,
            amount_paid=0,
        )
    )

    invoice = Invoice(
        room_code=room_code,
        apartment_code=data.apartment_code,
        customer_name=customer_name,
        gender=normalize_gender(data.gender),
        birth_date=data.birth_date,
        phone=to_international_phone(phone),
        contract_start_date=data.contract_start_date,
        contract_end_date=data.contract_end_date,
        contract_duration_months=data.contract_duration_months,
        deposit_amount=data.deposit_amount,
        room_price=data.room_price,
        stay_days=data.stay_days,
        actual_room_fee=totals.actual_room_fee,
        electricity_old_index=electricity.old_index,
        electricity_new_index=electricity.new_index,
        electricity_used_kwh=electricity.used_kwh,
        electricity_price=electricity.price,
        electricity_staff=data.electricity_staff,
        water_usage=data.water_usage,
        water_fee=data.water_fee,
        management_fee=data.management_fee,
        old_debt=data.old_debt,
        deduction=data.deduction,
        total_amount=totals.total_amount,
        amount_paid=0,
        remaining_amount=totals.remaining_amount,
        note=data.note,
        extra_note=data.extra_note,
        invoice_status=InvoiceStatus.PENDING.value,
        invoice_message=None,
        month=data.month,
        year=data.year,
    )
    db.add(invoice)
    db.flush()
    return invoice


def _previous_month(today: date) -> tuple[int, int]:
    if today.month == 1:
        return 12, today.year - 1
    return today.month - 1, today.year


def list_invoices(
    db: Session,
    *,
    page: int = 1,
    limit: int = 10,
    month: int | None = None,
    year: int | None = None,
    apartment_code: str | None = None,
    search: str | None = None,
    exclude_recent: bool = False,
    sort_by: str | None = None,
    sort_desc: bool = False,
    today: date | None = None,
) -> dict:
    conditions = []
    if apartment_code:
        conditions.append(Invoice.apartment_code == apartment_code)
    if month and year:
        conditions.append(Invoice.month == month)
        conditions.append(Invoice.year == year)
    if exclude_recent:
        # Keep only periods strictly before last month.
        last_month, last_year = _previous_month(today or date.today())
        conditions.append(
            or_(
                Invoice.year < last_year,
                and_(Invoice.year == last_year, Invoice.month < last_month),
            )
        )
    if search:
        pattern = f'%{search.strip()}%'
        conditions.append(
            or_(
                Invoice.customer_name.ilike(pattern),
                Invoice.phone.ilike(pattern),
                Invoice.room_code.ilike(pattern),
            )
        )

    if sort_by in SORTABLE_FIELDS:
        column = SORTABLE_FIELDS[sort_by]
        ordering = [column.desc() if sort_desc else column.asc(), Invoice.id.asc()]
    else:
        ordering = [Invoice.created_at.desc(), Invoice.id.desc()]

    page = max(page, 1)
    limit = max(limit, 1)
    total = db.execute(select(func.count(Invoice.id)).where(*conditions)).scalar_one()
    invoices = db.execute(
        select(Invoice).where(*conditions).order_by(*ordering).offset((page - 1) * limit).limit(limit)
    ).scalars().all()
    return {'rows': [invoice_to_dict(invoice) for invoice in invoices], 'total': total}


def _latest_history_by_invoice(db: Session, invoice_ids: list[int]) -> dict[int, InvoiceHistoryEntry]:
    if not invoice_ids:
        return {}
    latest_ids = (
        select(func.max(InvoiceHistoryEntry.id))
        .where(InvoiceHistoryEntry.invoice_id.in_(invoice_ids))
        .group_by(InvoiceHistoryEntry.invoice_id)
    )
    entries = db.execute(select(InvoiceHistoryEntry).where(InvoiceHistoryEntry.id.in_(latest_ids))).scalars().all()
    return {entry.invoice_id: entry for entry in entries}


def get_invoice_report(db: Session, *, month: int, year: int) -> list[dict]:
    validate_period(month, year)
    invoices = db.execute(
        select(Invoice)
        .where(Invoice.month == month, Invoice.year == year)
        .order_by(Invoice.room_code.asc(), Invoice.customer_name.asc())
    ).scalars().all()
    latest = _latest_history_by_invoice(db, [invoice.id for invoice in invoices])

    report = []
    for invoice in invoices:
        entry = latest.get(invoice.id)
        report.append(
            {
                'invoice_id': invoice.id,
                'customer_name': invoice.customer_name,
                'phone': invoice.phone,
                'room_code': invoice.room_code,
                'apartment_code': invoice.apartment_code,
                'room_price': invoice.room_price,
                'actual_room_fee': invoice.actual_room_fee,
                'electricity_fee': invoice.electricity_price,
                'water_fee': invoice.water_fee,
                'management_fee': invoice.management_fee,
                'total_amount': invoice.total_amount,
                'amount_paid': invoice.amount_paid,
                'remaining_amount': invoice.remaining_amount,
                'invoice_status': invoice.invoice_status,
                'invoice_message': invoice.invoice_message,
                'latest_send_status': entry.status if entry else None,
                'latest_send_message': entry.message if entry else None,
                'latest_send_time': entry.created_at if entry else None,
            }
        )
    return report
