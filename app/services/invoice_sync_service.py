from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from app.config import settings
from app.errors import RowSkipped, ValidationError
from app.models import Apartment, Customer, Invoice, InvoiceStatus, Room
from app.services.apartment_service import find_apartment_by_code
from app.services.billing_service import ChargeInput, compute_totals
from app.services.customer_service import find_customer_by_phone
from app.services.invoice_service import find_invoice_by_period_key, validate_period
from app.services.room_service import find_room
from app.services.sheet_row_parser import DEFAULT_COLUMNS, ParsedCustomer, ParsedRow, SheetColumns, parse_row
from app.services.sheet_source import SheetRange, SheetSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SkippedRow:
    row_number: int
    reason: str


@dataclass
class SyncResult:
    processed_count: int = 0
    skipped_rows: list[SkippedRow] = field(default_factory=list)
    skipped_customers: list[dict] = field(default_factory=list)
    customers_created: int = 0
    customers_updated: int = 0
    invoices_created: int = 0
    invoices_updated: int = 0

    def as_dict(self) -> dict:
        return {
            'processed_count': self.processed_count,
            'skipped_rows': [{'row_number': row.row_number, 'reason': row.reason} for row in self.skipped_rows],
            'skipped_customers': list(self.skipped_customers),
            'customers_created': self.customers_created,
            'customers_updated': self.customers_updated,
            'invoices_created': self.invoices_created,
            'invoices_updated': self.invoices_updated,
        }

    def merge(self, other: SyncResult) -> None:
        self.skipped_customers.extend(other.skipped_customers)
        self.customers_created += other.customers_created
        self.customers_updated += other.customers_updated
        self.invoices_created += other.invoices_created
        self.invoices_updated += other.invoices_updated


def get_or_create_apartment(db: Session, code: str) -> Apartment:
    apartment = find_apartment_by_code(db, code)
    if apartment:
        return apartment
    apartment = Apartment(code=code, name=code)
    db.add(apartment)
    db.flush()
    logger.info('Created apartment %s', code)
    return apartment


def get_or_create_room(db: Session, *, code: str, apartment_id: int) -> Room:
    room = find_room(db, code=code, apartment_id=apartment_id)
    if room:
        return room
    room = Room(code=code, apartment_id=apartment_id)
    db.add(room)
    db.flush()
    return room


def upsert_customer(db: Session, parsed: ParsedCustomer, *, room: Room) -> tuple[Customer, bool]:
    """Match by international phone; the sheet wins for name, dob and placement."""
    customer = find_customer_by_phone(db, parsed.phone)
    created = customer is None
    if created:
        customer = Customer(uuid=None, phone=parsed.phone, name=parsed.name)
        db.add(customer)
    customer.name = parsed.name
    customer.dob = parsed.dob
    customer.room_id = room.id
    customer.apartment_id = room.apartment_id
    db.flush()
    return customer, created


def upsert_invoice(
    db: Session,
    parsed_row: ParsedRow,
    parsed: ParsedCustomer,
    *,
    apartment_code: str,
    month: int,
    year: int,
) -> tuple[Invoice, bool]:
    charges = parsed_row.charges
    totals = compute_totals(
        ChargeInput(
            room_price=charges.room_price,
            water_fee=charges.water_fee,
            management_fee=charges.management_fee,
            electricity_price=charges.electricity_price,
            old_debt=charges.old_debt,
            deduction=charges.deduction,
            amount_paid=charges.amount_paid,
            actual_room_fee=charges.actual_room_fee,
        )
    )
    if charges.total_amount and charges.total_amount != totals.total_amount:
        logger.warning(
            'Room %s, %s: sheet total %d differs from computed total %d',
            parsed_row.room_code,
            parsed.name,
            charges.total_amount,
            totals.total_amount,
        )

    invoice = find_invoice_by_period_key(
        db, room_code=parsed_row.room_code, customer_name=parsed.name, month=month, year=year
    )
    created = invoice is None
    if created:
        invoice = Invoice(
            room_code=parsed_row.room_code,
            customer_name=parsed.name,
            month=month,
            year=year,
            invoice_status=InvoiceStatus.PENDING.value,
        )
        db.add(invoice)

    invoice.apartment_code = apartment_code
    invoice.gender = parsed.gender
    invoice.birth_date = parsed.dob
    invoice.phone = parsed.phone
    invoice.contract_start_date = parsed_row.contract_start
    invoice.contract_end_date = parsed_row.contract_end
    invoice.contract_duration_months = parsed_row.contract_months
    invoice.room_price = charges.room_price
    invoice.stay_days = charges.stay_days
    invoice.actual_room_fee = totals.actual_room_fee
    invoice.electricity_old_index = charges.electricity_old_index
    invoice.electricity_new_index = charges.electricity_new_index
    invoice.electricity_used_kwh = charges.electricity_used_kwh
    invoice.electricity_price = charges.electricity_price
    invoice.water_usage = charges.water_usage
    invoice.water_fee = charges.water_fee
    invoice.management_fee = charges.management_fee
    invoice.old_debt = charges.old_debt
    invoice.deduction = charges.deduction
    invoice.total_amount = totals.total_amount
    invoice.amount_paid = charges.amount_paid
    invoice.remaining_amount = totals.remaining_amount
    invoice.source_total_amount = charges.total_amount
    invoice.note = parsed_row.note
    db.flush()
    return invoice, created


def _sync_row(
    db: Session,
    row: list,
    *,
    apartment: Apartment,
    month: int,
    year: int,
    columns: SheetColumns,
    result: SyncResult,
) -> None:
    parsed_row = parse_row(row, columns)
    room = get_or_create_room(db, code=parsed_row.room_code, apartment_id=apartment.id)

    for skipped in parsed_row.skipped_customers:
        result.skipped_customers.append(
            {'room_code': parsed_row.room_code, 'index': skipped.index, 'name': skipped.name, 'reason': skipped.reason}
        )

    for parsed in parsed_row.customers:
        _, customer_created = upsert_customer(db, parsed, room=room)
        if customer_created:
            result.customers_created += 1
        else:
            result.customers_updated += 1

        _, invoice_created = upsert_invoice(
            db, parsed_row, parsed, apartment_code=apartment.code, month=month, year=year
        )
        if invoice_created:
            result.invoices_created += 1
        else:
            result.invoices_updated += 1


def sync_invoices_from_source(
    db: Session,
    source: SheetSource,
    *,
    spreadsheet_id: str,
    sheet_range: SheetRange,
    month: int,
    year: int,
    header_rows: int | None = None,
    trailing_rows: int | None = None,
    columns: SheetColumns = DEFAULT_COLUMNS,
) -> SyncResult:
    """Reconcile one sheet tab into apartments, rooms, customers and invoices for a billing period.

    Every row runs inside its own savepoint so a broken row is rolled back and
    reported without losing the rest of the batch. The caller commits.
    """
    if not (spreadsheet_id or '').strip():
        raise ValidationError('spreadsheet_id is required')
    if not (sheet_range.sheet_name or '').strip():
        raise ValidationError('sheet name is required')
    validate_period(month, year)

    header_rows = settings.sheet_header_rows if header_rows is None else header_rows
    trailing_rows = settings.sheet_trailing_rows if trailing_rows is None else trailing_rows

    rows = source.fetch_rows(spreadsheet_id=spreadsheet_id, sheet_range=sheet_range)
    end = len(rows) - trailing_rows if trailing_rows > 0 else len(rows)
    data_rows = rows[header_rows:end]
    first_row_number = sheet_range.start_row + header_rows

    apartment_code = sheet_range.sheet_name.strip()
    result = SyncResult()
    apartment = get_or_create_apartment(db, apartment_code)

    for offset, row in enumerate(data_rows):
        row_number = first_row_number + offset
        row_result = SyncResult()
        try:
            with db.begin_nested():
                _sync_row(db, row, apartment=apartment, month=month, year=year, columns=columns, result=row_result)
        except RowSkipped as exc:
            logger.info('Sheet %s row %d skipped: %s', apartment_code, row_number, exc)
            result.skipped_rows.append(SkippedRow(row_number=row_number, reason=str(exc)))
            continue
        except Exception as exc:
            logger.exception('Sheet %s row %d failed', apartment_code, row_number)
            result.skipped_rows.append(SkippedRow(row_number=row_number, reason=str(exc)))
            continue
        result.merge(row_result)
        result.processed_count += 1

    logger.info(
        'Synced sheet %s for %d/%d: processed=%d skipped=%d invoices_created=%d invoices_updated=%d',
        apartment_code,
        month,
        year,
        result.processed_count,
        len(result.skipped_rows),
        result.invoices_created,
        result.invoices_updated,
    )
    return result
