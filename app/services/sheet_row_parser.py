from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date

from app.errors import RowSkipped
from app.models import Gender

logger = logging.getLogger(__name__)

LINE_PREFIX_RE = re.compile(r'^\d+\)\s*')
DMY_RE = re.compile(r'(\d{1,2})/(\d{1,2})/(\d{4})')
MIN_PHONE_LENGTH = 10
PHONE_COUNTRY_CODE = '84'


@dataclass(frozen=True)
class SheetColumns:
    room_code: int = 0
    names: int = 1
    genders: int = 2
    birth_dates: int = 3
    phones: int = 4
    contract_start: int = 8
    contract_months: int = 9
    contract_end: int = 10
    room_price: int = 14
    stay_days: int = 15
    actual_room_fee: int = 16
    electricity_new_index: int = 17
    electricity_old_index: int = 18
    electricity_used_kwh: int = 19
    electricity_price: int = 20
    water_usage: int = 21
    water_fee: int = 22
    management_fee: int = 23
    old_debt: int = 24
    deduction: int = 25
    total_amount: int = 26
    amount_paid: int = 27
    remaining_amount: int = 28
    note: int = 29


DEFAULT_COLUMNS = SheetColumns()


@dataclass(frozen=True)
class ParsedCustomer:
    name: str
    phone: str
    gender: str
    dob: date | None


@dataclass(frozen=True)
class SkippedCustomer:
    index: int
    name: str | None
    reason: str


@dataclass(frozen=True)
class SheetCharges:
    room_price: int
    stay_days: int
    actual_room_fee: int | None
    electricity_old_index: int
    electricity_new_index: int
    electricity_used_kwh: int
    electricity_price: int
    water_usage: int
    water_fee: int
    management_fee: int
    old_debt: int
    deduction: int
    total_amount: int
    amount_paid: int
    remaining_amount: int


@dataclass(frozen=True)
class ParsedRow:
    room_code: str
    customers: list[ParsedCustomer]
    charges: SheetCharges
    contract_start: date | None = None
    contract_end: date | None = None
    contract_months: int = 0
    note: str = ''
    skipped_customers: list[SkippedCustomer] = field(default_factory=list)


def cell(row: list, index: int) -> str:
    # The Sheets API drops trailing empty cells, so short rows are normal.
    if index >= len(row) or row[index] is None:
        return ''
    return str(row[index])


def split_cell_lines(value: str) -> list[str | None]:
    """Split a multi-line cell keeping one slot per line; blank lines become None."""
    entries: list[str | None] = []
    for line in value.split('\n'):
        text = LINE_PREFIX_RE.sub('', line.strip()).strip()
        entries.append(text or None)
    while entries and entries[-1] is None:
        entries.pop()
    return entries


def parse_dmy_date(value: str | None) -> date | None:
    if not value:
        return None
    match = DMY_RE.search(value)
    if not match:
        return None
    day, month, year = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_amount(value: str | None) -> int:
    text = (value or '').strip().replace('.', '').replace(' ', '')
    if not text:
        return 0
    try:
        return int(text)
    except ValueError as exc:
        raise ValueError(f'Invalid numeric cell value: {value!r}') from exc


def parse_optional_amount(value: str | None) -> int | None:
    if not (value or '').strip():
        return None
    return parse_amount(value)


def normalize_gender(value: str | None) -> str:
    if value in (Gender.MALE.value, Gender.FEMALE.value):
        return value
    return Gender.UNKNOWN.value


def to_international_phone(phone: str) -> str:
    phone = phone.strip()
    if phone.startswith('0'):
        return f'{PHONE_COUNTRY_CODE}{phone[1:]}'
    return phone


def _aligned(entries: list, size: int) -> list:
    if len(entries) >= size:
        return entries[:size]
    return entries + [None] * (size - len(entries))


def parse_charges(row: list, columns: SheetColumns = DEFAULT_COLUMNS) -> SheetCharges:
    return SheetCharges(
        room_price=parse_amount(cell(row, columns.room_price)),
        stay_days=parse_amount(cell(row, columns.stay_days)),
        actual_room_fee=parse_optional_amount(cell(row, columns.actual_room_fee)),
        electricity_old_index=parse_amount(cell(row, columns.electricity_old_index)),
        electricity_new_index=parse_amount(cell(row, columns.electricity_new_index)),
        electricity_used_kwh=parse_amount(cell(row, columns.electricity_used_kwh)),
        electricity_price=parse_amount(cell(row, columns.electricity_price)),
        water_usage=parse_amount(cell(row, columns.water_usage)),
        water_fee=parse_amount(cell(row, columns.water_fee)),
        management_fee=parse_amount(cell(row, columns.management_fee)),
        old_debt=parse_amount(cell(row, columns.old_debt)),
        deduction=parse_amount(cell(row, columns.deduction)),
        total_amount=parse_amount(cell(row, columns.total_amount)),
        amount_paid=parse_amount(cell(row, columns.amount_paid)),
        remaining_amount=parse_amount(cell(row, columns.remaining_amount)),
    )


def parse_row(row: list, columns: SheetColumns = DEFAULT_COLUMNS) -> ParsedRow:
    room_code = cell(row, columns.room_code).strip()
    if not room_code:
        raise RowSkipped('missing room code')

    names = split_cell_lines(cell(row, columns.names))
    if not any(names):
        raise RowSkipped(f'room {room_code} has no customers')

    genders = split_cell_lines(cell(row, columns.genders))
    birth_dates = [parse_dmy_date(line) for line in split_cell_lines(cell(row, columns.birth_dates))]
    phones = split_cell_lines(cell(row, columns.phones))

    size = len(names)
    for label, entries in (('gender', genders), ('birth date', birth_dates), ('phone', phones)):
        if entries and len(entries) != size:
            logger.warning(
                'Room %s: %d %s line(s) for %d customer(s); missing slots are left empty',
                room_code,
                len(entries),
                label,
                size,
            )

    customers: list[ParsedCustomer] = []
    skipped: list[SkippedCustomer] = []
    for index, (name, gender, dob, phone) in enumerate(
        zip(names, _aligned(genders, size), _aligned(birth_dates, size), _aligned(phones, size))
    ):
        if not name:
            skipped.append(SkippedCustomer(index=index, name=None, reason='missing name'))
            continue
        if not phone or len(phone) < MIN_PHONE_LENGTH:
            logger.info('Skipping customer %s in room %s due to invalid phone number %r', name, room_code, phone)
            skipped.append(SkippedCustomer(index=index, name=name, reason='invalid phone number'))
            continue
        customers.append(
            ParsedCustomer(
                name=name,
                phone=to_international_phone(phone),
                gender=normalize_gender(gender),
                dob=dob,
            )
        )

    return ParsedRow(
        room_code=room_code,
        customers=customers,
        charges=parse_charges(row, columns),
        contract_start=parse_dmy_date(cell(row, columns.contract_start)),
        contract_end=parse_dmy_date(cell(row, columns.contract_end)),
        contract_months=parse_amount(cell(row, columns.contract_months)),
        note=cell(row, columns.note).strip(),
        skipped_customers=skipped,
    )
