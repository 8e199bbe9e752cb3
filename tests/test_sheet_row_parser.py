from __future__ import annotations

import unittest
from datetime import date

from app.errors import RowSkipped
from app.services.sheet_row_parser import (
    parse_amount,
    parse_dmy_date,
    parse_row,
    split_cell_lines,
    to_international_phone,
)


def sheet_row(room_code='101', names='', genders='', dobs='', phones='', charges=None) -> list[str]:
    contract = ['', '', '', '01/01/2024', '12', '31/12/2024', '', '', '']
    if charges is None:
        charges = [
            '3.500.000', '30', '', '1.250', '1.200', '50', '200.000',
            '2', '200.000', '150.000', '0', '0', '4.050.000', '0', '4.050.000', 'ghi chu',
        ]
    return [room_code, names, genders, dobs, phones, *contract, *charges]


class SheetRowParserTests(unittest.TestCase):
    def test_split_cell_lines_strips_numbering(self) -> None:
        self.assertEqual(split_cell_lines('1) Nguyen Van A\n2)  Tran Thi B'), ['Nguyen Van A', 'Tran Thi B'])

    def test_split_cell_lines_keeps_blank_slots(self) -> None:
        self.assertEqual(split_cell_lines('0901111111\n\n0903333333\n'), ['0901111111', None, '0903333333'])

    def test_parse_amount_drops_thousand_separators(self) -> None:
        self.assertEqual(parse_amount('3.500.000'), 3500000)
        self.assertEqual(parse_amount(''), 0)
        self.assertEqual(parse_amount(None), 0)

    def test_parse_amount_rejects_text(self) -> None:
        with self.assertRaises(ValueError):
            parse_amount('ba trieu')

    def test_parse_dmy_date(self) -> None:
        self.assertEqual(parse_dmy_date('02/02/1992'), date(1992, 2, 2))
        self.assertIsNone(parse_dmy_date('31/02/1992'))
        self.assertIsNone(parse_dmy_date('unknown'))

    def test_phone_is_rewritten_to_country_code(self) -> None:
        self.assertEqual(to_international_phone('0901111111'), '84901111111')
        self.assertEqual(to_international_phone('84901111111'), '84901111111')

    def test_parses_two_aligned_customers(self) -> None:
        parsed = parse_row(
            sheet_row(
                names='1) Nguyen Van A\n2) Tran Thi B',
                genders='Nam\nNữ',
                dobs='01/01/1990\n02/02/1992',
                phones='0901111111\n0902222222',
            )
        )
        self.assertEqual(parsed.room_code, '101')
        self.assertEqual([c.name for c in parsed.customers], ['Nguyen Van A', 'Tran Thi B'])
        self.assertEqual([c.phone for c in parsed.customers], ['84901111111', '84902222222'])
        self.assertEqual([c.gender for c in parsed.customers], ['Nam', 'Nữ'])
        self.assertEqual(parsed.customers[1].dob, date(1992, 2, 2))
        self.assertEqual(parsed.contract_start, date(2024, 1, 1))
        self.assertEqual(parsed.contract_end, date(2024, 12, 31))
        self.assertEqual(parsed.contract_months, 12)
        self.assertEqual(parsed.note, 'ghi chu')
        self.assertEqual(parsed.skipped_customers, [])

    def test_charges_are_read_from_fixed_columns(self) -> None:
        charges = parse_row(sheet_row(names='A', phones='0901111111')).charges
        self.assertEqual(charges.room_price, 3500000)
        self.assertIsNone(charges.actual_room_fee)
        self.assertEqual(charges.electricity_new_index, 1250)
        self.assertEqual(charges.electricity_old_index, 1200)
        self.assertEqual(charges.electricity_used_kwh, 50)
        self.assertEqual(charges.electricity_price, 200000)
        self.assertEqual(charges.water_usage, 2)
        self.assertEqual(charges.total_amount, 4050000)

    def test_short_phone_excludes_customer(self) -> None:
        parsed = parse_row(sheet_row(names='A\nB', phones='0901111111\n12345'))
        self.assertEqual([c.name for c in parsed.customers], ['A'])
        self.assertEqual(parsed.skipped_customers[0].name, 'B')
        self.assertEqual(parsed.skipped_customers[0].reason, 'invalid phone number')

    def test_missing_phone_line_skips_second_customer(self) -> None:
        with self.assertLogs('app.services.sheet_row_parser', level='WARNING'):
            parsed = parse_row(sheet_row(names='A\nB', genders='Nam\nNữ', phones='0901111111'))
        self.assertEqual([c.name for c in parsed.customers], ['A'])
        self.assertEqual(len(parsed.skipped_customers), 1)
        self.assertEqual(parsed.skipped_customers[0].index, 1)

    def test_blank_middle_slot_does_not_shift_later_columns(self) -> None:
        parsed = parse_row(sheet_row(names='A\nB\nC', genders='Nam\n\nNữ', phones='0901111111\n0902222222\n0903333333'))
        by_name = {c.name: c for c in parsed.customers}
        self.assertEqual(by_name['B'].gender, 'N/A')
        self.assertEqual(by_name['C'].gender, 'Nữ')
        self.assertEqual(by_name['C'].phone, '84903333333')

    def test_unreadable_birth_date_keeps_its_slot(self) -> None:
        parsed = parse_row(
            sheet_row(
                names='A\nB\nC',
                dobs='01/01/1990\nunknown\n03/03/1993',
                phones='0901111111\n0902222222\n0903333333',
            )
        )
        self.assertEqual([c.dob for c in parsed.customers], [date(1990, 1, 1), None, date(1993, 3, 3)])

    def test_unknown_gender_maps_to_na(self) -> None:
        parsed = parse_row(sheet_row(names='A', genders='Male', phones='0901111111'))
        self.assertEqual(parsed.customers[0].gender, 'N/A')

    def test_row_without_room_code_is_skipped(self) -> None:
        with self.assertRaises(RowSkipped):
            parse_row(sheet_row(room_code='  ', names='A', phones='0901111111'))

    def test_row_without_names_is_skipped(self) -> None:
        with self.assertRaises(RowSkipped):
            parse_row(sheet_row(names='\n'))

    def test_short_row_reads_missing_cells_as_blank(self) -> None:
        parsed = parse_row(['105', 'A', 'Nam', '', '0901111111'])
        self.assertEqual(parsed.charges.room_price, 0)
        self.assertIsNone(parsed.contract_start)
        self.assertEqual(parsed.note, '')


if __name__ == '__main__':
    unittest.main()
