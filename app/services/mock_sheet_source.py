from __future__ import annotations

from app.errors import SourceUnavailableError
from app.services.sheet_source import SheetRange


def _demo_row(room_code: str, names: str, genders: str, dobs: str, phones: str, charges: list[str]) -> list[str]:
    contract = ['', '', '', '01/01/2024', '12', '31/12/2024', '', '', '']
    return [room_code, names, genders, dobs, phones, *contract, *charges]


class MockSheetSource:
    def __init__(self, rows_by_sheet: dict[str, list[list[str]]] | None = None) -> None:
        if rows_by_sheet is None:
            rows_by_sheet = {
                'P1': [
                    ['HOA DON THANG'],
                    ['Phong', 'Ho ten', 'Gioi tinh', 'Ngay sinh', 'So dien thoai'],
                    [],
                    _demo_row(
                        '101',
                        '1) Nguyen Van A\n2) Tran Thi B',
                        'Nam\nNữ',
                        '01/01/1990\n02/02/1992',
                        '0901111111\n0902222222',
                        [
                            '3.500.000', '30', '3.500.000', '1.250', '1.200', '50', '200.000',
                            '2', '200.000', '150.000', '0', '0', '4.050.000', '0', '4.050.000', '',
                        ],
                    ),
                    _demo_row(
                        '102',
                        'Le Van C',
                        'Nam',
                        '15/08/1995',
                        '0903333333',
                        [
                            '3.200.000', '30', '3.200.000', '980', '900', '80', '320.000',
                            '1', '100.000', '150.000', '50.000', '0', '3.820.000', '1.000.000', '2.820.000',
                            'Tra gop',
                        ],
                    ),
                    ['Tong', '', '', '', '', '', '', '', '', '', '', '', '', '', '6.700.000'],
                ]
            }
        self.rows_by_sheet = rows_by_sheet
        self.requests: list[tuple[str, SheetRange]] = []

    def fetch_rows(self, *, spreadsheet_id: str, sheet_range: SheetRange) -> list[list[str]]:
        self.requests.append((spreadsheet_id, sheet_range))
        if sheet_range.sheet_name not in self.rows_by_sheet:
            raise SourceUnavailableError(f'Unable to parse range: {sheet_range.a1_notation()}')
        return [list(row) for row in self.rows_by_sheet[sheet_range.sheet_name]]
