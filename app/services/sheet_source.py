from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class SheetRange:
    sheet_name: str
    start_row: int = 15
    end_row: int = 1000
    start_column: str = 'A'
    end_column: str = 'AD'

    def a1_notation(self) -> str:
        return f'{self.sheet_name}!{self.start_column}{self.start_row}:{self.end_column}{self.end_row}'


class SheetSource(Protocol):
    def fetch_rows(self, *, spreadsheet_id: str, sheet_range: SheetRange) -> list[list[str]]: ...
