from __future__ import annotations

import argparse

from app.config import settings
from app.db import SessionLocal
from app.logging_config import configure_logging
from app.services.invoice_sync_service import SyncResult, sync_invoices_from_source
from app.services.provider_factory import get_sheet_source
from app.services.sheet_source import SheetRange


def sync_sheet(
    *,
    spreadsheet_id: str,
    sheet_range: SheetRange,
    month: int,
    year: int,
) -> SyncResult:
    with SessionLocal() as db:
        result = sync_invoices_from_source(
            db,
            get_sheet_source(),
            spreadsheet_id=spreadsheet_id,
            sheet_range=sheet_range,
            month=month,
            year=year,
        )
        db.commit()
    return result


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description='Sync monthly invoices from a billing spreadsheet tab.')
    parser.add_argument('--spreadsheet-id', default=settings.default_spreadsheet_id)
    parser.add_argument('--sheet', required=True, help='Sheet tab name; also used as the apartment code.')
    parser.add_argument('--month', type=int, required=True)
    parser.add_argument('--year', type=int, required=True)
    parser.add_argument('--start-row', type=int, default=settings.sheet_start_row)
    parser.add_argument('--end-row', type=int, default=settings.sheet_end_row)
    parser.add_argument('--start-column', default=settings.sheet_start_column)
    parser.add_argument('--end-column', default=settings.sheet_end_column)
    args = parser.parse_args(argv)

    if not args.spreadsheet_id:
        parser.error('--spreadsheet-id is required when DEFAULT_SPREADSHEET_ID is not set')

    configure_logging(settings.log_level, settings.log_file)
    result = sync_sheet(
        spreadsheet_id=args.spreadsheet_id,
        sheet_range=SheetRange(
            sheet_name=args.sheet,
            start_row=args.start_row,
            end_row=args.end_row,
            start_column=args.start_column,
            end_column=args.end_column,
        ),
        month=args.month,
        year=args.year,
    )
    print(
        f'Invoice sync complete: processed={result.processed_count}, skipped={len(result.skipped_rows)}, '
        f'invoices_created={result.invoices_created}, invoices_updated={result.invoices_updated}, '
        f'customers_created={result.customers_created}, customers_updated={result.customers_updated}'
    )
    for skipped in result.skipped_rows:
        print(f'  row {skipped.row_number}: {skipped.reason}')


if __name__ == '__main__':
    main()
