from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from config import config
from domain.errors import LedgerProcessingError
from domain.ledger import LedgerEntry
from domain.period_consolidator import consolidate_income
from domain.pipeline import LedgerPipeline
from importers.binance_com_importer import BinanceComCommissionImporter, BinanceComTradeHistoryImporter
from importers.binance_us_importer import BinanceUsImporter
from utils.asset_summary import compute_run_summary, render_run_summary
from utils.time_ms import days_to_time_ms
from utils.token_tax import read_tax_records, write_tax_records

logger = logging.getLogger(__name__)

IMPORTERS = {
    "binance-us": BinanceUsImporter,
    "binance-com": BinanceComTradeHistoryImporter,
    "binance-com-commission": BinanceComCommissionImporter,
}
TOKEN_TAX_SOURCE = "token-tax"


def load_entries(source: str, paths: Sequence[Path], *, time_offset_days: int) -> list[LedgerEntry]:
    importer_cls = IMPORTERS[source]
    time_offset_ms = days_to_time_ms(time_offset_days)
    entries: list[LedgerEntry] = []
    for file_idx, path in enumerate(paths):
        importer = importer_cls(path, file_idx=file_idx, time_offset_ms=time_offset_ms)
        entries.extend(importer.load_entries())
    return entries


def run(
    source: str,
    paths: Sequence[Path],
    out_path: Path,
    *,
    consolidate: bool,
    time_offset_days: int,
    show_summary: bool,
) -> None:
    if source == TOKEN_TAX_SOURCE:
        records = [record for path in paths for record in read_tax_records(path)]
        consolidated = consolidate_income(records)
        write_tax_records(out_path, consolidated)
        print(f"Consolidated {len(records)} TokenTax records to {len(consolidated)} in {out_path}")
        return

    entries = load_entries(source, paths, time_offset_days=time_offset_days)
    result = LedgerPipeline(consolidate_income=consolidate).run(entries)
    write_tax_records(out_path, result.tax_records)
    print(f"Imported {len(entries)} entries, wrote {len(result.tax_records)} TokenTax records to {out_path}")

    if show_summary:
        render_run_summary(compute_run_summary(result))


def main(argv: Sequence[str] | None = None) -> int:
    settings = config()
    parser = argparse.ArgumentParser(description="Convert Binance ledger exports into TokenTax CSV.")
    parser.add_argument("--source", choices=[*IMPORTERS, TOKEN_TAX_SOURCE], required=True)
    parser.add_argument("files", type=Path, nargs="+")
    parser.add_argument("--out", type=Path, required=True)
    parser.add_argument("--no-income-consolidation", action="store_true")
    parser.add_argument("--time-offset-days", type=int, default=settings.time_offset_days)
    parser.add_argument("--summary", action="store_true")
    parser.add_argument("--log-level", default=settings.log_level)
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s %(message)s")

    missing = [path for path in args.files if not path.exists()]
    if missing:
        parser.error(f"input files not found: {', '.join(str(path) for path in missing)}")

    try:
        run(
            args.source,
            args.files,
            args.out,
            consolidate=settings.consolidate_income and not args.no_income_consolidation,
            time_offset_days=args.time_offset_days,
            show_summary=args.summary,
        )
    except LedgerProcessingError as exc:
        logger.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
