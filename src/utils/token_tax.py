from __future__ import annotations

import logging
from csv import DictReader, DictWriter
from pathlib import Path
from typing import Iterable

from pydantic import ValidationError

from domain.errors import SchemaViolationError
from domain.ledger import TaxRecord

from .formatting import format_amount
from .time_ms import format_utc_time_ms

logger = logging.getLogger(__name__)

FIELDNAMES = [
    "Type",
    "BuyAmount",
    "BuyCurrency",
    "SellAmount",
    "SellCurrency",
    "FeeAmount",
    "FeeCurrency",
    "Exchange",
    "Group",
    "Comment",
    "Date",
]


def tax_record_row(record: TaxRecord) -> dict[str, str]:
    return {
        "Type": str(record.type),
        "BuyAmount": format_amount(record.buy_amount),
        "BuyCurrency": record.buy_currency,
        "SellAmount": format_amount(record.sell_amount),
        "SellCurrency": record.sell_currency,
        "FeeAmount": format_amount(record.fee_amount),
        "FeeCurrency": record.fee_currency,
        "Exchange": record.exchange,
        "Group": str(record.group) if record.group is not None else "",
        "Comment": record.comment,
        "Date": format_utc_time_ms(record.time),
    }


def write_tax_records(path: Path, records: Iterable[TaxRecord]) -> int:
    count = 0
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = DictWriter(handle, fieldnames=FIELDNAMES)
        writer.writeheader()
        for record in records:
            writer.writerow(tax_record_row(record))
            count += 1
    logger.info("Wrote %d TokenTax records to %s", count, path)
    return count


def read_tax_records(path: Path) -> list[TaxRecord]:
    records: list[TaxRecord] = []
    with path.open(encoding="utf-8-sig", newline="") as handle:
        reader = DictReader(handle)
        if reader.fieldnames is None:
            raise SchemaViolationError(source_path=path, line_number=1, reason="file is empty or missing headers")

        missing = set(FIELDNAMES) - {name.strip() for name in reader.fieldnames}
        if missing:
            raise SchemaViolationError(
                source_path=path,
                line_number=1,
                reason=f"missing required columns: {', '.join(sorted(missing))}",
            )

        for rec_idx, row in enumerate(reader):
            try:
                records.append(TaxRecord.model_validate({key.strip(): value for key, value in row.items() if key}))
            except ValidationError as exc:
                raise SchemaViolationError(source_path=path, line_number=rec_idx + 2, reason=str(exc)) from exc

    logger.info("Read %d TokenTax records from %s", len(records), path)
    return records
