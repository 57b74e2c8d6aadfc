from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from utils.time_ms import start_of_month, start_of_next_month

from .ledger import TaxRecord, TransactionType

logger = logging.getLogger(__name__)


@dataclass
class _IncomeBucket:
    first: TaxRecord
    end: int
    quantity: Decimal

    def to_record(self) -> TaxRecord:
        # The bucket keeps the first record's time and provenance.
        return self.first.model_copy(update={"buy_amount": self.quantity})


def _open_bucket(record: TaxRecord) -> _IncomeBucket:
    assert record.buy_amount is not None
    month_start = start_of_month(record.time)
    return _IncomeBucket(first=record, end=start_of_next_month(month_start), quantity=record.buy_amount)


def income_sort_key(record: TaxRecord) -> tuple[int, int]:
    return (record.type.rank, record.time)


def consolidate_asset_income(records: Iterable[TaxRecord]) -> list[TaxRecord]:
    """Sum one asset's Income records per calendar month.

    Non-Income records pass through unchanged. Every bucket is emitted, even
    when its sum is zero or negative.
    """
    consolidated: list[TaxRecord] = []
    bucket: _IncomeBucket | None = None

    for record in sorted(records, key=income_sort_key):
        if record.type != TransactionType.INCOME:
            if bucket is not None:
                consolidated.append(bucket.to_record())
                bucket = None
            consolidated.append(record)
            continue

        assert record.buy_amount is not None
        if bucket is None:
            bucket = _open_bucket(record)
        elif record.time >= bucket.end:
            consolidated.append(bucket.to_record())
            bucket = _open_bucket(record)
        else:
            bucket.quantity += record.buy_amount

    if bucket is not None:
        consolidated.append(bucket.to_record())

    return consolidated


def consolidate_income(records: Iterable[TaxRecord]) -> list[TaxRecord]:
    """Monthly Income consolidation across all assets."""
    by_asset: dict[str, list[TaxRecord]] = {}
    for record in records:
        by_asset.setdefault(record.asset, []).append(record)

    consolidated: list[TaxRecord] = []
    for asset in sorted(by_asset):
        asset_records = by_asset[asset]
        asset_consolidated = consolidate_asset_income(asset_records)
        logger.info("Income consolidation %s: %d -> %d records", asset, len(asset_records), len(asset_consolidated))
        consolidated.extend(asset_consolidated)

    consolidated.sort(key=lambda record: record.sort_key())
    return consolidated
