from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable

from .asset_ledger import AssetLedger, partition_by_asset
from .classifier import Handler, classify_entries, handler_for
from .errors import ConservationError
from .ledger import CategoryOperation, LedgerEntry, LedgerSource, TaxRecord, TransactionType
from .ordering import sort_entries
from .period_consolidator import consolidate_income
from .window_consolidator import consolidate_window

logger = logging.getLogger(__name__)


@dataclass
class PipelineCounters:
    total_count: int = 0
    pre_consolidation_count: int = 0
    post_consolidation_count: int = 0
    transfer_in_count: int = 0
    transfer_out_count: int = 0
    savings_principal: Decimal = Decimal(0)
    by_operation: Counter[CategoryOperation] = field(default_factory=Counter)
    by_source: Counter[LedgerSource] = field(default_factory=Counter)
    by_type: Counter[TransactionType] = field(default_factory=Counter)

    def record_entry(self, entry: LedgerEntry) -> None:
        handler = handler_for(entry)
        self.total_count += 1
        self.by_operation[entry.key] += 1
        self.by_source[entry.source] += 1
        if handler == Handler.TRANSFER_IN:
            self.transfer_in_count += 1
        elif handler == Handler.TRANSFER_OUT:
            self.transfer_out_count += 1
        elif handler == Handler.NON_TAXABLE:
            self.savings_principal += entry.change

    def record_tax_records(self, records: Iterable[TaxRecord]) -> None:
        self.by_type.update(record.type for record in records)


@dataclass
class PipelineResult:
    asset_ledgers: dict[str, AssetLedger]
    consolidated_entries: list[LedgerEntry]
    tax_records: list[TaxRecord]
    counters: PipelineCounters


def check_conservation(ledger: AssetLedger) -> None:
    raw_quantity = ledger.raw_quantity()
    consolidated_quantity = ledger.consolidated_quantity()
    if raw_quantity != consolidated_quantity or ledger.quantity != raw_quantity:
        raise ConservationError(
            asset=ledger.asset,
            raw_quantity=ledger.quantity,
            consolidated_quantity=consolidated_quantity,
        )


class LedgerPipeline:
    """Turn raw ledger entries into TokenTax records.

    Stages: partition by asset, daily window consolidation per asset,
    canonical sort, classification, and optionally monthly Income
    consolidation.
    """

    def __init__(self, *, consolidate_income: bool = True) -> None:
        self._consolidate_income = consolidate_income

    def run(self, entries: Iterable[LedgerEntry]) -> PipelineResult:
        counters = PipelineCounters()
        entries = list(entries)
        for entry in entries:
            counters.record_entry(entry)

        if counters.transfer_in_count != counters.transfer_out_count:
            logger.warning(
                "transfer_in count %d does not match transfer_out count %d",
                counters.transfer_in_count,
                counters.transfer_out_count,
            )

        asset_ledgers = partition_by_asset(entries)
        consolidated: list[LedgerEntry] = []
        for asset in sorted(asset_ledgers):
            ledger = asset_ledgers[asset]
            ledger.consolidated_entries = consolidate_window(ledger.entries)
            check_conservation(ledger)
            logger.info(
                "Window consolidation %s: %d -> %d entries",
                asset,
                len(ledger.entries),
                len(ledger.consolidated_entries),
            )
            consolidated.extend(ledger.consolidated_entries)

        counters.pre_consolidation_count = len(entries)
        counters.post_consolidation_count = len(consolidated)
        logger.info("Consolidated from %d to %d entries", len(entries), len(consolidated))

        consolidated = sort_entries(consolidated)
        tax_records = classify_entries(consolidated)
        if self._consolidate_income:
            tax_records = consolidate_income(tax_records)
        counters.record_tax_records(tax_records)

        return PipelineResult(
            asset_ledgers=asset_ledgers,
            consolidated_entries=consolidated,
            tax_records=tax_records,
            counters=counters,
        )
