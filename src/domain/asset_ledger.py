from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable

from .ledger import LedgerEntry


@dataclass
class AssetLedger:
    """Per-asset state for a single pipeline run."""

    asset: str
    quantity: Decimal = Decimal(0)
    transaction_count: int = 0
    entries: list[LedgerEntry] = field(default_factory=list)
    consolidated_entries: list[LedgerEntry] = field(default_factory=list)

    def add(self, entry: LedgerEntry) -> None:
        if entry.asset != self.asset:
            raise ValueError(f"Entry asset {entry.asset} does not belong to ledger {self.asset}")
        self.transaction_count += 1
        self.quantity += entry.change
        self.entries.append(entry)
        assert self.transaction_count == len(self.entries)

    def raw_quantity(self) -> Decimal:
        return sum((entry.change for entry in self.entries), start=Decimal(0))

    def consolidated_quantity(self) -> Decimal:
        return sum((entry.change for entry in self.consolidated_entries), start=Decimal(0))


def partition_by_asset(entries: Iterable[LedgerEntry]) -> dict[str, AssetLedger]:
    ledgers: dict[str, AssetLedger] = {}
    for entry in entries:
        ledger = ledgers.get(entry.asset)
        if ledger is None:
            ledger = AssetLedger(asset=entry.asset)
            ledgers[entry.asset] = ledger
        ledger.add(entry)
    return ledgers
