"""Daily consolidation of repeated low-value ledger entries.

Referral payouts, staking rewards and similar distributions arrive as many
tiny lines per day. Runs of them are collapsed into one entry per UTC day by a
two-state automaton: ``Scanning`` looks for the start of a run and
``Accumulating`` merges matching entries until the window closes or a
different kind of entry shows up.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import StrEnum
from typing import Iterable

from utils.time_ms import start_of_next_day

from .ledger import CategoryOperation, LedgerEntry

# Pairs mapped to the same group consolidate with each other.
CONSOLIDATABLE_OPERATIONS: dict[CategoryOperation, str] = {
    # binance.us
    ("Distribution", "Referral Commission"): "distribution-referral",
    ("Distribution", "Referral Rewards"): "distribution-referral",
    ("Distribution", "Staking Rewards"): "distribution-staking",
    ("Distribution", "Others"): "distribution-others",
    # binance.com
    ("Coin-Futures", "Referrer rebates"): "coin-futures-referrer-rebates",
    ("USDT-Futures", "Referrer rebates"): "usdt-futures-referrer-rebates",
    ("Pool", "Pool Distribution"): "pool-distribution",
    ("Spot", "Commission History"): "spot-commission-history",
    ("Spot", "Commission Rebate"): "spot-commission-rebate",
    ("Spot", "ETH 2.0 Staking Rewards"): "spot-eth2-staking-rewards",
}


@dataclass(frozen=True)
class Scanning:
    pass


@dataclass(frozen=True)
class Accumulating:
    category: str
    operation: str
    window_end: int

    def matches(self, entry: LedgerEntry) -> bool:
        group = CONSOLIDATABLE_OPERATIONS.get((self.category, self.operation))
        return group is not None and CONSOLIDATABLE_OPERATIONS.get(entry.key) == group


WindowState = Scanning | Accumulating


class WindowAction(StrEnum):
    EMIT = "EMIT"
    MERGE = "MERGE"


def window_end_for(timestamp: int) -> int:
    return start_of_next_day(timestamp)


def is_consolidatable(entry: LedgerEntry) -> bool:
    return entry.key in CONSOLIDATABLE_OPERATIONS


def step(state: WindowState, entry: LedgerEntry) -> tuple[WindowState, WindowAction]:
    if isinstance(state, Scanning):
        if is_consolidatable(entry):
            return Accumulating(entry.category, entry.operation, window_end_for(entry.timestamp)), WindowAction.EMIT
        return state, WindowAction.EMIT

    if not state.matches(entry):
        return Scanning(), WindowAction.EMIT

    if entry.timestamp < state.window_end:
        return state, WindowAction.MERGE

    # Window rolled over, the entry opens a new one.
    return Accumulating(entry.category, entry.operation, window_end_for(entry.timestamp)), WindowAction.EMIT


def merge_entries(consolidated: LedgerEntry, entry: LedgerEntry) -> LedgerEntry:
    usd_value = consolidated.usd_value
    if entry.usd_value is not None:
        usd_value = (usd_value or Decimal(0)) + entry.usd_value

    return consolidated.model_copy(
        update={
            "change": consolidated.change + entry.change,
            "usd_value": usd_value,
            "order_id": entry.order_id,
            "transaction_id": entry.transaction_id,
            "timestamp": entry.timestamp,
            "merged_count": consolidated.merged_count + entry.merged_count,
        }
    )


def consolidate_window(entries: Iterable[LedgerEntry]) -> list[LedgerEntry]:
    """Collapse matching runs of one asset's entries, preserving input order."""
    consolidated: list[LedgerEntry] = []
    state: WindowState = Scanning()

    for entry in entries:
        state, action = step(state, entry)
        if action == WindowAction.MERGE:
            consolidated[-1] = merge_entries(consolidated[-1], entry)
        else:
            consolidated.append(entry)

    return consolidated
