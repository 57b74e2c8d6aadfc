"""Canonical ordering of ledger entries.

Legs of one multi-leg trade share user, timestamp, account and operation and
arrive in arbitrary file order. The exchange emits them in magnitude order, so
the balancing debit and fee legs are compared by absolute value. Sorting that
way lines up the k-th buy with the k-th debit and the k-th fee, which is what
trade-leg pairing relies on.
"""

from __future__ import annotations

from decimal import Decimal
from functools import cmp_to_key
from typing import Iterable

from .ledger import CategoryOperation, LedgerEntry

FEE_LIKE_OPERATIONS: frozenset[CategoryOperation] = frozenset(
    {
        ("Spot", "Fee"),
        ("Spot", "Transaction Related"),
    }
)


def _cmp(lhs: object, rhs: object) -> int:
    if lhs < rhs:  # type: ignore[operator]
        return -1
    if lhs > rhs:  # type: ignore[operator]
        return 1
    return 0


def _quantity_for_ordering(entry: LedgerEntry) -> Decimal:
    if entry.key in FEE_LIKE_OPERATIONS:
        return abs(entry.change)
    return entry.change


def compare_entries(lhs: LedgerEntry, rhs: LedgerEntry) -> int:
    for left, right in (
        (lhs.user_id, rhs.user_id),
        (lhs.timestamp, rhs.timestamp),
        (lhs.category, rhs.category),
        (lhs.operation, rhs.operation),
        (lhs.asset, rhs.asset),
    ):
        result = _cmp(left, right)
        if result != 0:
            return result

    # Both entries share category and operation here.
    result = _cmp(_quantity_for_ordering(lhs), _quantity_for_ordering(rhs))
    if result != 0:
        return result
    for left, right in (
        (lhs.remark, rhs.remark),
        (lhs.file_idx, rhs.file_idx),
        (lhs.line_number, rhs.line_number),
    ):
        result = _cmp(left, right)
        if result != 0:
            return result
    return 0


entry_sort_key = cmp_to_key(compare_entries)


def entry_precedes(lhs: LedgerEntry, rhs: LedgerEntry) -> bool:
    return compare_entries(lhs, rhs) < 0


def sort_entries(entries: Iterable[LedgerEntry]) -> list[LedgerEntry]:
    return sorted(entries, key=entry_sort_key)
