from __future__ import annotations

from decimal import Decimal
from itertools import permutations
from random import Random

from domain.ledger import LedgerSource
from domain.ordering import compare_entries, entry_precedes, sort_entries
from tests.constants import BNB, BTC, USER_ID
from tests.helpers.ledger_entries import make_entry

TRADE_TIME = "2020-12-26 18:36:01"

# Legs of five trades executed in the same second, in export order.
MULTI_LEG_ROWS = [
    ("Fee", BNB, "-0.00112574"),
    ("Transaction Related", BNB, "-3.41000000"),
    ("Transaction Related", BNB, "-0.11000000"),
    ("Transaction Related", BNB, "-3.57000000"),
    ("Fee", BNB, "-0.00008040"),
    ("Buy", BTC, "0.00014357"),
    ("Fee", BNB, "-0.00267651"),
    ("Buy", BTC, "0.00195765"),
    ("Buy", BTC, "0.00014356"),
    ("Fee", BNB, "-0.00008040"),
    ("Transaction Related", BNB, "-1.50000000"),
    ("Buy", BTC, "0.00465885"),
    ("Buy", BTC, "0.00445039"),
    ("Fee", BNB, "-0.00255590"),
    ("Transaction Related", BNB, "-0.11000000"),
]


def _multi_leg_entries():
    return [
        make_entry(category="Spot", operation=operation, asset=asset, change=change, time=TRADE_TIME)
        for operation, asset, change in MULTI_LEG_ROWS
    ]


def _summary(entries):
    return [(entry.operation, entry.change) for entry in entries]


def test_fee_like_legs_sort_by_magnitude() -> None:
    ordered = sort_entries(_multi_leg_entries())

    assert _summary(ordered) == [
        ("Buy", Decimal("0.00014356")),
        ("Buy", Decimal("0.00014357")),
        ("Buy", Decimal("0.00195765")),
        ("Buy", Decimal("0.00445039")),
        ("Buy", Decimal("0.00465885")),
        ("Fee", Decimal("-0.00008040")),
        ("Fee", Decimal("-0.00008040")),
        ("Fee", Decimal("-0.00112574")),
        ("Fee", Decimal("-0.00255590")),
        ("Fee", Decimal("-0.00267651")),
        ("Transaction Related", Decimal("-0.11000000")),
        ("Transaction Related", Decimal("-0.11000000")),
        ("Transaction Related", Decimal("-1.50000000")),
        ("Transaction Related", Decimal("-3.41000000")),
        ("Transaction Related", Decimal("-3.57000000")),
    ]


def test_other_operations_sort_by_signed_change() -> None:
    small = make_entry(operation="Distribution", change="-5")
    large = make_entry(operation="Distribution", change="1")

    assert entry_precedes(small, large)
    assert not entry_precedes(large, small)


def test_sort_is_independent_of_input_order() -> None:
    entries = _multi_leg_entries()
    expected = _summary(sort_entries(entries))

    rng = Random(7)
    for _ in range(20):
        shuffled = list(entries)
        rng.shuffle(shuffled)
        assert _summary(sort_entries(shuffled)) == expected


def test_compare_entries_is_a_strict_order() -> None:
    entries = _multi_leg_entries() + [
        make_entry(operation="Commission History", change="0.5", time="2020-12-26 18:36:00"),
        make_entry(operation="Commission History", change="0.5", time="2020-12-26 18:36:00", remark="b"),
    ]

    for lhs in entries:
        assert not entry_precedes(lhs, lhs)
        for rhs in entries:
            assert compare_entries(lhs, rhs) == -compare_entries(rhs, lhs)
            for other in entries:
                if entry_precedes(lhs, rhs) and entry_precedes(rhs, other):
                    assert entry_precedes(lhs, other)


def test_user_and_time_take_precedence() -> None:
    early = make_entry(operation="Withdraw", change="-1", time="2021-01-01 00:00:00")
    late = make_entry(operation="Buy", change="1", time="2021-01-01 00:00:01")
    other_user = make_entry(operation="Buy", change="1", time="2020-01-01 00:00:00", user_id="999999999")

    assert entry_precedes(early, late)
    assert entry_precedes(early, other_user)
    assert entry_precedes(late, other_user)


def test_remark_breaks_remaining_ties() -> None:
    first = make_entry(remark="a")
    second = make_entry(remark="b")

    assert sort_entries([second, first]) == [first, second]


def test_source_does_not_affect_order() -> None:
    binance_us = make_entry(source=LedgerSource.BINANCE_US, user_id=USER_ID, change="2")
    binance_com = make_entry(source=LedgerSource.BINANCE_COM, user_id=USER_ID, change="1")

    assert sort_entries([binance_us, binance_com]) == [binance_com, binance_us]


def test_provenance_breaks_ties_after_remark() -> None:
    first = make_entry(file_idx=0, line_number=3)
    second = make_entry(file_idx=0, line_number=9)
    third = make_entry(file_idx=1, line_number=2)

    for order in permutations([first, second, third]):
        assert sort_entries(order) == [first, second, third]
    assert compare_entries(first, first) == 0
