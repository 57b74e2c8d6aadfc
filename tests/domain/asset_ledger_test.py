from decimal import Decimal

import pytest

from domain.asset_ledger import AssetLedger, partition_by_asset
from tests.constants import BNB, BTC, ETH
from tests.helpers.ledger_entries import make_entry


def test_partition_groups_entries_and_keeps_input_order() -> None:
    entries = [
        make_entry(asset=BTC, change="0.5", time="2021-01-02 00:00:00"),
        make_entry(asset=BNB, change="1"),
        make_entry(asset=BTC, change="-0.2", time="2021-01-01 00:00:00"),
        make_entry(asset=ETH, change="3"),
        make_entry(asset=BNB, change="-0.25"),
    ]

    ledgers = partition_by_asset(entries)

    assert set(ledgers) == {BTC, BNB, ETH}
    assert ledgers[BTC].entries == [entries[0], entries[2]]
    assert ledgers[BNB].entries == [entries[1], entries[4]]
    assert ledgers[BTC].quantity == Decimal("0.3")
    assert ledgers[BNB].quantity == Decimal("0.75")
    assert ledgers[ETH].transaction_count == 1
    assert sum(ledger.transaction_count for ledger in ledgers.values()) == len(entries)


def test_running_quantity_matches_sum_of_changes() -> None:
    ledger = AssetLedger(asset=BNB)
    for change in ("1.1", "-0.1", "0.00000001", "-2"):
        ledger.add(make_entry(asset=BNB, change=change))

    assert ledger.quantity == ledger.raw_quantity() == Decimal("-0.99999999")
    assert ledger.transaction_count == 4


def test_add_rejects_foreign_asset() -> None:
    ledger = AssetLedger(asset=BNB)

    with pytest.raises(ValueError):
        ledger.add(make_entry(asset=BTC))

    assert ledger.transaction_count == 0
    assert ledger.quantity == Decimal(0)


def test_partition_of_nothing_is_empty() -> None:
    assert partition_by_asset([]) == {}
