from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import pytest

from domain.errors import SchemaViolationError
from domain.ledger import TaxRecord, TransactionType
from tests.helpers.ledger_entries import make_income, ms
from utils.token_tax import FIELDNAMES, read_tax_records, tax_record_row, write_tax_records

HEADER = "Type,BuyAmount,BuyCurrency,SellAmount,SellCurrency,FeeAmount,FeeCurrency,Exchange,Group,Comment,Date"


def _trade() -> TaxRecord:
    return TaxRecord(
        type=TransactionType.TRADE,
        buy_amount=Decimal("0.00558"),
        buy_currency="BTC",
        sell_amount=Decimal("44.959176"),
        sell_currency="USD",
        fee_amount=Decimal("0"),
        fee_currency="BTC",
        exchange="binance.us",
        comment="v4,0,3,367670,125143,Spot Trading,Buy",
        time=ms("2019-09-28 15:35:02"),
    )


def test_tax_record_row_uses_token_tax_columns() -> None:
    row = tax_record_row(_trade())

    assert list(row) == FIELDNAMES
    assert row["Date"] == "2019-09-28T15:35:02.000+00:00"
    assert row["Group"] == ""


def test_write_produces_exact_csv_lines(tmp_path: Path) -> None:
    out = tmp_path / "tt.csv"
    withdrawal = TaxRecord(
        type=TransactionType.WITHDRAWAL,
        sell_amount=Decimal("23.99180186"),
        sell_currency="ETH",
        fee_amount=Decimal("0.005"),
        fee_currency="ETH",
        exchange="binance.us",
        comment="v4,0,8,38078398,38078398,Withdrawal,Crypto Withdrawal",
        time=ms("2020-08-16 23:54:01"),
    )

    count = write_tax_records(out, [_trade(), withdrawal])

    assert count == 2
    assert out.read_text(encoding="utf-8").splitlines() == [
        HEADER,
        'Trade,0.00558,BTC,44.959176,USD,0,BTC,binance.us,,"v4,0,3,367670,125143,Spot Trading,Buy",'
        "2019-09-28T15:35:02.000+00:00",
        'Withdrawal,,,23.99180186,ETH,0.005,ETH,binance.us,,"v4,0,8,38078398,38078398,Withdrawal,Crypto Withdrawal",'
        "2020-08-16T23:54:01.000+00:00",
    ]


def test_written_records_read_back(tmp_path: Path) -> None:
    out = tmp_path / "tt.csv"
    income = make_income("NANO", "-6.890204", "2021-05-05 05:05:05", comment="v4,0,2,1,2,Distribution,Others")
    records = [_trade(), income]
    write_tax_records(out, records)

    assert read_tax_records(out) == records


def test_read_rejects_missing_columns(tmp_path: Path) -> None:
    path = tmp_path / "tt.csv"
    path.write_text("Type,BuyAmount,BuyCurrency\nIncome,1,BNB\n", encoding="utf-8")

    with pytest.raises(SchemaViolationError) as excinfo:
        read_tax_records(path)

    assert excinfo.value.line_number == 1


def test_read_reports_invalid_record_line(tmp_path: Path) -> None:
    path = tmp_path / "tt.csv"
    path.write_text(
        HEADER + "\n"
        "Income,1,BNB,,,,,binance.us,,c1,2021-01-01T00:00:00.000+00:00\n"
        "Income,,,1,BNB,,,binance.us,,c2,2021-01-02T00:00:00.000+00:00\n",
        encoding="utf-8",
    )

    with pytest.raises(SchemaViolationError) as excinfo:
        read_tax_records(path)

    assert excinfo.value.line_number == 3
