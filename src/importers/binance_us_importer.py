from __future__ import annotations

import logging
from decimal import Decimal
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from domain.errors import SchemaViolationError
from domain.ledger import AssetId, LedgerEntry, LedgerSource

from .csv_source import parse_time_field, read_rows

logger = logging.getLogger(__name__)

TRADING_CATEGORIES = {"Quick Buy", "Quick Sell", "Spot Trading"}

PRIMARY_AMOUNT_COLUMN = "Realized_Amount_For_Primary_Asset"
BASE_AMOUNT_COLUMN = "Realized_Amount_For_Base_Asset"
QUOTE_AMOUNT_COLUMN = "Realized_Amount_For_Quote_Asset"
FEE_AMOUNT_COLUMN = "Realized_Amount_For_Fee_Asset"

FIELDNAMES = [
    "User_Id",
    "Time",
    "Category",
    "Operation",
    "Order_Id",
    "Transaction_Id",
    "Primary_Asset",
    "Realized_Amount_For_Primary_Asset",
    "Realized_Amount_For_Primary_Asset_In_USD_Value",
    "Base_Asset",
    "Realized_Amount_For_Base_Asset",
    "Realized_Amount_For_Base_Asset_In_USD_Value",
    "Quote_Asset",
    "Realized_Amount_For_Quote_Asset",
    "Realized_Amount_For_Quote_Asset_In_USD_Value",
    "Fee_Asset",
    "Realized_Amount_For_Fee_Asset",
    "Realized_Amount_For_Fee_Asset_In_USD_Value",
    "Payment_Method",
    "Withdrawal_Method",
    "Additional_Note",
]


class BinanceUsDistributionRow(BaseModel):
    user_id: str = Field(alias="User_Id")
    time: int = Field(alias="Time")
    category: str = Field(alias="Category")
    operation: str = Field(alias="Operation")
    order_id: str = Field(alias="Order_Id")
    transaction_id: str = Field(alias="Transaction_Id")
    primary_asset: str = Field(alias="Primary_Asset")
    primary_amount: Decimal | None = Field(alias="Realized_Amount_For_Primary_Asset")
    primary_usd_value: Decimal | None = Field(alias="Realized_Amount_For_Primary_Asset_In_USD_Value")
    base_asset: str = Field(alias="Base_Asset")
    base_amount: Decimal | None = Field(alias="Realized_Amount_For_Base_Asset")
    base_usd_value: Decimal | None = Field(alias="Realized_Amount_For_Base_Asset_In_USD_Value")
    quote_asset: str = Field(alias="Quote_Asset")
    quote_amount: Decimal | None = Field(alias="Realized_Amount_For_Quote_Asset")
    quote_usd_value: Decimal | None = Field(alias="Realized_Amount_For_Quote_Asset_In_USD_Value")
    fee_asset: str = Field(alias="Fee_Asset")
    fee_amount: Decimal | None = Field(alias="Realized_Amount_For_Fee_Asset")
    fee_usd_value: Decimal | None = Field(alias="Realized_Amount_For_Fee_Asset_In_USD_Value")
    payment_method: str = Field(alias="Payment_Method")
    withdrawal_method: str = Field(alias="Withdrawal_Method")
    additional_note: str = Field(alias="Additional_Note")

    @field_validator("time", mode="before")
    @classmethod
    def _parse_timestamp(cls, value: str | int) -> int:
        return parse_time_field(value)

    @field_validator(
        "primary_amount",
        "primary_usd_value",
        "base_amount",
        "base_usd_value",
        "quote_amount",
        "quote_usd_value",
        "fee_amount",
        "fee_usd_value",
        mode="before",
    )
    @classmethod
    def _empty_amount(cls, value: str | Decimal | None) -> str | Decimal | None:
        if isinstance(value, str) and value.strip() == "":
            return None
        return value

    @field_validator(
        "user_id",
        "order_id",
        "transaction_id",
        "primary_asset",
        "base_asset",
        "quote_asset",
        "fee_asset",
        "payment_method",
        "withdrawal_method",
        "additional_note",
        mode="before",
    )
    @classmethod
    def _strip(cls, value: str | None) -> str:
        if value is None:
            return ""
        return value.strip()

    def selected_asset(self) -> tuple[str, Decimal | None, Decimal | None, str]:
        """The asset this row is booked under, with its amount, USD value and amount column."""
        if self.primary_asset:
            return self.primary_asset, self.primary_amount, self.primary_usd_value, PRIMARY_AMOUNT_COLUMN
        if self.category in TRADING_CATEGORIES and self.operation == "Sell":
            return self.quote_asset, self.quote_amount, self.quote_usd_value, QUOTE_AMOUNT_COLUMN
        return self.base_asset, self.base_amount, self.base_usd_value, BASE_AMOUNT_COLUMN


def _signed_change(row: BinanceUsDistributionRow, amount: Decimal) -> Decimal:
    # Withdrawals are exported as magnitudes.
    if row.category == "Withdrawal":
        return -amount
    return amount


class BinanceUsImporter:
    """Read binance.us distribution and trade history exports."""

    def __init__(self, source_path: str | Path, *, file_idx: int = 0, time_offset_ms: int = 0) -> None:
        self._source_path = Path(source_path)
        self._file_idx = file_idx
        self._time_offset_ms = time_offset_ms

    def load_entries(self) -> list[LedgerEntry]:
        entries = [
            self._to_entry(row, line_number)
            for line_number, row in read_rows(self._source_path, BinanceUsDistributionRow, FIELDNAMES)
        ]
        logger.info("binance.us importer: read %d rows from %s", len(entries), self._source_path)
        return entries

    def _to_entry(self, row: BinanceUsDistributionRow, line_number: int) -> LedgerEntry:
        asset, amount, usd_value, amount_column = row.selected_asset()
        if not asset:
            raise SchemaViolationError(
                source_path=self._source_path,
                line_number=line_number,
                reason="no Primary_Asset or Base_Asset",
            )
        if amount is None:
            raise self._missing(line_number, amount_column)
        if row.fee_asset and row.fee_amount is None:
            raise self._missing(line_number, FEE_AMOUNT_COLUMN)

        return LedgerEntry(
            source=LedgerSource.BINANCE_US,
            user_id=row.user_id,
            timestamp=row.time + self._time_offset_ms,
            category=row.category,
            operation=row.operation,
            asset=AssetId(asset),
            change=_signed_change(row, amount),
            remark=row.additional_note,
            order_id=row.order_id,
            transaction_id=row.transaction_id,
            usd_value=usd_value,
            base_asset=row.base_asset or None,
            base_amount=row.base_amount,
            quote_asset=row.quote_asset or None,
            quote_amount=row.quote_amount,
            fee_asset=row.fee_asset or None,
            fee_amount=row.fee_amount,
            file_idx=self._file_idx,
            line_number=line_number,
        )

    def _missing(self, line_number: int, column: str) -> SchemaViolationError:
        return SchemaViolationError(source_path=self._source_path, line_number=line_number, reason=f"missing {column}")
