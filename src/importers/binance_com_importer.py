from __future__ import annotations

import logging
from decimal import Decimal
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from domain.ledger import AssetId, LedgerEntry, LedgerSource

from .csv_source import parse_time_field, read_rows

logger = logging.getLogger(__name__)

TRADE_HISTORY_FIELDNAMES = ["User_ID", "UTC_Time", "Account", "Operation", "Coin", "Change", "Remark"]

COMMISSION_FIELDNAMES = [
    "Order Type",
    "Friend's ID(Spot)",
    "Friend's sub ID (Spot)",
    "Commission Asset",
    "Commission Earned",
    "Commission Earned (USDT)",
    "Commission Time",
    "Registration Time",
    "Referral ID",
]

COMMISSION_CATEGORY = "Commission"
COMMISSION_OPERATION = "Commission Earned"


class BinanceComTradeRow(BaseModel):
    user_id: str = Field(alias="User_ID")
    time: int = Field(alias="UTC_Time")
    account: str = Field(alias="Account")
    operation: str = Field(alias="Operation")
    coin: str = Field(alias="Coin")
    change: Decimal = Field(alias="Change")
    remark: str = Field(default="", alias="Remark")

    @field_validator("time", mode="before")
    @classmethod
    def _parse_timestamp(cls, value: str | int) -> int:
        return parse_time_field(value)

    @field_validator("remark", mode="before")
    @classmethod
    def _empty_remark(cls, value: str | None) -> str:
        if value is None:
            return ""
        return value


class BinanceComCommissionRow(BaseModel):
    order_type: str = Field(alias="Order Type")
    friends_id_spot: int = Field(alias="Friend's ID(Spot)")
    friends_sub_id_spot: str = Field(default="", alias="Friend's sub ID (Spot)")
    commission_asset: str = Field(alias="Commission Asset")
    commission_earned: Decimal = Field(alias="Commission Earned")
    commission_earned_usdt: Decimal = Field(alias="Commission Earned (USDT)")
    commission_time: int = Field(alias="Commission Time")
    registration_time: int = Field(alias="Registration Time")
    referral_id: str = Field(default="", alias="Referral ID")

    @field_validator("commission_time", "registration_time", mode="before")
    @classmethod
    def _parse_timestamp(cls, value: str | int) -> int:
        return parse_time_field(value)

    @field_validator("friends_sub_id_spot", "referral_id", mode="before")
    @classmethod
    def _empty_text(cls, value: str | None) -> str:
        if value is None:
            return ""
        return value


class BinanceComTradeHistoryImporter:
    def __init__(self, source_path: str | Path, *, file_idx: int = 0, time_offset_ms: int = 0) -> None:
        self._source_path = Path(source_path)
        self._file_idx = file_idx
        self._time_offset_ms = time_offset_ms

    def load_entries(self) -> list[LedgerEntry]:
        entries = [
            LedgerEntry(
                source=LedgerSource.BINANCE_COM,
                user_id=row.user_id,
                timestamp=row.time + self._time_offset_ms,
                category=row.account,
                operation=row.operation,
                asset=AssetId(row.coin),
                change=row.change,
                remark=row.remark,
                file_idx=self._file_idx,
                line_number=line_number,
            )
            for line_number, row in read_rows(self._source_path, BinanceComTradeRow, TRADE_HISTORY_FIELDNAMES)
        ]
        logger.info("binance.com importer: read %d trade history rows from %s", len(entries), self._source_path)
        return entries


class BinanceComCommissionImporter:
    """Referral commission exports; every row is commission income."""

    def __init__(self, source_path: str | Path, *, file_idx: int = 0, time_offset_ms: int = 0) -> None:
        self._source_path = Path(source_path)
        self._file_idx = file_idx
        self._time_offset_ms = time_offset_ms

    def load_entries(self) -> list[LedgerEntry]:
        entries = [
            self._to_entry(row, line_number)
            for line_number, row in read_rows(self._source_path, BinanceComCommissionRow, COMMISSION_FIELDNAMES)
        ]
        logger.info("binance.com importer: read %d commission rows from %s", len(entries), self._source_path)
        return entries

    def _to_entry(self, row: BinanceComCommissionRow, line_number: int) -> LedgerEntry:
        return LedgerEntry(
            source=LedgerSource.BINANCE_COM_COMMISSION,
            timestamp=row.commission_time + self._time_offset_ms,
            category=COMMISSION_CATEGORY,
            operation=COMMISSION_OPERATION,
            asset=AssetId(row.commission_asset),
            change=row.commission_earned,
            remark=row.referral_id,
            file_idx=self._file_idx,
            line_number=line_number,
            attributes={
                "order_type": row.order_type,
                "friends_id_spot": str(row.friends_id_spot),
                "friends_sub_id_spot": row.friends_sub_id_spot,
                "commission_earned_usdt": str(row.commission_earned_usdt),
                "registration_time": str(row.registration_time),
                "referral_id": row.referral_id,
            },
        )
