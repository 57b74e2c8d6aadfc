from __future__ import annotations

from decimal import Decimal
from enum import StrEnum
from typing import NewType

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from utils.time_ms import parse_utc_time_ms

AssetId = NewType("AssetId", str)
CategoryOperation = tuple[str, str]


class LedgerSource(StrEnum):
    BINANCE_US = "binance.us"
    BINANCE_COM = "binance.com"
    BINANCE_COM_COMMISSION = "binance.com-commission"


class TransactionType(StrEnum):
    TRADE = "Trade"
    DEPOSIT = "Deposit"
    WITHDRAWAL = "Withdrawal"
    INCOME = "Income"
    SPEND = "Spend"
    GIFT = "Gift"
    LOST = "Lost"
    STOLEN = "Stolen"
    MINING = "Mining"

    @property
    def rank(self) -> int:
        return _TYPE_RANK[self]


# Income must sort as the smallest type.
_TYPE_RANK = {
    TransactionType.INCOME: 0,
    TransactionType.TRADE: 1,
    TransactionType.DEPOSIT: 2,
    TransactionType.WITHDRAWAL: 3,
    TransactionType.SPEND: 4,
    TransactionType.LOST: 5,
    TransactionType.STOLEN: 6,
    TransactionType.MINING: 7,
    TransactionType.GIFT: 8,
}

BUY_SIDE_TYPES = frozenset({TransactionType.DEPOSIT, TransactionType.INCOME, TransactionType.MINING})
SELL_SIDE_TYPES = frozenset(
    {
        TransactionType.WITHDRAWAL,
        TransactionType.SPEND,
        TransactionType.LOST,
        TransactionType.STOLEN,
        TransactionType.GIFT,
    }
)


class TaxGroup(StrEnum):
    MARGIN = "margin"


class LedgerEntry(BaseModel):
    """One exchange ledger line in canonical form.

    ``change`` is signed: positive is a credit to ``asset``, negative a debit.
    The trading leg and fee amounts are magnitudes exactly as exported.
    """

    model_config = ConfigDict(frozen=True)

    source: LedgerSource
    user_id: str = ""
    timestamp: int
    category: str
    operation: str
    asset: AssetId
    change: Decimal
    remark: str = ""
    order_id: str = ""
    transaction_id: str = ""
    usd_value: Decimal | None = None

    base_asset: str | None = None
    base_amount: Decimal | None = None
    quote_asset: str | None = None
    quote_amount: Decimal | None = None
    fee_asset: str | None = None
    fee_amount: Decimal | None = None

    file_idx: int = 0
    line_number: int = 0
    attributes: dict[str, str] = Field(default_factory=dict)
    merged_count: int = 1

    @property
    def key(self) -> CategoryOperation:
        return (self.category, self.operation)

    @model_validator(mode="after")
    def _validate_fields(self) -> LedgerEntry:
        if not self.asset:
            raise ValueError("LedgerEntry.asset must be non-empty")
        if self.merged_count < 1:
            raise ValueError("LedgerEntry.merged_count must be >= 1")
        return self


class TaxRecord(BaseModel):
    """A normalized tax transaction, one line of a TokenTax CSV."""

    model_config = ConfigDict(populate_by_name=True)

    type: TransactionType = Field(alias="Type")
    buy_amount: Decimal | None = Field(default=None, alias="BuyAmount")
    buy_currency: str = Field(default="", alias="BuyCurrency")
    sell_amount: Decimal | None = Field(default=None, alias="SellAmount")
    sell_currency: str = Field(default="", alias="SellCurrency")
    fee_amount: Decimal | None = Field(default=None, alias="FeeAmount")
    fee_currency: str = Field(default="", alias="FeeCurrency")
    exchange: str = Field(default="", alias="Exchange")
    group: TaxGroup | None = Field(default=None, alias="Group")
    comment: str = Field(default="", alias="Comment")
    time: int = Field(alias="Date")

    @field_validator("buy_amount", "sell_amount", "fee_amount", "group", mode="before")
    @classmethod
    def _empty_to_none(cls, value: object) -> object:
        if isinstance(value, str) and value.strip() == "":
            return None
        return value

    @field_validator("buy_currency", "sell_currency", "fee_currency", "exchange", "comment", mode="before")
    @classmethod
    def _none_to_empty(cls, value: str | None) -> str:
        if value is None:
            return ""
        return value

    @field_validator("time", mode="before")
    @classmethod
    def _parse_date(cls, value: str | int) -> int:
        if isinstance(value, str):
            return parse_utc_time_ms(value)
        return value

    @model_validator(mode="after")
    def _validate_sides(self) -> TaxRecord:
        has_buy = self.buy_amount is not None and bool(self.buy_currency)
        has_sell = self.sell_amount is not None and bool(self.sell_currency)
        if self.type == TransactionType.TRADE:
            if not (has_buy and has_sell):
                raise ValueError("Trade must have both buy and sell sides")
        elif self.type in BUY_SIDE_TYPES:
            if not has_buy or self.sell_amount is not None or self.sell_currency:
                raise ValueError(f"{self.type} must have only a buy side")
        elif self.type in SELL_SIDE_TYPES:
            if not has_sell or self.buy_amount is not None or self.buy_currency:
                raise ValueError(f"{self.type} must have only a sell side")
        if self.fee_amount is not None and not self.fee_currency:
            raise ValueError("fee_amount requires fee_currency")
        return self

    @property
    def asset(self) -> str:
        if self.type == TransactionType.TRADE or self.type in BUY_SIDE_TYPES:
            return self.buy_currency
        return self.sell_currency

    @property
    def quantity(self) -> Decimal:
        if self.type == TransactionType.TRADE or self.type in BUY_SIDE_TYPES:
            assert self.buy_amount is not None
            return self.buy_amount
        assert self.sell_amount is not None
        return self.sell_amount

    def sort_key(self) -> tuple:
        return (
            self.time,
            self.type.rank,
            self.buy_currency,
            self.sell_currency,
            self.fee_currency,
            _optional_amount(self.buy_amount),
            _optional_amount(self.sell_amount),
            _optional_amount(self.fee_amount),
            self.exchange,
            self.group or "",
            self.comment,
        )


def _optional_amount(value: Decimal | None) -> tuple[bool, Decimal]:
    # None sorts before any amount.
    if value is None:
        return (False, Decimal(0))
    return (True, value)
