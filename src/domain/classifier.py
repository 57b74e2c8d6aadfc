"""Classification of ledger entries into TokenTax transaction types.

Every supported (category, operation) pair is listed in
``CLASSIFICATION_TABLE`` with the handler that converts it. Exchanges add new
operation strings over time; anything missing from the table is rejected so
that a new kind of line is looked at before it reaches a tax report.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Callable, Iterable

from utils.comment_versions import comment_for

from .errors import SemanticViolationError, UnknownOperationError
from .ledger import CategoryOperation, LedgerEntry, LedgerSource, TaxRecord, TransactionType

logger = logging.getLogger(__name__)

EXCHANGE_NAMES = {
    LedgerSource.BINANCE_US: "binance.us",
    LedgerSource.BINANCE_COM: "binance.com",
    LedgerSource.BINANCE_COM_COMMISSION: "binance.com",
}

SMALL_ASSETS_EXCHANGE_TARGET = "BNB"


class Handler(StrEnum):
    INCOME = "INCOME"
    INCOME_OR_SPEND = "INCOME_OR_SPEND"
    COMMISSION = "COMMISSION"
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"
    TRADE = "TRADE"
    TRADE_LEG = "TRADE_LEG"
    SMALL_ASSETS_EXCHANGE = "SMALL_ASSETS_EXCHANGE"
    TRANSFER_IN = "TRANSFER_IN"
    TRANSFER_OUT = "TRANSFER_OUT"
    NON_TAXABLE = "NON_TAXABLE"


class TradeLeg(StrEnum):
    BUY = "BUY"
    SELL = "SELL"
    FEE = "FEE"


CLASSIFICATION_TABLE: dict[CategoryOperation, Handler] = {
    # binance.us distribution and trade history
    ("Distribution", "Referral Commission"): Handler.INCOME,
    ("Distribution", "Referral Rewards"): Handler.INCOME,
    ("Distribution", "Staking Rewards"): Handler.INCOME,
    ("Distribution", "Others"): Handler.INCOME,
    ("Quick Buy", "Buy"): Handler.TRADE,
    ("Quick Buy", "Sell"): Handler.TRADE,
    ("Quick Sell", "Buy"): Handler.TRADE,
    ("Quick Sell", "Sell"): Handler.TRADE,
    ("Spot Trading", "Buy"): Handler.TRADE,
    ("Spot Trading", "Sell"): Handler.TRADE,
    ("Withdrawal", "Crypto Withdrawal"): Handler.WITHDRAWAL,
    ("Deposit", "Crypto Deposit"): Handler.DEPOSIT,
    ("Deposit", "USD Deposit"): Handler.DEPOSIT,
    # binance.com trade history
    ("Coin-Futures", "Referrer rebates"): Handler.INCOME,
    ("USDT-Futures", "Referrer rebates"): Handler.INCOME,
    ("Pool", "Pool Distribution"): Handler.INCOME,
    ("Spot", "Commission History"): Handler.INCOME,
    ("Spot", "Commission Rebate"): Handler.INCOME,
    ("Spot", "ETH 2.0 Staking Rewards"): Handler.INCOME,
    ("Spot", "Savings Interest"): Handler.INCOME,
    ("Spot", "Distribution"): Handler.INCOME_OR_SPEND,
    ("Spot", "Deposit"): Handler.DEPOSIT,
    ("Spot", "Withdraw"): Handler.WITHDRAWAL,
    ("Spot", "Buy"): Handler.TRADE_LEG,
    ("Spot", "Transaction Related"): Handler.TRADE_LEG,
    ("Spot", "Fee"): Handler.TRADE_LEG,
    ("Spot", "Small assets exchange BNB"): Handler.SMALL_ASSETS_EXCHANGE,
    ("Coin-Futures", "transfer_in"): Handler.TRANSFER_IN,
    ("USDT-Futures", "transfer_in"): Handler.TRANSFER_IN,
    ("Spot", "transfer_in"): Handler.TRANSFER_IN,
    ("Coin-Futures", "transfer_out"): Handler.TRANSFER_OUT,
    ("USDT-Futures", "transfer_out"): Handler.TRANSFER_OUT,
    ("Spot", "transfer_out"): Handler.TRANSFER_OUT,
    ("Spot", "Savings Principal redemption"): Handler.NON_TAXABLE,
    ("Spot", "Savings purchase"): Handler.NON_TAXABLE,
    # binance.com referral commission
    ("Commission", "Commission Earned"): Handler.COMMISSION,
}

TRADE_LEGS: dict[CategoryOperation, TradeLeg] = {
    ("Spot", "Buy"): TradeLeg.BUY,
    ("Spot", "Transaction Related"): TradeLeg.SELL,
    ("Spot", "Fee"): TradeLeg.FEE,
}


def handler_for(entry: LedgerEntry) -> Handler:
    handler = CLASSIFICATION_TABLE.get(entry.key)
    if handler is None:
        raise UnknownOperationError(
            category=entry.category,
            operation=entry.operation,
            file_idx=entry.file_idx,
            line_number=entry.line_number,
        )
    return handler


def _violation(entry: LedgerEntry, reason: str) -> SemanticViolationError:
    return SemanticViolationError(
        category=entry.category,
        operation=entry.operation,
        change=entry.change,
        line_number=entry.line_number,
        reason=reason,
    )


def _record(entry: LedgerEntry, type_: TransactionType, **sides: object) -> TaxRecord:
    return TaxRecord(
        type=type_,
        exchange=EXCHANGE_NAMES[entry.source],
        comment=comment_for(entry),
        time=entry.timestamp,
        **sides,
    )


def _fee_sides(entry: LedgerEntry) -> dict[str, object]:
    if not entry.fee_asset:
        return {}
    if entry.fee_amount is None:
        raise _violation(entry, f"fee asset {entry.fee_asset} has no fee amount")
    if entry.fee_amount < 0:
        raise _violation(entry, "fee amount must not be negative")
    return {"fee_amount": entry.fee_amount, "fee_currency": entry.fee_asset}


def _income(entry: LedgerEntry) -> TaxRecord:
    # Negative income is a known upstream oddity and is passed through as-is.
    return _record(
        entry,
        TransactionType.INCOME,
        buy_amount=entry.change,
        buy_currency=entry.asset,
        **_fee_sides(entry),
    )


def _spend(entry: LedgerEntry) -> TaxRecord:
    return _record(entry, TransactionType.SPEND, sell_amount=-entry.change, sell_currency=entry.asset)


def _income_or_spend(entry: LedgerEntry) -> TaxRecord:
    if entry.change > 0:
        return _income(entry)
    return _spend(entry)


def _deposit(entry: LedgerEntry) -> TaxRecord:
    if entry.change < 0:
        raise _violation(entry, "deposit must not be negative")
    return _record(
        entry,
        TransactionType.DEPOSIT,
        buy_amount=entry.change,
        buy_currency=entry.asset,
        **_fee_sides(entry),
    )


def _withdrawal(entry: LedgerEntry) -> TaxRecord:
    if entry.change >= 0:
        raise _violation(entry, "withdrawal must be negative")
    return _record(
        entry,
        TransactionType.WITHDRAWAL,
        sell_amount=-entry.change,
        sell_currency=entry.asset,
        **_fee_sides(entry),
    )


def _trade(entry: LedgerEntry) -> TaxRecord:
    if (
        not entry.base_asset
        or not entry.quote_asset
        or entry.base_amount is None
        or entry.quote_amount is None
    ):
        raise _violation(entry, "trade is missing base or quote asset")
    if entry.change < 0 or entry.base_amount < 0 or entry.quote_amount < 0:
        raise _violation(entry, "trade amounts must not be negative")

    if entry.operation == "Buy":
        buy = (entry.base_amount, entry.base_asset)
        sell = (entry.quote_amount, entry.quote_asset)
    else:
        buy = (entry.quote_amount, entry.quote_asset)
        sell = (entry.base_amount, entry.base_asset)

    return _record(
        entry,
        TransactionType.TRADE,
        buy_amount=buy[0],
        buy_currency=buy[1],
        sell_amount=sell[0],
        sell_currency=sell[1],
        **_fee_sides(entry),
    )


def _trade_leg(entry: LedgerEntry) -> TaxRecord:
    """Classify a lone trade leg; paired legs become a Trade instead."""
    if entry.change >= 0:
        if entry.operation != "Buy":
            raise _violation(entry, 'expected operation "Buy" for a non-negative change')
        return _income(entry)
    if entry.operation == "Buy":
        raise _violation(entry, 'expected operation "Fee" or "Transaction Related" for a negative change')
    return _spend(entry)


def _small_assets_exchange(entry: LedgerEntry) -> TaxRecord:
    if entry.asset == SMALL_ASSETS_EXCHANGE_TARGET:
        if entry.change <= 0:
            raise _violation(entry, f"{SMALL_ASSETS_EXCHANGE_TARGET} received must be positive")
        return _income(entry)
    if entry.change >= 0:
        raise _violation(entry, "dust converted must be negative")
    return _spend(entry)


def _transfer_in(entry: LedgerEntry) -> None:
    if entry.change < 0:
        raise _violation(entry, "transfer_in must not be negative")
    return None


def _transfer_out(entry: LedgerEntry) -> None:
    if entry.change > 0:
        raise _violation(entry, "transfer_out must not be positive")
    return None


def _non_taxable(entry: LedgerEntry) -> None:
    if entry.operation == "Savings purchase" and entry.change > 0:
        raise _violation(entry, "savings purchase must not be positive")
    return None


_HANDLERS: dict[Handler, Callable[[LedgerEntry], TaxRecord | None]] = {
    Handler.INCOME: _income,
    Handler.INCOME_OR_SPEND: _income_or_spend,
    Handler.COMMISSION: _income,
    Handler.DEPOSIT: _deposit,
    Handler.WITHDRAWAL: _withdrawal,
    Handler.TRADE: _trade,
    Handler.TRADE_LEG: _trade_leg,
    Handler.SMALL_ASSETS_EXCHANGE: _small_assets_exchange,
    Handler.TRANSFER_IN: _transfer_in,
    Handler.TRANSFER_OUT: _transfer_out,
    Handler.NON_TAXABLE: _non_taxable,
}


def classify(entry: LedgerEntry) -> TaxRecord | None:
    """Convert one entry into a TaxRecord.

    Returns ``None`` for internal movements that are not taxable events
    (transfers between Binance accounts, savings principal movements).
    """
    return _HANDLERS[handler_for(entry)](entry)


@dataclass
class _TradeLegs:
    buys: list[LedgerEntry] = field(default_factory=list)
    sells: list[LedgerEntry] = field(default_factory=list)
    fees: list[LedgerEntry] = field(default_factory=list)


def _same_event(leg: LedgerEntry, buy: LedgerEntry) -> bool:
    return leg.timestamp == buy.timestamp and leg.user_id == buy.user_id


def pair_trade_legs(
    buys: list[LedgerEntry],
    sells: list[LedgerEntry],
    fees: list[LedgerEntry],
) -> list[TaxRecord]:
    """Combine binance.com Buy, Transaction Related and Fee legs into trades.

    Legs are paired by position, so they must already be in canonical order.
    A fee whose user or timestamp differs from its buy belongs to a later
    trade, which means the current trade was charged no fee. A fee that no
    buy claims is rejected.
    """
    if len(buys) != len(sells):
        reference = buys[0] if buys else sells[0]
        raise _violation(
            reference,
            f"expected number of 'Spot,Buy': {len(buys)} == 'Spot,Transaction Related': {len(sells)}",
        )
    if len(fees) > len(buys):
        raise _violation(fees[0], f"expected number of 'Spot,Fee': {len(fees)} <= 'Spot,Buy': {len(buys)}")

    pending_fees: list[LedgerEntry | None] = list(fees)
    trades: list[TaxRecord] = []
    for idx, buy in enumerate(buys):
        sell = sells[idx]
        if not _same_event(sell, buy):
            raise _violation(
                sell,
                f"transaction related leg does not belong to the buy at line_number={buy.line_number}",
            )

        fee = pending_fees[idx] if idx < len(pending_fees) else None
        fee_sides: dict[str, object] = {}
        if fee is not None and not _same_event(fee, buy):
            logger.info(
                "No fee for trade at line_number=%s, next fee is at line_number=%s",
                buy.line_number,
                fee.line_number,
            )
            pending_fees.insert(idx, None)
        elif fee is not None:
            if fee.change > 0:
                raise _violation(fee, "fee must not be positive")
            if fee.change < 0:
                fee_sides = {"fee_amount": -fee.change, "fee_currency": fee.asset}

        if buy.change < 0:
            raise _violation(buy, "buy leg must not be negative")
        if sell.change > 0:
            raise _violation(sell, "transaction related leg must not be positive")

        trades.append(
            TaxRecord(
                type=TransactionType.TRADE,
                buy_amount=buy.change,
                buy_currency=buy.asset,
                sell_amount=-sell.change,
                sell_currency=sell.asset,
                exchange=EXCHANGE_NAMES[buy.source],
                comment=comment_for(buy),
                time=buy.timestamp,
                **fee_sides,
            )
        )

    unmatched = [fee for fee in pending_fees[len(buys):] if fee is not None]
    if unmatched:
        raise _violation(unmatched[0], "fee does not belong to any buy")

    return trades


def classify_entries(entries: Iterable[LedgerEntry]) -> list[TaxRecord]:
    """Classify a canonically ordered sequence of entries.

    binance.com trade legs are collected and paired into Trade records; the
    result is stably sorted by time so records sharing a timestamp keep their
    relative order.
    """
    records: list[TaxRecord] = []
    legs = _TradeLegs()

    for entry in entries:
        handler = handler_for(entry)
        if handler == Handler.TRADE_LEG:
            leg = TRADE_LEGS[entry.key]
            if leg == TradeLeg.BUY:
                legs.buys.append(entry)
            elif leg == TradeLeg.SELL:
                legs.sells.append(entry)
            else:
                legs.fees.append(entry)
            continue

        record = _HANDLERS[handler](entry)
        if record is not None:
            records.append(record)

    records.extend(pair_trade_legs(legs.buys, legs.sells, legs.fees))
    records.sort(key=lambda record: record.time)
    return records
