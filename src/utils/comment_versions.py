"""Versioned provenance strings stored in the TokenTax ``Comment`` column.

Each version is a CSV-encoded row whose first field is the version tag. The
layout of a given tag never changes; a new layout gets a new tag. v0 and v2
were retired and are not produced any more.
"""

from __future__ import annotations

import csv
import io

from domain.ledger import LedgerEntry, LedgerSource

TT_CMT_VER1 = "v1"
TT_CMT_VER1_CSV_HEADER = (
    "version,FileIdx,LineNumber,OrderType,FriendsIdSpot,FriendsSubIdSpot,"
    "CommissionEarnedUsdt,RegistrationTime,ReferralId"
)

TT_CMT_VER3 = "v3"
TT_CMT_VER3_CSV_HEADER = "version,FileIdx,LineNumber,UserId,Account,Operation"

TT_CMT_VER4 = "v4"
TT_CMT_VER4_CSV_HEADER = "version,FileIdx,LineNumber,OrderId,TransactionId,Category,Operation"


def _csv_row(fields: list[str]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="")
    writer.writerow(fields)
    return buffer.getvalue()


def create_tt_cmt_ver1_string(entry: LedgerEntry) -> str:
    attrs = entry.attributes
    return _csv_row(
        [
            TT_CMT_VER1,
            str(entry.file_idx),
            str(entry.line_number),
            attrs.get("order_type", ""),
            attrs.get("friends_id_spot", ""),
            attrs.get("friends_sub_id_spot", ""),
            attrs.get("commission_earned_usdt", ""),
            attrs.get("registration_time", ""),
            attrs.get("referral_id", ""),
        ]
    )


def create_tt_cmt_ver3_string(entry: LedgerEntry) -> str:
    return _csv_row(
        [
            TT_CMT_VER3,
            str(entry.file_idx),
            str(entry.line_number),
            entry.user_id,
            entry.category,
            entry.operation,
        ]
    )


def create_tt_cmt_ver4_string(entry: LedgerEntry) -> str:
    return _csv_row(
        [
            TT_CMT_VER4,
            str(entry.file_idx),
            str(entry.line_number),
            entry.order_id,
            entry.transaction_id,
            entry.category,
            entry.operation,
        ]
    )


def comment_for(entry: LedgerEntry) -> str:
    if entry.source == LedgerSource.BINANCE_US:
        return create_tt_cmt_ver4_string(entry)
    if entry.source == LedgerSource.BINANCE_COM_COMMISSION:
        return create_tt_cmt_ver1_string(entry)
    return create_tt_cmt_ver3_string(entry)


def parse_comment(comment: str) -> dict[str, str]:
    """Split a versioned comment back into named fields."""
    row = next(csv.reader([comment]), [])
    if not row:
        raise ValueError("empty provenance comment")

    headers = {
        TT_CMT_VER1: TT_CMT_VER1_CSV_HEADER,
        TT_CMT_VER3: TT_CMT_VER3_CSV_HEADER,
        TT_CMT_VER4: TT_CMT_VER4_CSV_HEADER,
    }
    header = headers.get(row[0])
    if header is None:
        raise ValueError(f"Unsupported comment version {row[0]!r}")

    names = header.split(",")
    if len(names) != len(row):
        raise ValueError(f"Comment {comment!r} does not match {row[0]} layout")
    return dict(zip(names, row))
