from decimal import Decimal

import pytest

from domain.ledger import LedgerSource
from tests.helpers.ledger_entries import make_entry
from utils.comment_versions import (
    TT_CMT_VER1_CSV_HEADER,
    TT_CMT_VER3_CSV_HEADER,
    TT_CMT_VER4_CSV_HEADER,
    comment_for,
    create_tt_cmt_ver1_string,
    parse_comment,
)


def test_v3_comment_for_trade_history() -> None:
    entry = make_entry(operation="Commission History", line_number=2)

    assert comment_for(entry) == "v3,0,2,123456789,Spot,Commission History"


def test_v4_comment_quotes_nothing_for_plain_fields() -> None:
    entry = make_entry(
        source=LedgerSource.BINANCE_US,
        category="Distribution",
        operation="Referral Rewards",
        order_id="",
        transaction_id="1038479673",
        line_number=11,
    )

    assert comment_for(entry) == "v4,0,11,,1038479673,Distribution,Referral Rewards"


def test_v1_comment_for_commission() -> None:
    entry = make_entry(
        source=LedgerSource.BINANCE_COM_COMMISSION,
        category="Commission",
        operation="Commission Earned",
        user_id="",
        change=Decimal("123"),
        line_number=2,
        attributes={
            "order_type": "USDT_futures",
            "friends_id_spot": "42254326",
            "friends_sub_id_spot": "",
            "commission_earned_usdt": "123",
            "registration_time": "213",
            "referral_id": "bpcode",
        },
    )

    assert create_tt_cmt_ver1_string(entry) == "v1,0,2,USDT_futures,42254326,,123,213,bpcode"
    assert comment_for(entry) == create_tt_cmt_ver1_string(entry)


def test_fields_with_commas_are_quoted() -> None:
    entry = make_entry(category="Spot", operation="Buy, Sell", line_number=4)

    comment = comment_for(entry)

    assert comment == 'v3,0,4,123456789,Spot,"Buy, Sell"'
    assert parse_comment(comment)["Operation"] == "Buy, Sell"


@pytest.mark.parametrize(
    ("comment", "header"),
    [
        ("v1,0,2,USDT_futures,42254326,,123,213,bpcode", TT_CMT_VER1_CSV_HEADER),
        ("v3,0,2,123456789,Spot,Commission History", TT_CMT_VER3_CSV_HEADER),
        ("v4,0,3,367670,125143,Spot Trading,Buy", TT_CMT_VER4_CSV_HEADER),
    ],
)
def test_parse_comment_names_every_field(comment: str, header: str) -> None:
    fields = parse_comment(comment)

    assert list(fields) == header.split(",")
    assert fields["FileIdx"] == "0"


def test_parse_comment_rejects_unknown_or_malformed() -> None:
    with pytest.raises(ValueError):
        parse_comment("v2,0,1")
    with pytest.raises(ValueError):
        parse_comment("v3,0,1")
    with pytest.raises(ValueError):
        parse_comment("")
