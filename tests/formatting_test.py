from decimal import Decimal

from utils.formatting import format_amount, format_count, format_decimal


def test_format_amount_normalizes_scale() -> None:
    assert format_amount(Decimal("10.00000000")) == "10"
    assert format_amount(Decimal("0.0000003")) == "0.0000003"
    assert format_amount(Decimal("-35.05460000")) == "-35.0546"
    assert format_amount(Decimal("0")) == "0"
    assert format_amount(None) == ""


def test_format_decimal_avoids_exponent() -> None:
    assert format_decimal(Decimal("1E+3")) == "1000"
    assert format_decimal(Decimal("5125")) == "5125"


def test_format_count_groups_thousands() -> None:
    assert format_count(1234567) == "1,234,567"
