from __future__ import annotations

from decimal import Decimal


def format_decimal(value: Decimal) -> str:
    quantized = value.normalize()
    # Avoid scientific notation for integers.
    if quantized == quantized.to_integral():
        return f"{quantized:.0f}"
    return format(quantized, "f")


def format_amount(value: Decimal | None) -> str:
    """Normalized plain decimal text, empty for None."""
    if value is None:
        return ""
    return format_decimal(value)


def format_count(value: int) -> str:
    return f"{value:,}"
