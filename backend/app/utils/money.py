"""Helpers for integer minor-unit money amounts."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

from app.core.constants import CURRENCY_SYMBOLS

Number = Union[int, float, Decimal, str]


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def tax_for_amount(amount_minor: int, rate_percent: Number) -> int:
    """
    Tax on ``amount_minor`` at ``rate_percent``, keeping the amount's sign.

    Rounding is half-up on the absolute value so a credit and the matching
    charge always carry the same magnitude of tax.
    """
    magnitude = round_half_up(Decimal(abs(amount_minor)) * Decimal(str(rate_percent)) / Decimal(100))
    return -magnitude if amount_minor < 0 else magnitude


def format_minor(amount_minor: int, currency_code: str = "GBP") -> str:
    """Render minor units for display, e.g. ``3500`` -> ``£35.00``."""
    symbol = CURRENCY_SYMBOLS.get(currency_code.upper(), f"{currency_code.upper()} ")
    major = Decimal(abs(amount_minor)) / Decimal(100)
    sign = "-" if amount_minor < 0 else ""
    return f"{sign}{symbol}{major.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP):.2f}"
