from decimal import Decimal

from app.utils.money import format_minor, tax_for_amount


def test_tax_rounds_half_up():
    assert tax_for_amount(20000, Decimal("20")) == 4000
    assert tax_for_amount(125, Decimal("20")) == 25
    assert tax_for_amount(1, Decimal("50")) == 1


def test_tax_keeps_sign_of_amount():
    assert tax_for_amount(-3500, Decimal("20")) == -700
    assert tax_for_amount(-1, Decimal("50")) == -1


def test_tax_at_zero_rate():
    assert tax_for_amount(3500, 0) == 0


def test_format_minor():
    assert format_minor(3500) == "£35.00"
    assert format_minor(5, "EUR") == "€0.05"
    assert format_minor(-1250, "usd") == "-$12.50"
    assert format_minor(100, "CHF") == "CHF 1.00"
