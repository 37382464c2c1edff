from decimal import Decimal

import pytest

from storefront.core.money import compute_total, format_currency, round_money, to_decimal


def test_compute_total_matches_scenario_a():
    assert compute_total([(2, "89.99"), (1, "199.99")]) == Decimal("379.97")


def test_compute_total_accepts_floats_without_binary_drift():
    # 0.1 + 0.2 в float даёт 0.30000000000000004
    assert compute_total([(1, 0.1), (1, 0.2)]) == Decimal("0.30")


def test_compute_total_rounds_once_after_summing():
    # округление каждой строки дало бы 0.00 + 0.00 + 0.00
    assert compute_total([(1, "0.004"), (1, "0.004"), (1, "0.004")]) == Decimal("0.01")


def test_compute_total_of_nothing_is_zero():
    assert compute_total([]) == Decimal("0.00")


@pytest.mark.parametrize(
    "value, expected",
    [
        (Decimal("1.005"), Decimal("1.01")),
        (Decimal("2.675"), Decimal("2.68")),
        (Decimal("10"), Decimal("10.00")),
    ],
)
def test_round_money_half_up(value, expected):
    assert round_money(value) == expected


def test_to_decimal_handles_none_and_decimal():
    assert to_decimal(None) == Decimal("0")
    d = Decimal("5.25")
    assert to_decimal(d) is d


def test_format_currency():
    assert format_currency(Decimal("379.97")) == "$379.97"
    assert format_currency(1234.5, "EUR") == "€1,234.50"
    assert format_currency("15", "JPY") == "15.00 JPY"
