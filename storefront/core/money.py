# storefront/core/money.py
# Денежная арифметика: только Decimal, точность 2 знака, округление один раз в конце.
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from storefront.core.config import settings

CENT = Decimal("0.01")


def to_decimal(value) -> Decimal:
    """Приводит число/строку к Decimal без потерь через str (float 89.99 -> Decimal('89.99'))."""
    if isinstance(value, Decimal):
        return value
    if value is None:
        return Decimal("0")
    return Decimal(str(value))


def round_money(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def compute_total(lines: Iterable[tuple]) -> Decimal:
    """
    Сумма quantity × price по строкам (пары (quantity, price)).
    Сначала суммируем, потом округляем. Пустой набор даёт 0.00.
    """
    total = Decimal("0")
    for quantity, price in lines:
        total += Decimal(int(quantity)) * to_decimal(price)
    return round_money(total)


def format_currency(amount, currency: str | None = None) -> str:
    """Форматирует сумму для отображения: 379.97 -> '$379.97'."""
    currency = currency or settings.CURRENCY
    value = round_money(to_decimal(amount))
    symbols = {"USD": "$", "EUR": "€", "GBP": "£"}
    if currency in symbols:
        return f"{symbols[currency]}{value:,.2f}"
    return f"{value:,.2f} {currency}"
