from collections.abc import Iterable
from decimal import ROUND_HALF_DOWN, ROUND_HALF_UP, Decimal
from typing import Union

# Type alias for money values
Money = Decimal

ZERO = Decimal("0.00")


def round_money(value: Union[Decimal, float, int, str]) -> Decimal:
    """
    Round monetary value to 2 decimal places using ROUND_HALF_UP.

    Examples:
        >>> round_money(10.125)
        Decimal('10.13')
        >>> round_money("1000000")
        Decimal('1000000.00')
    """
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    if value < 0:
        return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_DOWN)
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def line_total(quantity: int, unit_price: Union[Decimal, str]) -> Decimal:
    """quantity * unit_price, rounded."""
    return round_money(Decimal(quantity) * Decimal(str(unit_price)))


def sum_money(values: Iterable[Decimal]) -> Decimal:
    return round_money(sum(values, ZERO))
