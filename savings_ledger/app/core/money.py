from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

from sqlalchemy import BigInteger
from sqlalchemy.types import TypeDecorator

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

MoneyInput = Union[Decimal, int, float, str]


def _to_decimal(value: MoneyInput) -> Decimal:
    if isinstance(value, float):
        value = str(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValueError(f"Not a monetary value: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"Not a monetary value: {value!r}")
    return amount


def to_money(value: MoneyInput | None) -> Decimal:
    """Coerce a value to a Decimal quantized to cents.

    Floats go through ``str`` so ``0.1`` becomes ``Decimal("0.10")`` rather
    than its binary expansion. ``None`` (an empty SQL aggregate) becomes zero.
    """
    if value is None:
        return ZERO
    return _to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_exact_money(value: MoneyInput) -> Decimal:
    """Like ``to_money`` but rejects values with sub-cent digits instead of rounding."""
    amount = _to_decimal(value)
    money = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    if money != amount:
        raise ValueError(f"Amount has more than two decimal places: {value!r}")
    return money


class Cents(TypeDecorator):
    """Money column stored as an integer count of cents, read back as a Decimal."""

    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return int(to_money(value) * 100)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return (Decimal(value) / 100).quantize(CENT)
