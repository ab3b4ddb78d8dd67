"""Decimal helpers for currency and weight.

Money never goes through binary floats: every value entering the pricing
engine is converted with :func:`to_decimal` from its string form.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from .errors import ValidationError


ZERO = Decimal('0')
CENT = Decimal('0.01')
KG_PRICE_STEP = Decimal('0.0001')
WEIGHT_STEP = Decimal('0.001')
MAX_WEIGHT = Decimal('10000000')


def to_decimal(value: Any, *, field: str = 'value') -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value is None or isinstance(value, bool):
        raise ValidationError(f'{field} must be a number.')
    try:
        # str() keeps floats such as 5.2 as Decimal('5.2') rather than the binary expansion.
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f'{field} must be a number.') from None
    if not result.is_finite():
        raise ValidationError(f'{field} must be a finite number.')
    return result


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def quantize_kg_price(value: Decimal) -> Decimal:
    return value.quantize(KG_PRICE_STEP, rounding=ROUND_HALF_UP)


def quantize_weight(value: Decimal) -> Decimal:
    return value.quantize(WEIGHT_STEP, rounding=ROUND_HALF_UP)


def positive_weight(value: Any) -> Decimal:
    kg = to_decimal(value, field='kg')
    if kg <= ZERO:
        raise ValidationError('kg must be greater than zero.')
    # orders.user_kg is Numeric(10, 3).
    if kg >= MAX_WEIGHT:
        raise ValidationError('kg is too large.')
    try:
        return quantize_weight(kg)
    except InvalidOperation:
        raise ValidationError('kg is too large.') from None
