"""
Money helpers shared by the split, settlement and balance code.

Amounts are kept as Decimal and rounded half-up to cents wherever a value is
produced, so the 0.01 tolerance below only has to absorb client-side drift.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

# Two amounts closer than this are the same amount
MONEY_TOLERANCE = Decimal("0.01")
# Allowed drift when checking that percentages / exact amounts add up
SUM_TOLERANCE = Decimal("0.001")

Number = Union[Decimal, int, float, str, None]


def to_decimal(value: Number) -> Decimal:
    """Convert a number to Decimal without picking up float noise"""
    if value is None:
        return Decimal(0)
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_money(value: Number) -> Decimal:
    """Round to 2 decimal places, half-up"""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def money_equal(a: Number, b: Number, tolerance: Decimal = MONEY_TOLERANCE) -> bool:
    """True if the two amounts differ by at most the tolerance"""
    return abs(to_decimal(a) - to_decimal(b)) <= tolerance


def is_zero(value: Number) -> bool:
    return abs(to_decimal(value)) < MONEY_TOLERANCE
