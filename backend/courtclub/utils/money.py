"""
Money helpers.

All amounts are Decimal with two decimal places (NUMERIC(18, 2) in the DB).
"""
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

CENT = Decimal("0.01")
SECONDS_PER_HOUR = Decimal(3600)


def to_money(value: Union[Decimal, int, float, str]) -> Decimal:
    """Coerce to Decimal and quantize to cents (floats go through str to avoid binary noise)."""
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def hours_between(start: datetime, end: datetime) -> Decimal:
    """Fractional hours between two datetimes, exact to the second."""
    return Decimal(int((end - start).total_seconds())) / SECONDS_PER_HOUR


def format_amount(amount: Decimal) -> str:
    """12345678.5 -> '12,345,679' (whole units, as shown to members)."""
    return f"{to_money(amount):,.0f}"
