import math
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

JPY_SYMBOL = '¥'
KRW_SYMBOL = '₩'

_UNITS = (
    (1_000_000_000_000, 'T', 2),
    (1_000_000_000, 'B', 2),
    (1_000_000, 'M', 1),
    (1_000, 'K', 1),
)


def to_fixed(number, digits: int) -> str:
    """Format with a fixed number of decimals, rounding halves away from zero."""
    try:
        exponent = Decimal(1).scaleb(-digits)
        return str(Decimal(number).quantize(exponent, rounding=ROUND_HALF_UP))
    except (InvalidOperation, ValueError, TypeError):
        return str(number)


def format_currency(value, symbol: str = JPY_SYMBOL) -> str:
    """Render an amount with its currency symbol and a T/B/M/K magnitude suffix."""
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return 'N/A'

    abs_value = abs(value)
    sign = '-' if value < 0 else ''
    for threshold, suffix, digits in _UNITS:
        if abs_value >= threshold:
            return f"{sign}{symbol}{to_fixed(abs_value / threshold, digits)}{suffix}"
    return f"{sign}{symbol}{to_fixed(abs_value, 0)}"


def format_percent(value, digits: int = 2) -> str:
    return f"{to_fixed(value, digits)}%"
