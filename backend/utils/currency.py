"""Money utilities: decimal rounding, tolerance checks and formatting."""

from decimal import Decimal, ROUND_HALF_UP


CENT = Decimal("0.01")

# Shares may differ from the expense total by at most one cent of rounding
SPLIT_TOLERANCE = Decimal("0.01")

ZERO = Decimal("0.00")


def to_money(value) -> Decimal:
    """
    Convert a number to a Decimal rounded to two places.

    None (an aggregate over no rows) becomes 0.00. Floats go through str() so
    that 0.1 becomes Decimal("0.10") instead of its binary expansion.
    """
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def sum_money(values) -> Decimal:
    """Sum amounts with decimal arithmetic; an empty iterable sums to 0.00."""
    return to_money(sum((to_money(v) for v in values), ZERO))


def within_tolerance(a, b) -> bool:
    return abs(to_money(a) - to_money(b)) <= SPLIT_TOLERANCE


def format_currency(amount) -> str:
    """
    Format an amount as a dollar string.

    Example: Decimal("-12.5") -> "-$12.50"
    """
    amount = to_money(amount)
    if amount < 0:
        return f"-${abs(amount)}"
    return f"${amount}"
