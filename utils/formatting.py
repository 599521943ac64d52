# utils/formatting.py

from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")


def to_cents(amount: Decimal) -> Decimal:
    """Round to 2 decimal places, half away from zero."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(amount: Decimal) -> str:
    """
    Format to exactly 2 decimals without thousands separators.
    Example: Decimal("50") -> "50.00"
    """
    return f"{to_cents(amount):.2f}"
