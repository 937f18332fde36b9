"""Exact conversion of human-readable amounts into integer base units.

All arithmetic stays on digit strings and Python ints; floats are never
multiplied or divided, so 0.1 PHRS is exactly 10**17 wei.
"""

from decimal import Decimal
from typing import Union

DEFAULT_DECIMALS = 18

Amount = Union[str, int, Decimal]


class AmountEncodingError(ValueError):
    """Raised when an amount cannot be expressed in base units."""
    pass


def _amount_to_str(amount: Amount) -> str:
    if isinstance(amount, bool):
        raise AmountEncodingError(f"Invalid amount: {amount!r}")
    if isinstance(amount, Decimal):
        if not amount.is_finite():
            raise AmountEncodingError(f"Invalid amount: {amount}")
        return format(amount, "f")
    return str(amount)


def to_base_units(amount: Amount | None, decimals: int | None = DEFAULT_DECIMALS) -> int:
    """Convert a decimal amount to base units.

    Example: to_base_units("0.1", 18) == 100000000000000000

    Args:
        amount: Human-readable amount ("0.01", 5, Decimal("1.5"))
        decimals: Token precision; None falls back to 18

    Returns:
        Unsigned integer amount in base units

    Raises:
        AmountEncodingError: If the amount is missing, empty, not a plain
            non-negative decimal, or has more fractional digits than decimals
    """
    if amount is None:
        raise AmountEncodingError("amount is required")

    decs = DEFAULT_DECIMALS if decimals is None else decimals
    if isinstance(decs, bool) or not isinstance(decs, int) or decs < 0:
        raise AmountEncodingError(f"Invalid decimals: {decimals!r}")

    text = _amount_to_str(amount).strip()
    if not text:
        raise AmountEncodingError("amount is empty")

    int_part, _, frac_part = text.partition(".")
    int_part = int_part or "0"

    if not (int_part.isascii() and int_part.isdigit()):
        raise AmountEncodingError(f"Invalid amount: {text!r}")
    if frac_part and not (frac_part.isascii() and frac_part.isdigit()):
        raise AmountEncodingError(f"Invalid amount: {text!r}")

    if len(frac_part) > decs:
        raise AmountEncodingError(
            f"Too many decimal places: got {len(frac_part)}, max {decs}"
        )

    combined = int_part + frac_part.ljust(decs, "0")
    return int(combined.lstrip("0") or "0")
