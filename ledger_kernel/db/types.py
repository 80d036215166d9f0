"""
Module: ledger_kernel.db.types
Responsibility: Conversion and display helpers for monetary values.
    Amounts are stored as Numeric(38, 9) columns (see db/base.py).
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    stores/ and services/.  MUST NOT import from any of those layers.

Invariants enforced:
    CRITICAL: No floats anywhere in the ledger.  All monetary amounts use
    Decimal with explicit precision.  Floats passed in are converted through
    their string repr, never through binary expansion.

Failure modes:
    - ValueError on non-numeric or non-finite input to money_from_value().
"""

from decimal import Decimal, InvalidOperation

ZERO = Decimal("0")


def money_from_value(value: Decimal | int | float | str) -> Decimal:
    """
    Create a monetary Decimal from a Decimal, int, float or numeric string.

    Preconditions: value is numeric or a string representation of a number.
    Postconditions: Returns a finite Decimal.  The value is not rounded.

    Raises:
        ValueError: If value is not numeric, is a bool, or is NaN/Infinity.
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a monetary amount: {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        result = Decimal(repr(value))
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Not a monetary amount: {value!r}") from None
    if not result.is_finite():
        raise ValueError(f"Monetary amount must be finite: {value!r}")
    return result


def plain_money(value: Decimal, min_places: int = 2) -> Decimal:
    """
    Drop the storage padding from a monetary value without rounding it.

    Numeric(38, 9) columns hand back nine decimals; trailing zeros are
    removed down to ``min_places``.  Significant digits are never lost:
    ``Decimal("1.005000000")`` stays ``1.005``.
    """
    places = Decimal(1).scaleb(-min_places)
    if value.is_zero():
        return ZERO.quantize(places)
    normalized = value.normalize()
    if normalized.as_tuple().exponent > -min_places:
        return normalized.quantize(places)
    return normalized
