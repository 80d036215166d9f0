"""
Input validation helpers for the kernel boundary.

Pure checks with no I/O.  Every public service method runs its arguments
through these before touching a store, so malformed input fails fast with
ErrorKind.INVALID_INPUT and no mutation.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from ledger_kernel.db.types import money_from_value
from ledger_kernel.exceptions import LedgerError


def parse_date(value: Any, field: str = "date") -> date:
    """Accept a date, a datetime (truncated) or an ISO ``YYYY-MM-DD`` string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            raise LedgerError.invalid_input(field, f"not an ISO date: {value!r}") from None
    if value is None:
        raise LedgerError.invalid_input(field, "is required")
    raise LedgerError.invalid_input(field, f"cannot parse date from {value!r}")


def parse_amount(value: Any, field: str = "value") -> Decimal:
    """Convert to a finite Decimal or raise INVALID_INPUT."""
    if value is None:
        raise LedgerError.invalid_input(field, "is required")
    try:
        return money_from_value(value)
    except ValueError as exc:
        raise LedgerError.invalid_input(field, str(exc)) from None


def require_text(value: Any, field: str, max_length: int = 100) -> str:
    """Return the stripped string, rejecting missing, blank or oversize values."""
    if value is None:
        raise LedgerError.invalid_input(field, "is required")
    text = str(value).strip()
    if not text:
        raise LedgerError.invalid_input(field, "must not be blank")
    if len(text) > max_length:
        raise LedgerError.invalid_input(field, f"longer than {max_length} characters")
    return text


def require_id(value: Any, field: str) -> int:
    """Return a positive integer identifier."""
    if isinstance(value, bool):
        raise LedgerError.invalid_input(field, f"not an identifier: {value!r}")
    try:
        ident = int(value)
    except (TypeError, ValueError):
        raise LedgerError.invalid_input(field, f"not an identifier: {value!r}") from None
    if ident <= 0:
        raise LedgerError.invalid_input(field, "must be positive")
    return ident


def parse_date_range(start: Any, end: Any) -> tuple[date, date]:
    """Parse an inclusive ``[start, end]`` range.  A reversed range is allowed and empty."""
    return parse_date(start, "start_date"), parse_date(end, "end_date")
