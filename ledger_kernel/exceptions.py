"""
Typed errors for the ledger kernel.

===============================================================================
ONE EXCEPTION, TAGGED BY KIND
===============================================================================

Every failure the kernel reports is a ``LedgerError`` carrying an
``ErrorKind``.  Callers branch on ``error.kind`` (or the machine-readable
``error.code``), never on message text:

    try:
        engine.apply_movement("478758", date(2024, 1, 5), "withdrawal", -300)
    except LedgerError as e:
        if e.kind is ErrorKind.INSUFFICIENT_FUNDS:
            return {"error": e.code, **e.details}
        raise

Structured context (account number, balances, movement id...) lives in
``error.details`` so that it survives logging and API serialization.

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Code                | When Raised                                   | Mutation
--------------------|-----------------------------------------------|---------
NOT_FOUND           | Account / movement / owner-account absent,    | none
                    | or owner unknown to the owner directory       |
INSUFFICIENT_FUNDS  | apply/revise/update would drive the current   | none
                    | balance below zero                            |
UNAVAILABLE         | Owner directory unreachable, timed out,       | none
                    | returned 5xx or an unreadable body            |
INVALID_INPUT       | Malformed dates/amounts, missing fields,      | none
                    | duplicate account number                      |
ACCOUNT_REFERENCED  | Deleting an account that still has movements  | none
CONFLICT            | Account row changed by a concurrent unit      | rolled back

All kinds are recoverable by the caller.  None are retried by the kernel.
"""

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Tag identifying the failure category of a LedgerError."""

    NOT_FOUND = "NOT_FOUND"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    UNAVAILABLE = "UNAVAILABLE"
    INVALID_INPUT = "INVALID_INPUT"
    ACCOUNT_REFERENCED = "ACCOUNT_REFERENCED"
    CONFLICT = "CONFLICT"


class LedgerError(Exception):
    """
    The single exception type raised by the ledger kernel.

    Attributes:
        kind: ErrorKind tag.
        details: Structured, JSON-friendly context about the failure.
    """

    def __init__(self, kind: ErrorKind, message: str, **details: Any):
        self.kind = kind
        self.details = details
        super().__init__(message)

    @property
    def code(self) -> str:
        """Machine-readable error code (the ErrorKind value)."""
        return self.kind.value

    def __repr__(self) -> str:
        return f"LedgerError({self.kind.value}, {str(self)!r})"

    # Constructors -------------------------------------------------------

    @classmethod
    def not_found(cls, entity: str, key: Any) -> "LedgerError":
        return cls(
            ErrorKind.NOT_FOUND,
            f"{entity} not found: {key}",
            entity=entity,
            key=str(key),
        )

    @classmethod
    def insufficient_funds(
        cls,
        account_number: str,
        current_balance: Any,
        attempted_balance: Any,
    ) -> "LedgerError":
        return cls(
            ErrorKind.INSUFFICIENT_FUNDS,
            f"Insufficient funds on account {account_number}: "
            f"balance would become {attempted_balance}",
            account_number=account_number,
            current_balance=str(current_balance),
            attempted_balance=str(attempted_balance),
        )

    @classmethod
    def unavailable(cls, service: str, reason: str) -> "LedgerError":
        return cls(
            ErrorKind.UNAVAILABLE,
            f"{service} unavailable: {reason}",
            service=service,
            reason=reason,
        )

    @classmethod
    def invalid_input(cls, field: str, reason: str) -> "LedgerError":
        return cls(
            ErrorKind.INVALID_INPUT,
            f"Invalid {field}: {reason}",
            field=field,
            reason=reason,
        )

    @classmethod
    def account_referenced(cls, account_id: int, movement_count: int) -> "LedgerError":
        return cls(
            ErrorKind.ACCOUNT_REFERENCED,
            f"Account {account_id} cannot be deleted: "
            f"{movement_count} movement(s) reference it",
            account_id=account_id,
            movement_count=movement_count,
        )

    @classmethod
    def conflict(cls, entity: str, key: Any) -> "LedgerError":
        return cls(
            ErrorKind.CONFLICT,
            f"Concurrent modification of {entity} {key}",
            entity=entity,
            key=str(key),
        )
