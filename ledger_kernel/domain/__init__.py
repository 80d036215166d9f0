"""Pure domain layer: DTOs, balance arithmetic and input validation."""

from ledger_kernel.domain.balance import (
    applied_balance,
    ensure_non_negative,
    removed_balance,
    revised_balance,
    running_balances,
)
from ledger_kernel.domain.dtos import (
    AccountInfo,
    AccountStatement,
    MovementInfo,
    OwnerMovementView,
    Statement,
    StatementLine,
)

__all__ = [
    "AccountInfo",
    "AccountStatement",
    "MovementInfo",
    "OwnerMovementView",
    "Statement",
    "StatementLine",
    "applied_balance",
    "ensure_non_negative",
    "removed_balance",
    "revised_balance",
    "running_balances",
]
