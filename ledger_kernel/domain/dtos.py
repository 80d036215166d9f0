"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable data structures returned to callers of the kernel:
    AccountInfo, MovementInfo, OwnerMovementView (movement decorated with the
    owner's display name) and the statement structures (StatementLine,
    AccountStatement, Statement).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    from_model() class methods exist as boundary converters but are only
    invoked from the service layer (never from domain logic).

Invariants enforced:
    - Services accept/return DTOs, never ORM entities.
    - All monetary fields are Decimal.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ledger_kernel.models.account import Account as AccountModel
    from ledger_kernel.models.movement import Movement as MovementModel


@dataclass(frozen=True)
class AccountInfo:
    """Snapshot of an account as persisted."""

    id: int
    account_number: str
    account_type: str
    opening_balance: Decimal
    current_balance: Decimal
    active: bool
    owner_id: str

    @classmethod
    def from_model(cls, model: AccountModel) -> AccountInfo:
        return cls(
            id=model.id,
            account_number=model.account_number,
            account_type=model.account_type,
            opening_balance=model.opening_balance,
            current_balance=model.current_balance,
            active=model.active,
            owner_id=model.owner_id,
        )


@dataclass(frozen=True)
class MovementInfo:
    """
    Snapshot of a movement together with its owning account.

    ``balance`` is the account balance captured when this movement was
    applied or last revised; it is not recomputed afterwards.
    """

    id: int
    date: date
    type: str
    value: Decimal
    balance: Decimal
    account: AccountInfo

    @classmethod
    def from_model(cls, model: MovementModel) -> MovementInfo:
        return cls(
            id=model.id,
            date=model.date,
            type=model.type,
            value=model.value,
            balance=model.balance,
            account=AccountInfo.from_model(model.account),
        )


@dataclass(frozen=True)
class OwnerMovementView(MovementInfo):
    """A movement decorated with its account owner's display name."""

    owner_name: str

    @classmethod
    def decorate(cls, movement: MovementInfo, owner_name: str) -> OwnerMovementView:
        return cls(
            id=movement.id,
            date=movement.date,
            type=movement.type,
            value=movement.value,
            balance=movement.balance,
            account=movement.account,
            owner_name=owner_name,
        )


@dataclass(frozen=True)
class StatementLine:
    """One movement in a statement, with the replayed balance after it."""

    date: date
    type: str
    value: Decimal
    running_balance: Decimal


@dataclass(frozen=True)
class AccountStatement:
    """
    Per-account statement section.

    running balances in ``lines`` start from ``opening_balance`` and add
    only the in-range movement values, in store order.
    """

    account_id: int
    account_number: str
    account_type: str
    opening_balance: Decimal
    active: bool
    owner_name: str
    lines: tuple[StatementLine, ...]

    @property
    def closing_balance(self) -> Decimal:
        """Running balance after the last line (opening balance if none)."""
        if not self.lines:
            return self.opening_balance
        return self.lines[-1].running_balance


@dataclass(frozen=True)
class Statement:
    """
    Report over several accounts for one date range.

    ``owner_name`` is the owner resolved for the last account processed.
    Each section also carries its own ``owner_name``.
    """

    start_date: date
    end_date: date
    owner_name: str | None
    accounts: tuple[AccountStatement, ...]
