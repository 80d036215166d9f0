"""
Balance arithmetic -- the pure core of movement application.

Responsibility:
    Computes the account balance that results from applying, revising or
    removing a movement, enforces the non-negative balance policy, and
    replays a movement list into a running-balance trajectory.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Called by
    LedgerEngine, AccountService and StatementBuilder.

Invariants enforced:
    - applied:  new = current + value
    - revised:  new = current + new_value - old_value
    - removed:  new = current - value
    - apply/revise results below zero are rejected; removals are not floored.
"""

from collections.abc import Iterable
from decimal import Decimal

from ledger_kernel.db.types import ZERO
from ledger_kernel.exceptions import LedgerError


def applied_balance(current: Decimal, value: Decimal) -> Decimal:
    """Balance after applying a new movement of ``value``."""
    return current + value


def revised_balance(current: Decimal, old_value: Decimal, new_value: Decimal) -> Decimal:
    """
    Balance after replacing a movement's ``old_value`` with ``new_value``.

    Corrects the tail balance only; no history is replayed.
    """
    return current + new_value - old_value


def removed_balance(current: Decimal, value: Decimal) -> Decimal:
    """Balance after deleting a movement of ``value``."""
    return current - value


def ensure_non_negative(
    account_number: str,
    current: Decimal,
    proposed: Decimal,
) -> Decimal:
    """
    Return ``proposed`` unless it is below zero.

    Raises:
        LedgerError(INSUFFICIENT_FUNDS): If proposed < 0.
    """
    if proposed < ZERO:
        raise LedgerError.insufficient_funds(account_number, current, proposed)
    return proposed


def running_balances(opening: Decimal, values: Iterable[Decimal]) -> list[Decimal]:
    """
    Replay ``values`` from ``opening`` and return the balance after each.

    >>> running_balances(Decimal("1000"), [Decimal("500"), Decimal("-200")])
    [Decimal('1500'), Decimal('1300')]
    """
    trajectory = []
    balance = opening
    for value in values:
        balance += value
        trajectory.append(balance)
    return trajectory
