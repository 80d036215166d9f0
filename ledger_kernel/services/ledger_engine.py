"""
LedgerEngine -- movement application and balance maintenance.

Responsibility:
    Creates, revises and removes movements while keeping the owning account's
    cached current balance in lock-step with the movement history.  Enforces
    the non-negative balance policy on apply and revise.  Also serves the
    movement read paths (by id, and by owner over a date range).

Architecture position:
    Kernel > Services.  Uses AccountStore/MovementStore for persistence,
    domain.balance for arithmetic and an injected OwnerDirectory for owner
    display names.

Invariants enforced:
    - account.current_balance == account.opening_balance + sum(movement.value)
      after every successful operation.
    - apply/revise never leave current_balance < 0.  A rejected operation
      performs no mutation.
    - The movement write and the account write happen in one savepoint.
      The account row is loaded FOR UPDATE and version-checked, so two
      concurrent units cannot both apply against the same stale balance.
      Revise and remove lock the account first and then re-read the
      movement, so the value they take back out is the committed one.

Known limitation (kept deliberately):
    revise_movement corrects the account aggregate and the revised movement's
    own balance snapshot only.  Movements applied after it keep the balance
    snapshot they were created with.

Failure modes:
    - LedgerError(NOT_FOUND): unknown account number, movement id, or owner.
    - LedgerError(INSUFFICIENT_FUNDS): apply/revise would go below zero.
    - LedgerError(INVALID_INPUT): malformed arguments (checked before any read).
    - LedgerError(CONFLICT): the account row changed under this unit.
    - LedgerError(UNAVAILABLE): owner directory failure (listing only).
"""

from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

from ledger_kernel.clients.owner_directory import OwnerDirectory
from ledger_kernel.domain.balance import (
    applied_balance,
    ensure_non_negative,
    removed_balance,
    revised_balance,
)
from ledger_kernel.domain.dtos import MovementInfo, OwnerMovementView
from ledger_kernel.domain.validation import (
    parse_amount,
    parse_date,
    parse_date_range,
    require_id,
    require_text,
)
from ledger_kernel.exceptions import ErrorKind, LedgerError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.models.movement import Movement
from ledger_kernel.services.base import BaseService

logger = get_logger("services.ledger_engine")


class LedgerEngine(BaseService):
    """
    Applies movements to accounts.

    Args:
        session: SQLAlchemy session owned by the caller.
        owner_directory: Owner name lookup used by the owner listing.
    """

    def __init__(self, session: Session, owner_directory: OwnerDirectory):
        super().__init__(session)
        self._owner_directory = owner_directory

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def apply_movement(
        self,
        account_number: str,
        movement_date: date | str,
        movement_type: str,
        value: Decimal | int | str,
    ) -> MovementInfo:
        """
        Apply a new signed movement to the account with ``account_number``.

        Returns:
            The created movement with a snapshot of the updated account.

        Raises:
            LedgerError: NOT_FOUND, INSUFFICIENT_FUNDS, INVALID_INPUT, CONFLICT.
        """
        number = require_text(account_number, "account_number", max_length=50)
        when = parse_date(movement_date)
        label = require_text(movement_type, "type")
        amount = parse_amount(value)

        with LogContext.bind(account_number=number):
            try:
                with self.session.begin_nested():
                    account = self._accounts.get_by_account_number(number, for_update=True)
                    current = account.current_balance
                    new_balance = ensure_non_negative(
                        number, current, applied_balance(current, amount)
                    )

                    movement = Movement(
                        date=when,
                        type=label,
                        value=amount,
                        balance=new_balance,
                        account_id=account.id,
                    )
                    movement.account = account
                    self._movements.save(movement)

                    account.current_balance = new_balance
                    self._accounts.save(account)
            except LedgerError as exc:
                self._log_rejection("apply", exc, value=amount)
                raise

            logger.info(
                "movement_applied",
                extra={
                    "movement_id": movement.id,
                    "value": amount,
                    "previous_balance": current,
                    "new_balance": new_balance,
                },
            )
            return MovementInfo.from_model(movement)

    def revise_movement(
        self,
        movement_id: int,
        movement_date: date | str,
        movement_type: str,
        new_value: Decimal | int | str,
    ) -> MovementInfo:
        """
        Replace a movement's date, type and value.

        The account balance becomes ``current + new_value - old_value``.
        Only that aggregate and this movement's balance snapshot change.

        Raises:
            LedgerError: NOT_FOUND, INSUFFICIENT_FUNDS, INVALID_INPUT, CONFLICT.
        """
        mid = require_id(movement_id, "movement_id")
        when = parse_date(movement_date)
        label = require_text(movement_type, "type")
        amount = parse_amount(new_value, "new_value")

        with LogContext.bind(movement_id=mid):
            try:
                with self.session.begin_nested():
                    account = self._lock_owning_account(mid)
                    movement = self._movements.get(mid, for_update=True)
                    old_value = movement.value
                    current = account.current_balance
                    new_balance = ensure_non_negative(
                        account.account_number,
                        current,
                        revised_balance(current, old_value, amount),
                    )

                    movement.date = when
                    movement.type = label
                    movement.value = amount
                    movement.balance = new_balance
                    self._movements.save(movement)

                    account.current_balance = new_balance
                    self._accounts.save(account)
            except LedgerError as exc:
                self._log_rejection("revise", exc, value=amount)
                raise

            logger.info(
                "movement_revised",
                extra={
                    "account_number": account.account_number,
                    "old_value": old_value,
                    "new_value": amount,
                    "previous_balance": current,
                    "new_balance": new_balance,
                },
            )
            return MovementInfo.from_model(movement)

    def remove_movement(self, movement_id: int) -> None:
        """
        Delete a movement and roll its value back out of the account balance.

        No floor check is applied to removals.

        Raises:
            LedgerError: NOT_FOUND, INVALID_INPUT, CONFLICT.
        """
        mid = require_id(movement_id, "movement_id")

        with LogContext.bind(movement_id=mid):
            with self.session.begin_nested():
                account = self._lock_owning_account(mid)
                movement = self._movements.get(mid, for_update=True)
                value = movement.value
                current = account.current_balance
                new_balance = removed_balance(current, value)

                account.current_balance = new_balance
                self._accounts.save(account)
                self._movements.delete(mid)

            logger.info(
                "movement_removed",
                extra={
                    "account_number": account.account_number,
                    "value": value,
                    "previous_balance": current,
                    "new_balance": new_balance,
                },
            )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def obtain_movement(self, movement_id: int) -> MovementInfo:
        """
        Get a movement by id.

        Raises:
            LedgerError: NOT_FOUND, INVALID_INPUT.
        """
        mid = require_id(movement_id, "movement_id")
        return MovementInfo.from_model(self._movements.get(mid))

    def list_by_date_range_for_owner(
        self,
        start_date: date | str,
        end_date: date | str,
        owner_id: str,
    ) -> list[OwnerMovementView]:
        """
        Movements of the owner's account dated within ``[start_date, end_date]``.

        The owner's display name is resolved once and attached to every view.
        Results are in application order.

        Raises:
            LedgerError: NOT_FOUND (no account, or owner unknown to the
                directory), UNAVAILABLE, INVALID_INPUT.
        """
        start, end = parse_date_range(start_date, end_date)
        owner = require_text(owner_id, "owner_id", max_length=64)

        with LogContext.bind(owner_id=owner):
            account = self._accounts.get_by_owner_id(owner)
            movements = [
                MovementInfo.from_model(m)
                for m in self._movements.list_by_account_and_date_range(account.id, start, end)
            ]
            owner_name = self._owner_directory.get_owner_name(account.owner_id)

            logger.debug(
                "owner_movements_listed",
                extra={
                    "account_number": account.account_number,
                    "start_date": start,
                    "end_date": end,
                    "count": len(movements),
                },
            )
            return [OwnerMovementView.decorate(m, owner_name) for m in movements]

    # ------------------------------------------------------------------

    def _lock_owning_account(self, movement_id: int) -> Account:
        """
        Lock the account a movement belongs to.

        Movements never change account, so a cached copy is enough to find
        the row.  Callers re-read the movement itself after this lock.
        """
        account_id = self._movements.get(movement_id).account_id
        return self._accounts.get(account_id, for_update=True)

    def _log_rejection(self, operation: str, exc: LedgerError, value: Decimal) -> None:
        level = logger.info if exc.kind is ErrorKind.INSUFFICIENT_FUNDS else logger.warning
        level(
            "movement_rejected",
            extra={
                "operation": operation,
                "reason": exc.code,
                "value": value,
            },
        )
