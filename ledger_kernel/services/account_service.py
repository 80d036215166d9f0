"""
Service layer for Account operations.

Creates, updates, reads and deletes accounts.  The current balance is
initialized from the opening balance here and afterwards only changed by
the LedgerEngine, except when an update moves the opening balance: the
current balance then shifts by the same delta so that
current == opening + sum(movements) keeps holding.

Deleting an account that still has movements is refused unless the caller
asks for a cascade, in which case movements and account go in one unit.
"""

from __future__ import annotations

from decimal import Decimal

from ledger_kernel.db.types import ZERO
from ledger_kernel.domain.balance import ensure_non_negative
from ledger_kernel.domain.dtos import AccountInfo
from ledger_kernel.domain.validation import parse_amount, require_id, require_text
from ledger_kernel.exceptions import LedgerError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.services.base import BaseService

logger = get_logger("services.account")


class AccountService(BaseService):
    """
    Service for managing accounts.

    All public methods return AccountInfo DTOs, not ORM Account entities.
    """

    def create_account(
        self,
        account_number: str,
        account_type: str,
        opening_balance: Decimal | int | str,
        owner_id: str,
        active: bool = True,
    ) -> AccountInfo:
        """
        Create a new account with ``current_balance = opening_balance``.

        Raises:
            LedgerError(INVALID_INPUT): Missing fields, bad amount, or the
                account number is already in use.
        """
        number = require_text(account_number, "account_number", max_length=50)
        kind = require_text(account_type, "account_type", max_length=50)
        opening = parse_amount(opening_balance, "opening_balance")
        owner = require_text(owner_id, "owner_id", max_length=64)

        with LogContext.bind(account_number=number):
            if self._accounts.exists_number(number):
                raise LedgerError.invalid_input("account_number", f"{number} is already in use")

            with self.session.begin_nested():
                account = Account(
                    account_number=number,
                    account_type=kind,
                    opening_balance=opening,
                    current_balance=opening,
                    active=bool(active),
                    owner_id=owner,
                )
                self._accounts.save(account)

            logger.info(
                "account_created",
                extra={"account_id": account.id, "opening_balance": opening, "owner_id": owner},
            )
            return AccountInfo.from_model(account)

    def update_account(
        self,
        account_id: int,
        *,
        account_number: str | None = None,
        account_type: str | None = None,
        opening_balance: Decimal | int | str | None = None,
        active: bool | None = None,
    ) -> AccountInfo:
        """
        Update descriptive fields and/or the opening balance of an account.

        Arguments left as None are unchanged.  Lowering the opening balance
        lowers the current balance by the same amount and is refused when the
        result would be negative.

        Raises:
            LedgerError: NOT_FOUND, INVALID_INPUT, INSUFFICIENT_FUNDS, CONFLICT.
        """
        aid = require_id(account_id, "account_id")
        number = (
            require_text(account_number, "account_number", max_length=50)
            if account_number is not None else None
        )
        kind = (
            require_text(account_type, "account_type", max_length=50)
            if account_type is not None else None
        )
        opening = (
            parse_amount(opening_balance, "opening_balance")
            if opening_balance is not None else None
        )

        with self.session.begin_nested():
            account = self._accounts.get(aid, for_update=True)

            if number is not None and number != account.account_number:
                if self._accounts.exists_number(number):
                    raise LedgerError.invalid_input("account_number", f"{number} is already in use")
                account.account_number = number
            if kind is not None:
                account.account_type = kind
            if active is not None:
                account.active = bool(active)
            if opening is not None and opening != account.opening_balance:
                delta = opening - account.opening_balance
                shifted = account.current_balance + delta
                if delta < ZERO:
                    ensure_non_negative(account.account_number, account.current_balance, shifted)
                account.opening_balance = opening
                account.current_balance = shifted

            self._accounts.save(account)

        logger.info("account_updated", extra={"account_id": aid})
        return AccountInfo.from_model(account)

    def obtain_account(self, account_id: int) -> AccountInfo:
        """
        Get an account by id.

        Raises:
            LedgerError: NOT_FOUND, INVALID_INPUT.
        """
        return AccountInfo.from_model(self._accounts.get(require_id(account_id, "account_id")))

    def obtain_account_by_number(self, account_number: str) -> AccountInfo:
        number = require_text(account_number, "account_number", max_length=50)
        return AccountInfo.from_model(self._accounts.get_by_account_number(number))

    def list_accounts(self) -> list[AccountInfo]:
        """All accounts ordered by id."""
        return [AccountInfo.from_model(a) for a in self._accounts.list_all()]

    def delete_account(self, account_id: int, cascade: bool = False) -> None:
        """
        Delete an account.

        Args:
            account_id: Account to delete.
            cascade: Also delete the account's movements.  Without it, an
                account that still has movements is not deleted.

        Raises:
            LedgerError: NOT_FOUND, ACCOUNT_REFERENCED, INVALID_INPUT.
        """
        aid = require_id(account_id, "account_id")

        with self.session.begin_nested():
            self._accounts.get(aid, for_update=True)
            movement_count = self._movements.count_for_account(aid)
            if movement_count and not cascade:
                raise LedgerError.account_referenced(aid, movement_count)
            if movement_count:
                self._movements.delete_for_account(aid)
            self._accounts.delete(aid)

        logger.info(
            "account_deleted",
            extra={"account_id": aid, "movements_deleted": movement_count if cascade else 0},
        )
