"""
AccountStore -- keyed storage of Account rows.

Lookups by id, by external owner id and by account number.  The
``for_update`` flag takes a row lock (SELECT ... FOR UPDATE on PostgreSQL)
and refreshes the identity-map copy so the caller computes against the
latest committed balance.
"""

from sqlalchemy import select

from ledger_kernel.exceptions import LedgerError
from ledger_kernel.models.account import Account
from ledger_kernel.stores.base import BaseStore


class AccountStore(BaseStore[Account]):
    """Session-backed store for accounts."""

    entity_name = "Account"

    def _select_one(self, stmt, for_update: bool) -> Account | None:
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.session.execute(stmt).scalars().first()

    def find(self, account_id: int, for_update: bool = False) -> Account | None:
        """Return the account or None."""
        return self._select_one(select(Account).where(Account.id == account_id), for_update)

    def get(self, account_id: int, for_update: bool = False) -> Account:
        """
        Get an account by id.

        Raises:
            LedgerError(NOT_FOUND): If no account has this id.
        """
        account = self.find(account_id, for_update=for_update)
        if account is None:
            raise LedgerError.not_found("Account", account_id)
        return account

    def get_by_owner_id(self, owner_id: str) -> Account:
        """
        Get the account associated with an owner.

        An owner holding several accounts resolves to the oldest (lowest id).

        Raises:
            LedgerError(NOT_FOUND): If the owner has no account.
        """
        stmt = select(Account).where(Account.owner_id == owner_id).order_by(Account.id)
        account = self._select_one(stmt, for_update=False)
        if account is None:
            raise LedgerError.not_found("Account for owner", owner_id)
        return account

    def get_by_account_number(self, account_number: str, for_update: bool = False) -> Account:
        """
        Get an account by its unique account number.

        Raises:
            LedgerError(NOT_FOUND): If no account has this number.
        """
        stmt = select(Account).where(Account.account_number == account_number)
        account = self._select_one(stmt, for_update=for_update)
        if account is None:
            raise LedgerError.not_found("Account", account_number)
        return account

    def exists_number(self, account_number: str) -> bool:
        stmt = select(Account.id).where(Account.account_number == account_number)
        return self.session.execute(stmt).first() is not None

    def save(self, account: Account) -> Account:
        """Insert or update the account and flush."""
        self.session.add(account)
        self._flush(account.account_number)
        return account

    def delete(self, account_id: int) -> None:
        """
        Delete an account by id.

        Raises:
            LedgerError(NOT_FOUND): If no account has this id.
        """
        account = self.get(account_id)
        self.session.delete(account)
        self._flush(account_id)

    def list_all(self) -> list[Account]:
        """All accounts ordered by id."""
        return list(self.session.execute(select(Account).order_by(Account.id)).scalars())
