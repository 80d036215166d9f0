"""
StatementBuilder -- date-ranged account statements.

Responsibility:
    For each requested account, replays the movements dated within the range
    from the account's opening balance and emits a statement section with
    the running balance after every movement.

Architecture position:
    Kernel > Services.  Read-only: never flushes or writes.

Invariants enforced:
    - Running balances are recomputed from opening_balance + in-range
      movement values in store order.  Neither Account.current_balance nor
      the stored movement balance snapshots are consulted.
    - Missing account ids are skipped without error.
    - Any owner directory failure aborts the whole build; no partial
      statement is returned.
"""

from collections.abc import Iterable
from datetime import date

from sqlalchemy.orm import Session

from ledger_kernel.clients.owner_directory import OwnerDirectory
from ledger_kernel.domain.balance import running_balances
from ledger_kernel.domain.dtos import AccountStatement, Statement, StatementLine
from ledger_kernel.domain.validation import parse_date_range, require_id
from ledger_kernel.exceptions import LedgerError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.services.base import BaseService

logger = get_logger("services.statement")


class StatementBuilder(BaseService):
    """
    Builds statements over a list of accounts.

    Args:
        session: SQLAlchemy session owned by the caller.
        owner_directory: Owner name lookup, called once per included account.
    """

    def __init__(self, session: Session, owner_directory: OwnerDirectory):
        super().__init__(session)
        self._owner_directory = owner_directory

    def build_statement(
        self,
        account_ids: Iterable[int],
        start_date: date | str,
        end_date: date | str,
    ) -> Statement:
        """
        Build one statement covering ``account_ids`` over ``[start_date, end_date]``.

        Sections follow the order of ``account_ids``.  The report-level
        ``owner_name`` is the owner of the last account included.

        Raises:
            LedgerError: INVALID_INPUT, or NOT_FOUND/UNAVAILABLE from the
                owner directory.
        """
        start, end = parse_date_range(start_date, end_date)
        if account_ids is None:
            raise LedgerError.invalid_input("account_ids", "is required")
        ids = [require_id(aid, "account_ids") for aid in account_ids]

        sections: list[AccountStatement] = []
        owner_name: str | None = None
        skipped: list[int] = []

        for aid in ids:
            account = self._accounts.find(aid)
            if account is None:
                skipped.append(aid)
                continue

            name = self._owner_directory.get_owner_name(account.owner_id)
            owner_name = name
            sections.append(self._section(account, name, start, end))

        logger.info(
            "statement_built",
            extra={
                "start_date": start,
                "end_date": end,
                "requested": len(ids),
                "included": len(sections),
                "skipped_account_ids": skipped,
            },
        )
        return Statement(
            start_date=start,
            end_date=end,
            owner_name=owner_name,
            accounts=tuple(sections),
        )

    def _section(
        self,
        account: Account,
        owner_name: str,
        start: date,
        end: date,
    ) -> AccountStatement:
        movements = self._movements.list_by_account_and_date_range(account.id, start, end)
        balances = running_balances(account.opening_balance, (m.value for m in movements))
        lines = tuple(
            StatementLine(
                date=m.date,
                type=m.type,
                value=m.value,
                running_balance=balance,
            )
            for m, balance in zip(movements, balances)
        )
        return AccountStatement(
            account_id=account.id,
            account_number=account.account_number,
            account_type=account.account_type,
            opening_balance=account.opening_balance,
            active=account.active,
            owner_name=owner_name,
            lines=lines,
        )
