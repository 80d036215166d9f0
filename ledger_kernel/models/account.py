"""
Module: ledger_kernel.models.account
Responsibility: ORM persistence for ledger accounts -- the target of every
    movement and the holder of the cached current balance.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - account_number is globally unique (uq_account_number).
    - current_balance == opening_balance + sum(movement.value) for the
      account's persisted movements.  Maintained by the LedgerEngine, which
      is the only writer of current_balance after creation.
    - version is bumped on every UPDATE; a concurrent writer holding a stale
      version fails with StaleDataError (surfaced as ErrorKind.CONFLICT).

Failure modes:
    - IntegrityError on duplicate account_number.
"""

from decimal import Decimal

from sqlalchemy import Boolean, Index, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TimestampedBase


class Account(TimestampedBase):
    """
    A ledger subject holding an opening and a current balance.

    Contract:
        opening_balance is fixed at creation (changed only through an explicit
        account update, which shifts current_balance by the same delta).
        current_balance is engine-managed derived state.

    Non-goals:
        - owner_id is an external reference; the ledger never validates that
          the owner exists beyond display-name lookups.
        - active is informational and not enforced when posting.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint("account_number", name="uq_account_number"),
        Index("idx_account_owner", "owner_id"),
    )

    account_number: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    # Free-form classification ("savings", "checking", ...)
    account_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    opening_balance: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
    )

    current_balance: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
    )

    active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    owner_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Account {self.account_number}: {self.current_balance}>"
