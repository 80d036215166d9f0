"""
Module: ledger_kernel.models.movement
Responsibility: ORM persistence for movements -- signed balance-affecting
    entries recorded against exactly one account.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - account_id is set at creation and never reassigned.
    - balance is a materialized snapshot of the account's current balance
      immediately after this movement was applied or last revised.  It is
      not authoritative; Account.current_balance is.

Failure modes:
    - IntegrityError if account_id does not reference an existing account.
"""

import datetime as dt
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Date, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TimestampedBase

if TYPE_CHECKING:
    from ledger_kernel.models.account import Account


class Movement(TimestampedBase):
    """A single signed entry against one account (positive = credit)."""

    __tablename__ = "movements"

    __table_args__ = (
        Index("idx_movement_account_date", "account_id", "date"),
    )

    date: Mapped[dt.date] = mapped_column(
        Date,
        nullable=False,
    )

    # Descriptive label only; the sign of value carries direction
    type: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    value: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
    )

    balance: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
    )

    account_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("accounts.id"),
        nullable=False,
    )

    account: Mapped["Account"] = relationship()

    def __repr__(self) -> str:
        return f"<Movement {self.id}: {self.value} on {self.date}>"
