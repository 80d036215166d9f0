"""
MovementStore -- keyed storage of Movement rows.

Listing order is application order (ascending id); statement replay and
owner listings inherit it.
"""

from datetime import date

from sqlalchemy import delete, func, select

from ledger_kernel.exceptions import LedgerError
from ledger_kernel.models.movement import Movement
from ledger_kernel.stores.base import BaseStore


class MovementStore(BaseStore[Movement]):
    """Session-backed store for movements."""

    entity_name = "Movement"

    def get(self, movement_id: int, for_update: bool = False) -> Movement:
        """
        Get a movement by id.

        With ``for_update`` the row is locked and the identity-map copy is
        refreshed from the database, so ``value`` is the committed one.

        Raises:
            LedgerError(NOT_FOUND): If no movement has this id.
        """
        if for_update:
            stmt = (
                select(Movement)
                .where(Movement.id == movement_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            movement = self.session.execute(stmt).scalars().first()
        else:
            movement = self.session.get(Movement, movement_id)
        if movement is None:
            raise LedgerError.not_found("Movement", movement_id)
        return movement

    def save(self, movement: Movement) -> Movement:
        """Insert or update the movement and flush."""
        self.session.add(movement)
        self._flush(movement.id)
        return movement

    def delete(self, movement_id: int) -> None:
        """
        Delete a movement by id.

        Raises:
            LedgerError(NOT_FOUND): If no movement has this id.
        """
        movement = self.get(movement_id)
        self.session.delete(movement)
        self._flush(movement_id)

    def list_by_account_and_date_range(
        self,
        account_id: int,
        start: date,
        end: date,
    ) -> list[Movement]:
        """Movements of one account with ``start <= date <= end``, in application order."""
        stmt = (
            select(Movement)
            .where(
                Movement.account_id == account_id,
                Movement.date >= start,
                Movement.date <= end,
            )
            .order_by(Movement.id)
        )
        return list(self.session.execute(stmt).scalars())

    def count_for_account(self, account_id: int) -> int:
        stmt = select(func.count(Movement.id)).where(Movement.account_id == account_id)
        return self.session.execute(stmt).scalar_one()

    def delete_for_account(self, account_id: int) -> int:
        """Delete every movement of one account; returns the number removed."""
        result = self.session.execute(
            delete(Movement)
            .where(Movement.account_id == account_id)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount
