"""
BaseStore -- abstract base for session-backed stores.

Responsibility:
    Provides the common constructor and flush contract for the account and
    movement stores.  Stores receive a SQLAlchemy ``Session`` and persist via
    ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Stores.  Imported by services only.

Invariants enforced:
    - Transaction boundaries: stores flush within the caller's transaction
      and never commit or rollback themselves.  The caller (a service's
      savepoint, or session_scope) owns commit/rollback.
    - Flush failures are translated to LedgerError so callers see one error
      type: unique violations become INVALID_INPUT and stale row versions
      become CONFLICT.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ledger_kernel.db.base import Base
from ledger_kernel.exceptions import LedgerError
from ledger_kernel.logging_config import get_logger

ModelType = TypeVar("ModelType", bound=Base)

logger = get_logger("stores")


class BaseStore(ABC, Generic[ModelType]):
    """
    Abstract base class for all stores.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and uses
        ``session.flush()`` to persist changes within the active transaction.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
    """

    entity_name: str = "record"

    def __init__(self, session: Session):
        self.session = session

    def _flush(self, key: object = None) -> None:
        try:
            self.session.flush()
        except StaleDataError:
            logger.warning(
                "stale_row_version",
                extra={"entity": self.entity_name, "key": str(key)},
            )
            raise LedgerError.conflict(self.entity_name, key) from None
        except IntegrityError as exc:
            raise LedgerError.invalid_input(
                self.entity_name, f"violates a uniqueness or reference rule: {exc.orig}"
            ) from None
