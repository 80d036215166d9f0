"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for every
    service in the kernel.  Services receive a SQLAlchemy ``Session`` and run
    each mutating operation inside ``session.begin_nested()`` so that the
    operation is one atomic unit even when the caller batches several
    operations in one transaction.

Architecture position:
    Kernel > Services -- imperative shell over stores and domain functions.

Invariants enforced:
    - Services never call ``session.commit()``; the caller owns the outer
      transaction (normally through ``session_scope()``).
    - A failure anywhere inside an operation rolls back its savepoint, so no
      half-applied movement/account pair is ever visible.
"""

from abc import ABC

from sqlalchemy.orm import Session

from ledger_kernel.stores.account_store import AccountStore
from ledger_kernel.stores.movement_store import MovementStore


class BaseService(ABC):
    """
    Abstract base class for kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and builds the
        account and movement stores over it.

    Non-goals:
        - Does NOT manage the outer transaction lifecycle (commit/rollback).
    """

    def __init__(self, session: Session):
        """
        Initialize the service.

        Args:
            session: SQLAlchemy session for database operations.
        """
        self.session = session
        self._accounts = AccountStore(session)
        self._movements = MovementStore(session)
