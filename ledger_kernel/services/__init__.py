"""Kernel services: account management, movement application, statements."""

from ledger_kernel.services.account_service import AccountService
from ledger_kernel.services.ledger_engine import LedgerEngine
from ledger_kernel.services.statement_builder import StatementBuilder

__all__ = [
    "AccountService",
    "LedgerEngine",
    "StatementBuilder",
]
