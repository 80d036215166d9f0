"""Session-backed stores for accounts and movements."""

from ledger_kernel.stores.account_store import AccountStore
from ledger_kernel.stores.movement_store import MovementStore

__all__ = [
    "AccountStore",
    "MovementStore",
]
