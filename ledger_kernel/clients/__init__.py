"""Outbound collaborators of the ledger kernel."""

from ledger_kernel.clients.owner_directory import (
    HttpOwnerDirectory,
    OwnerDirectory,
    StaticOwnerDirectory,
)

__all__ = [
    "HttpOwnerDirectory",
    "OwnerDirectory",
    "StaticOwnerDirectory",
]
