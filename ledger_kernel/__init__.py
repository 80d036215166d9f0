"""
Ledger Kernel

A small account ledger with:
- Signed movements applied against a cached current balance
- Atomic movement/balance updates with per-account locking
- Non-negative balance policy on posting and revision
- Date-ranged statements replayed from the opening balance
"""

__version__ = "0.1.0"
