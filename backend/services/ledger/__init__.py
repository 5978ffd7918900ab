"""
Wallet ledger.

All balance mutations go through ``credit`` and ``debit``; each one appends a
``WalletTransaction`` in the same database transaction.
"""

from .operations import (
    credit,
    debit,
    get_summary,
    get_or_create_wallet,
)

__all__ = [
    "credit",
    "debit",
    "get_summary",
    "get_or_create_wallet",
]
