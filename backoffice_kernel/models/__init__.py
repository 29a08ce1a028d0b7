"""ORM models for the back-office kernel."""

from backoffice_kernel.models.account import Account, AccountType, NormalBalance
from backoffice_kernel.models.journal import (
    JournalEntry,
    JournalEntryStatus,
    JournalLine,
    LineSide,
)

__all__ = [
    "Account",
    "AccountType",
    "NormalBalance",
    "JournalEntry",
    "JournalEntryStatus",
    "JournalLine",
    "LineSide",
]
