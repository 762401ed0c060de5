"""Selectors for the ledger kernel (read side)."""

from ledger_kernel.selectors.journal_selector import (
    JournalEntryView,
    JournalLineView,
    JournalSelector,
)
from ledger_kernel.selectors.ledger_selector import (
    AccountBalance,
    LedgerSelector,
    TrialBalance,
)

__all__ = [
    "AccountBalance",
    "JournalEntryView",
    "JournalLineView",
    "JournalSelector",
    "LedgerSelector",
    "TrialBalance",
]
