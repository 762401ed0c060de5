"""Domain models for the ledger kernel."""

from ledger_kernel.models.account import Account, AccountType, NormalSide
from ledger_kernel.models.facts import (
    ExpenseRecord,
    IncomeRecord,
    OwnerTransfer,
    OwnerTransferType,
)
from ledger_kernel.models.invoice import Invoice, InvoiceStatus
from ledger_kernel.models.journal import JournalEntry, JournalLine, SourceType

# Every table the ledger needs before it can serve a request
LEDGER_TABLES: tuple[str, ...] = (
    "accounts",
    "journal_entries",
    "journal_lines",
    "tax_expenses",
    "tax_income",
    "owner_transfers",
    "invoices",
)

__all__ = [
    "Account",
    "AccountType",
    "NormalSide",
    "ExpenseRecord",
    "IncomeRecord",
    "OwnerTransfer",
    "OwnerTransferType",
    "Invoice",
    "InvoiceStatus",
    "JournalEntry",
    "JournalLine",
    "SourceType",
    "LEDGER_TABLES",
]
