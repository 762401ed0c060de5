"""Services for the ledger kernel (write side)."""

from ledger_kernel.services.account_registry import AccountRegistry
from ledger_kernel.services.auto_journal import AutoJournalService
from ledger_kernel.services.fact_service import FactRecorder
from ledger_kernel.services.journal_store import JournalStore
from ledger_kernel.services.ledger_service import LedgerService
from ledger_kernel.services.payment_poster import InvoicePaymentPoster
from ledger_kernel.services.year_end_closer import YearEndCloser

__all__ = [
    "AccountRegistry",
    "AutoJournalService",
    "FactRecorder",
    "InvoicePaymentPoster",
    "JournalStore",
    "LedgerService",
    "YearEndCloser",
]
