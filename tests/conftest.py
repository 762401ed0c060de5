"""
Pytest fixtures for the ledger kernel test suite.

Provides:
- A fresh in-memory SQLite database per test, tables created and the chart
  of accounts seeded
- Kernel services bound to the test session
- A ``LedgerService`` on its own database for transaction-per-call tests
- Structured log capture

Each test's ``session`` is never committed; it is rolled back and the
engine disposed at teardown.
"""

import json
import logging
from datetime import date, datetime, timezone
from io import StringIO
from typing import Generator

import pytest
from sqlalchemy.orm import Session, sessionmaker

from ledger_config import DEFAULT_CONFIG_PATH
from ledger_config.loader import load_config
from ledger_kernel.db.engine import build_engine, create_tables
from ledger_kernel.domain.clock import DeterministicClock
from ledger_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from ledger_kernel.models.invoice import Invoice, InvoiceStatus
from ledger_kernel.selectors.journal_selector import JournalSelector
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.services.account_registry import AccountRegistry
from ledger_kernel.services.auto_journal import AutoJournalService
from ledger_kernel.services.fact_service import FactRecorder
from ledger_kernel.services.journal_store import JournalStore
from ledger_kernel.services.ledger_service import LedgerService
from ledger_kernel.services.payment_poster import InvoicePaymentPoster
from ledger_kernel.services.year_end_closer import YearEndCloser

SQLITE_MEMORY_URL = "sqlite://"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture ledger_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, payment_poster):
            payment_poster.apply_payment(...)
            logs = captured_logs()
            assert any(r["message"] == "payment_applied" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("ledger_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Configuration
# =============================================================================


@pytest.fixture(scope="session")
def ledger_config():
    """The packaged default configuration, without environment overrides."""
    return load_config(DEFAULT_CONFIG_PATH)


@pytest.fixture(scope="session")
def chart(ledger_config):
    return ledger_config.chart


@pytest.fixture(scope="session")
def policy(ledger_config):
    return ledger_config.mapping


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc))


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def engine():
    eng = build_engine(SQLITE_MEMORY_URL)
    create_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine, chart) -> Generator[Session, None, None]:
    """A session on a freshly seeded ledger.  Never committed."""
    sess = sessionmaker(bind=engine, expire_on_commit=False)()
    AccountRegistry(sess, chart).ensure_seeded()
    yield sess
    sess.rollback()
    sess.close()


# =============================================================================
# Kernel services
# =============================================================================


@pytest.fixture
def registry(session, chart) -> AccountRegistry:
    return AccountRegistry(session, chart)


@pytest.fixture
def journal_store(session, registry) -> JournalStore:
    return JournalStore(session, registry)


@pytest.fixture
def ledger_selector(session) -> LedgerSelector:
    return LedgerSelector(session)


@pytest.fixture
def journal_selector(session) -> JournalSelector:
    return JournalSelector(session)


@pytest.fixture
def auto_journal(session, journal_store, policy) -> AutoJournalService:
    return AutoJournalService(session, journal_store, policy)


@pytest.fixture
def fact_recorder(session, auto_journal, policy) -> FactRecorder:
    return FactRecorder(session, auto_journal, policy)


@pytest.fixture
def payment_poster(session, auto_journal, clock) -> InvoicePaymentPoster:
    return InvoicePaymentPoster(session, auto_journal, clock)


@pytest.fixture
def year_end_closer(session, registry, journal_store, ledger_selector, policy) -> YearEndCloser:
    return YearEndCloser(session, registry, journal_store, ledger_selector, policy)


@pytest.fixture
def balance_of(registry, ledger_selector):
    """Balance of an account by code: ``balance_of("1000", start=..., end=...)``."""

    def _balance(code: str, start: date | None = None, end: date | None = None) -> int:
        account = registry.lookup_by_code(code)
        return ledger_selector.account_balance(account.id, start, end)

    return _balance


# =============================================================================
# Invoices
# =============================================================================


def make_invoice(session: Session, total_cents: int = 10000, **fields) -> Invoice:
    """Insert and flush an invoice with a zero-paid balance."""
    count = session.query(Invoice).count()
    invoice = Invoice(
        invoice_number=fields.pop("invoice_number", f"INV-{count + 1:04d}"),
        customer_name=fields.pop("customer_name", "Acme Studio"),
        customer_email=fields.pop("customer_email", "billing@acme.test"),
        issue_date=fields.pop("issue_date", date(2025, 6, 1)),
        due_date=fields.pop("due_date", date(2025, 7, 1)),
        status=fields.pop("status", InvoiceStatus.SENT.value),
        total_cents=total_cents,
        amount_paid_cents=fields.pop("amount_paid_cents", 0),
        balance_due_cents=fields.pop("balance_due_cents", total_cents),
        **fields,
    )
    session.add(invoice)
    session.flush()
    return invoice


@pytest.fixture
def invoice_factory(session):
    def _make(total_cents: int = 10000, **fields) -> Invoice:
        return make_invoice(session, total_cents, **fields)

    return _make


# =============================================================================
# Façade (transaction per call, own database)
# =============================================================================


@pytest.fixture
def service_engine():
    eng = build_engine(SQLITE_MEMORY_URL)
    yield eng
    eng.dispose()


@pytest.fixture
def service_session_factory(service_engine) -> sessionmaker[Session]:
    return sessionmaker(bind=service_engine, expire_on_commit=False)


@pytest.fixture
def ledger_service(service_session_factory, chart, policy, clock) -> LedgerService:
    """A provisioned LedgerService on an empty database."""
    svc = LedgerService(service_session_factory, chart=chart, policy=policy, clock=clock)
    svc.provision()
    return svc
