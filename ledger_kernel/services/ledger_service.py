"""
LedgerService -- the ledger's external interface.

Responsibility:
    One method per outside action (admin manual entry, record payment,
    payment webhook, year-end close, fact recording, maintenance).  Each
    call runs in its own transaction: it opens a session through
    ``session_scope``, wires the kernel services onto it, checks the
    provisioning precondition and commits on success.

Architecture position:
    Kernel > Services (façade).  HTTP handlers, the webhook endpoint and the
    admin CLI call this class; they never touch the inner services.

Invariants enforced:
    - Transaction per operation: either everything an operation wrote is
      committed or none of it is.
    - Every operation except ``provision`` requires a provisioned ledger.
"""

import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from typing import Any, Generator, Mapping, Sequence

from sqlalchemy.orm import Session, sessionmaker

from ledger_kernel.db.engine import create_tables, session_scope
from ledger_kernel.domain.chart import AccountSpec
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import (
    LineSpec,
    PaymentResult,
    RebuildSummary,
    RecordedFact,
    YearCloseResult,
)
from ledger_kernel.domain.journal_rules import DEFAULT_POLICY, MappingPolicy
from ledger_kernel.domain.payment_events import payment_event_from_checkout_session
from ledger_kernel.exceptions import (
    AccountNotFoundError,
    InvalidAmountError,
    SameAccountError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.journal import SourceType
from ledger_kernel.selectors.journal_selector import JournalEntryView, JournalSelector
from ledger_kernel.selectors.ledger_selector import LedgerSelector, TrialBalance
from ledger_kernel.services.account_registry import AccountRegistry
from ledger_kernel.services.auto_journal import AutoJournalService
from ledger_kernel.services.fact_service import FactRecorder
from ledger_kernel.services.journal_store import JournalStore
from ledger_kernel.services.payment_poster import InvoicePaymentPoster
from ledger_kernel.services.year_end_closer import YearEndCloser

logger = get_logger("services.ledger_service")


@dataclass
class _Unit:
    """Kernel services bound to one session."""

    session: Session
    registry: AccountRegistry
    store: JournalStore
    selector: LedgerSelector
    journal: JournalSelector
    auto_journal: AutoJournalService
    facts: FactRecorder
    poster: InvoicePaymentPoster
    closer: YearEndCloser


class LedgerService:
    """Transaction-per-call façade over the ledger kernel."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        chart: Sequence[AccountSpec] = (),
        policy: MappingPolicy = DEFAULT_POLICY,
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self._chart = tuple(chart)
        self._policy = policy
        self._clock = clock or SystemClock()

    def _wire(self, session: Session) -> _Unit:
        registry = AccountRegistry(session, self._chart)
        store = JournalStore(session, registry)
        selector = LedgerSelector(session)
        auto_journal = AutoJournalService(session, store, self._policy)
        return _Unit(
            session=session,
            registry=registry,
            store=store,
            selector=selector,
            journal=JournalSelector(session),
            auto_journal=auto_journal,
            facts=FactRecorder(session, auto_journal, self._policy),
            poster=InvoicePaymentPoster(session, auto_journal, self._clock),
            closer=YearEndCloser(session, registry, store, selector, self._policy),
        )

    @contextmanager
    def _operation(
        self, name: str, require_provisioned: bool = True
    ) -> Generator[_Unit, None, None]:
        with LogContext.bind(correlation_id=uuid.uuid4().hex[:12]):
            logger.debug("ledger_operation_started", extra={"operation": name})
            with session_scope(self._session_factory) as session:
                unit = self._wire(session)
                if require_provisioned:
                    unit.registry.require_provisioned()
                yield unit

    # ------------------------------------------------------------------
    # Deployment
    # ------------------------------------------------------------------

    def provision(self) -> int:
        """
        Create the ledger tables and seed the chart of accounts.

        Safe to run repeatedly.

        Returns:
            Number of accounts seeded (0 when the chart already exists).
        """
        with self._operation("provision", require_provisioned=False) as unit:
            create_tables(unit.session.connection())
            return unit.registry.ensure_seeded()

    # ------------------------------------------------------------------
    # Journal
    # ------------------------------------------------------------------

    def post_manual_entry(
        self,
        entry_date: date,
        memo: str | None,
        debit_account_code: str,
        credit_account_code: str,
        amount_cents: int,
    ) -> int:
        """
        Post a two-line manual entry.

        Raises:
            InvalidAmountError: amount_cents is not a positive integer.
            SameAccountError: Debit and credit accounts are the same.
        """
        if (
            isinstance(amount_cents, bool)
            or not isinstance(amount_cents, int)
            or amount_cents <= 0
        ):
            raise InvalidAmountError(amount_cents, "manual entry")
        if debit_account_code == credit_account_code:
            raise SameAccountError(debit_account_code)

        with self._operation("post_manual_entry") as unit:
            return unit.store.post_entry(
                entry_date,
                memo,
                SourceType.MANUAL.value,
                None,
                (
                    LineSpec.debit(debit_account_code, amount_cents),
                    LineSpec.credit(credit_account_code, amount_cents),
                ),
            )

    def account_balance(
        self,
        account_code: str,
        start: date | None = None,
        end: date | None = None,
    ) -> int:
        with self._operation("account_balance") as unit:
            account = unit.registry.lookup_by_code(account_code)
            if account is None:
                raise AccountNotFoundError(account_code)
            return unit.selector.account_balance(account.id, start, end)

    def trial_balance(self, start: date | None = None, end: date | None = None) -> TrialBalance:
        with self._operation("trial_balance") as unit:
            return unit.selector.trial_balance(start, end)

    def journal_entries(
        self,
        start: date | None = None,
        end: date | None = None,
        source_type: str | None = None,
    ) -> list[JournalEntryView]:
        """Posted entries with their lines, ordered by (entry_date, id)."""
        with self._operation("journal_entries") as unit:
            return unit.journal.list_entries(start, end, source_type)

    def rebuild_all(self) -> RebuildSummary:
        with self._operation("rebuild_all") as unit:
            return unit.auto_journal.rebuild_all()

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    def apply_invoice_payment(
        self,
        invoice_id: int,
        amount_cents: int,
        external_event_id: str,
        source_metadata: Mapping[str, Any] | None = None,
    ) -> PaymentResult:
        with self._operation("apply_invoice_payment") as unit:
            return unit.poster.apply_payment(
                invoice_id, amount_cents, external_event_id, source_metadata
            )

    def apply_checkout_webhook(self, payload: Mapping[str, Any]) -> PaymentResult:
        """Apply a verified checkout.session.completed webhook event."""
        event = payment_event_from_checkout_session(payload)
        with self._operation("apply_checkout_webhook") as unit:
            return unit.poster.apply_event(event)

    # ------------------------------------------------------------------
    # Year-end
    # ------------------------------------------------------------------

    def close_fiscal_year(self, year: int, apply: bool = False) -> YearCloseResult:
        with self._operation("close_fiscal_year") as unit:
            return unit.closer.close_fiscal_year(year, apply=apply)

    # ------------------------------------------------------------------
    # Facts
    # ------------------------------------------------------------------

    def record_expense(
        self, expense_date: date, category: str, amount_cents: int, **fields: Any
    ) -> RecordedFact:
        with self._operation("record_expense") as unit:
            return unit.facts.record_expense(expense_date, category, amount_cents, **fields)

    def update_expense(self, expense_id: int, **changes: Any) -> RecordedFact:
        with self._operation("update_expense") as unit:
            return unit.facts.update_expense(expense_id, **changes)

    def delete_expense(self, expense_id: int) -> int:
        with self._operation("delete_expense") as unit:
            return unit.facts.delete_expense(expense_id)

    def record_income(
        self, income_date: date, category: str, amount_cents: int, **fields: Any
    ) -> RecordedFact:
        with self._operation("record_income") as unit:
            return unit.facts.record_income(income_date, category, amount_cents, **fields)

    def update_income(self, income_id: int, **changes: Any) -> RecordedFact:
        with self._operation("update_income") as unit:
            return unit.facts.update_income(income_id, **changes)

    def delete_income(self, income_id: int) -> int:
        with self._operation("delete_income") as unit:
            return unit.facts.delete_income(income_id)

    def record_owner_transfer(
        self,
        transfer_date: date,
        transfer_type: str,
        amount_cents: int,
        memo: str | None = None,
    ) -> RecordedFact:
        with self._operation("record_owner_transfer") as unit:
            return unit.facts.record_owner_transfer(
                transfer_date, transfer_type, amount_cents, memo
            )

    def delete_owner_transfer(self, transfer_id: int) -> int:
        with self._operation("delete_owner_transfer") as unit:
            return unit.facts.delete_owner_transfer(transfer_id)

    def backfill_owner_funded(self) -> list[int]:
        with self._operation("backfill_owner_funded") as unit:
            return unit.facts.backfill_owner_funded()
