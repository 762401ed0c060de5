"""
InvoicePaymentPoster -- applies a payment to an invoice and to the books
exactly once.

Responsibility:
    Turns one payment event ``{invoice_id, amount_cents, external_event_id}``
    into (a) an IncomeRecord carrying the event's idempotency key, (b) the
    income journal entry, and (c) the invoice's new paid/balance/status.
    Admin "record payment" actions and gateway webhooks both land here.

Architecture position:
    Kernel > Services.  Reads the invoice row FOR UPDATE, writes through the
    session and ``AutoJournalService``; the caller owns the transaction.

Invariants enforced:
    - At-most-once: the key ``invoice-payment:{invoice_id}:{event_id}`` is
      checked before any write and is unique on tax_income, so a redelivered
      or concurrently delivered event is reported as a duplicate and changes
      nothing.
    - No overpayment: the applied amount is clamped to the remaining
      balance; amount_paid + balance_due == total afterwards.
    - Status is paid when the balance reaches zero, partial otherwise.
      paid_date is stamped once.

Failure modes:
    - InvalidAmountError / MissingIdempotencyKeyError before any read.
    - InvoiceNotFoundError, InvoiceVoidError.
    - InvoiceAlreadyPaidError when nothing remains to apply (a duplicate
      event is reported as a duplicate, not as this error).
"""

from datetime import date, datetime, timezone
from typing import Any, Mapping

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import PaymentEvent, PaymentResult
from ledger_kernel.exceptions import (
    InvalidAmountError,
    InvoiceAlreadyPaidError,
    InvoiceNotFoundError,
    InvoiceVoidError,
    MissingIdempotencyKeyError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.facts import IncomeRecord
from ledger_kernel.models.invoice import Invoice, InvoiceStatus
from ledger_kernel.services.auto_journal import AutoJournalService
from ledger_kernel.services.base import BaseService
from ledger_kernel.utils.idempotency import payment_event_key

logger = get_logger("services.payment_poster")

DEFAULT_PAYMENT_CATEGORY = "Service Revenue"

_METADATA_FIELDS = ("occurred_at", "source", "category", "notes", "external_reference")


def _event_date(occurred_at: datetime) -> date:
    if occurred_at.tzinfo is None:
        return occurred_at.date()
    return occurred_at.astimezone(timezone.utc).date()


class InvoicePaymentPoster(BaseService):
    """Idempotent invoice payment application."""

    def __init__(
        self,
        session: Session,
        auto_journal: AutoJournalService,
        clock: Clock | None = None,
    ):
        super().__init__(session)
        self._auto_journal = auto_journal
        self._clock = clock or SystemClock()

    def apply_payment(
        self,
        invoice_id: int,
        amount_cents: int,
        external_event_id: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> PaymentResult:
        """
        Apply a payment described by plain arguments.

        ``metadata`` may carry occurred_at, source, category, notes and
        external_reference; other keys are ignored.
        """
        extra = {
            key: value
            for key, value in (metadata or {}).items()
            if key in _METADATA_FIELDS and value is not None
        }
        event = PaymentEvent(
            invoice_id=invoice_id,
            amount_cents=amount_cents,
            external_event_id=external_event_id,
            **extra,
        )
        return self.apply_event(event)

    def apply_event(self, event: PaymentEvent) -> PaymentResult:
        """
        Apply one payment event.

        Returns:
            PaymentResult with ``duplicate_event=True`` (and no writes) when
            this event was already applied.
        """
        amount = event.amount_cents
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidAmountError(amount, "invoice payment")
        if not event.external_event_id:
            raise MissingIdempotencyKeyError(event.invoice_id)

        event_key = payment_event_key(event.invoice_id, event.external_event_id)

        with LogContext.bind(invoice_id=event.invoice_id, event_key=event_key):
            invoice = self._lock_invoice(event.invoice_id)

            # A redelivery stays a no-op even after the invoice was voided
            existing = self._find_by_key(event_key)
            if existing is not None:
                return self._duplicate(invoice, existing)

            if invoice.is_void:
                raise InvoiceVoidError(event.invoice_id)

            remaining = max(0, invoice.total_cents - invoice.amount_paid_cents)
            applied = min(remaining, amount)
            if applied <= 0:
                logger.warning(
                    "payment_rejected_already_paid",
                    extra={
                        "total_cents": invoice.total_cents,
                        "amount_paid_cents": invoice.amount_paid_cents,
                    },
                )
                raise InvoiceAlreadyPaidError(
                    invoice.id, invoice.total_cents, invoice.amount_paid_cents
                )

            income_date = (
                _event_date(event.occurred_at)
                if event.occurred_at is not None
                else self._clock.today()
            )
            income = IncomeRecord(
                income_date=income_date,
                source=f"Invoice {invoice.invoice_number} ({invoice.customer_name})",
                category=event.category or DEFAULT_PAYMENT_CATEGORY,
                amount_cents=applied,
                owner_funded=False,
                idempotency_key=event_key,
                external_reference=event.external_reference,
                invoice_id=invoice.id,
                notes=event.notes,
            )
            try:
                with self.session.begin_nested():
                    self.session.add(income)
                    self.session.flush()
            except IntegrityError:
                # A concurrent delivery of the same event committed first
                existing = self._find_by_key(event_key)
                if existing is None:
                    raise
                logger.warning("payment_insert_race_detected")
                return self._duplicate(self._lock_invoice(event.invoice_id), existing)

            self._auto_journal.project(income)

            invoice.amount_paid_cents += applied
            invoice.balance_due_cents = invoice.total_cents - invoice.amount_paid_cents
            if invoice.balance_due_cents <= 0:
                invoice.balance_due_cents = 0
                invoice.status = InvoiceStatus.PAID.value
                if invoice.paid_date is None:
                    invoice.paid_date = income_date
            else:
                invoice.status = InvoiceStatus.PARTIAL.value

            if event.is_gateway:
                invoice.gateway_payment_status = "paid"
                invoice.gateway_payment_completed_at = event.occurred_at or self._clock.now()
                if event.external_reference and not invoice.gateway_checkout_session_id:
                    invoice.gateway_checkout_session_id = event.external_reference
            self.session.flush()

            logger.info(
                "payment_applied",
                extra={
                    "requested_cents": amount,
                    "applied_cents": applied,
                    "amount_paid_cents": invoice.amount_paid_cents,
                    "balance_due_cents": invoice.balance_due_cents,
                    "status": invoice.status,
                    "income_record_id": income.id,
                    "payment_source": event.source,
                },
            )
            return PaymentResult(
                invoice_id=invoice.id,
                amount_paid_cents=invoice.amount_paid_cents,
                balance_due_cents=invoice.balance_due_cents,
                status=invoice.status,
                duplicate_event=False,
                amount_applied_cents=applied,
                income_record_id=income.id,
            )

    def _lock_invoice(self, invoice_id: int) -> Invoice:
        invoice = self.session.execute(
            select(Invoice)
            .where(Invoice.id == invoice_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if invoice is None:
            raise InvoiceNotFoundError(invoice_id)
        return invoice

    def _find_by_key(self, event_key: str) -> IncomeRecord | None:
        return self.session.execute(
            select(IncomeRecord).where(IncomeRecord.idempotency_key == event_key)
        ).scalar_one_or_none()

    def _duplicate(self, invoice: Invoice, existing: IncomeRecord) -> PaymentResult:
        logger.info(
            "payment_duplicate_event",
            extra={
                "income_record_id": existing.id,
                "amount_paid_cents": invoice.amount_paid_cents,
                "balance_due_cents": invoice.balance_due_cents,
            },
        )
        return PaymentResult(
            invoice_id=invoice.id,
            amount_paid_cents=invoice.amount_paid_cents,
            balance_due_cents=invoice.balance_due_cents,
            status=invoice.status,
            duplicate_event=True,
            amount_applied_cents=0,
            income_record_id=existing.id,
        )
