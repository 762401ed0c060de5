"""
Module: ledger_kernel.models.invoice
Responsibility: ORM persistence for customer invoices.  The ledger owns only
    the payment fields (amount_paid_cents, balance_due_cents, status,
    paid_date and the gateway_* stamps); everything else belongs to the
    invoicing screens.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - amount_paid_cents + balance_due_cents == total_cents after every
      payment application.
    - status is derived from balance_due_cents (0 -> paid, >0 with a
      payment -> partial) except when void.
    - paid_date is stamped once, the first time the balance reaches zero.
"""

from datetime import date, datetime
from enum import Enum

from sqlalchemy import Date, DateTime, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase


class InvoiceStatus(str, Enum):
    """Invoice lifecycle status."""

    DRAFT = "draft"
    SENT = "sent"
    PARTIAL = "partial"
    PAID = "paid"
    VOID = "void"


class Invoice(TrackedBase):
    """A customer invoice."""

    __tablename__ = "invoices"

    __table_args__ = (
        UniqueConstraint("invoice_number", name="uq_invoice_number"),
        Index("idx_invoices_due_date", "due_date"),
        Index("idx_invoices_status", "status"),
        Index("idx_invoices_gateway_session", "gateway_checkout_session_id"),
    )

    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[InvoiceStatus] = mapped_column(
        String(10),
        default=InvoiceStatus.DRAFT.value,
        nullable=False,
    )

    total_cents: Mapped[int] = mapped_column(default=0, nullable=False)
    amount_paid_cents: Mapped[int] = mapped_column(default=0, nullable=False)
    balance_due_cents: Mapped[int] = mapped_column(default=0, nullable=False)
    paid_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    gateway_checkout_session_id: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    gateway_payment_status: Mapped[str | None] = mapped_column(
        String(30), nullable=True
    )
    gateway_payment_completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Invoice {self.invoice_number} {self.status}>"

    @property
    def is_void(self) -> bool:
        return self.status == InvoiceStatus.VOID
