"""
Module: ledger_kernel.models.facts
Responsibility: ORM persistence for the business facts the ledger projects
    into journal entries: expenses, income and owner transfers.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - tax_income.idempotency_key is unique when present
      (ux_tax_income_idempotency_key).  It holds the payment dedupe key
      ``invoice-payment:{invoice_id}:{external_event_id}`` and nothing else;
      gateway session ids live in external_reference.
    - Facts are recorded even when their journal projection fails.
"""

from datetime import date
from enum import Enum

from sqlalchemy import Boolean, Date, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import IdType, TrackedBase


class OwnerTransferType(str, Enum):
    """Movements of money between the owner and the business."""

    PERSONAL_TO_BUSINESS = "personal_to_business"
    BUSINESS_TO_PERSONAL = "business_to_personal"
    PERSONAL_PAID_BUSINESS_CARD = "personal_paid_business_card"


class ExpenseRecord(TrackedBase):
    """A business expense."""

    __tablename__ = "tax_expenses"

    __table_args__ = (
        Index("idx_tax_expenses_date", "expense_date"),
        Index("idx_tax_expenses_category", "category"),
    )

    expense_date: Mapped[date] = mapped_column(Date, nullable=False)
    vendor: Mapped[str | None] = mapped_column(String(255), nullable=True)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    amount_cents: Mapped[int] = mapped_column(nullable=False)
    # Free text, e.g. "Stripe", "Business card", "Personal Venmo"
    paid_via: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<ExpenseRecord {self.id} {self.category} {self.amount_cents}>"


class IncomeRecord(TrackedBase):
    """Money received by the business."""

    __tablename__ = "tax_income"

    __table_args__ = (
        Index("idx_tax_income_date", "income_date"),
        Index("idx_tax_income_category", "category"),
        Index(
            "ux_tax_income_idempotency_key",
            "idempotency_key",
            unique=True,
        ),
        Index("idx_tax_income_external_reference", "external_reference"),
    )

    income_date: Mapped[date] = mapped_column(Date, nullable=False)
    source: Mapped[str | None] = mapped_column(String(255), nullable=True)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    amount_cents: Mapped[int] = mapped_column(nullable=False)

    # Capital put in by the owner rather than revenue
    owner_funded: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    idempotency_key: Mapped[str | None] = mapped_column(String(300), nullable=True)

    # Gateway reference such as a Stripe checkout session id
    external_reference: Mapped[str | None] = mapped_column(String(255), nullable=True)

    invoice_id: Mapped[int | None] = mapped_column(
        IdType,
        ForeignKey("invoices.id"),
        nullable=True,
    )

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<IncomeRecord {self.id} {self.category} {self.amount_cents}>"


class OwnerTransfer(TrackedBase):
    """An owner transfer instruction."""

    __tablename__ = "owner_transfers"

    __table_args__ = (Index("idx_owner_transfers_date", "transfer_date"),)

    transfer_date: Mapped[date] = mapped_column(Date, nullable=False)
    transfer_type: Mapped[OwnerTransferType] = mapped_column(String(40), nullable=False)
    amount_cents: Mapped[int] = mapped_column(nullable=False)
    memo: Mapped[str | None] = mapped_column(String(500), nullable=True)

    def __repr__(self) -> str:
        return f"<OwnerTransfer {self.id} {self.transfer_type} {self.amount_cents}>"
