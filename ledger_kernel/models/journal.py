"""
Module: ledger_kernel.models.journal
Responsibility: ORM persistence for journal entries and journal lines -- the
    single source of financial truth in this system.
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - Balance: sum(debit_cents) == sum(credit_cents) per entry (checked by
      JournalStore before flush; is_balanced is a read-side convenience).
    - One side per line: exactly one of debit_cents/credit_cents is nonzero
      (ck_journal_line_one_side).
    - Replace-by-source: auto-generated entries are keyed by
      (source_type, source_id) and are deleted wholesale before regeneration.
      Entries are never partially edited.

Audit relevance:
    JournalEntry and JournalLine rows are the authoritative financial record.
    Every balance, trial balance and closing computation derives from them.
"""

from datetime import date
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import IdType, TrackedBase

if TYPE_CHECKING:
    from ledger_kernel.models.account import Account


class SourceType(str, Enum):
    """What produced a journal entry."""

    MANUAL = "manual"
    TAX_EXPENSE = "tax_expense"
    TAX_INCOME = "tax_income"
    OWNER_TRANSFER = "owner_transfer"
    YEAR_CLOSE = "year_close"


class JournalEntry(TrackedBase):
    """
    Journal entry header -- the atomic unit of double-entry accounting.

    Contract:
        Auto-generated entries carry (source_type, source_id).  At most one
        generation exists per source tuple at any time; manual entries have
        source_id NULL.
    """

    __tablename__ = "journal_entries"

    __table_args__ = (
        Index("idx_journal_entries_date", "entry_date"),
        Index("idx_journal_entries_source", "source_type", "source_id"),
    )

    entry_date: Mapped[date] = mapped_column(Date, nullable=False)

    memo: Mapped[str | None] = mapped_column(String(500), nullable=True)

    source_type: Mapped[SourceType] = mapped_column(String(30), nullable=False)

    # Fact id, or the fiscal year for year_close entries
    source_id: Mapped[int | None] = mapped_column(nullable=True)

    lines: Mapped[list["JournalLine"]] = relationship(
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="JournalLine.line_seq",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<JournalEntry {self.id} {self.source_type}:{self.source_id}>"

    @property
    def total_debits(self) -> int:
        return sum(line.debit_cents for line in self.lines)

    @property
    def total_credits(self) -> int:
        return sum(line.credit_cents for line in self.lines)

    @property
    def is_balanced(self) -> bool:
        """Check if debits equal credits (read-side convenience)."""
        return self.total_debits == self.total_credits


class JournalLine(TrackedBase):
    """
    Individual debit or credit line within a journal entry.

    Guarantees:
        - debit_cents >= 0 and credit_cents >= 0, exactly one nonzero.
        - line_seq provides deterministic ordering within the entry.
    """

    __tablename__ = "journal_lines"

    __table_args__ = (
        CheckConstraint("debit_cents >= 0", name="ck_journal_line_debit_nonneg"),
        CheckConstraint("credit_cents >= 0", name="ck_journal_line_credit_nonneg"),
        CheckConstraint(
            "(debit_cents = 0) <> (credit_cents = 0)",
            name="ck_journal_line_one_side",
        ),
        Index("idx_journal_lines_entry_id", "entry_id"),
        Index("idx_journal_lines_account_id", "account_id"),
    )

    entry_id: Mapped[int] = mapped_column(
        IdType,
        ForeignKey("journal_entries.id", ondelete="CASCADE"),
        nullable=False,
    )

    account_id: Mapped[int] = mapped_column(
        IdType,
        ForeignKey("accounts.id"),
        nullable=False,
    )

    debit_cents: Mapped[int] = mapped_column(default=0, nullable=False)

    credit_cents: Mapped[int] = mapped_column(default=0, nullable=False)

    line_seq: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    entry: Mapped["JournalEntry"] = relationship(back_populates="lines")

    account: Mapped["Account"] = relationship(back_populates="journal_lines")

    def __repr__(self) -> str:
        return f"<JournalLine dr={self.debit_cents} cr={self.credit_cents}>"
