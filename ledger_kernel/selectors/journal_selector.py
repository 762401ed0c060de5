"""
Module: ledger_kernel.selectors.journal_selector
Responsibility: Read-only access to journal entries as DTOs, including lookup
    by source tuple (the idempotency key of auto-generated entries).
Architecture position: Kernel > Selectors.
"""

from dataclasses import dataclass
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ledger_kernel.models.account import Account
from ledger_kernel.models.journal import JournalEntry, JournalLine
from ledger_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class JournalLineView:
    account_code: str
    debit_cents: int
    credit_cents: int


@dataclass(frozen=True)
class JournalEntryView:
    """A journal entry and its ordered lines."""

    entry_id: int
    entry_date: date
    memo: str | None
    source_type: str
    source_id: int | None
    lines: tuple[JournalLineView, ...]

    @property
    def content(self) -> tuple:
        """Everything except the row id; equal content means an identical entry."""
        return (
            self.entry_date,
            self.memo,
            self.source_type,
            self.source_id,
            self.lines,
        )

    @property
    def total_debits(self) -> int:
        return sum(line.debit_cents for line in self.lines)

    @property
    def total_credits(self) -> int:
        return sum(line.credit_cents for line in self.lines)


class JournalSelector(BaseSelector):
    """Selector for journal entries."""

    def __init__(self, session: Session):
        super().__init__(session)

    def _to_view(self, entry: JournalEntry, codes: dict[int, str]) -> JournalEntryView:
        return JournalEntryView(
            entry_id=entry.id,
            entry_date=entry.entry_date,
            memo=entry.memo,
            source_type=entry.source_type,
            source_id=entry.source_id,
            lines=tuple(
                JournalLineView(
                    account_code=codes[line.account_id],
                    debit_cents=line.debit_cents,
                    credit_cents=line.credit_cents,
                )
                for line in sorted(entry.lines, key=lambda l: l.line_seq)
            ),
        )

    def _account_codes(self) -> dict[int, str]:
        return dict(self.session.execute(select(Account.id, Account.code)).all())

    def get_entry(self, entry_id: int) -> JournalEntryView | None:
        entry = self.session.get(JournalEntry, entry_id)
        if entry is None:
            return None
        return self._to_view(entry, self._account_codes())

    def entries_for_source(
        self, source_type: str, source_id: int | None
    ) -> list[JournalEntryView]:
        """Entries generated from one source tuple, in posting order."""
        query = select(JournalEntry).where(JournalEntry.source_type == source_type)
        if source_id is None:
            query = query.where(JournalEntry.source_id.is_(None))
        else:
            query = query.where(JournalEntry.source_id == source_id)
        entries = self.session.execute(query.order_by(JournalEntry.id)).scalars().all()
        codes = self._account_codes()
        return [self._to_view(entry, codes) for entry in entries]

    def list_entries(
        self,
        start: date | None = None,
        end: date | None = None,
        source_type: str | None = None,
    ) -> list[JournalEntryView]:
        """Entries ordered by (entry_date, id)."""
        query = select(JournalEntry)
        if start is not None:
            query = query.where(JournalEntry.entry_date >= start)
        if end is not None:
            query = query.where(JournalEntry.entry_date <= end)
        if source_type is not None:
            query = query.where(JournalEntry.source_type == source_type)
        entries = self.session.execute(
            query.order_by(JournalEntry.entry_date, JournalEntry.id)
        ).scalars().all()
        codes = self._account_codes()
        return [self._to_view(entry, codes) for entry in entries]

    def count_entries(self, source_type: str | None = None) -> int:
        query = select(func.count(JournalEntry.id))
        if source_type is not None:
            query = query.where(JournalEntry.source_type == source_type)
        return self.session.execute(query).scalar_one()

    def count_lines(self) -> int:
        return self.session.execute(select(func.count(JournalLine.id))).scalar_one()
