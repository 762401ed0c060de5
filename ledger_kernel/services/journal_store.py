"""
JournalStore -- writes balanced journal entries and removes them by source.

Responsibility:
    The only writer of journal_entries/journal_lines.  Every entry the
    auto-journal generator, the payment poster, the year-end close and the
    manual-entry action produce goes through ``post_entry``; every
    regeneration starts with ``delete_by_source``.

Invariants enforced:
    - Balance: sum(debits) == sum(credits), checked on every write before
      anything is flushed.
    - Every line targets an existing, active account.
    - Entries are never edited: a source's entries are deleted wholesale
      (lines first, then the entry) and re-posted.

Failure modes:
    - InvalidLineError for an empty line set.
    - UnbalancedEntryError when debits != credits.
    - AccountNotFoundError / AccountInactiveError for a bad account code.
"""

import time
from datetime import date
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.dtos import JournalDraft, LineSpec
from ledger_kernel.exceptions import InvalidLineError, UnbalancedEntryError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.journal import JournalEntry, JournalLine
from ledger_kernel.services.account_registry import AccountRegistry
from ledger_kernel.services.base import BaseService

logger = get_logger("services.journal_store")


class JournalStore(BaseService):
    """Append/replace-by-source persistence for journal entries."""

    def __init__(self, session: Session, registry: AccountRegistry):
        super().__init__(session)
        self._registry = registry

    def post_entry(
        self,
        entry_date: date,
        memo: str | None,
        source_type: str,
        source_id: int | None,
        lines: Sequence[LineSpec],
    ) -> int:
        """
        Persist one balanced entry.

        Preconditions:
            - ``lines`` is non-empty and balanced.
        Postconditions:
            - One JournalEntry and len(lines) JournalLines are flushed.

        Returns:
            The new entry id.
        """
        t0 = time.monotonic()
        if not lines:
            raise InvalidLineError(0, "entry has no lines")

        debits = sum(line.debit_cents for line in lines)
        credits = sum(line.credit_cents for line in lines)
        if debits != credits:
            logger.warning(
                "unbalanced_entry_rejected",
                extra={
                    "source_type": source_type,
                    "source_id": source_id,
                    "sum_debit": debits,
                    "sum_credit": credits,
                },
            )
            raise UnbalancedEntryError(debits, credits)

        accounts = [self._registry.require_active(line.account_code) for line in lines]

        entry = JournalEntry(
            entry_date=entry_date,
            memo=memo,
            source_type=source_type,
            source_id=source_id,
        )
        for seq, (line, account) in enumerate(zip(lines, accounts)):
            entry.lines.append(
                JournalLine(
                    account_id=account.id,
                    debit_cents=line.debit_cents,
                    credit_cents=line.credit_cents,
                    line_seq=seq,
                )
            )
        self.session.add(entry)
        self.session.flush()

        logger.info(
            "journal_entry_posted",
            extra={
                "entry_id": entry.id,
                "entry_date": entry_date,
                "source_type": source_type,
                "source_id": source_id,
                "line_count": len(lines),
                "amount_cents": debits,
                "duration_ms": round((time.monotonic() - t0) * 1000, 2),
            },
        )
        return entry.id

    def post_draft(self, draft: JournalDraft) -> int:
        return self.post_entry(
            draft.entry_date,
            draft.memo,
            draft.source_type,
            draft.source_id,
            draft.lines,
        )

    def delete_by_source(self, source_type: str, source_id: int | None) -> int:
        """
        Delete every entry (and its lines) generated from one source tuple.

        Returns:
            Number of entries removed.
        """
        query = select(JournalEntry).where(JournalEntry.source_type == source_type)
        if source_id is None:
            query = query.where(JournalEntry.source_id.is_(None))
        else:
            query = query.where(JournalEntry.source_id == source_id)

        entries = self.session.execute(query).scalars().all()
        for entry in entries:
            # delete-orphan cascade removes the lines before the entry row
            self.session.delete(entry)
        self.session.flush()

        if entries:
            logger.info(
                "journal_entries_deleted",
                extra={
                    "source_type": source_type,
                    "source_id": source_id,
                    "entry_count": len(entries),
                },
            )
        return len(entries)
