"""
AutoJournalService -- keeps each fact's journal projection in step with the fact.

Responsibility:
    Regenerates the journal entry of one expense, income record or owner
    transfer (delete-then-post keyed on ``(source_type, fact.id)``), drops
    the projection of a deleted fact, and rebuilds every projection from
    scratch.

Architecture position:
    Kernel > Services.  Derivation is delegated to the pure functions in
    ``domain/journal_rules.py``; writes go through ``JournalStore``.

Invariants enforced:
    - At most one generated entry per source tuple: every upsert deletes the
      tuple's existing entries before posting.
    - Regeneration is deterministic: the same fact yields identical entry
      content, so ``rebuild_all()`` on consistent state is a no-op.
    - A projection failure never rolls back the fact (``project`` runs each
      upsert inside a savepoint).
"""

from typing import Any, Callable

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.dtos import JournalDraft, ProjectionFailure, RebuildSummary
from ledger_kernel.domain.journal_rules import (
    DEFAULT_POLICY,
    MappingPolicy,
    expense_entry,
    income_entry,
    owner_transfer_entry,
)
from ledger_kernel.exceptions import LedgerKernelError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.facts import ExpenseRecord, IncomeRecord, OwnerTransfer
from ledger_kernel.models.journal import SourceType
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.journal_store import JournalStore

logger = get_logger("services.auto_journal")

_SOURCE_TYPES: dict[type, SourceType] = {
    ExpenseRecord: SourceType.TAX_EXPENSE,
    IncomeRecord: SourceType.TAX_INCOME,
    OwnerTransfer: SourceType.OWNER_TRANSFER,
}


class AutoJournalService(BaseService):
    """Regenerates auto-journal entries from recorded facts."""

    def __init__(
        self,
        session: Session,
        store: JournalStore,
        policy: MappingPolicy = DEFAULT_POLICY,
    ):
        super().__init__(session)
        self._store = store
        self._policy = policy

    def upsert_expense(self, expense: ExpenseRecord) -> int | None:
        return self._replace(
            SourceType.TAX_EXPENSE, expense, lambda: expense_entry(expense, self._policy)
        )

    def upsert_income(self, income: IncomeRecord) -> int | None:
        return self._replace(
            SourceType.TAX_INCOME, income, lambda: income_entry(income, self._policy)
        )

    def upsert_transfer(self, transfer: OwnerTransfer) -> int | None:
        return self._replace(
            SourceType.OWNER_TRANSFER,
            transfer,
            lambda: owner_transfer_entry(transfer, self._policy),
        )

    def upsert(self, fact: Any) -> int | None:
        """Dispatch to the upsert for the fact's type."""
        if isinstance(fact, ExpenseRecord):
            return self.upsert_expense(fact)
        if isinstance(fact, IncomeRecord):
            return self.upsert_income(fact)
        if isinstance(fact, OwnerTransfer):
            return self.upsert_transfer(fact)
        raise TypeError(f"No journal projection for {type(fact).__name__}")

    def remove_for_fact(self, source_type: SourceType | str, source_id: int) -> int:
        """Drop the projection of a deleted fact."""
        return self._store.delete_by_source(_value(source_type), source_id)

    def project(self, fact: Any) -> ProjectionFailure | None:
        """
        Upsert one fact's entry inside a savepoint.

        Kernel errors roll back only the savepoint; the fact and everything
        else in the caller's transaction survive.

        Returns:
            None on success (including "no entry needed"), otherwise the
            ProjectionFailure describing why the entry could not be posted.
        """
        _, failure = self._project(fact)
        return failure

    def _project(self, fact: Any) -> tuple[int | None, ProjectionFailure | None]:
        source_type = _SOURCE_TYPES[type(fact)].value
        try:
            with self.session.begin_nested():
                entry_id = self.upsert(fact)
        except LedgerKernelError as exc:
            failure = ProjectionFailure(
                source_type=source_type,
                source_id=fact.id,
                error_code=exc.code,
                message=str(exc),
            )
            logger.error(
                "journal_projection_failed",
                extra={
                    "source_type": source_type,
                    "source_id": fact.id,
                    "error_code": exc.code,
                    "error": str(exc),
                },
            )
            return None, failure
        return entry_id, None

    def rebuild_all(self) -> RebuildSummary:
        """
        Regenerate the projection of every fact, in id order per fact type.

        Failures are collected per fact rather than aborting the rebuild.
        """
        processed = posted = skipped = 0
        failures: list[ProjectionFailure] = []

        logger.info("auto_journal_rebuild_started")
        for model in (ExpenseRecord, IncomeRecord, OwnerTransfer):
            facts = self.session.execute(select(model).order_by(model.id)).scalars().all()
            for fact in facts:
                processed += 1
                entry_id, failure = self._project(fact)
                if failure is not None:
                    failures.append(failure)
                elif entry_id is not None:
                    posted += 1
                else:
                    skipped += 1

        summary = RebuildSummary(
            facts_processed=processed,
            entries_posted=posted,
            facts_skipped=skipped,
            failures=tuple(failures),
        )
        log = logger.info if summary.is_clean else logger.warning
        log(
            "auto_journal_rebuild_completed",
            extra={
                "facts_processed": processed,
                "entries_posted": posted,
                "facts_skipped": skipped,
                "failure_count": len(failures),
            },
        )
        return summary

    def _replace(
        self,
        source_type: SourceType,
        fact: Any,
        derive: Callable[[], JournalDraft | None],
    ) -> int | None:
        with LogContext.bind(source_type=source_type.value, source_id=fact.id):
            self._store.delete_by_source(source_type.value, fact.id)
            draft = derive()
            if draft is None:
                logger.debug(
                    "auto_journal_skipped",
                    extra={"amount_cents": fact.amount_cents},
                )
                return None
            return self._store.post_draft(draft)


def _value(source_type: SourceType | str) -> str:
    return getattr(source_type, "value", source_type)
