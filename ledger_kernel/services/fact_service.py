"""
FactRecorder -- records, edits and deletes the business facts the ledger
projects into journal entries.

Responsibility:
    Persist expenses, income records and owner transfers, then project each
    one through ``AutoJournalService``.  Edits re-project; deletes drop the
    projection before the fact.

Invariants enforced:
    - The fact is the source of truth: it is flushed first, and its
      projection runs inside a savepoint, so a projection failure is logged
      and reported but never rolls the fact back.
    - Owner-funded income is an explicit flag.  ``backfill_owner_funded`` is
      the only place the free-text inference is applied.

Failure modes:
    - InvalidFactError for a non-integer amount, empty category, or an
      unknown field in an update.
    - UnknownTransferTypeError for an unmapped owner transfer type (raised
      before any write).
    - FactNotFoundError when editing or deleting a missing row.
    - PaymentIncomeLockedError when editing or deleting income posted by an
      invoice payment.
"""

from datetime import date
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.dtos import RecordedFact
from ledger_kernel.domain.journal_rules import (
    DEFAULT_POLICY,
    MappingPolicy,
    infer_owner_funded,
)
from ledger_kernel.exceptions import (
    FactNotFoundError,
    InvalidFactError,
    PaymentIncomeLockedError,
    UnknownTransferTypeError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.facts import ExpenseRecord, IncomeRecord, OwnerTransfer
from ledger_kernel.models.journal import SourceType
from ledger_kernel.services.auto_journal import AutoJournalService
from ledger_kernel.services.base import BaseService

logger = get_logger("services.fact_service")

_EXPENSE_FIELDS = frozenset(
    {"expense_date", "vendor", "category", "amount_cents", "paid_via", "notes"}
)
_INCOME_FIELDS = frozenset(
    {"income_date", "source", "category", "amount_cents", "owner_funded", "notes"}
)


def _check_amount(amount_cents: Any) -> None:
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int):
        raise InvalidFactError("amount_cents", f"expected integer cents, got {amount_cents!r}")


def _check_category(category: Any) -> None:
    if not isinstance(category, str) or not category.strip():
        raise InvalidFactError("category", "must be a non-empty string")


class FactRecorder(BaseService):
    """Write-side service for expenses, income and owner transfers."""

    def __init__(
        self,
        session: Session,
        auto_journal: AutoJournalService,
        policy: MappingPolicy = DEFAULT_POLICY,
    ):
        super().__init__(session)
        self._auto_journal = auto_journal
        self._policy = policy

    # ------------------------------------------------------------------
    # Expenses
    # ------------------------------------------------------------------

    def record_expense(
        self,
        expense_date: date,
        category: str,
        amount_cents: int,
        vendor: str | None = None,
        paid_via: str | None = None,
        notes: str | None = None,
    ) -> RecordedFact:
        _check_amount(amount_cents)
        _check_category(category)

        expense = ExpenseRecord(
            expense_date=expense_date,
            vendor=vendor,
            category=category,
            amount_cents=amount_cents,
            paid_via=paid_via,
            notes=notes,
        )
        self.session.add(expense)
        self.session.flush()
        logger.info(
            "expense_recorded",
            extra={
                "fact_id": expense.id,
                "category": category,
                "amount_cents": amount_cents,
            },
        )
        return self._project(SourceType.TAX_EXPENSE, expense)

    def update_expense(self, expense_id: int, **changes: Any) -> RecordedFact:
        expense = self._get(ExpenseRecord, SourceType.TAX_EXPENSE, expense_id)
        self._apply_changes(expense, changes, _EXPENSE_FIELDS)
        logger.info(
            "expense_updated",
            extra={"fact_id": expense_id, "fields": sorted(changes)},
        )
        return self._project(SourceType.TAX_EXPENSE, expense)

    def delete_expense(self, expense_id: int) -> int:
        expense = self._get(ExpenseRecord, SourceType.TAX_EXPENSE, expense_id)
        return self._delete(SourceType.TAX_EXPENSE, expense)

    # ------------------------------------------------------------------
    # Income
    # ------------------------------------------------------------------

    def record_income(
        self,
        income_date: date,
        category: str,
        amount_cents: int,
        source: str | None = None,
        owner_funded: bool = False,
        notes: str | None = None,
        invoice_id: int | None = None,
        external_reference: str | None = None,
    ) -> RecordedFact:
        _check_amount(amount_cents)
        _check_category(category)

        income = IncomeRecord(
            income_date=income_date,
            source=source,
            category=category,
            amount_cents=amount_cents,
            owner_funded=bool(owner_funded),
            notes=notes,
            invoice_id=invoice_id,
            external_reference=external_reference,
        )
        self.session.add(income)
        self.session.flush()
        logger.info(
            "income_recorded",
            extra={
                "fact_id": income.id,
                "category": category,
                "amount_cents": amount_cents,
                "owner_funded": income.owner_funded,
            },
        )
        return self._project(SourceType.TAX_INCOME, income)

    def update_income(self, income_id: int, **changes: Any) -> RecordedFact:
        income = self._get_manual_income(income_id)
        self._apply_changes(income, changes, _INCOME_FIELDS)
        logger.info(
            "income_updated",
            extra={"fact_id": income_id, "fields": sorted(changes)},
        )
        return self._project(SourceType.TAX_INCOME, income)

    def delete_income(self, income_id: int) -> int:
        income = self._get_manual_income(income_id)
        return self._delete(SourceType.TAX_INCOME, income)

    def backfill_owner_funded(self) -> list[int]:
        """
        Set ``owner_funded`` on legacy income rows whose category or source
        reads as owner capital, and re-project the rows that changed.

        Income posted by invoice payments is never scanned: a customer name
        is not evidence of owner capital.

        Rows already flagged are left alone, so running this twice changes
        nothing the second time.

        Returns:
            Ids of the income records that were flagged.
        """
        rows = self.session.execute(
            select(IncomeRecord)
            .where(IncomeRecord.owner_funded.is_(False))
            .where(IncomeRecord.idempotency_key.is_(None))
            .order_by(IncomeRecord.id)
        ).scalars().all()

        flagged: list[int] = []
        for income in rows:
            if infer_owner_funded(income.category, income.source, self._policy):
                income.owner_funded = True
                self.session.flush()
                self._project(SourceType.TAX_INCOME, income)
                flagged.append(income.id)

        logger.info(
            "owner_funded_backfilled",
            extra={"rows_scanned": len(rows), "rows_flagged": len(flagged)},
        )
        return flagged

    # ------------------------------------------------------------------
    # Owner transfers
    # ------------------------------------------------------------------

    def record_owner_transfer(
        self,
        transfer_date: date,
        transfer_type: str,
        amount_cents: int,
        memo: str | None = None,
    ) -> RecordedFact:
        _check_amount(amount_cents)
        transfer_type = getattr(transfer_type, "value", transfer_type)
        if transfer_type not in self._policy.owner_transfer_accounts:
            raise UnknownTransferTypeError(str(transfer_type))

        transfer = OwnerTransfer(
            transfer_date=transfer_date,
            transfer_type=transfer_type,
            amount_cents=amount_cents,
            memo=memo,
        )
        self.session.add(transfer)
        self.session.flush()
        logger.info(
            "owner_transfer_recorded",
            extra={
                "fact_id": transfer.id,
                "transfer_type": transfer_type,
                "amount_cents": amount_cents,
            },
        )
        return self._project(SourceType.OWNER_TRANSFER, transfer)

    def delete_owner_transfer(self, transfer_id: int) -> int:
        transfer = self._get(OwnerTransfer, SourceType.OWNER_TRANSFER, transfer_id)
        return self._delete(SourceType.OWNER_TRANSFER, transfer)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _get(self, model: type, source_type: SourceType, fact_id: int) -> Any:
        fact = self.session.get(model, fact_id)
        if fact is None:
            raise FactNotFoundError(source_type.value, fact_id)
        return fact

    def _get_manual_income(self, income_id: int) -> IncomeRecord:
        income = self._get(IncomeRecord, SourceType.TAX_INCOME, income_id)
        if income.idempotency_key is not None:
            logger.warning(
                "payment_income_change_rejected",
                extra={"fact_id": income_id, "event_key": income.idempotency_key},
            )
            raise PaymentIncomeLockedError(income_id, income.idempotency_key)
        return income

    def _apply_changes(self, fact: Any, changes: dict[str, Any], allowed: frozenset) -> None:
        unknown = set(changes) - allowed
        if unknown:
            raise InvalidFactError(", ".join(sorted(unknown)), "field cannot be updated")
        if "amount_cents" in changes:
            _check_amount(changes["amount_cents"])
        if "category" in changes:
            _check_category(changes["category"])
        for name, value in changes.items():
            setattr(fact, name, value)
        self.session.flush()

    def _project(self, source_type: SourceType, fact: Any) -> RecordedFact:
        failure = self._auto_journal.project(fact)
        return RecordedFact(
            source_type=source_type.value,
            fact_id=fact.id,
            projection_failure=failure,
        )

    def _delete(self, source_type: SourceType, fact: Any) -> int:
        fact_id = fact.id
        removed = self._auto_journal.remove_for_fact(source_type, fact_id)
        self.session.delete(fact)
        self.session.flush()
        logger.info(
            "fact_deleted",
            extra={
                "source_type": source_type.value,
                "fact_id": fact_id,
                "entries_removed": removed,
            },
        )
        return removed
