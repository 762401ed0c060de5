"""
Module: ledger_kernel.selectors.ledger_selector
Responsibility: Read-only balance queries: single-account balance, balances
    per account type (used by the year-end close), trial balance and the
    global debit/credit totals.
Architecture position: Kernel > Selectors.  May import from models/ and
    selectors/base.py.

Invariants enforced:
    - No stored balances.  Every balance is summed from JournalLine rows at
      query time, so no cached figure can drift from the journal of record.
    - Normal-side convention: debit-normal accounts report debits - credits,
      credit-normal accounts report credits - debits.
"""

from dataclasses import dataclass
from datetime import date

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from ledger_kernel.models.account import Account, AccountType, NormalSide
from ledger_kernel.models.journal import JournalEntry, JournalLine
from ledger_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class AccountBalance:
    """Balance for a single account over a date range."""

    account_id: int
    account_code: str
    account_name: str
    account_type: str
    normal_side: str
    debit_total: int
    credit_total: int

    @property
    def balance(self) -> int:
        """Balance expressed on the account's normal side."""
        return normal_balance(self.normal_side, self.debit_total, self.credit_total)


@dataclass(frozen=True)
class TrialBalance:
    """All account balances plus the grand totals."""

    rows: tuple[AccountBalance, ...]
    total_debits: int
    total_credits: int

    @property
    def is_balanced(self) -> bool:
        return self.total_debits == self.total_credits


def normal_balance(normal_side: str, debit_total: int, credit_total: int) -> int:
    if normal_side == NormalSide.DEBIT:
        return debit_total - credit_total
    return credit_total - debit_total


class LedgerSelector(BaseSelector):
    """
    Selector for ledger balances.

    Date bounds are inclusive and apply to JournalEntry.entry_date.  An
    ``exclude_source`` of ``(source_type, source_id)`` leaves out one
    generation of auto-journals, e.g. a year's own closing entries.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    def _filters(
        self,
        start: date | None,
        end: date | None,
        exclude_source: tuple[str, int] | None,
    ) -> list:
        filters = []
        if start is not None:
            filters.append(JournalEntry.entry_date >= start)
        if end is not None:
            filters.append(JournalEntry.entry_date <= end)
        if exclude_source is not None:
            source_type, source_id = exclude_source
            # source_id is NULL for manual entries; keep those
            filters.append(
                or_(
                    JournalEntry.source_type != source_type,
                    JournalEntry.source_id.is_(None),
                    JournalEntry.source_id != source_id,
                )
            )
        return filters

    def _grouped_balances(
        self,
        start: date | None = None,
        end: date | None = None,
        exclude_source: tuple[str, int] | None = None,
        account_type: AccountType | None = None,
        account_id: int | None = None,
    ) -> list[AccountBalance]:
        query = (
            select(
                Account.id,
                Account.code,
                Account.name,
                Account.account_type,
                Account.normal_side,
                func.coalesce(func.sum(JournalLine.debit_cents), 0),
                func.coalesce(func.sum(JournalLine.credit_cents), 0),
            )
            .join(JournalLine, JournalLine.account_id == Account.id)
            .join(JournalEntry, JournalEntry.id == JournalLine.entry_id)
            .where(*self._filters(start, end, exclude_source))
            .group_by(
                Account.id,
                Account.code,
                Account.name,
                Account.account_type,
                Account.normal_side,
            )
            .order_by(Account.code)
        )
        if account_type is not None:
            query = query.where(Account.account_type == account_type.value)
        if account_id is not None:
            query = query.where(Account.id == account_id)

        return [
            AccountBalance(
                account_id=row[0],
                account_code=row[1],
                account_name=row[2],
                account_type=row[3],
                normal_side=row[4],
                debit_total=int(row[5]),
                credit_total=int(row[6]),
            )
            for row in self.session.execute(query).all()
        ]

    def account_balance(
        self,
        account_id: int,
        start: date | None = None,
        end: date | None = None,
        exclude_source: tuple[str, int] | None = None,
    ) -> int:
        """
        Balance of one account in cents, on its normal side.

        Returns 0 for an account with no lines in range.
        """
        rows = self._grouped_balances(
            start, end, exclude_source, account_id=account_id
        )
        return rows[0].balance if rows else 0

    def balances_by_type(
        self,
        account_type: AccountType,
        start: date | None = None,
        end: date | None = None,
        exclude_source: tuple[str, int] | None = None,
    ) -> list[AccountBalance]:
        """Nonzero balances of every account of one type, ordered by code."""
        return [
            row
            for row in self._grouped_balances(
                start, end, exclude_source, account_type=account_type
            )
            if row.balance != 0
        ]

    def trial_balance(
        self,
        start: date | None = None,
        end: date | None = None,
    ) -> TrialBalance:
        """Per-account totals for every account with journal activity."""
        rows = tuple(self._grouped_balances(start, end))
        return TrialBalance(
            rows=rows,
            total_debits=sum(row.debit_total for row in rows),
            total_credits=sum(row.credit_total for row in rows),
        )

    def total_debits_credits(self) -> tuple[int, int]:
        """Grand totals across every journal line."""
        debits, credits = self.session.execute(
            select(
                func.coalesce(func.sum(JournalLine.debit_cents), 0),
                func.coalesce(func.sum(JournalLine.credit_cents), 0),
            )
        ).one()
        return int(debits), int(credits)
