"""
YearEndCloser -- closes a calendar year's income and expense accounts.

Responsibility:
    Zeroes every income and expense account for a year through the Income
    Summary account (3900) and moves the net result into Owner Equity.
    Preview computes the plan without writing; apply replaces the year's
    closing entries.

Architecture position:
    Kernel > Services.  Reads balances through ``LedgerSelector`` and posts
    through ``JournalStore``.

Invariants enforced:
    - Closing entries are dated December 31 and keyed
      ``(source_type="year_close", source_id=year)``.
    - Balances exclude the year's own earlier closing entries, so apply can
      be repeated and always yields the same set of entries.
    - Every posted line is non-negative: an account whose balance runs
      against its normal side is closed on the opposite side.
    - After apply, Income Summary nets to zero for the year.
"""

from dataclasses import replace
from datetime import date

from sqlalchemy.orm import Session

from ledger_kernel.domain.chart import INCOME_SUMMARY, INCOME_SUMMARY_SPEC
from ledger_kernel.domain.dtos import ClosingStep, LineSide, LineSpec, YearCloseResult
from ledger_kernel.domain.journal_rules import DEFAULT_POLICY, MappingPolicy
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.account import AccountType
from ledger_kernel.models.journal import SourceType
from ledger_kernel.selectors.ledger_selector import AccountBalance, LedgerSelector
from ledger_kernel.services.account_registry import AccountRegistry
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.journal_store import JournalStore

logger = get_logger("services.year_end_closer")

CLOSE_REVENUE = "close_revenue"
CLOSE_EXPENSES = "close_expenses"
CLOSE_NET_TO_EQUITY = "close_net_to_equity"


class YearEndCloser(BaseService):
    """Calendar-year closing procedure."""

    def __init__(
        self,
        session: Session,
        registry: AccountRegistry,
        store: JournalStore,
        selector: LedgerSelector,
        policy: MappingPolicy = DEFAULT_POLICY,
    ):
        super().__init__(session)
        self._registry = registry
        self._store = store
        self._selector = selector
        self._policy = policy

    def close_fiscal_year(self, year: int, apply: bool = False) -> YearCloseResult:
        """
        Preview or apply the close of ``year``.

        Returns:
            YearCloseResult with the three steps in order.  A step with no
            lines has nothing to close and is not posted.
        """
        if isinstance(year, bool) or not isinstance(year, int) or not 1 <= year <= 9999:
            raise ValueError(f"Invalid fiscal year: {year!r}")

        source = (SourceType.YEAR_CLOSE.value, year)
        start, end = date(year, 1, 1), date(year, 12, 31)

        with LogContext.bind(source_type=source[0], source_id=year):
            income_rows = self._selector.balances_by_type(
                AccountType.INCOME, start, end, exclude_source=source
            )
            expense_rows = self._selector.balances_by_type(
                AccountType.EXPENSE, start, end, exclude_source=source
            )
            income_total = sum(row.balance for row in income_rows)
            expense_total = sum(row.balance for row in expense_rows)
            net = income_total - expense_total

            steps = self._plan(year, income_rows, income_total, expense_rows, expense_total, net)

            if apply:
                steps = self._apply(year, end, steps)

            logger.info(
                "year_close_applied" if apply else "year_close_previewed",
                extra={
                    "year": year,
                    "income_total_cents": income_total,
                    "expense_total_cents": expense_total,
                    "net_cents": net,
                    "entries_posted": sum(1 for s in steps if s.entry_id is not None),
                },
            )

        return YearCloseResult(
            year=year,
            income_total_cents=income_total,
            expense_total_cents=expense_total,
            net_cents=net,
            steps=tuple(steps),
            applied=apply,
        )

    def _plan(
        self,
        year: int,
        income_rows: list[AccountBalance],
        income_total: int,
        expense_rows: list[AccountBalance],
        expense_total: int,
        net: int,
    ) -> list[ClosingStep]:
        # Revenue: Dr each income account, Cr Income Summary.  Accounts that
        # offset to a zero total are left open.
        revenue_lines: tuple[LineSpec, ...] = ()
        if income_total:
            revenue_lines = tuple(
                LineSpec.signed(row.account_code, LineSide.DEBIT, row.balance)
                for row in income_rows
            ) + (LineSpec.signed(INCOME_SUMMARY, LineSide.CREDIT, income_total),)

        # Expenses: Dr Income Summary, Cr each expense account
        expense_lines: tuple[LineSpec, ...] = ()
        if expense_total:
            expense_lines = (
                LineSpec.signed(INCOME_SUMMARY, LineSide.DEBIT, expense_total),
            ) + tuple(
                LineSpec.signed(row.account_code, LineSide.CREDIT, row.balance)
                for row in expense_rows
            )

        # Net: profit Dr Income Summary / Cr equity, loss the reverse
        net_lines: tuple[LineSpec, ...] = ()
        if net:
            net_lines = (
                LineSpec.signed(INCOME_SUMMARY, LineSide.DEBIT, net),
                LineSpec.signed(self._policy.closing_equity_account, LineSide.CREDIT, net),
            )

        return [
            ClosingStep(
                name=CLOSE_REVENUE,
                description=f"Close {year} income accounts to Income Summary",
                amount_cents=income_total,
                lines=revenue_lines,
            ),
            ClosingStep(
                name=CLOSE_EXPENSES,
                description=f"Close {year} expense accounts to Income Summary",
                amount_cents=expense_total,
                lines=expense_lines,
            ),
            ClosingStep(
                name=CLOSE_NET_TO_EQUITY,
                description=(
                    f"Close {year} net income to Owner Equity"
                    if net >= 0
                    else f"Close {year} net loss to Owner Equity"
                ),
                amount_cents=net,
                lines=net_lines,
            ),
        ]

    def _apply(self, year: int, entry_date: date, steps: list[ClosingStep]) -> list[ClosingStep]:
        removed = self._store.delete_by_source(SourceType.YEAR_CLOSE.value, year)
        if removed:
            logger.info("year_close_replaced", extra={"year": year, "entries_removed": removed})

        self._registry.ensure_by_code(INCOME_SUMMARY_SPEC)

        posted: list[ClosingStep] = []
        for step in steps:
            if not step.lines:
                posted.append(step)
                continue
            entry_id = self._store.post_entry(
                entry_date,
                step.description,
                SourceType.YEAR_CLOSE.value,
                year,
                step.lines,
            )
            posted.append(replace(step, entry_id=entry_id))
        return posted
