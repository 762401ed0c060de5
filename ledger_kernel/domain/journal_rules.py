"""
Journal rules -- pure derivation of journal entries from business facts.

Responsibility:
    Map a single expense, income record or owner transfer to a balanced
    ``JournalDraft``.  This module is the account-mapping policy; it performs
    no I/O and never touches a session.  Regeneration (delete-then-post) is
    the job of ``AutoJournalService``.

Invariants enforced:
    - Every draft is two lines of equal amount (balanced by construction).
    - A fact with amount <= 0 has no ledger effect: the rules return None.
    - Income is credited to Owner Contributions only when the record's
      explicit ``owner_funded`` flag is set.  Free-text inference lives in
      ``infer_owner_funded`` and is applied once by the backfill command,
      never while posting.

Failure modes:
    - UnknownTransferTypeError for an owner transfer type with no mapping.
"""

from dataclasses import dataclass, field
from typing import Any, Mapping

from ledger_kernel.domain import chart
from ledger_kernel.domain.dtos import JournalDraft, LineSpec
from ledger_kernel.exceptions import UnknownTransferTypeError
from ledger_kernel.models.facts import OwnerTransferType
from ledger_kernel.models.journal import SourceType


@dataclass(frozen=True)
class KeywordRule:
    """Route to ``account_code`` when any keyword appears in the text."""

    keywords: tuple[str, ...]
    account_code: str

    def matches(self, text: str) -> bool:
        lowered = text.lower()
        return any(keyword in lowered for keyword in self.keywords)


@dataclass(frozen=True)
class MappingPolicy:
    """Account-mapping policy for auto-journals and year-end closing."""

    expense_category_accounts: Mapping[str, str] = field(
        default_factory=lambda: {
            "payment processing fees": chart.PAYMENT_PROCESSING_FEES,
        }
    )
    default_expense_account: str = chart.OFFICE_EXPENSE

    # Evaluated in order; first match wins
    paid_via_rules: tuple[KeywordRule, ...] = (
        KeywordRule(("stripe", "cash", "checking", "bank"), chart.CASH_ON_HAND),
        KeywordRule(("business card", "corp card"), chart.CREDIT_CARD_PAYABLE),
    )
    # An unattributed expense is treated as owner-funded capital
    default_offset_account: str = chart.OWNER_CONTRIBUTIONS

    cash_account: str = chart.CASH_ON_HAND
    revenue_account: str = chart.SERVICE_REVENUE
    owner_contribution_account: str = chart.OWNER_CONTRIBUTIONS

    owner_transfer_accounts: Mapping[str, tuple[str, str]] = field(
        default_factory=lambda: {
            OwnerTransferType.PERSONAL_TO_BUSINESS.value: (
                chart.CASH_ON_HAND,
                chart.OWNER_CONTRIBUTIONS,
            ),
            OwnerTransferType.BUSINESS_TO_PERSONAL.value: (
                chart.OWNER_DRAW,
                chart.CASH_ON_HAND,
            ),
            OwnerTransferType.PERSONAL_PAID_BUSINESS_CARD.value: (
                chart.CREDIT_CARD_PAYABLE,
                chart.OWNER_CONTRIBUTIONS,
            ),
        }
    )

    closing_equity_account: str = chart.OWNER_EQUITY

    # Backfill only
    owner_funded_markers: tuple[str, ...] = ("owner funded", "non-revenue", "test")

    def expense_account_for(self, category: str | None) -> str:
        key = (category or "").strip().lower()
        return self.expense_category_accounts.get(key, self.default_expense_account)

    def offset_account_for(self, paid_via: str | None) -> str:
        text = paid_via or ""
        for rule in self.paid_via_rules:
            if rule.matches(text):
                return rule.account_code
        return self.default_offset_account


DEFAULT_POLICY = MappingPolicy()


def _two_line_draft(
    fact: Any,
    entry_date,
    memo: str,
    source_type: SourceType,
    debit_code: str,
    credit_code: str,
) -> JournalDraft:
    amount = fact.amount_cents
    return JournalDraft(
        entry_date=entry_date,
        memo=memo,
        source_type=source_type.value,
        source_id=fact.id,
        lines=(
            LineSpec.debit(debit_code, amount),
            LineSpec.credit(credit_code, amount),
        ),
    )


def expense_entry(expense: Any, policy: MappingPolicy = DEFAULT_POLICY) -> JournalDraft | None:
    """
    Derive the entry for an expense: debit the category's expense account,
    credit the account implied by ``paid_via``.

    Returns None when the amount is zero or negative.
    """
    if expense.amount_cents <= 0:
        return None

    label = expense.vendor or expense.category
    return _two_line_draft(
        expense,
        expense.expense_date,
        f"Expense: {label}",
        SourceType.TAX_EXPENSE,
        debit_code=policy.expense_account_for(expense.category),
        credit_code=policy.offset_account_for(expense.paid_via),
    )


def income_entry(income: Any, policy: MappingPolicy = DEFAULT_POLICY) -> JournalDraft | None:
    """
    Derive the entry for an income record: debit cash, credit revenue (or
    Owner Contributions when the record is flagged owner-funded).

    Returns None when the amount is zero or negative.
    """
    if income.amount_cents <= 0:
        return None

    credit_code = (
        policy.owner_contribution_account
        if income.owner_funded
        else policy.revenue_account
    )
    label = income.source or income.category
    return _two_line_draft(
        income,
        income.income_date,
        f"Income: {label}",
        SourceType.TAX_INCOME,
        debit_code=policy.cash_account,
        credit_code=credit_code,
    )


def owner_transfer_entry(
    transfer: Any, policy: MappingPolicy = DEFAULT_POLICY
) -> JournalDraft | None:
    """
    Derive the entry for an owner transfer from its fixed type mapping.

    Raises:
        UnknownTransferTypeError: If the transfer type has no mapping.
    """
    transfer_type = getattr(transfer.transfer_type, "value", transfer.transfer_type)
    try:
        debit_code, credit_code = policy.owner_transfer_accounts[transfer_type]
    except KeyError:
        raise UnknownTransferTypeError(str(transfer_type)) from None

    if transfer.amount_cents <= 0:
        return None

    memo = transfer.memo or f"Owner transfer: {transfer_type.replace('_', ' ')}"
    return _two_line_draft(
        transfer,
        transfer.transfer_date,
        memo,
        SourceType.OWNER_TRANSFER,
        debit_code=debit_code,
        credit_code=credit_code,
    )


def infer_owner_funded(
    category: str | None,
    source: str | None,
    policy: MappingPolicy = DEFAULT_POLICY,
) -> bool:
    """
    Guess from free text whether an income record is owner-funded.

    Used only to backfill the explicit ``owner_funded`` flag on legacy rows.
    """
    text = f"{category or ''} {source or ''}".lower()
    return any(marker in text for marker in policy.owner_funded_markers)
