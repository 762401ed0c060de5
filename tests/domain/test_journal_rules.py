"""
Tests for the pure journal rules.

No database: facts are plain objects carrying the attributes the rules read.
"""

from dataclasses import FrozenInstanceError
from datetime import date
from types import SimpleNamespace

import pytest

from ledger_kernel.domain.dtos import JournalDraft, LineSide, LineSpec
from ledger_kernel.domain.journal_rules import (
    DEFAULT_POLICY,
    KeywordRule,
    MappingPolicy,
    expense_entry,
    income_entry,
    infer_owner_funded,
    owner_transfer_entry,
)
from ledger_kernel.exceptions import UnknownTransferTypeError

DAY = date(2025, 8, 1)


def _expense(**kw):
    fields = dict(
        id=1, expense_date=DAY, category="Office", vendor=None, amount_cents=1000, paid_via=None
    )
    fields.update(kw)
    return SimpleNamespace(**fields)


def _income(**kw):
    fields = dict(
        id=2, income_date=DAY, category="Consulting", source=None,
        amount_cents=5000, owner_funded=False,
    )
    fields.update(kw)
    return SimpleNamespace(**fields)


def _transfer(**kw):
    fields = dict(
        id=3, transfer_date=DAY, transfer_type="personal_to_business",
        amount_cents=700, memo=None,
    )
    fields.update(kw)
    return SimpleNamespace(**fields)


class TestExpenseEntry:
    def test_two_balanced_lines(self):
        draft = expense_entry(_expense())

        assert draft.is_balanced
        assert draft.source_type == "tax_expense"
        assert draft.source_id == 1
        assert draft.lines == (
            LineSpec.debit("5200", 1000),
            LineSpec.credit("3100", 1000),
        )

    def test_memo_falls_back_to_category(self):
        assert expense_entry(_expense()).memo == "Expense: Office"
        assert expense_entry(_expense(vendor="Acme")).memo == "Expense: Acme"

    def test_first_matching_rule_wins(self):
        policy = MappingPolicy(
            paid_via_rules=(
                KeywordRule(("card",), "2100"),
                KeywordRule(("business",), "1000"),
            )
        )
        draft = expense_entry(_expense(paid_via="Business Card"), policy)
        assert draft.lines[1].account_code == "2100"

    @pytest.mark.parametrize("amount", [0, -1])
    def test_no_entry_for_non_positive(self, amount):
        assert expense_entry(_expense(amount_cents=amount)) is None


class TestIncomeEntry:
    def test_revenue(self):
        draft = income_entry(_income(source="Client B"))
        assert draft.memo == "Income: Client B"
        assert [l.account_code for l in draft.lines] == ["1000", "4000"]

    def test_owner_funded(self):
        draft = income_entry(_income(owner_funded=True))
        assert draft.lines[1] == LineSpec.credit("3100", 5000)

    def test_no_entry_for_zero(self):
        assert income_entry(_income(amount_cents=0)) is None


class TestOwnerTransferEntry:
    def test_default_memo(self):
        draft = owner_transfer_entry(_transfer(transfer_type="business_to_personal"))
        assert draft.memo == "Owner transfer: business to personal"
        assert draft.lines == (LineSpec.debit("3200", 700), LineSpec.credit("1000", 700))

    def test_explicit_memo(self):
        assert owner_transfer_entry(_transfer(memo="Seed capital")).memo == "Seed capital"

    def test_unknown_type(self):
        with pytest.raises(UnknownTransferTypeError) as exc_info:
            owner_transfer_entry(_transfer(transfer_type="loan"))
        assert exc_info.value.transfer_type == "loan"

    def test_unknown_type_checked_before_amount(self):
        with pytest.raises(UnknownTransferTypeError):
            owner_transfer_entry(_transfer(transfer_type="loan", amount_cents=0))


class TestDeterminism:
    def test_same_fact_same_draft(self):
        fact = _expense(paid_via="Stripe", vendor="Hosting")
        assert expense_entry(fact) == expense_entry(fact)


class TestInferOwnerFunded:
    @pytest.mark.parametrize(
        "category,source,expected",
        [
            ("Owner Funded", None, True),
            ("Transfer", "NON-REVENUE deposit", True),
            ("Deposit", "test charge", True),
            ("Consulting", "Client A", False),
            (None, None, False),
        ],
    )
    def test_markers(self, category, source, expected):
        assert infer_owner_funded(category, source) is expected

    def test_custom_markers(self):
        policy = MappingPolicy(owner_funded_markers=("capital",))
        assert infer_owner_funded("Capital injection", None, policy)
        assert not infer_owner_funded("Owner funded", None, policy)


class TestLineSpec:
    def test_signed_flips_negative(self):
        line = LineSpec.signed("4000", LineSide.DEBIT, -300)
        assert line.side == LineSide.CREDIT
        assert line.amount_cents == 300

    def test_frozen(self):
        line = LineSpec.debit("1000", 1)
        with pytest.raises(FrozenInstanceError):
            line.amount_cents = 2

    def test_draft_balance(self):
        draft = JournalDraft(
            DAY, "x", "manual", None,
            (LineSpec.debit("1000", 5), LineSpec.credit("4000", 4)),
        )
        assert not draft.is_balanced
        assert draft.total_debits == 5
        assert draft.total_credits == 4


def test_default_policy_category_lookup_is_case_insensitive():
    assert DEFAULT_POLICY.expense_account_for(" PAYMENT processing fees") == "5300"
    assert DEFAULT_POLICY.expense_account_for(None) == "5200"
