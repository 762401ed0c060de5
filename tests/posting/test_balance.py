"""
Balance validation tests for JournalStore.

Verifies:
- Balanced entries post with ordered lines
- Unbalanced and empty entries are rejected before anything is written
- Unknown and inactive accounts are rejected
- delete_by_source removes exactly one source's entries and their lines
- Whatever is posted, the ledger as a whole stays balanced
"""

from datetime import date

import pytest
from hypothesis import HealthCheck, assume, given, settings
from hypothesis import strategies as st

from ledger_kernel.domain.dtos import LineSpec
from ledger_kernel.exceptions import (
    AccountInactiveError,
    AccountNotFoundError,
    InvalidLineError,
    UnbalancedEntryError,
)
from ledger_kernel.selectors.ledger_selector import normal_balance

ENTRY_DATE = date(2025, 3, 1)

POSTABLE_CODES = ["1000", "2100", "3100", "4000", "5200", "5400"]


class TestPostEntry:
    def test_balanced_entry_posts(self, journal_store, journal_selector):
        entry_id = journal_store.post_entry(
            ENTRY_DATE,
            "Hosting",
            "manual",
            None,
            [LineSpec.debit("5400", 4900), LineSpec.credit("1000", 4900)],
        )

        view = journal_selector.get_entry(entry_id)
        assert view.entry_date == ENTRY_DATE
        assert view.memo == "Hosting"
        assert [line.account_code for line in view.lines] == ["5400", "1000"]
        assert view.total_debits == view.total_credits == 4900

    def test_multiple_debits_single_credit(self, journal_store, journal_selector):
        entry_id = journal_store.post_entry(
            ENTRY_DATE,
            "Split",
            "manual",
            None,
            [
                LineSpec.debit("5200", 3000),
                LineSpec.debit("5400", 2000),
                LineSpec.credit("2100", 5000),
            ],
        )

        view = journal_selector.get_entry(entry_id)
        assert len(view.lines) == 3
        assert view.total_debits == 5000

    def test_unbalanced_entry_rejected(self, journal_store, journal_selector, captured_logs):
        with pytest.raises(UnbalancedEntryError) as exc_info:
            journal_store.post_entry(
                ENTRY_DATE,
                "Bad",
                "manual",
                None,
                [LineSpec.debit("5200", 5000), LineSpec.credit("1000", 4999)],
            )

        assert exc_info.value.debits == 5000
        assert exc_info.value.credits == 4999
        assert journal_selector.count_entries() == 0
        assert any(r["message"] == "unbalanced_entry_rejected" for r in captured_logs())

    def test_empty_entry_rejected(self, journal_store, journal_selector):
        with pytest.raises(InvalidLineError):
            journal_store.post_entry(ENTRY_DATE, "Empty", "manual", None, [])
        assert journal_selector.count_entries() == 0

    def test_unknown_account_rejected(self, journal_store, journal_selector):
        with pytest.raises(AccountNotFoundError) as exc_info:
            journal_store.post_entry(
                ENTRY_DATE,
                "Unknown",
                "manual",
                None,
                [LineSpec.debit("9999", 100), LineSpec.credit("1000", 100)],
            )
        assert exc_info.value.account_code == "9999"
        assert journal_selector.count_entries() == 0

    def test_inactive_account_rejected(self, session, registry, journal_store):
        registry.lookup_by_code("5500").is_active = False
        session.flush()

        with pytest.raises(AccountInactiveError):
            journal_store.post_entry(
                ENTRY_DATE,
                "Trip",
                "manual",
                None,
                [LineSpec.debit("5500", 100), LineSpec.credit("1000", 100)],
            )

    def test_non_positive_line_amount_rejected(self):
        with pytest.raises(ValueError):
            LineSpec.debit("1000", 0)
        with pytest.raises(ValueError):
            LineSpec.credit("1000", -5)


class TestDeleteBySource:
    def _post(self, store, source_type, source_id, amount=1000):
        return store.post_entry(
            ENTRY_DATE,
            None,
            source_type,
            source_id,
            [LineSpec.debit("5200", amount), LineSpec.credit("1000", amount)],
        )

    def test_removes_only_matching_source(self, journal_store, journal_selector):
        self._post(journal_store, "tax_expense", 1)
        self._post(journal_store, "tax_expense", 1)
        self._post(journal_store, "tax_expense", 2)
        self._post(journal_store, "tax_income", 1)

        removed = journal_store.delete_by_source("tax_expense", 1)

        assert removed == 2
        assert journal_selector.entries_for_source("tax_expense", 1) == []
        assert len(journal_selector.entries_for_source("tax_expense", 2)) == 1
        assert len(journal_selector.entries_for_source("tax_income", 1)) == 1

    def test_lines_removed_with_entry(self, journal_store, journal_selector):
        self._post(journal_store, "tax_expense", 7)
        assert journal_selector.count_lines() == 2

        journal_store.delete_by_source("tax_expense", 7)

        assert journal_selector.count_lines() == 0

    def test_nothing_to_delete(self, journal_store):
        assert journal_store.delete_by_source("tax_expense", 404) == 0

    def test_null_source_id_matches_manual_entries(self, journal_store, journal_selector):
        self._post(journal_store, "manual", None)
        self._post(journal_store, "year_close", 2025)

        assert journal_store.delete_by_source("manual", None) == 1
        assert journal_selector.count_entries() == 1


class TestLedgerStaysBalanced:
    """Whatever sequence of balanced entries is posted, totals reconcile."""

    @given(
        entries=st.lists(
            st.lists(
                st.tuples(
                    st.sampled_from(POSTABLE_CODES),
                    st.sampled_from(POSTABLE_CODES),
                    st.integers(min_value=1, max_value=10_000_000),
                ),
                min_size=1,
                max_size=4,
            ),
            min_size=1,
            max_size=6,
        )
    )
    @settings(
        max_examples=50,
        deadline=None,
        suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
    )
    def test_debits_equal_credits(self, journal_store, ledger_selector, entries):
        for pairs in entries:
            lines = []
            for debit_code, credit_code, amount in pairs:
                lines.append(LineSpec.debit(debit_code, amount))
                lines.append(LineSpec.credit(credit_code, amount))
            journal_store.post_entry(ENTRY_DATE, None, "manual", None, lines)

        debits, credits = ledger_selector.total_debits_credits()
        assert debits == credits

        tb = ledger_selector.trial_balance()
        assert tb.is_balanced
        debit_side = sum(
            normal_balance(row.normal_side, row.debit_total, row.credit_total)
            for row in tb.rows
            if row.normal_side == "debit"
        )
        credit_side = sum(
            normal_balance(row.normal_side, row.debit_total, row.credit_total)
            for row in tb.rows
            if row.normal_side == "credit"
        )
        assert debit_side == credit_side

    @given(
        debit=st.integers(min_value=1, max_value=1_000_000),
        credit=st.integers(min_value=1, max_value=1_000_000),
    )
    @settings(
        max_examples=50,
        deadline=None,
        suppress_health_check=[HealthCheck.function_scoped_fixture],
    )
    def test_any_mismatch_rejected(self, journal_store, journal_selector, debit, credit):
        assume(debit != credit)
        before = journal_selector.count_entries()
        with pytest.raises(UnbalancedEntryError):
            journal_store.post_entry(
                ENTRY_DATE,
                None,
                "manual",
                None,
                [LineSpec.debit("5200", debit), LineSpec.credit("1000", credit)],
            )
        assert journal_selector.count_entries() == before
