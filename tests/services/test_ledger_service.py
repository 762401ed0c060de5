"""
Tests for LedgerService, the transaction-per-call façade.

Each call commits on its own, so these tests run against a dedicated
database rather than the shared ``session`` fixture.
"""

from datetime import date, timedelta

import pytest
from sqlalchemy.orm import sessionmaker

from ledger_kernel.db.engine import build_engine
from ledger_kernel.exceptions import (
    AccountNotFoundError,
    InvalidAmountError,
    InvalidPaymentEventError,
    InvoiceNotFoundError,
    LedgerNotProvisionedError,
    PaymentIncomeLockedError,
    SameAccountError,
)
from ledger_kernel.models.facts import IncomeRecord
from ledger_kernel.models.invoice import Invoice, InvoiceStatus
from ledger_kernel.services.ledger_service import LedgerService
from tests.conftest import make_invoice

DAY = date(2025, 3, 1)


def _checkout_payload(invoice_id, amount, event_id="evt_1", session_id="cs_test_1"):
    return {
        "id": event_id,
        "type": "checkout.session.completed",
        "created": 1750000000,
        "data": {
            "object": {
                "id": session_id,
                "amount_total": amount,
                "payment_status": "paid",
                "metadata": {"invoice_id": str(invoice_id)},
            }
        },
    }


@pytest.fixture
def invoice_id(ledger_service, service_session_factory):
    with service_session_factory() as session:
        invoice = make_invoice(session, 10000)
        session.commit()
        return invoice.id


class TestProvisioning:
    def test_unprovisioned_ledger_rejected(self, chart, clock):
        engine = build_engine("sqlite://")
        try:
            service = LedgerService(sessionmaker(bind=engine), chart=chart, clock=clock)
            with pytest.raises(LedgerNotProvisionedError) as exc_info:
                service.trial_balance()
            assert "accounts" in exc_info.value.missing_tables
        finally:
            engine.dispose()

    def test_provision_is_repeatable(self, ledger_service):
        assert ledger_service.provision() == 0
        assert ledger_service.account_balance("1000") == 0


class TestManualEntry:
    def test_posts_and_commits(self, ledger_service):
        entry_id = ledger_service.post_manual_entry(DAY, "Hosting", "5400", "1000", 4900)

        assert entry_id > 0
        assert ledger_service.account_balance("5400") == 4900
        assert ledger_service.account_balance("1000") == -4900

    @pytest.mark.parametrize("amount", [0, -1, 10.5, True])
    def test_invalid_amount(self, ledger_service, amount):
        with pytest.raises(InvalidAmountError):
            ledger_service.post_manual_entry(DAY, None, "5400", "1000", amount)

    def test_same_account(self, ledger_service):
        with pytest.raises(SameAccountError):
            ledger_service.post_manual_entry(DAY, None, "1000", "1000", 100)

    def test_unknown_account_rolls_back(self, ledger_service):
        with pytest.raises(AccountNotFoundError):
            ledger_service.post_manual_entry(DAY, None, "9999", "1000", 100)
        assert ledger_service.trial_balance().rows == ()

    def test_balance_date_range(self, ledger_service):
        ledger_service.post_manual_entry(date(2025, 1, 10), None, "5400", "1000", 1000)
        ledger_service.post_manual_entry(date(2025, 2, 10), None, "5400", "1000", 2000)

        assert ledger_service.account_balance("5400", end=date(2025, 1, 31)) == 1000
        assert ledger_service.account_balance("5400", start=date(2025, 2, 1)) == 2000

    def test_unknown_balance_account(self, ledger_service):
        with pytest.raises(AccountNotFoundError):
            ledger_service.account_balance("9999")


class TestTrialBalance:
    def test_balanced_after_mixed_activity(self, ledger_service, invoice_id):
        ledger_service.post_manual_entry(DAY, None, "5400", "2100", 4900)
        ledger_service.record_expense(DAY, "Office", 1500, paid_via="Checking")
        ledger_service.record_income(DAY, "Consulting", 20000)
        ledger_service.apply_invoice_payment(invoice_id, 6000, "evt_tb")

        tb = ledger_service.trial_balance()

        assert tb.is_balanced
        assert tb.total_debits == 4900 + 1500 + 20000 + 6000
        by_code = {row.account_code: row.balance for row in tb.rows}
        assert by_code["4000"] == 26000
        assert by_code["1000"] == 20000 + 6000 - 1500


class TestJournal:
    def test_journal_entries_filtered_by_source(self, ledger_service, invoice_id):
        manual_id = ledger_service.post_manual_entry(DAY, "Hosting", "5400", "1000", 4900)
        ledger_service.apply_invoice_payment(invoice_id, 6000, "evt_journal")

        everything = ledger_service.journal_entries()
        manual = ledger_service.journal_entries(source_type="manual")

        assert len(everything) == 2
        (entry,) = manual
        assert entry.entry_id == manual_id
        assert entry.memo == "Hosting"
        assert [(l.account_code, l.debit_cents, l.credit_cents) for l in entry.lines] == [
            ("5400", 4900, 0),
            ("1000", 0, 4900),
        ]
        assert ledger_service.journal_entries(end=DAY - timedelta(days=1)) == []


class TestPayments:
    def test_admin_payment_then_redelivery(self, ledger_service, invoice_id):
        first = ledger_service.apply_invoice_payment(invoice_id, 4000, "chk-1")
        again = ledger_service.apply_invoice_payment(invoice_id, 4000, "chk-1")

        assert first.status == InvoiceStatus.PARTIAL.value
        assert again.duplicate_event is True
        assert ledger_service.account_balance("4000") == 4000

    def test_source_metadata_category(self, ledger_service, invoice_id, service_session_factory):
        result = ledger_service.apply_invoice_payment(
            invoice_id, 10000, "chk-2", {"category": "Retainer", "unknown": "ignored"}
        )

        with service_session_factory() as session:
            income = session.get(IncomeRecord, result.income_record_id)
            assert income.category == "Retainer"

    def test_payment_income_cannot_be_deleted(self, ledger_service, invoice_id):
        paid = ledger_service.apply_invoice_payment(invoice_id, 4000, "chk-locked")

        with pytest.raises(PaymentIncomeLockedError):
            ledger_service.delete_income(paid.income_record_id)

        replay = ledger_service.apply_invoice_payment(invoice_id, 4000, "chk-locked")
        assert replay.duplicate_event is True
        assert ledger_service.account_balance("4000") == 4000

    def test_missing_invoice(self, ledger_service):
        with pytest.raises(InvoiceNotFoundError):
            ledger_service.apply_invoice_payment(404, 100, "chk-3")

    def test_checkout_webhook(self, ledger_service, invoice_id, service_session_factory):
        result = ledger_service.apply_checkout_webhook(_checkout_payload(invoice_id, 10000))
        replay = ledger_service.apply_checkout_webhook(_checkout_payload(invoice_id, 10000))

        assert result.status == InvoiceStatus.PAID.value
        assert replay.duplicate_event is True
        with service_session_factory() as session:
            invoice = session.get(Invoice, invoice_id)
            assert invoice.gateway_payment_status == "paid"
            assert invoice.gateway_checkout_session_id == "cs_test_1"

    def test_malformed_webhook_rejected(self, ledger_service):
        payload = _checkout_payload(1, 100)
        payload["type"] = "invoice.created"
        with pytest.raises(InvalidPaymentEventError):
            ledger_service.apply_checkout_webhook(payload)


class TestFactsAndClose:
    def test_record_and_close(self, ledger_service):
        ledger_service.record_income(date(2025, 3, 1), "Consulting", 50000)
        ledger_service.record_expense(date(2025, 4, 1), "Office", 20000, paid_via="Stripe")

        preview = ledger_service.close_fiscal_year(2025)
        applied = ledger_service.close_fiscal_year(2025, apply=True)

        assert preview.net_cents == applied.net_cents == 30000
        assert ledger_service.account_balance("3000") == 30000
        assert ledger_service.account_balance("3900") == 0

    def test_rebuild_is_clean(self, ledger_service):
        ledger_service.record_expense(DAY, "Office", 1500)
        ledger_service.record_owner_transfer(DAY, "personal_to_business", 10000)

        summary = ledger_service.rebuild_all()

        assert summary.is_clean
        assert summary.entries_posted == 2
        assert ledger_service.account_balance("3100") == 11500

    def test_delete_fact(self, ledger_service):
        recorded = ledger_service.record_income(DAY, "Consulting", 5000)
        assert ledger_service.delete_income(recorded.fact_id) == 1
        assert ledger_service.account_balance("4000") == 0

    def test_backfill(self, ledger_service):
        ledger_service.record_income(DAY, "Owner funded", 5000)
        assert len(ledger_service.backfill_owner_funded()) == 1
        assert ledger_service.account_balance("3100") == 5000

    def test_correlation_id_bound_per_call(self, ledger_service, captured_logs):
        ledger_service.post_manual_entry(DAY, None, "5400", "1000", 100)
        ledger_service.post_manual_entry(DAY, None, "5400", "1000", 200)

        posted = [r for r in captured_logs() if r["message"] == "journal_entry_posted"]
        assert len(posted) == 2
        assert posted[0]["correlation_id"] != posted[1]["correlation_id"]
