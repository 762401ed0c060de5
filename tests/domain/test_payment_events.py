"""Tests for checkout webhook parsing and payment idempotency keys."""

from datetime import datetime, timezone

import pytest

from ledger_kernel.domain.payment_events import (
    CHECKOUT_COMPLETED,
    GATEWAY_SOURCE,
    payment_event_from_checkout_session,
)
from ledger_kernel.exceptions import InvalidPaymentEventError
from ledger_kernel.utils.idempotency import parse_payment_event_key, payment_event_key


def _payload(**session_overrides):
    session = {
        "id": "cs_test_abc",
        "amount_total": 12500,
        "payment_status": "paid",
        "metadata": {"invoice_id": "17"},
    }
    session.update(session_overrides)
    return {
        "id": "evt_123",
        "type": CHECKOUT_COMPLETED,
        "created": 1735689600,
        "data": {"object": session},
    }


class TestCheckoutSessionParsing:
    def test_parses_event(self):
        event = payment_event_from_checkout_session(_payload())

        assert event.invoice_id == 17
        assert event.amount_cents == 12500
        assert event.external_event_id == "evt_123"
        assert event.external_reference == "cs_test_abc"
        assert event.source == GATEWAY_SOURCE
        assert event.is_gateway
        assert event.occurred_at == datetime(2025, 1, 1, tzinfo=timezone.utc)

    def test_client_reference_fallback(self):
        event = payment_event_from_checkout_session(
            _payload(metadata={}, client_reference_id="21")
        )
        assert event.invoice_id == 21

    def test_missing_created_leaves_time_unset(self):
        payload = _payload()
        del payload["created"]
        assert payment_event_from_checkout_session(payload).occurred_at is None

    @pytest.mark.parametrize(
        "mutate",
        [
            lambda p: p.pop("id"),
            lambda p: p.update(type="checkout.session.expired"),
            lambda p: p["data"]["object"].update(payment_status="unpaid"),
            lambda p: p["data"]["object"].update(metadata={"invoice_id": "abc"}),
            lambda p: p["data"]["object"].update(metadata={}),
            lambda p: p["data"]["object"].update(amount_total="12500"),
            lambda p: p["data"]["object"].pop("amount_total"),
        ],
        ids=[
            "no-event-id",
            "wrong-type",
            "unpaid",
            "bad-invoice-id",
            "no-invoice-id",
            "string-amount",
            "no-amount",
        ],
    )
    def test_rejects_malformed(self, mutate):
        payload = _payload()
        mutate(payload)
        with pytest.raises(InvalidPaymentEventError):
            payment_event_from_checkout_session(payload)


class TestPaymentEventKey:
    def test_format(self):
        assert payment_event_key(42, "evt_1NzX") == "invoice-payment:42:evt_1NzX"

    def test_parse(self):
        assert parse_payment_event_key("invoice-payment:42:evt:with:colons") == (
            42,
            "evt:with:colons",
        )

    @pytest.mark.parametrize(
        "key", ["invoice-payment:42", "refund:42:evt", "invoice-payment:42:", ""]
    )
    def test_parse_rejects(self, key):
        with pytest.raises(ValueError):
            parse_payment_event_key(key)

    def test_distinct_per_invoice(self):
        assert payment_event_key(1, "evt") != payment_event_key(2, "evt")
