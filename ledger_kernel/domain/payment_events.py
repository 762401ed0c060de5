"""
Payment gateway event parsing.

Turns a Stripe ``checkout.session.completed`` webhook event (already
signature-verified by the HTTP layer) into a ``PaymentEvent``.  The webhook's
own event id becomes the external event id, so a redelivered webhook maps to
the same idempotency key as the first delivery.
"""

from datetime import datetime, timezone
from typing import Any, Mapping

from ledger_kernel.domain.dtos import PaymentEvent
from ledger_kernel.exceptions import InvalidPaymentEventError

CHECKOUT_COMPLETED = "checkout.session.completed"
GATEWAY_SOURCE = "stripe_webhook"


def payment_event_from_checkout_session(payload: Mapping[str, Any]) -> PaymentEvent:
    """
    Build a PaymentEvent from a checkout-completed webhook payload.

    The invoice is identified by ``metadata.invoice_id`` (falling back to
    ``client_reference_id``); the amount is ``amount_total`` in cents.

    Raises:
        InvalidPaymentEventError: Wrong event type, unpaid session, or a
            missing/malformed id, invoice reference or amount.
    """
    event_id = payload.get("id")
    if not event_id:
        raise InvalidPaymentEventError(None, "missing event id")

    event_type = payload.get("type")
    if event_type != CHECKOUT_COMPLETED:
        raise InvalidPaymentEventError(event_id, f"unsupported event type {event_type!r}")

    session = (payload.get("data") or {}).get("object") or {}
    payment_status = session.get("payment_status")
    if payment_status not in (None, "paid"):
        raise InvalidPaymentEventError(
            event_id, f"checkout session not paid (payment_status={payment_status!r})"
        )

    metadata = session.get("metadata") or {}
    raw_invoice_id = metadata.get("invoice_id") or session.get("client_reference_id")
    try:
        invoice_id = int(raw_invoice_id)
    except (TypeError, ValueError):
        raise InvalidPaymentEventError(
            event_id, f"invalid invoice reference {raw_invoice_id!r}"
        ) from None

    amount = session.get("amount_total")
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise InvalidPaymentEventError(event_id, f"invalid amount_total {amount!r}")

    created = payload.get("created")
    occurred_at = (
        datetime.fromtimestamp(created, tz=timezone.utc)
        if isinstance(created, (int, float))
        else None
    )

    return PaymentEvent(
        invoice_id=invoice_id,
        amount_cents=amount,
        external_event_id=str(event_id),
        occurred_at=occurred_at,
        source=GATEWAY_SOURCE,
        notes=f"Stripe checkout {session.get('id')}" if session.get("id") else None,
        external_reference=session.get("id"),
    )
