"""
Idempotency key generation utilities.

Idempotency keys ensure that the same payment event is applied to an invoice
and to the books at most once, however many times it is delivered.
"""

_PAYMENT_PREFIX = "invoice-payment"


def payment_event_key(invoice_id: int, external_event_id: str) -> str:
    """
    Generate the idempotency key for one invoice payment event.

    Format: invoice-payment:{invoice_id}:{external_event_id}

    The key is stored on the IncomeRecord created by the payment and has a
    unique constraint.

    Example:
        >>> payment_event_key(42, "evt_1NzX")
        'invoice-payment:42:evt_1NzX'
    """
    return f"{_PAYMENT_PREFIX}:{invoice_id}:{external_event_id}"


def parse_payment_event_key(key: str) -> tuple[int, str]:
    """
    Parse a payment idempotency key into (invoice_id, external_event_id).

    Raises:
        ValueError: If key format is invalid.
    """
    parts = key.split(":", 2)
    if len(parts) != 3 or parts[0] != _PAYMENT_PREFIX or not parts[2]:
        raise ValueError(f"Invalid payment idempotency key format: {key}")
    return int(parts[1]), parts[2]
