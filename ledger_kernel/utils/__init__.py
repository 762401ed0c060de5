"""Utility functions for the ledger kernel."""

from ledger_kernel.utils.idempotency import parse_payment_event_key, payment_event_key

__all__ = ["payment_event_key", "parse_payment_event_key"]
