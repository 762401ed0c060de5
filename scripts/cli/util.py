"""CLI utilities: amount formatting, JSON output, logging setup."""

import dataclasses
import json
from decimal import Decimal
from typing import Any

from ledger_kernel.logging_config import configure_logging


def fmt_amount(cents: int) -> str:
    """Format integer cents for display (e.g. $1,234.56, -$12.00)."""
    d = Decimal(cents) / 100
    sign = "-" if d < 0 else ""
    return f"{sign}${abs(d):,.2f}"


def to_json(value: Any) -> str:
    """Serialize a result DTO (or list of them) for --json output."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        value = dataclasses.asdict(value)
    return json.dumps(value, indent=2, sort_keys=True, default=str)


def setup_logging(level_name: str) -> None:
    """JSON logs on stderr at the named level."""
    configure_logging(level=level_name)
