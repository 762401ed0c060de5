"""
Data Transfer Objects for the ledger kernel.

Immutable value objects passed between the pure posting rules, the services
and the outer layers (HTTP handlers, webhook handler, CLI).  None of them
hold a database session or ORM instance.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any


class LineSide(str, Enum):
    """Side of a journal line."""

    DEBIT = "debit"
    CREDIT = "credit"

    def opposite(self) -> "LineSide":
        return LineSide.CREDIT if self is LineSide.DEBIT else LineSide.DEBIT


@dataclass(frozen=True)
class LineSpec:
    """
    Specification for a journal line, by account code.

    Guarantees:
        - amount_cents is positive; side carries the direction.
    """

    account_code: str
    side: LineSide
    amount_cents: int

    def __post_init__(self) -> None:
        if self.amount_cents <= 0:
            raise ValueError(
                f"Line amount must be positive, got {self.amount_cents}"
            )

    @classmethod
    def debit(cls, account_code: str, amount_cents: int) -> "LineSpec":
        return cls(account_code, LineSide.DEBIT, amount_cents)

    @classmethod
    def credit(cls, account_code: str, amount_cents: int) -> "LineSpec":
        return cls(account_code, LineSide.CREDIT, amount_cents)

    @classmethod
    def signed(cls, account_code: str, side: LineSide, amount_cents: int) -> "LineSpec":
        """Build a line, flipping to the opposite side when the amount is negative."""
        if amount_cents < 0:
            return cls(account_code, side.opposite(), -amount_cents)
        return cls(account_code, side, amount_cents)

    @property
    def debit_cents(self) -> int:
        return self.amount_cents if self.side == LineSide.DEBIT else 0

    @property
    def credit_cents(self) -> int:
        return self.amount_cents if self.side == LineSide.CREDIT else 0


@dataclass(frozen=True)
class JournalDraft:
    """A balanced entry derived from a fact, not yet persisted."""

    entry_date: date
    memo: str
    source_type: str
    source_id: int | None
    lines: tuple[LineSpec, ...]

    @property
    def total_debits(self) -> int:
        return sum(line.debit_cents for line in self.lines)

    @property
    def total_credits(self) -> int:
        return sum(line.credit_cents for line in self.lines)

    @property
    def is_balanced(self) -> bool:
        return self.total_debits == self.total_credits


@dataclass(frozen=True)
class PaymentEvent:
    """
    One payment notification: ``{invoice_id, amount_cents, external_event_id}``
    plus optional context.

    Produced by an admin "record payment" action or parsed from a payment
    gateway webhook; both feed the same poster.
    """

    invoice_id: int
    amount_cents: int
    external_event_id: str
    occurred_at: datetime | None = None
    source: str = "admin"
    category: str | None = None
    notes: str | None = None
    external_reference: str | None = None

    @property
    def is_gateway(self) -> bool:
        return self.source != "admin"


@dataclass(frozen=True)
class PaymentResult:
    """Outcome of applying (or re-applying) a payment to an invoice."""

    invoice_id: int
    amount_paid_cents: int
    balance_due_cents: int
    status: str
    duplicate_event: bool
    amount_applied_cents: int = 0
    income_record_id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "invoiceId": self.invoice_id,
            "amountPaidCents": self.amount_paid_cents,
            "balanceDueCents": self.balance_due_cents,
            "status": self.status,
            "duplicateEvent": self.duplicate_event,
            "amountAppliedCents": self.amount_applied_cents,
        }


@dataclass(frozen=True)
class ClosingStep:
    """One planned or posted closing entry."""

    name: str
    description: str
    amount_cents: int
    lines: tuple[LineSpec, ...] = ()
    entry_id: int | None = None


@dataclass(frozen=True)
class YearCloseResult:
    """Outcome of a year-end close preview or apply."""

    year: int
    income_total_cents: int
    expense_total_cents: int
    net_cents: int
    steps: tuple[ClosingStep, ...]
    applied: bool


@dataclass(frozen=True)
class ProjectionFailure:
    """A fact whose journal projection could not be posted."""

    source_type: str
    source_id: int
    error_code: str
    message: str


@dataclass(frozen=True)
class RebuildSummary:
    """Outcome of regenerating every auto-journal."""

    facts_processed: int
    entries_posted: int
    facts_skipped: int
    failures: tuple[ProjectionFailure, ...] = field(default_factory=tuple)

    @property
    def is_clean(self) -> bool:
        return not self.failures


@dataclass(frozen=True)
class RecordedFact:
    """A persisted fact and the fate of its journal projection."""

    source_type: str
    fact_id: int
    projection_failure: ProjectionFailure | None = None

    @property
    def projected(self) -> bool:
        return self.projection_failure is None
