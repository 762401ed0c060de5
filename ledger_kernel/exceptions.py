"""
Typed Exception Hierarchy for the Ledger Kernel.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from LedgerKernelError:

    LedgerKernelError (base)
    |
    +-- PreconditionError
    |   +-- LedgerNotProvisionedError
    |   +-- AccountNotFoundError
    |   +-- AccountInactiveError
    |   +-- FactNotFoundError
    |   +-- PaymentIncomeLockedError
    |
    +-- LedgerValidationError
    |   +-- UnbalancedEntryError
    |   +-- InvalidLineError
    |   +-- InvalidAmountError
    |   +-- SameAccountError
    |   +-- MissingIdempotencyKeyError
    |   +-- UnknownTransferTypeError
    |   +-- InvalidPaymentEventError
    |   +-- InvalidFactError
    |
    +-- InvoiceError
        +-- InvoiceNotFoundError
        +-- InvoiceVoidError
        +-- InvoiceAlreadyPaidError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Precondition    | LEDGER_NOT_PROVISIONED      | Ledger tables missing (migration not run)
                | ACCOUNT_NOT_FOUND           | Account code doesn't exist
                | ACCOUNT_INACTIVE            | Account is deactivated
                | FACT_NOT_FOUND              | Expense, income or transfer ID doesn't exist
                | PAYMENT_INCOME_LOCKED       | Edit/delete of income posted by a payment
----------------|-----------------------------|-----------------------------------------
Validation      | UNBALANCED_ENTRY            | Debits != Credits
                | INVALID_LINE                | Line has both/neither side or negative amount
                | INVALID_AMOUNT              | Amount is zero or negative
                | SAME_ACCOUNT                | Manual entry debits and credits one account
                | MISSING_IDEMPOTENCY_KEY     | Payment without an external event id
                | UNKNOWN_TRANSFER_TYPE       | Owner transfer type not mapped
                | INVALID_PAYMENT_EVENT       | Webhook payload unusable
                | INVALID_FACT                | Expense/income/transfer field unusable
----------------|-----------------------------|-----------------------------------------
Invoice         | INVOICE_NOT_FOUND           | Invoice ID doesn't exist
                | INVOICE_VOID                | Payment against a void invoice
                | INVOICE_ALREADY_PAID        | Nothing left to apply

===============================================================================
HANDLING PATTERNS
===============================================================================

Precondition errors are fatal to the calling request and are not retried.
Validation errors are raised before any write and map to a 4xx response.
A duplicate payment event is NOT an error; the payment poster returns a
successful result with ``duplicate_event=True``.

    try:
        result = ledger.apply_invoice_payment(invoice_id, 5000, event_id)
    except InvoiceAlreadyPaidError as e:
        return {"error": e.code, "invoice_id": e.invoice_id}
"""


class LedgerKernelError(Exception):
    """
    Base exception for all ledger kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "LEDGER_KERNEL_ERROR"


# Precondition exceptions


class PreconditionError(LedgerKernelError):
    """Base exception for deployment/reference-data preconditions."""

    code: str = "PRECONDITION_ERROR"


class LedgerNotProvisionedError(PreconditionError):
    """Ledger tables are missing; the schema migration has not been applied."""

    code: str = "LEDGER_NOT_PROVISIONED"

    def __init__(self, missing_tables: tuple[str, ...]):
        self.missing_tables = missing_tables
        super().__init__(
            f"Ledger not provisioned: missing tables {', '.join(missing_tables)}"
        )


class AccountNotFoundError(PreconditionError):
    """Account with given code was not found."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_code: str):
        self.account_code = account_code
        super().__init__(f"Account not found: {account_code}")


class AccountInactiveError(PreconditionError):
    """Account is inactive and cannot be posted to."""

    code: str = "ACCOUNT_INACTIVE"

    def __init__(self, account_code: str):
        self.account_code = account_code
        super().__init__(f"Account {account_code} is inactive")



class FactNotFoundError(PreconditionError):
    """An expense, income record or owner transfer was not found."""

    code: str = "FACT_NOT_FOUND"

    def __init__(self, fact_type: str, fact_id: int):
        self.fact_type = fact_type
        self.fact_id = fact_id
        super().__init__(f"{fact_type} not found: {fact_id}")


class PaymentIncomeLockedError(PreconditionError):
    """
    Income created by an invoice payment cannot be edited or deleted.

    Its idempotency key is the only record that the payment event was
    applied, and the invoice totals were computed from its amount.
    """

    code: str = "PAYMENT_INCOME_LOCKED"

    def __init__(self, income_id: int, idempotency_key: str):
        self.income_id = income_id
        self.idempotency_key = idempotency_key
        super().__init__(
            f"Income {income_id} was posted by payment event {idempotency_key} "
            "and cannot be changed"
        )


# Validation exceptions


class LedgerValidationError(LedgerKernelError):
    """Base exception for input rejected before any write."""

    code: str = "VALIDATION_ERROR"


class UnbalancedEntryError(LedgerValidationError):
    """Journal entry debits do not equal credits."""

    code: str = "UNBALANCED_ENTRY"

    def __init__(self, debits: int, credits: int):
        self.debits = debits
        self.credits = credits
        super().__init__(f"Unbalanced entry: debits={debits}, credits={credits}")


class InvalidLineError(LedgerValidationError):
    """A journal line is malformed."""

    code: str = "INVALID_LINE"

    def __init__(self, line_seq: int, reason: str):
        self.line_seq = line_seq
        self.reason = reason
        super().__init__(f"Invalid journal line {line_seq}: {reason}")


class InvalidAmountError(LedgerValidationError):
    """Amount must be a positive number of cents."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount_cents: int, context: str):
        self.amount_cents = amount_cents
        self.context = context
        super().__init__(
            f"Invalid amount for {context}: {amount_cents} (must be > 0)"
        )


class SameAccountError(LedgerValidationError):
    """A manual entry cannot debit and credit the same account."""

    code: str = "SAME_ACCOUNT"

    def __init__(self, account_code: str):
        self.account_code = account_code
        super().__init__(
            f"Debit and credit account must differ (both {account_code})"
        )


class MissingIdempotencyKeyError(LedgerValidationError):
    """A payment was submitted without an external event id."""

    code: str = "MISSING_IDEMPOTENCY_KEY"

    def __init__(self, invoice_id: int):
        self.invoice_id = invoice_id
        super().__init__(
            f"Payment for invoice {invoice_id} is missing an external event id"
        )


class UnknownTransferTypeError(LedgerValidationError):
    """Owner transfer type has no mapping."""

    code: str = "UNKNOWN_TRANSFER_TYPE"

    def __init__(self, transfer_type: str):
        self.transfer_type = transfer_type
        super().__init__(f"Unknown owner transfer type: {transfer_type}")


class InvalidPaymentEventError(LedgerValidationError):
    """A payment gateway event could not be turned into a payment."""

    code: str = "INVALID_PAYMENT_EVENT"

    def __init__(self, event_id: str | None, reason: str):
        self.event_id = event_id
        self.reason = reason
        super().__init__(f"Invalid payment event {event_id}: {reason}")



class InvalidFactError(LedgerValidationError):
    """A business fact carries an unusable field value."""

    code: str = "INVALID_FACT"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


# Invoice exceptions


class InvoiceError(LedgerKernelError):
    """Base exception for invoice payment errors."""

    code: str = "INVOICE_ERROR"


class InvoiceNotFoundError(InvoiceError):
    """Invoice with given ID was not found."""

    code: str = "INVOICE_NOT_FOUND"

    def __init__(self, invoice_id: int):
        self.invoice_id = invoice_id
        super().__init__(f"Invoice not found: {invoice_id}")


class InvoiceVoidError(InvoiceError):
    """Payments cannot be applied to a void invoice."""

    code: str = "INVOICE_VOID"

    def __init__(self, invoice_id: int):
        self.invoice_id = invoice_id
        super().__init__(f"Invoice {invoice_id} is void")


class InvoiceAlreadyPaidError(InvoiceError):
    """Invoice has no remaining balance to apply a payment to."""

    code: str = "INVOICE_ALREADY_PAID"

    def __init__(self, invoice_id: int, total_cents: int, amount_paid_cents: int):
        self.invoice_id = invoice_id
        self.total_cents = total_cents
        self.amount_paid_cents = amount_paid_cents
        super().__init__(
            f"Invoice {invoice_id} is already fully paid "
            f"(total={total_cents}, paid={amount_paid_cents})"
        )
