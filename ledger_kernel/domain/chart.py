"""
Chart of accounts reference data.

The chart itself is configuration (``ledger_config/sets/default.yaml``);
this module holds the value type it is parsed into and the account codes the
posting rules and the year-end close refer to by name.
"""

from dataclasses import dataclass

from ledger_kernel.models.account import AccountType, NormalSide

CASH_ON_HAND = "1000"
CREDIT_CARD_PAYABLE = "2100"
OWNER_EQUITY = "3000"
OWNER_CONTRIBUTIONS = "3100"
OWNER_DRAW = "3200"
INCOME_SUMMARY = "3900"
SERVICE_REVENUE = "4000"
OFFICE_EXPENSE = "5200"
PAYMENT_PROCESSING_FEES = "5300"


@dataclass(frozen=True)
class AccountSpec:
    """One row of the chart of accounts."""

    code: str
    name: str
    account_type: AccountType
    normal_side: NormalSide

    def __post_init__(self) -> None:
        if not self.code:
            raise ValueError("Account code must not be empty")
        # Coerce plain strings from YAML into the enums
        object.__setattr__(self, "account_type", AccountType(self.account_type))
        object.__setattr__(self, "normal_side", NormalSide(self.normal_side))


# Created by the first year-end close, not seeded with the chart
INCOME_SUMMARY_SPEC = AccountSpec(
    code=INCOME_SUMMARY,
    name="Income Summary",
    account_type=AccountType.EQUITY,
    normal_side=NormalSide.CREDIT,
)
