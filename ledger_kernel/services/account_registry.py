"""
AccountRegistry -- the chart of accounts.

Responsibility:
    Seeds the fixed chart once, looks accounts up by code, and creates the
    few accounts that appear only when a procedure first needs them (the
    Income Summary account used by the year-end close).

Invariants enforced:
    - Provisioning precondition: every ledger operation starts with
      ``require_provisioned()``, which fails fast with
      ``LedgerNotProvisionedError`` when the schema migration has not been
      applied.  Seeding is an explicit deployment step, not a per-request
      check.
    - Posting targets must exist and be active (``require_active``).

Failure modes:
    - LedgerNotProvisionedError, AccountNotFoundError, AccountInactiveError.
"""

from typing import Sequence

from sqlalchemy import func, inspect, select
from sqlalchemy.orm import Session

from ledger_kernel.domain.chart import AccountSpec
from ledger_kernel.exceptions import (
    AccountInactiveError,
    AccountNotFoundError,
    LedgerNotProvisionedError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models import LEDGER_TABLES
from ledger_kernel.models.account import Account
from ledger_kernel.services.base import BaseService

logger = get_logger("services.account_registry")


class AccountRegistry(BaseService):
    """Chart-of-accounts lookups and seeding."""

    def __init__(self, session: Session, chart: Sequence[AccountSpec] = ()):
        super().__init__(session)
        self._chart = tuple(chart)
        self._provisioned = False

    def require_provisioned(self) -> None:
        """
        Raise LedgerNotProvisionedError unless every ledger table exists.

        The positive result is remembered for the lifetime of this registry.
        """
        if self._provisioned:
            return
        existing = set(inspect(self.session.connection()).get_table_names())
        missing = tuple(name for name in LEDGER_TABLES if name not in existing)
        if missing:
            logger.error("ledger_not_provisioned", extra={"missing_tables": missing})
            raise LedgerNotProvisionedError(missing)
        self._provisioned = True

    def ensure_seeded(self) -> int:
        """
        Insert the fixed chart if the accounts table is empty.

        Returns:
            Number of accounts inserted (0 when already seeded).
        """
        self.require_provisioned()
        count = self.session.execute(select(func.count(Account.id))).scalar_one()
        if count:
            logger.debug("chart_already_seeded", extra={"account_count": count})
            return 0

        for spec in self._chart:
            self.session.add(self._new_account(spec))
        self.session.flush()

        logger.info("chart_seeded", extra={"account_count": len(self._chart)})
        return len(self._chart)

    def lookup_by_code(self, code: str) -> Account | None:
        return self.session.execute(
            select(Account).where(Account.code == code)
        ).scalar_one_or_none()

    def require_active(self, code: str) -> Account:
        """
        Get an account that may be posted to.

        Raises:
            AccountNotFoundError: If no account has this code.
            AccountInactiveError: If the account is deactivated.
        """
        account = self.lookup_by_code(code)
        if account is None:
            raise AccountNotFoundError(code)
        if not account.is_active:
            raise AccountInactiveError(code)
        return account

    def ensure_by_code(self, spec: AccountSpec) -> Account:
        """Get-or-create an account (self-healing for lazily introduced accounts)."""
        account = self.lookup_by_code(spec.code)
        if account is not None:
            return account

        account = self._new_account(spec)
        self.session.add(account)
        self.session.flush()
        logger.info(
            "account_created",
            extra={"account_code": spec.code, "account_name": spec.name},
        )
        return account

    def list_accounts(self) -> list[Account]:
        return list(
            self.session.execute(select(Account).order_by(Account.code)).scalars()
        )

    @staticmethod
    def _new_account(spec: AccountSpec) -> Account:
        return Account(
            code=spec.code,
            name=spec.name,
            account_type=spec.account_type.value,
            normal_side=spec.normal_side.value,
            is_system=True,
            is_active=True,
        )
