"""
Configuration Loader (``ledger_config.loader``).

Responsibility
--------------
Loads a YAML configuration set and parses it into the typed
``ledger_config.schema`` dataclasses.  Runtime callers go through
``ledger_config.get_active_config()``; the parse functions are public for
tests and tooling.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; required fields have no silent defaults.
* Account codes are unique within the chart, and every account the mapping
  policy posts to is either in the chart or created lazily by the year-end
  close (Income Summary).
* ``compute_checksum`` produces a deterministic SHA-256 hash of the source.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Duplicate or unknown account codes  -> ``ValueError``.
"""

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import DatabaseConfig, LedgerConfig, LoggingConfig
from ledger_kernel.domain.chart import INCOME_SUMMARY, AccountSpec
from ledger_kernel.domain.journal_rules import DEFAULT_POLICY, KeywordRule, MappingPolicy


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    defaults = DatabaseConfig()
    return DatabaseConfig(
        url=data.get("url", defaults.url),
        echo=bool(data.get("echo", defaults.echo)),
        pool_size=int(data.get("pool_size", defaults.pool_size)),
        max_overflow=int(data.get("max_overflow", defaults.max_overflow)),
    )


def parse_logging(data: dict[str, Any]) -> LoggingConfig:
    return LoggingConfig(level=str(data.get("level", "INFO")).upper())


def parse_account(data: dict[str, Any]) -> AccountSpec:
    """
    Parse one chart row.

    Raises:
        KeyError: if code, name, type or normal_side is missing.
        ValueError: if type or normal_side is not a known value.
    """
    return AccountSpec(
        code=str(data["code"]),
        name=data["name"],
        account_type=data["type"],
        normal_side=data["normal_side"],
    )


def parse_chart(rows: list[dict[str, Any]]) -> tuple[AccountSpec, ...]:
    chart = tuple(parse_account(row) for row in rows)
    seen: set[str] = set()
    for spec in chart:
        if spec.code in seen:
            raise ValueError(f"Duplicate account code in chart: {spec.code}")
        seen.add(spec.code)
    return chart


def parse_keyword_rule(data: dict[str, Any]) -> KeywordRule:
    keywords = tuple(str(k).lower() for k in data["keywords"])
    if not keywords:
        raise ValueError(f"Keyword rule for {data['account_code']} has no keywords")
    return KeywordRule(keywords=keywords, account_code=str(data["account_code"]))


def parse_mapping_policy(data: dict[str, Any]) -> MappingPolicy:
    """
    Parse the account-mapping policy.

    Keys left out of ``data`` keep the built-in defaults.
    """
    d = DEFAULT_POLICY
    expense = data.get("expense", {})
    income = data.get("income", {})

    categories = expense.get("categories")
    expense_category_accounts = (
        {str(k).strip().lower(): str(v) for k, v in categories.items()}
        if categories is not None
        else dict(d.expense_category_accounts)
    )

    rules = expense.get("paid_via_rules")
    paid_via_rules = (
        tuple(parse_keyword_rule(rule) for rule in rules)
        if rules is not None
        else d.paid_via_rules
    )

    transfers = data.get("owner_transfers")
    owner_transfer_accounts = (
        {
            str(transfer_type): (str(legs["debit"]), str(legs["credit"]))
            for transfer_type, legs in transfers.items()
        }
        if transfers is not None
        else dict(d.owner_transfer_accounts)
    )

    markers = income.get("owner_funded_markers")

    return MappingPolicy(
        expense_category_accounts=expense_category_accounts,
        default_expense_account=str(expense.get("default_account", d.default_expense_account)),
        paid_via_rules=paid_via_rules,
        default_offset_account=str(
            expense.get("default_offset_account", d.default_offset_account)
        ),
        cash_account=str(income.get("cash_account", d.cash_account)),
        revenue_account=str(income.get("revenue_account", d.revenue_account)),
        owner_contribution_account=str(
            income.get("owner_contribution_account", d.owner_contribution_account)
        ),
        owner_transfer_accounts=owner_transfer_accounts,
        closing_equity_account=str(
            data.get("year_close", {}).get("equity_account", d.closing_equity_account)
        ),
        owner_funded_markers=(
            tuple(str(m).lower() for m in markers)
            if markers is not None
            else d.owner_funded_markers
        ),
    )


def mapped_account_codes(policy: MappingPolicy) -> set[str]:
    """Every account code the policy can post to."""
    codes = set(policy.expense_category_accounts.values())
    codes.update(rule.account_code for rule in policy.paid_via_rules)
    for debit, credit in policy.owner_transfer_accounts.values():
        codes.update((debit, credit))
    codes.update(
        (
            policy.default_expense_account,
            policy.default_offset_account,
            policy.cash_account,
            policy.revenue_account,
            policy.owner_contribution_account,
            policy.closing_equity_account,
        )
    )
    return codes


def validate_mapping_against_chart(
    chart: tuple[AccountSpec, ...], policy: MappingPolicy
) -> None:
    """
    Raises:
        ValueError: if the policy names an account the chart does not seed.
    """
    known = {spec.code for spec in chart} | {INCOME_SUMMARY}
    unknown = sorted(mapped_account_codes(policy) - known)
    if unknown:
        raise ValueError(
            f"Mapping policy refers to accounts missing from the chart: {', '.join(unknown)}"
        )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_config(data: dict[str, Any]) -> LedgerConfig:
    """
    Parse a whole configuration document.

    Raises:
        KeyError: if ``config_id`` or ``chart`` is missing.
        ValueError: if the chart or mapping policy is inconsistent.
    """
    chart = parse_chart(data["chart"])
    mapping = parse_mapping_policy(data.get("mapping", {}))
    validate_mapping_against_chart(chart, mapping)

    return LedgerConfig(
        config_id=data["config_id"],
        version=int(data.get("version", 1)),
        database=parse_database(data.get("database", {})),
        logging=parse_logging(data.get("logging", {})),
        chart=chart,
        mapping=mapping,
        checksum=compute_checksum(data),
    )


def load_config(path: Path) -> LedgerConfig:
    return parse_config(load_yaml_file(path))
