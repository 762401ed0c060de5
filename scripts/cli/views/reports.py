"""CLI views: trial balance, journal, year-end close, payment and rebuild results."""

from ledger_kernel.domain.dtos import PaymentResult, RebuildSummary, YearCloseResult
from ledger_kernel.selectors.journal_selector import JournalEntryView
from ledger_kernel.selectors.ledger_selector import TrialBalance
from scripts.cli.util import fmt_amount

W = 72


def show_trial_balance(tb: TrialBalance) -> None:
    print()
    print("=" * W)
    print("  TRIAL BALANCE".center(W))
    print("=" * W)
    print(f"  {'Account':<36} {'Debit':>15} {'Credit':>15}")
    print(f"  {'-' * 36} {'-' * 15} {'-' * 15}")
    for row in tb.rows:
        name = f"{row.account_code}  {row.account_name}"
        if len(name) > 36:
            name = name[:33] + "..."
        balance = row.balance
        # Show the balance on the account's normal side, flipped when negative
        debit_normal = row.normal_side == "debit"
        on_debit = (balance >= 0) == debit_normal
        amount = fmt_amount(abs(balance))
        if on_debit:
            print(f"  {name:<36} {amount:>15} {'':>15}")
        else:
            print(f"  {name:<36} {'':>15} {amount:>15}")
    print(f"  {'-' * 36} {'-' * 15} {'-' * 15}")
    print(
        f"  {'Totals':<36} {fmt_amount(tb.total_debits):>15} "
        f"{fmt_amount(tb.total_credits):>15}"
    )
    status = "BALANCED" if tb.is_balanced else "OUT OF BALANCE"
    print(f"\n  {status}\n")


def show_year_close(result: YearCloseResult) -> None:
    mode = "APPLIED" if result.applied else "PREVIEW"
    print()
    print("=" * W)
    print(f"  YEAR-END CLOSE {result.year} ({mode})".center(W))
    print("=" * W)
    print(f"  Income total:   {fmt_amount(result.income_total_cents):>15}")
    print(f"  Expense total:  {fmt_amount(result.expense_total_cents):>15}")
    print(f"  Net:            {fmt_amount(result.net_cents):>15}")
    print()
    for step in result.steps:
        posted = f"entry #{step.entry_id}" if step.entry_id is not None else "-"
        print(f"  {step.name:<22} {fmt_amount(step.amount_cents):>15}  {posted}")
        for line in step.lines:
            side = "Dr" if line.side == "debit" else "Cr"
            print(f"      {side} {line.account_code:<8} {fmt_amount(line.amount_cents):>15}")
    print()


def show_payment(result: PaymentResult) -> None:
    if result.duplicate_event:
        print("\n  Duplicate event: payment already applied, nothing changed.")
    else:
        print(f"\n  Applied {fmt_amount(result.amount_applied_cents)}.")
    print(f"  Invoice {result.invoice_id}: {result.status}")
    print(f"  Paid:        {fmt_amount(result.amount_paid_cents):>15}")
    print(f"  Balance due: {fmt_amount(result.balance_due_cents):>15}\n")


def show_rebuild(summary: RebuildSummary) -> None:
    print(
        f"\n  Rebuilt {summary.facts_processed} facts: "
        f"{summary.entries_posted} entries posted, {summary.facts_skipped} skipped."
    )
    for failure in summary.failures:
        print(
            f"    FAIL: {failure.source_type} #{failure.source_id} "
            f"[{failure.error_code}] {failure.message}"
        )
    print()


def show_journal(entries: list[JournalEntryView]) -> None:
    print()
    print("=" * W)
    print("  JOURNAL".center(W))
    print("=" * W)
    if not entries:
        print("  (no entries)\n")
        return
    for entry in entries:
        source = entry.source_type
        if entry.source_id is not None:
            source = f"{source} #{entry.source_id}"
        print(f"  #{entry.entry_id:<6} {entry.entry_date}  {entry.memo or '':<30} [{source}]")
        for line in entry.lines:
            if line.debit_cents:
                print(f"      Dr {line.account_code:<8} {fmt_amount(line.debit_cents):>15}")
            else:
                credit = fmt_amount(line.credit_cents)
                print(f"      Cr {line.account_code:<8} {'':>15} {credit:>15}")
    print(f"\n  {len(entries)} entr{'y' if len(entries) == 1 else 'ies'}.\n")
