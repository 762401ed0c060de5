"""
Admin command line for the ledger.

examples:
  python -m scripts.cli init-db
  python -m scripts.cli manual-entry --date 2025-03-01 --debit 5400 --credit 1000 \\
      --amount-cents 4900 --memo "Hosting"
  python -m scripts.cli record-payment --invoice-id 7 --amount-cents 25000 --event-id chk-1042
  python -m scripts.cli close-year 2025 --apply
  python -m scripts.cli trial-balance --json
  python -m scripts.cli journal --source-type year_close
"""

import argparse
import dataclasses
import sys
from datetime import date

from ledger_config import get_active_config
from ledger_kernel.db.engine import get_session_factory, init_engine_from_url, reset_engine
from ledger_kernel.domain.clock import SystemClock
from ledger_kernel.exceptions import LedgerKernelError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.services.ledger_service import LedgerService
from scripts.cli.util import fmt_amount, setup_logging, to_json
from scripts.cli.views import (
    show_journal,
    show_payment,
    show_rebuild,
    show_trial_balance,
    show_year_close,
)

logger = get_logger("cli")


def _iso_date(value: str) -> date:
    return date.fromisoformat(value)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ledger",
        description="Administer the small-business ledger.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--config", default=None,
        help="Path to a configuration YAML (default: packaged sets/default.yaml).",
    )
    parser.add_argument(
        "--db-url", default=None,
        help="Database URL (default: LEDGER_DATABASE_URL or the config's database.url).",
    )
    parser.add_argument(
        "--json", action="store_true",
        help="Print results as JSON instead of formatted text.",
    )
    parser.add_argument(
        "--log-level", default=None,
        help="Log level for the structured log on stderr (default: from config).",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create the ledger tables and seed the chart of accounts.")

    p = sub.add_parser("manual-entry", help="Post a two-line manual journal entry.")
    p.add_argument("--date", type=_iso_date, required=True, help="Entry date (YYYY-MM-DD).")
    p.add_argument("--debit", required=True, help="Debit account code.")
    p.add_argument("--credit", required=True, help="Credit account code.")
    p.add_argument("--amount-cents", type=int, required=True)
    p.add_argument("--memo", default=None)

    p = sub.add_parser("record-payment", help="Apply a payment to an invoice (idempotent).")
    p.add_argument("--invoice-id", type=int, required=True)
    p.add_argument("--amount-cents", type=int, required=True)
    p.add_argument(
        "--event-id", required=True,
        help="External event id; re-using it makes the command a no-op.",
    )
    p.add_argument("--category", default=None)
    p.add_argument("--notes", default=None)

    p = sub.add_parser("close-year", help="Preview or apply the year-end close.")
    p.add_argument("year", type=int)
    p.add_argument("--apply", action="store_true", help="Post the closing entries.")

    sub.add_parser("rebuild", help="Regenerate every auto-journal entry from its fact.")

    p = sub.add_parser("trial-balance", help="Print per-account totals.")
    p.add_argument("--start", type=_iso_date, default=None)
    p.add_argument("--end", type=_iso_date, default=None)

    p = sub.add_parser("journal", help="List posted journal entries with their lines.")
    p.add_argument("--start", type=_iso_date, default=None)
    p.add_argument("--end", type=_iso_date, default=None)
    p.add_argument(
        "--source-type", default=None,
        help="Only entries from this source (e.g. manual, tax_income, year_close).",
    )

    sub.add_parser(
        "backfill-owner-funded",
        help="Flag legacy owner-funded income rows and re-project them.",
    )
    return parser


def run(args: argparse.Namespace, ledger: LedgerService) -> int:
    if args.command == "init-db":
        seeded = ledger.provision()
        if args.json:
            print(to_json({"accounts_seeded": seeded}))
        else:
            print(f"  Ledger provisioned ({seeded} accounts seeded).")
        return 0

    if args.command == "manual-entry":
        entry_id = ledger.post_manual_entry(
            args.date, args.memo, args.debit, args.credit, args.amount_cents
        )
        if args.json:
            print(to_json({"entry_id": entry_id}))
        else:
            print(
                f"  Posted entry #{entry_id}: Dr {args.debit} / Cr {args.credit} "
                f"{fmt_amount(args.amount_cents)}"
            )
        return 0

    if args.command == "record-payment":
        metadata = {"category": args.category, "notes": args.notes}
        result = ledger.apply_invoice_payment(
            args.invoice_id, args.amount_cents, args.event_id, metadata
        )
        if args.json:
            print(to_json(result.to_dict()))
        else:
            show_payment(result)
        return 0

    if args.command == "close-year":
        result = ledger.close_fiscal_year(args.year, apply=args.apply)
        if args.json:
            print(to_json(result))
        else:
            show_year_close(result)
        return 0

    if args.command == "rebuild":
        summary = ledger.rebuild_all()
        if args.json:
            print(to_json(summary))
        else:
            show_rebuild(summary)
        return 0 if summary.is_clean else 1

    if args.command == "trial-balance":
        tb = ledger.trial_balance(args.start, args.end)
        if args.json:
            print(to_json(tb))
        else:
            show_trial_balance(tb)
        return 0

    if args.command == "journal":
        entries = ledger.journal_entries(args.start, args.end, args.source_type)
        if args.json:
            print(to_json([dataclasses.asdict(entry) for entry in entries]))
        else:
            show_journal(entries)
        return 0

    if args.command == "backfill-owner-funded":
        flagged = ledger.backfill_owner_funded()
        if args.json:
            print(to_json({"flagged_income_ids": flagged}))
        else:
            print(f"  Flagged {len(flagged)} income record(s) as owner-funded.")
        return 0

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    config = get_active_config(args.config)
    setup_logging(args.log_level or config.logging.level)

    db = config.database
    try:
        init_engine_from_url(
            args.db_url or db.url,
            echo=db.echo,
            pool_size=db.pool_size,
            max_overflow=db.max_overflow,
        )
    except Exception as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 1

    ledger = LedgerService(
        get_session_factory(),
        chart=config.chart,
        policy=config.mapping,
        clock=SystemClock(),
    )
    try:
        return run(args, ledger)
    except LedgerKernelError as exc:
        logger.warning(
            "cli_command_failed",
            extra={"command": args.command, "error_code": exc.code},
        )
        print(f"  ERROR [{exc.code}]: {exc}", file=sys.stderr)
        return 2
    finally:
        reset_engine()
