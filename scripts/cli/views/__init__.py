"""CLI views: reports and operation results."""

from scripts.cli.views.reports import (
    show_journal,
    show_payment,
    show_rebuild,
    show_trial_balance,
    show_year_close,
)

__all__ = [
    "show_journal",
    "show_payment",
    "show_rebuild",
    "show_trial_balance",
    "show_year_close",
]
