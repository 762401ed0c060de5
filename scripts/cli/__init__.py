"""
Ledger admin CLI -- provisioning, manual entries, payments, year-end close
and maintenance commands over ``LedgerService``.

Entry point: python -m scripts.cli <command>
"""
