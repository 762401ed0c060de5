"""
Ledger Kernel

A small-business double-entry ledger with:
- A fixed, seeded chart of accounts
- Balanced journal entries derived from business facts
- Idempotent invoice payment posting
- Regenerable auto-journals and year-end closing
"""

__version__ = "0.1.0"
