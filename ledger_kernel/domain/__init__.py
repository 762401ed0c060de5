"""Pure domain layer: value objects, posting rules and event parsing (no I/O)."""
