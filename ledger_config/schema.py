"""
Ledger configuration schema.

The typed form of a configuration set: YAML fragments are parsed into these
frozen dataclasses by the loader.  The chart rows and the mapping policy are
the kernel's own value types (``AccountSpec``, ``MappingPolicy``), so the
kernel never needs to import this package.
"""

from dataclasses import dataclass, field

from ledger_kernel.domain.chart import AccountSpec
from ledger_kernel.domain.journal_rules import DEFAULT_POLICY, MappingPolicy

# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection settings handed to ``init_engine_from_url``."""

    url: str = "sqlite:///ledger.db"
    echo: bool = False
    pool_size: int = 10
    max_overflow: int = 5


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


# ---------------------------------------------------------------------------
# Configuration set
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LedgerConfig:
    """
    A complete, validated configuration set.

    ``checksum`` is the SHA-256 of the canonical source document and
    identifies the exact configuration a process ran with.
    """

    config_id: str
    version: int
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    chart: tuple[AccountSpec, ...] = ()
    mapping: MappingPolicy = DEFAULT_POLICY
    checksum: str = ""

    def account(self, code: str) -> AccountSpec | None:
        for spec in self.chart:
            if spec.code == code:
                return spec
        return None
