"""
ledger_config -- single public entrypoint for ledger configuration.

Responsibility:
    Provides the only way to obtain configuration at runtime through
    ``get_active_config()``: the chart of accounts, the account-mapping
    policy, and database/logging settings.

Architecture position:
    Configuration.  This package sits above ``ledger_kernel`` and parses
    into the kernel's own value types; the kernel never imports from
    ``ledger_config``.

Invariants enforced:
    - Single entrypoint: all runtime config flows through
      ``get_active_config()``, including the one environment override
      (``LEDGER_DATABASE_URL``).
    - Every returned config has passed chart and mapping validation.

Failure modes:
    - ``FileNotFoundError`` -- the requested configuration file is missing.
    - ``KeyError`` / ``ValueError`` -- schema or consistency failures.
"""

import dataclasses
import logging
import os
from pathlib import Path

from ledger_config.loader import load_config
from ledger_config.schema import DatabaseConfig, LedgerConfig, LoggingConfig

_logger = logging.getLogger("ledger_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"

DATABASE_URL_ENV = "LEDGER_DATABASE_URL"


def get_active_config(config_path: Path | str | None = None) -> LedgerConfig:
    """
    The public configuration entrypoint.

    Args:
        config_path: Override path to a configuration YAML file.  Defaults
            to the packaged ``sets/default.yaml``.

    Returns:
        A frozen ``LedgerConfig``.  When ``LEDGER_DATABASE_URL`` is set it
        replaces ``database.url``.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    config = load_config(path)

    env_url = os.environ.get(DATABASE_URL_ENV)
    if env_url:
        config = dataclasses.replace(
            config, database=dataclasses.replace(config.database, url=env_url)
        )

    _logger.info(
        "ledger_config_loaded",
        extra={
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "account_count": len(config.chart),
            "database_url_from_env": bool(env_url),
        },
    )
    return config


__all__ = [
    "DATABASE_URL_ENV",
    "DEFAULT_CONFIG_PATH",
    "DatabaseConfig",
    "LedgerConfig",
    "LoggingConfig",
    "get_active_config",
]
