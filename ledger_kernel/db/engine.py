"""
Engine and session management for the ledger database.

One engine per process, installed by ``init_engine_from_url()`` (the CLI)
or built directly with ``build_engine()`` (tests and ``LedgerService``
callers that bring their own session factory).

PostgreSQL connections run at READ COMMITTED; the payment poster takes an
explicit ``FOR UPDATE`` lock on the invoice row. SQLite connections have
foreign keys enabled and let SQLAlchemy emit BEGIN itself, which pysqlite
otherwise defers and which SAVEPOINT depends on.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Connection, Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from ledger_kernel.logging_config import get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None

_NOT_INITIALIZED = "Ledger engine not initialized; call init_engine_from_url() first."


def _on_sqlite_connect(dbapi_connection, connection_record) -> None:
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _on_sqlite_begin(conn) -> None:
    conn.exec_driver_sql("BEGIN")


def build_engine(
    database_url: str,
    echo: bool = False,
    pool_size: int = 10,
    max_overflow: int = 5,
    pool_pre_ping: bool = True,
) -> Engine:
    """
    Build an engine for ``database_url`` without installing it.

    An in-memory SQLite URL shares one connection (StaticPool) so every
    session sees the same database. Pool arguments only apply to server
    backends.
    """
    url = make_url(database_url)

    if url.get_backend_name() == "sqlite":
        kwargs = {"echo": echo, "connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, **kwargs)
        event.listen(engine, "connect", _on_sqlite_connect)
        event.listen(engine, "begin", _on_sqlite_begin)
        return engine

    return create_engine(
        url,
        echo=echo,
        poolclass=QueuePool,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=pool_pre_ping,
        isolation_level="READ COMMITTED",
    )


def init_engine_from_url(database_url: str, echo: bool = False, **pool_kwargs) -> Engine:
    """Build and install the process engine; replaces any earlier one."""
    global _engine, _SessionFactory

    _engine = build_engine(database_url, echo=echo, **pool_kwargs)
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    logger.info(
        "engine_initialized",
        extra={"dialect": _engine.dialect.name, "echo": echo},
    )
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    if _SessionFactory is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _SessionFactory


def get_session() -> Session:
    return get_session_factory()()


@contextmanager
def session_scope(
    factory: sessionmaker[Session] | None = None,
) -> Generator[Session, None, None]:
    """
    One transaction: commit when the block exits cleanly, roll back and
    re-raise when it raises. The session is closed either way.

    ``factory`` defaults to the installed engine's session factory.
    """
    session = factory() if factory is not None else get_session()
    logger.debug("transaction_started")
    try:
        yield session
        session.commit()
        logger.debug("transaction_committed")
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables(bind: Engine | Connection | None = None) -> None:
    """Create every ledger table that does not exist yet."""
    from ledger_kernel.db.base import Base
    import ledger_kernel.models  # noqa: F401  registers the mappers

    Base.metadata.create_all(bind if bind is not None else get_engine())
    logger.info("tables_created")


def drop_tables(engine: Engine | None = None) -> None:
    from ledger_kernel.db.base import Base
    import ledger_kernel.models  # noqa: F401

    Base.metadata.drop_all(engine or get_engine())
    logger.warning("tables_dropped")


def reset_engine() -> None:
    """Dispose of the installed engine, if any."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None
