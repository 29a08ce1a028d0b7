"""
Module: backoffice_kernel.db.engine
Responsibility: Owns the process-wide SQLAlchemy engine and the sessions
    handed to services.
Architecture position: Kernel > DB.  create_tables() also loads the module
    ORM registry, so the DDL covers the banking tables.

Dialects:
    postgresql  QueuePool, pre-ping, READ COMMITTED.
    sqlite      One shared connection (StaticPool) so ``sqlite://`` keeps
                its data between sessions.  pysqlite's implicit BEGIN is
                disabled and emitted by SQLAlchemy instead, otherwise
                SAVEPOINT does not nest; foreign keys are switched on.

Failure modes:
    - RuntimeError from get_engine/get_session before an engine exists.
"""

from __future__ import annotations

import atexit
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from backoffice_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_NOT_INITIALIZED = "No database engine; call init_engine_from_url() first."

_engine: Engine | None = None
_sessions: sessionmaker[Session] | None = None


def engine_options(
    database_url: str,
    *,
    echo: bool = False,
    pool_size: int = 10,
    max_overflow: int = 5,
) -> dict[str, Any]:
    """Keyword arguments for ``create_engine`` on the URL's dialect."""
    if make_url(database_url).get_backend_name() == "sqlite":
        return {
            "echo": echo,
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }
    return {
        "echo": echo,
        "poolclass": QueuePool,
        "pool_size": pool_size,
        "max_overflow": max_overflow,
        "pool_pre_ping": True,
        "pool_recycle": 1800,
        "isolation_level": "READ COMMITTED",
    }


def _install_sqlite_hooks(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _connect(dbapi_connection, _record):
        dbapi_connection.isolation_level = None
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    @event.listens_for(engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 10,
    max_overflow: int = 5,
) -> Engine:
    """
    Create the engine and session factory, replacing any previous engine.

    ``pool_size`` and ``max_overflow`` only apply to pooled dialects.
    """
    global _engine, _sessions

    reset_engine()
    options = engine_options(
        database_url, echo=echo, pool_size=pool_size, max_overflow=max_overflow,
    )
    engine = create_engine(database_url, **options)
    if engine.dialect.name == "sqlite":
        _install_sqlite_hooks(engine)

    _engine = engine
    _sessions = sessionmaker(bind=engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={
            "dialect": engine.dialect.name,
            "pool": options["poolclass"].__name__,
            "echo": echo,
        },
    )
    return engine


def init_engine_from_config(database) -> Engine:
    """Initialize from ``backoffice_config.DatabaseConfig``."""
    return init_engine_from_url(
        database.url,
        echo=database.echo,
        pool_size=database.pool_size,
        max_overflow=database.max_overflow,
    )


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session() -> Session:
    """A new session bound to the current engine.  The caller closes it."""
    if _sessions is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _sessions()


@contextmanager
def session_scope() -> Iterator[Session]:
    """
    One unit of work: commit when the block exits normally, roll back and
    re-raise when it raises.  The session is closed either way.

    Usage::

        with session_scope() as session:
            ReconciliationService(session).list_bank_accounts(ctx)
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    """Emit CREATE for every kernel and module table that does not exist yet."""
    from backoffice_kernel.db.base import Base
    from backoffice_modules._orm_registry import import_all_orm_models

    import_all_orm_models()
    Base.metadata.create_all(get_engine())
    logger.info("tables_created", extra={"table_count": len(Base.metadata.tables)})


def drop_tables() -> None:
    from backoffice_kernel.db.base import Base

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the current engine, if any, and forget it."""
    global _engine, _sessions

    engine, _engine, _sessions = _engine, None, None
    if engine is not None:
        engine.dispose()


atexit.register(reset_engine)
