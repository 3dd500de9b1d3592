"""
Module: streampay_kernel.db.engine
Responsibility: One process-wide engine for the ledger database, the
    commit-or-rollback scope scripts open around a batch of ledger calls,
    and the per-operation SAVEPOINT every StreamingVault mutation runs in.
Architecture position: Kernel > DB.  May import from db/base.py.
    MUST NOT import from services/, selectors/, domain/, or outer layers
    (create_tables imports the model modules so their tables register).

Invariants enforced:
    - A rejected ledger operation leaves no partial state: its SAVEPOINT
      is rolled back before the error reaches the caller, including when
      the funding transfer fails after balances were already moved.
    - SQLite (tests, demo) gets SQLAlchemy's pysqlite recipe so SAVEPOINT
      works; in-memory databases share one connection.

Failure modes:
    - RuntimeError from session_scope/create_tables/drop_tables before
      init_engine_from_url().
"""

import atexit
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from streampay_kernel.exceptions import StreamPayError
from streampay_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None

_MEMORY_URLS = ("sqlite:", "sqlite+pysqlite:")


def _install_sqlite_savepoint_support(engine: Engine) -> None:
    """Let SQLAlchemy, not pysqlite, emit BEGIN so SAVEPOINT behaves."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def _sqlite_engine(database_url: str, echo: bool) -> Engine:
    kwargs: dict = {"connect_args": {"check_same_thread": False}}
    if ":memory:" in database_url or database_url.rstrip("/") in _MEMORY_URLS:
        # One shared connection, otherwise each checkout sees an empty db
        kwargs["poolclass"] = StaticPool
    engine = create_engine(database_url, echo=echo, **kwargs)
    _install_sqlite_savepoint_support(engine)
    return engine


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
) -> Engine:
    """
    Create the ledger engine for ``database_url`` and make it current.

    PostgreSQL runs at READ COMMITTED; the services take row locks
    (``with_for_update``) on vault, employee and counter rows instead of
    relying on a stricter isolation level.
    """
    global _engine, _SessionFactory

    if database_url.startswith("sqlite"):
        _engine = _sqlite_engine(database_url, echo)
    else:
        _engine = create_engine(
            database_url,
            echo=echo,
            pool_size=pool_size,
            pool_pre_ping=True,
            isolation_level="READ COMMITTED",
        )
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info("engine_initialized", extra={"dialect": _engine.dialect.name})
    return _engine


def _require_engine() -> Engine:
    if _engine is None or _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Commit every ledger call made in the block, or none of them.

    Usage:
        with session_scope() as session:
            vault = StreamingVault.deploy(session, owner="0xEmployer")
            vault.deposit(Caller("0xEmployer"), 500_000 * 10**6)
    """
    _require_engine()
    session = _SessionFactory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("ledger_batch_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


@contextmanager
def transaction_boundary(
    session: Session,
    operation: str,
) -> Generator[Session, None, None]:
    """
    Apply one ledger operation all-or-nothing.

    Validation and mutation both run inside a SAVEPOINT of the caller's
    transaction; the caller still owns the outer commit.  A StreamPayError
    is an expected rejection and is logged at WARNING with its code; any
    other exception is logged at ERROR with its traceback.
    """
    try:
        with session.begin_nested():
            yield session
    except StreamPayError as exc:
        logger.warning(
            "operation_rejected",
            extra={"operation": operation, "error_code": exc.code},
        )
        raise
    except Exception:
        logger.error(
            "operation_failed",
            extra={"operation": operation},
            exc_info=True,
        )
        raise


def create_tables() -> None:
    """Create every ledger table and register the immutability listeners."""
    from streampay_kernel.db.base import Base
    from streampay_kernel.db.immutability import register_immutability_listeners
    import streampay_kernel.models  # noqa: F401
    import streampay_kernel.services.sequence_service  # noqa: F401

    Base.metadata.create_all(_require_engine())
    register_immutability_listeners()


def drop_tables() -> None:
    """Drop every ledger table. Tests only."""
    from streampay_kernel.db.base import Base

    Base.metadata.drop_all(_require_engine())


def reset_engine() -> None:
    """Dispose the current engine and forget it."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


@atexit.register
def _dispose_at_exit() -> None:
    if _engine is not None:
        _engine.dispose()
