# backend/app/db/session.py
"""
Async database engine and session factory.

Production considerations:
- Uses asyncpg for PostgreSQL
- Uses aiosqlite for SQLite (local development and tests)
- Connection pooling configured for production workloads
- Pool settings differ for SQLite (no pooling) vs PostgreSQL

Transactions:
- Every service operation runs inside ``session_factory.begin()``, i.e. one
  transaction per logical operation.
- On SQLite each transaction starts with ``BEGIN IMMEDIATE`` so writers are
  serialized up front instead of failing with a lock upgrade error midway.
  PostgreSQL relies on row locks (``SELECT ... FOR UPDATE``) taken by the
  services.
"""
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, AsyncAdaptedQueuePool

from backend.app.core.config import Settings


def _install_sqlite_transaction_hooks(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        # Stop the driver from emitting its own deferred BEGIN
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    """
    Create and configure the async SQLAlchemy engine.

    SQLite:
    - NullPool (new connection per checkout)
    - busy timeout from DB_TIMEOUT_SECONDS so lock waits are bounded

    PostgreSQL:
    - AsyncAdaptedQueuePool, pool_size=5, max_overflow=10
    - pool_pre_ping to drop stale connections
    - command_timeout bounds every statement

    Returns:
        Configured AsyncEngine instance
    """
    if settings.is_sqlite:
        engine = create_async_engine(
            settings.DATABASE_URL,
            echo=settings.DATABASE_ECHO,
            poolclass=NullPool,
            connect_args={
                "check_same_thread": False,
                "timeout": settings.DB_TIMEOUT_SECONDS,
            },
        )
        _install_sqlite_transaction_hooks(engine)
        return engine

    return create_async_engine(
        settings.DATABASE_URL,
        echo=settings.DATABASE_ECHO,
        poolclass=AsyncAdaptedQueuePool,
        pool_size=5,
        max_overflow=10,
        pool_timeout=settings.DB_TIMEOUT_SECONDS,
        pool_pre_ping=True,
        pool_recycle=300,
        connect_args={"command_timeout": settings.DB_TIMEOUT_SECONDS},
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Session factory bound to ``engine``.

    expire_on_commit=False: ORM objects stay readable after the transaction
    closes, so services can hand them back to the request.
    autoflush=False: explicit flush control.
    """
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
