"""
core/db.py -- SQLAlchemy engine factory and the shared schema MetaData.

Every store module registers its Table on `metadata` so foreign keys between
users and tasks resolve inside one schema. create_db_engine() is the only
place a connection pool is configured.

Pool model:
  Non-SQLite URLs get a QueuePool bounded by pool_size + max_overflow.
  When all connections are checked out, further checkouts block for up to
  pool_timeout seconds, which gives natural backpressure instead of
  immediate failures.

  SQLite URLs keep the dialect's default pool (QueuePool for files,
  SingletonThreadPool for in-memory URIs); those pools reject the sizing
  arguments. check_same_thread=False is required because FastAPI runs sync
  handlers in a thread pool.

Layer rule: core/ is the kernel. No imports from api/, auth/, tasks/, or services/.
"""

from __future__ import annotations

from sqlalchemy import MetaData, create_engine, event
from sqlalchemy.engine import Engine

from core.config import Settings

metadata = MetaData()


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode and foreign key enforcement per connection.

    SQLite PRAGMAs are not inherited by new connections from the pool, and
    foreign keys are off unless requested on every connection.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


def create_db_engine(
    db_url: str,
    pool_size: int = 10,
    max_overflow: int = 0,
    pool_timeout: float = 30.0,
    echo: bool = False,
) -> Engine:
    """Build an Engine for db_url with a bounded connection pool."""
    kwargs: dict = {"echo": echo}
    if db_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs.update(
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_timeout=pool_timeout,
            pool_pre_ping=True,
        )
    engine = create_engine(db_url, **kwargs)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_sqlite_pragmas)
    return engine


def engine_from_settings(settings: Settings) -> Engine:
    return create_db_engine(
        settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        echo=False,
    )

