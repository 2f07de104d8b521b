"""Process-wide psycopg connection pool.

Opened by the application lifespan or the seed command. Every connection
returns dict rows and runs its session in UTC, so ``created_at`` values read
back from the database are aware datetimes in UTC.
"""

from contextlib import contextmanager

import structlog
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from bookkeeper.core.config import settings

log = structlog.get_logger(__name__)


def _configure_session(conn) -> None:
    conn.execute("SET TIME ZONE 'UTC'")
    conn.commit()


DB_POOL = ConnectionPool(
    settings.database_url,
    min_size=settings.db_pool_min,
    max_size=settings.db_pool_max,
    timeout=settings.db_pool_timeout,
    max_waiting=settings.db_pool_max_waiting,
    open=False,
    name="bookkeeper",
    configure=_configure_session,
    check=ConnectionPool.check_connection,
    kwargs={"row_factory": dict_row},
)


def open_db_pool(wait: bool = False) -> None:
    DB_POOL.open(wait=wait)
    log.info("db_pool_opened", min_size=settings.db_pool_min, max_size=settings.db_pool_max)


def close_db_pool() -> None:
    DB_POOL.close()
    log.info("db_pool_closed")


@contextmanager
def db_conn():
    """Borrow a connection; an open transaction left by a failed request is rolled back."""
    with DB_POOL.connection() as conn:
        try:
            yield conn
        except Exception:
            conn.rollback()
            raise
