from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

import psycopg
from psycopg.conninfo import make_conninfo
from psycopg_pool import ConnectionPool

from docflow.config.settings import Settings

_pool: ConnectionPool | None = None


def init_pool(settings: Settings, max_size: int | None = None) -> None:
    """Initialize the global connection pool from settings.

    The pool is sized to the stage worker count so every lane can hold a
    connection while it performs an atomic update.
    """
    global _pool  # noqa: PLW0603
    conninfo = make_conninfo(
        host=settings.db_host,
        port=settings.db_port,
        dbname=settings.db_database,
        user=settings.db_username,
        password=settings.db_password,
    )
    size = max_size or settings.pipeline_max_workers + settings.comparison_max_workers + 2
    _pool = ConnectionPool(conninfo, min_size=1, max_size=size, open=True)


def close_pool() -> None:
    global _pool  # noqa: PLW0603
    if _pool is not None:
        _pool.close()
        _pool = None


@contextmanager
def get_connection() -> Generator[psycopg.Connection[Any], None, None]:
    """Yield a pooled connection. Caller manages commit/rollback."""
    if _pool is None:
        raise RuntimeError("Connection pool not initialized. Call init_pool() first.")
    with _pool.connection() as conn:
        yield conn
