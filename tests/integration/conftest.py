import os
from collections.abc import Generator
from pathlib import Path
from typing import Any

import psycopg
import pytest

from docflow.config.settings import Settings
from docflow.database.connection import close_pool, get_connection, init_pool

SCHEMA_PATH = Path(__file__).resolve().parents[2] / "docflow" / "database" / "schema.sql"


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "docflow_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        with get_connection() as conn:
            conn.execute(SCHEMA_PATH.read_text(encoding="utf-8"))
            conn.commit()
    except Exception as e:
        close_pool()
        pytest.skip(
            f"PostgreSQL test DB not available: {e}. "
            "Set DB_* env to point at a disposable database"
        )
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def integration_cleanup(integration_pool: None) -> Generator[list[tuple[str, str]], None, None]:
    cleanup: list[tuple[str, str]] = []
    yield cleanup
    if not cleanup:
        return
    with get_connection() as conn:
        with conn.cursor() as cur:
            for table, row_id in cleanup:
                if table == "documents":
                    cur.execute("DELETE FROM document_events WHERE document_id = %s", (row_id,))
                    cur.execute("DELETE FROM documents WHERE id = %s", (row_id,))
            for table, row_id in cleanup:
                if table == "users":
                    cur.execute("DELETE FROM users WHERE id = %s", (row_id,))
        conn.commit()
