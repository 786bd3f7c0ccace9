import os
from collections.abc import Generator
from pathlib import Path
from typing import Any

import psycopg
import pytest

from renewal_worker.config.settings import Settings
from renewal_worker.database.connection import close_pool, get_connection, init_pool

SCHEMA_PATH = Path(__file__).resolve().parents[2] / "renewal_worker" / "database" / "schema.sql"


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "renewals_test")
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
    """A pooled connection on tables emptied before the test."""
    with get_connection() as conn:
        conn.execute("TRUNCATE policies, processing_logs, pipeline_events RESTART IDENTITY")
        conn.commit()
        yield conn


@pytest.fixture
def local_settings(test_settings: Settings, tmp_path: Path) -> Settings:
    (tmp_path / "tmp").mkdir()
    return test_settings.model_copy(
        update={
            "artifact_root": tmp_path / "artifacts",
            "temp_dir": tmp_path / "tmp",
        }
    )
