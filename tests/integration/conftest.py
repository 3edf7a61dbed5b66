import os
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import psycopg
import pytest
from psycopg.rows import dict_row

from pdf_indexer.config.settings import Settings
from pdf_indexer.database.connection import check_health, close_pool, get_connection, init_pool
from pdf_indexer.database.repositories.index_repository import PDF_MIME_TYPE
from pdf_indexer.database.schema import create_tables

_INDEXER_TABLES = (
    "pdf_search_index",
    "attachment_meta",
    "indexer_options",
    "indexer_locks",
    "scheduled_tasks",
    "attachments",
)


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "pdf_indexer_test")
    return Settings(count_cache_ttl_seconds=0)


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
    except Exception as e:
        pytest.skip(
            f"PostgreSQL test DB not available: {e}. "
            "Set DB_* env to point at a disposable database"
        )
    if not check_health():
        close_pool()
        pytest.skip("PostgreSQL test DB not reachable. Set DB_* env")
    create_tables()
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def clean_tables(integration_pool: None) -> Generator[None, None, None]:
    """Start and finish every test with empty indexer tables."""

    def _truncate() -> None:
        with get_connection() as conn:
            conn.execute(f"TRUNCATE TABLE {', '.join(_INDEXER_TABLES)}")
            conn.commit()

    _truncate()
    yield
    _truncate()


@pytest.fixture
def seed_attachment(
    db_conn: psycopg.Connection[Any], clean_tables: None
) -> Callable[..., int]:
    def _seed(attachment_id: int, file_path: str, mime_type: str = PDF_MIME_TYPE) -> int:
        db_conn.execute(
            """
            INSERT INTO attachments (id, title, mime_type, file_path)
            VALUES (%s, %s, %s, %s)
            """,
            (attachment_id, f"Attachment {attachment_id}", mime_type, file_path),
        )
        db_conn.commit()
        return attachment_id

    return _seed


@pytest.fixture
def sample_pdf_on_disk(
    seed_attachment: Callable[..., int], tmp_path: Path, sample_pdf_bytes: bytes
) -> int:
    path = tmp_path / "hello.pdf"
    path.write_bytes(sample_pdf_bytes)
    return seed_attachment(101, str(path))


@pytest.fixture
def indexed_content(integration_pool: None) -> Callable[[int], str | None]:
    """Read the stored index text for an attachment straight from the table."""

    def _fetch(attachment_id: int) -> str | None:
        with get_connection() as conn:
            row = conn.execute(
                "SELECT indexed_content FROM pdf_search_index WHERE attachment_id = %s",
                (attachment_id,),
            ).fetchone()
        return None if row is None else row[0]

    return _fetch


@pytest.fixture
def attachment_meta(integration_pool: None) -> Callable[[int], dict[str, Any]]:
    """Read the status flags for an attachment; defaults when none are stored."""

    def _fetch(attachment_id: int) -> dict[str, Any]:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT status, failed_count, indexed_at
                    FROM attachment_meta
                    WHERE attachment_id = %s
                    """,
                    (attachment_id,),
                )
                row = cur.fetchone()
        if row is None:
            return {"status": "pending", "failed_count": 0, "indexed_at": None}
        return row

    return _fetch
