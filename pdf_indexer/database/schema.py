"""DDL for the indexer tables.

``attachments`` belongs to the host content catalog; it is created here only so
that a standalone deployment (and the integration suite) has something to read.
"""

from pdf_indexer.database.connection import get_connection

_TABLES = (
    """
    CREATE TABLE IF NOT EXISTS attachments (
        id BIGINT PRIMARY KEY,
        title TEXT NOT NULL DEFAULT '',
        mime_type TEXT NOT NULL,
        file_path TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS attachment_meta (
        attachment_id BIGINT PRIMARY KEY,
        status TEXT NOT NULL DEFAULT 'pending',
        failed_count INTEGER NOT NULL DEFAULT 0,
        indexed_at TIMESTAMPTZ NULL,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS pdf_search_index (
        id BIGSERIAL PRIMARY KEY,
        attachment_id BIGINT NOT NULL UNIQUE,
        indexed_content TEXT NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS indexer_options (
        name TEXT PRIMARY KEY,
        value JSONB NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS indexer_locks (
        name TEXT PRIMARY KEY,
        token TEXT NOT NULL,
        expires_at TIMESTAMPTZ NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS scheduled_tasks (
        id BIGSERIAL PRIMARY KEY,
        hook TEXT NOT NULL,
        run_at TIMESTAMPTZ NOT NULL,
        interval_seconds INTEGER NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS scheduled_tasks_run_at_idx ON scheduled_tasks (run_at)",
)


def create_tables() -> None:
    """Create every indexer table if it does not exist yet."""
    with get_connection() as conn:
        for statement in _TABLES:
            conn.execute(statement)
        conn.commit()
