from typing import Any

from psycopg.types.json import Jsonb

from pdf_indexer.database.connection import get_connection

PROGRESS_OPTION = "pdf_search_indexer_progress"


class ProgressRepository:
    """Stores the Progress Record as a JSON document in indexer_options."""

    def __init__(self, option_name: str = PROGRESS_OPTION) -> None:
        self._option_name = option_name

    def load(self) -> dict[str, Any] | None:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT value FROM indexer_options WHERE name = %s",
                    (self._option_name,),
                )
                row = cur.fetchone()

        if row is None or row[0] is None:
            return None
        return dict(row[0])

    def save(self, payload: dict[str, Any]) -> None:
        with get_connection() as conn:
            conn.execute(
                """
                INSERT INTO indexer_options (name, value, updated_at)
                VALUES (%s, %s, NOW())
                ON CONFLICT (name) DO UPDATE
                SET value = EXCLUDED.value, updated_at = NOW()
                """,
                (self._option_name, Jsonb(payload)),
            )
            conn.commit()

    def delete(self) -> None:
        with get_connection() as conn:
            conn.execute(
                "DELETE FROM indexer_options WHERE name = %s",
                (self._option_name,),
            )
            conn.commit()
