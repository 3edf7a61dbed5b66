import uuid
from datetime import datetime, timedelta

from pdf_indexer.database.connection import get_connection


class LockRepository:
    """Named mutual-exclusion rows with an expiry used as a fallback release."""

    def acquire(self, name: str, ttl_seconds: int, now: datetime) -> str | None:
        """Take the lock unless a live holder exists.

        Returns:
            The holder token on success, None when the lock is held.
        """
        token = uuid.uuid4().hex
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO indexer_locks (name, token, expires_at)
                    VALUES (%s, %s, %s)
                    ON CONFLICT (name) DO UPDATE
                    SET token = EXCLUDED.token, expires_at = EXCLUDED.expires_at
                    WHERE indexer_locks.expires_at <= %s
                    RETURNING token
                    """,
                    (name, token, now + timedelta(seconds=ttl_seconds), now),
                )
                row = cur.fetchone()
            conn.commit()
        return None if row is None else str(row[0])

    def release(self, name: str, token: str) -> None:
        """Drop the lock if it is still ours."""
        with get_connection() as conn:
            conn.execute(
                "DELETE FROM indexer_locks WHERE name = %s AND token = %s",
                (name, token),
            )
            conn.commit()
