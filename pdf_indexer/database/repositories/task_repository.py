from datetime import datetime, timedelta
from typing import Any

import psycopg
from psycopg.rows import dict_row

from pdf_indexer.database.connection import get_connection
from pdf_indexer.database.models import ScheduledTask


class TaskRepository:
    """Delayed task queue backing the host scheduler."""

    def schedule_once(self, hook: str, run_at: datetime) -> bool:
        """Schedule a one-shot task unless one for the same hook is pending.

        Returns:
            True when a task was inserted.
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO scheduled_tasks (hook, run_at, interval_seconds)
                    SELECT %s, %s, NULL
                    WHERE NOT EXISTS (
                        SELECT 1 FROM scheduled_tasks WHERE hook = %s
                    )
                    """,
                    (hook, run_at, hook),
                )
                inserted = cur.rowcount > 0
            conn.commit()
        return inserted

    def ensure_recurring(self, hook: str, interval_seconds: int, first_run_at: datetime) -> bool:
        """Register a recurring task if none exists for hook."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO scheduled_tasks (hook, run_at, interval_seconds)
                    SELECT %s, %s, %s
                    WHERE NOT EXISTS (
                        SELECT 1 FROM scheduled_tasks WHERE hook = %s
                    )
                    """,
                    (hook, first_run_at, interval_seconds, hook),
                )
                inserted = cur.rowcount > 0
            conn.commit()
        return inserted

    def next_scheduled(self, hook: str) -> datetime | None:
        """Run time of the earliest pending task for hook, if any."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT MIN(run_at) FROM scheduled_tasks WHERE hook = %s",
                    (hook,),
                )
                row = cur.fetchone()
        return None if row is None else row[0]

    def clear(self, hook: str) -> int:
        """Delete every pending task for hook. Returns the number removed."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM scheduled_tasks WHERE hook = %s", (hook,))
                count = cur.rowcount
            conn.commit()
        return count

    def claim_due(self, conn: psycopg.Connection[Any], now: datetime) -> ScheduledTask | None:
        """Claim the earliest due task using SELECT FOR UPDATE SKIP LOCKED.

        One-shot tasks are removed; recurring tasks move to ``now + interval``.
        """
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                """
                SELECT id, hook, run_at, interval_seconds
                FROM scheduled_tasks
                WHERE run_at <= %s
                ORDER BY run_at, id
                LIMIT 1
                FOR UPDATE SKIP LOCKED
                """,
                (now,),
            )
            row = cur.fetchone()

        if row is None:
            conn.commit()
            return None

        if row["interval_seconds"]:
            conn.execute(
                "UPDATE scheduled_tasks SET run_at = %s WHERE id = %s",
                (now + timedelta(seconds=row["interval_seconds"]), row["id"]),
            )
        else:
            conn.execute("DELETE FROM scheduled_tasks WHERE id = %s", (row["id"],))
        conn.commit()

        return ScheduledTask(
            id=row["id"],
            hook=row["hook"],
            run_at=row["run_at"],
            interval_seconds=row["interval_seconds"],
        )
