from psycopg.rows import dict_row

from pdf_indexer.database.connection import get_connection
from pdf_indexer.database.models import AttachmentRecord


class AttachmentRepository:
    """Reads the attachments catalog and maintains per-document status flags."""

    def find_by_id(self, attachment_id: int) -> AttachmentRecord | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT id, title, mime_type, file_path
                    FROM attachments
                    WHERE id = %s
                    """,
                    (attachment_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None

        return AttachmentRecord(
            id=row["id"],
            title=row["title"],
            mime_type=row["mime_type"],
            file_path=row["file_path"],
        )

    def set_status(self, attachment_id: int, status: str) -> None:
        with get_connection() as conn:
            conn.execute(
                """
                INSERT INTO attachment_meta (attachment_id, status, updated_at)
                VALUES (%s, %s, NOW())
                ON CONFLICT (attachment_id) DO UPDATE
                SET status = EXCLUDED.status, updated_at = NOW()
                """,
                (attachment_id, status),
            )
            conn.commit()

    def mark_indexed(self, attachment_id: int, status: str) -> None:
        """Record a successful pass: final status, indexed date, failure counter reset."""
        with get_connection() as conn:
            conn.execute(
                """
                INSERT INTO attachment_meta
                    (attachment_id, status, failed_count, indexed_at, updated_at)
                VALUES (%s, %s, 0, NOW(), NOW())
                ON CONFLICT (attachment_id) DO UPDATE
                SET status = EXCLUDED.status,
                    failed_count = 0,
                    indexed_at = NOW(),
                    updated_at = NOW()
                """,
                (attachment_id, status),
            )
            conn.commit()

    def increment_failed_count(self, attachment_id: int) -> int:
        """Add one consecutive failure and return the new count."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO attachment_meta
                        (attachment_id, status, failed_count, updated_at)
                    VALUES (%s, 'pending', 1, NOW())
                    ON CONFLICT (attachment_id) DO UPDATE
                    SET failed_count = attachment_meta.failed_count + 1,
                        updated_at = NOW()
                    RETURNING failed_count
                    """,
                    (attachment_id,),
                )
                row = cur.fetchone()
            conn.commit()
        return 0 if row is None else int(row[0])

    def list_by_status(self, status: str, limit: int | None = None) -> list[AttachmentRecord]:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT a.id, a.title, a.mime_type, a.file_path
                    FROM attachments a
                    JOIN attachment_meta m ON m.attachment_id = a.id
                    WHERE m.status = %s
                    ORDER BY a.id
                    LIMIT %s
                    """,
                    (status, limit),
                )
                rows = cur.fetchall()

        return [
            AttachmentRecord(
                id=row["id"],
                title=row["title"],
                mime_type=row["mime_type"],
                file_path=row["file_path"],
            )
            for row in rows
        ]

    def reset_processing(self) -> int:
        """Return documents stuck in 'processing' to 'pending'. Returns the count."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE attachment_meta
                    SET status = 'pending', updated_at = NOW()
                    WHERE status = 'processing'
                    """
                )
                count = cur.rowcount
            conn.commit()
        return count

    def clear_all_meta(self) -> None:
        with get_connection() as conn:
            conn.execute("DELETE FROM attachment_meta")
            conn.commit()
