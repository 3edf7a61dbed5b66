import psycopg

from pdf_indexer.database.cache import ReadThroughCache
from pdf_indexer.database.connection import get_connection
from pdf_indexer.database.exceptions import StoreWriteError

PDF_MIME_TYPE = "application/pdf"
SECURED_MARKER = "password-protected or secured"


class IndexRepository:
    """Database operations for the pdf_search_index table.

    Selection and count queries go through ``cache``; every write invalidates it.
    """

    def __init__(self, cache: ReadThroughCache) -> None:
        self._cache = cache

    def upsert(self, attachment_id: int, content: str) -> None:
        """Insert or overwrite the indexed content for an attachment.

        Raises:
            StoreWriteError: if the row cannot be written.
        """
        try:
            with get_connection() as conn:
                conn.execute(
                    """
                    INSERT INTO pdf_search_index (attachment_id, indexed_content, updated_at)
                    VALUES (%s, %s, NOW())
                    ON CONFLICT (attachment_id) DO UPDATE
                    SET indexed_content = EXCLUDED.indexed_content,
                        updated_at = NOW()
                    """,
                    (attachment_id, content),
                )
                conn.commit()
        except psycopg.Error as exc:
            raise StoreWriteError(
                f"Could not store content for attachment {attachment_id}: {exc}"
            ) from exc
        finally:
            self._cache.invalidate()

    def next_unindexed_id(self) -> int | None:
        """Smallest PDF attachment id that has no indexed content yet."""
        return self._cache.get("next_unindexed_id", self._query_next_unindexed_id)

    def has_unindexed(self) -> bool:
        return self.next_unindexed_id() is not None

    def count_total(self) -> int:
        """Number of PDF attachments known to the catalog."""
        return self._cache.get("count_total", self._query_count_total)

    def count_indexed(self) -> int:
        return self._cache.get("count_indexed", self._query_count_indexed)

    def count_secured(self) -> int:
        return self._cache.get("count_secured", self._query_count_secured)

    def refresh(self) -> None:
        """Forget cached results so the next reads see writes made by other processes."""
        self._cache.invalidate()

    def truncate(self) -> None:
        """Delete every indexed row."""
        try:
            with get_connection() as conn:
                conn.execute("TRUNCATE TABLE pdf_search_index")
                conn.commit()
        finally:
            self._cache.invalidate()

    def _query_next_unindexed_id(self) -> int | None:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT a.id
                    FROM attachments a
                    WHERE a.mime_type = %s
                      AND NOT EXISTS (
                          SELECT 1 FROM pdf_search_index i
                          WHERE i.attachment_id = a.id
                      )
                    ORDER BY a.id
                    LIMIT 1
                    """,
                    (PDF_MIME_TYPE,),
                )
                row = cur.fetchone()
        return None if row is None else int(row[0])

    def _query_count_total(self) -> int:
        return self._scalar(
            "SELECT COUNT(*) FROM attachments WHERE mime_type = %s",
            (PDF_MIME_TYPE,),
        )

    def _query_count_indexed(self) -> int:
        return self._scalar("SELECT COUNT(*) FROM pdf_search_index", ())

    def _query_count_secured(self) -> int:
        return self._scalar(
            "SELECT COUNT(*) FROM pdf_search_index WHERE indexed_content LIKE %s",
            (f"%{SECURED_MARKER}%",),
        )

    def _scalar(self, query: str, params: tuple[object, ...]) -> int:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                row = cur.fetchone()
        return 0 if row is None else int(row[0])
