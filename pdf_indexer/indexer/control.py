from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from pdf_indexer.config.settings import Settings
from pdf_indexer.database.repositories.attachment_repository import AttachmentRepository
from pdf_indexer.database.repositories.index_repository import PDF_MIME_TYPE, IndexRepository
from pdf_indexer.database.repositories.task_repository import TaskRepository
from pdf_indexer.indexer.clock import utc_now
from pdf_indexer.indexer.models import (
    BATCH_HOOK,
    MANUAL_RESTART_STATUS,
    WATCHDOG_HOOK,
    DocumentStatus,
    ProgressRecord,
)
from pdf_indexer.indexer.progress import ProgressTracker
from pdf_indexer.logging.logger import Log

PROCESSING_LIST_LIMIT = 5


@dataclass
class StatusSnapshot:
    """Read-only view polled by the status UI."""

    progress: ProgressRecord
    process_status: str
    next_batch_at: datetime | None
    total: int
    indexed: int
    secured: int
    pending: int
    percentage: int
    processing_files: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["next_batch_at"] = (
            self.next_batch_at.isoformat() if self.next_batch_at else None
        )
        return payload


def describe_schedule(next_batch_at: datetime | None) -> str:
    if next_batch_at is None:
        return "Inactive"
    return f"Active (next batch at {next_batch_at.strftime('%H:%M:%S')})"


class IndexerControl:
    """Operator actions around the indexing run."""

    def __init__(
        self,
        settings: Settings,
        progress: ProgressTracker,
        index_repo: IndexRepository,
        attachment_repo: AttachmentRepository,
        task_repo: TaskRepository,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._settings = settings
        self._progress = progress
        self._index_repo = index_repo
        self._attachment_repo = attachment_repo
        self._task_repo = task_repo
        self._clock = clock

    def activate(self) -> None:
        """Initialize the Progress Record and register the recurring watchdog."""
        self._progress.initialize()
        interval = self._settings.watchdog_interval_seconds
        if self._task_repo.ensure_recurring(
            WATCHDOG_HOOK, interval, self._clock() + timedelta(seconds=interval)
        ):
            Log.info(f"Watchdog registered every {interval}s")

    def start(self) -> bool:
        """Start or resume indexing now. Returns False when a batch is already pending."""
        scheduled = self._task_repo.schedule_once(BATCH_HOOK, self._clock())
        if scheduled:
            Log.info("PDF indexing started")
        else:
            Log.info("PDF indexing already scheduled")
        return scheduled

    def stop(self) -> int:
        """Cancel pending batches and reset the run.

        A batch that is already extracting finishes its document but no longer
        saves progress or schedules a successor.

        Returns:
            Number of documents moved from 'processing' back to 'pending'.
        """
        record = self._progress.get()
        self._progress.new_run(record)
        self._progress.reset_run(record)
        record.started_at = ""
        record.heartbeat = 0.0
        record.consecutive_errors = 0
        self._progress.set(record)
        self._task_repo.clear(BATCH_HOOK)
        count = self._attachment_repo.reset_processing()
        Log.info(f"PDF indexing stopped, {count} documents reset to pending")
        return count

    def restart(self) -> bool:
        """Manual escape hatch for a stalled run."""
        record = self._progress.get()
        self._progress.new_run(record)
        record.consecutive_errors = 0
        self._progress.add_log(record, record.current_file or "indexing run", MANUAL_RESTART_STATUS)
        self._progress.touch_heartbeat(record)
        self._progress.set(record)
        self._task_repo.clear(BATCH_HOOK)
        Log.info("PDF indexing restarted manually")
        return self._task_repo.schedule_once(BATCH_HOOK, self._clock())

    def reindex(self) -> None:
        """Drop all indexed content and statuses, then index everything again."""
        record = self._progress.get()
        self._progress.new_run(record)
        self._progress.reset_run(record)
        record.started_at = ""
        record.consecutive_errors = 0
        self._progress.set(record)
        self._task_repo.clear(BATCH_HOOK)
        self._index_repo.truncate()
        self._attachment_repo.clear_all_meta()
        self._task_repo.schedule_once(BATCH_HOOK, self._clock())
        Log.info("Index cleared, re-indexing started")

    def attachment_saved(self, attachment_id: int) -> bool:
        """Queue indexing for a newly added or edited attachment."""
        if not self._settings.enable_indexing:
            return False
        attachment = self._attachment_repo.find_by_id(attachment_id)
        if attachment is None or attachment.mime_type != PDF_MIME_TYPE:
            return False
        Log.info(f"PDF attachment {attachment_id} saved, scheduling indexing")
        self._task_repo.schedule_once(BATCH_HOOK, self._clock())
        return True

    def status(self) -> StatusSnapshot:
        total = self._index_repo.count_total()
        indexed = self._index_repo.count_indexed()
        next_batch_at = self._task_repo.next_scheduled(BATCH_HOOK)
        processing = self._attachment_repo.list_by_status(
            DocumentStatus.PROCESSING.value, limit=PROCESSING_LIST_LIMIT
        )
        return StatusSnapshot(
            progress=self._progress.get(),
            process_status=describe_schedule(next_batch_at),
            next_batch_at=next_batch_at,
            total=total,
            indexed=indexed,
            secured=self._index_repo.count_secured(),
            pending=max(total - indexed, 0),
            percentage=round(indexed / total * 100) if total else 0,
            processing_files=[Path(attachment.file_path).name for attachment in processing],
        )

    def uninstall(self) -> None:
        """Remove every trace of the indexer except the attachments catalog."""
        self._task_repo.clear(BATCH_HOOK)
        self._task_repo.clear(WATCHDOG_HOOK)
        self._index_repo.truncate()
        self._attachment_repo.clear_all_meta()
        self._progress.delete()
        Log.info("PDF indexer data removed")
