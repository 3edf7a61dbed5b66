"""One batch of the indexing run: exactly one document per invocation.

``step()`` is the state machine. It takes the processing lock, picks the next
unindexed attachment, extracts and stores its text, updates the Progress Record
and reports whether another batch should follow. ``run_batch()`` is what the
host scheduler calls: it runs ``step()`` and re-arms the batch task for a
``CONTINUE`` outcome.

Outcomes:

* ``ABORTED``: database unhealthy, nothing touched, no re-arm.
* ``LOCKED``: another batch holds the lock, no-op.
* ``STALLED_OUT``: too many consecutive error batches; the counter is reset and
  the chain stops until the watchdog or an operator restarts it.
* ``DRAINED``: nothing left to index; run counters are reset.
* ``CANCELLED``: a stop, restart or reindex replaced the run while the document
  was being indexed; progress is left to that operation and nothing is re-armed.
* ``CONTINUE``: more work remains, run again after ``delay_seconds``.
"""

import gc
from collections.abc import Callable
from datetime import datetime, timedelta
from pathlib import Path

from pdf_indexer.config.settings import Settings
from pdf_indexer.database.connection import check_health
from pdf_indexer.database.exceptions import StoreWriteError
from pdf_indexer.database.repositories.attachment_repository import AttachmentRepository
from pdf_indexer.database.repositories.index_repository import IndexRepository
from pdf_indexer.database.repositories.lock_repository import LockRepository
from pdf_indexer.database.repositories.task_repository import TaskRepository
from pdf_indexer.extraction.adapter import ExtractionAdapter
from pdf_indexer.extraction.models import ExtractionKind, TextResult
from pdf_indexer.indexer.clock import utc_now
from pdf_indexer.indexer.models import (
    BATCH_HOOK,
    MISSING_FILE_PLACEHOLDER,
    PROCESSING_LOCK,
    DocumentStatus,
    ProgressRecord,
    StepOutcome,
    StepResult,
)
from pdf_indexer.indexer.progress import ProgressTracker
from pdf_indexer.logging.logger import Log


class BatchRunner:
    """Processes one document per invocation and decides whether to re-arm."""

    def __init__(
        self,
        settings: Settings,
        index_repo: IndexRepository,
        attachment_repo: AttachmentRepository,
        progress: ProgressTracker,
        lock_repo: LockRepository,
        task_repo: TaskRepository,
        extraction_adapter: ExtractionAdapter,
        health_check: Callable[[], bool] = check_health,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._settings = settings
        self._index_repo = index_repo
        self._attachment_repo = attachment_repo
        self._progress = progress
        self._lock_repo = lock_repo
        self._task_repo = task_repo
        self._extraction_adapter = extraction_adapter
        self._health_check = health_check
        self._clock = clock

    def run_batch(self) -> StepResult:
        """Run one step and schedule the next batch when work remains."""
        result = self.step()
        if result.outcome is StepOutcome.CONTINUE:
            run_at = self._clock() + timedelta(seconds=result.delay_seconds)
            if self._task_repo.schedule_once(BATCH_HOOK, run_at):
                Log.info("Next batch scheduled", delay_seconds=result.delay_seconds)
            else:
                Log.debug("Next batch already scheduled, not adding another")
        return result

    def step(self) -> StepResult:
        if not self._health_check():
            Log.error("Database connection unhealthy, batch aborted")
            return StepResult(StepOutcome.ABORTED)

        token = self._lock_repo.acquire(
            PROCESSING_LOCK, self._settings.lock_ttl_seconds, self._clock()
        )
        if token is None:
            Log.info("Another batch is already running, skipping")
            return StepResult(StepOutcome.LOCKED)

        try:
            return self._step_locked()
        finally:
            self._lock_repo.release(PROCESSING_LOCK, token)

    def backoff_delay(self, consecutive_errors: int) -> int:
        return min(
            self._settings.batch_max_delay_seconds,
            self._settings.batch_base_delay_seconds * max(1, consecutive_errors),
        )

    def _step_locked(self) -> StepResult:
        self._index_repo.refresh()
        record = self._progress.get()
        if record.consecutive_errors > self._settings.max_consecutive_errors:
            return self._trip_safety_valve(record)

        record.batch_number += 1
        if record.batch_number == 1 or not record.started_at:
            record.started_at = self._progress.now()
            record.total_count = self._index_repo.count_total()
            record.processed_count = self._index_repo.count_indexed()
        self._progress.set_if_current(record)

        attachment_id = self._index_repo.next_unindexed_id()
        if attachment_id is None:
            return self._drain(record)

        had_error = self._process_document(record, attachment_id)
        gc.collect()
        if not self._progress.is_current(record):
            return self._cancelled(attachment_id)

        if had_error:
            record.consecutive_errors += 1
        else:
            record.consecutive_errors = 0
        if record.consecutive_errors > self._settings.max_consecutive_errors:
            return self._trip_safety_valve(record)

        if not self._index_repo.has_unindexed():
            return self._drain(record)

        self._progress.touch_heartbeat(record)
        if not self._progress.set_if_current(record):
            return self._cancelled(attachment_id)
        delay = self.backoff_delay(record.consecutive_errors)
        return StepResult(StepOutcome.CONTINUE, delay_seconds=delay, attachment_id=attachment_id)

    def _process_document(self, record: ProgressRecord, attachment_id: int) -> bool:
        """Index one attachment. Returns True when the batch produced an error."""
        attachment = self._attachment_repo.find_by_id(attachment_id)
        if attachment is None:
            return self._handle_missing(record, attachment_id, f"attachment-{attachment_id}")
        file_path = Path(attachment.file_path)
        if not file_path.is_file():
            return self._handle_missing(record, attachment_id, file_path.name)

        filename = file_path.name
        record.current_file = filename
        self._progress.touch_heartbeat(record)
        self._progress.set_if_current(record)
        self._attachment_repo.set_status(attachment_id, DocumentStatus.PROCESSING.value)
        Log.info("Indexing attachment", attachment_id=attachment_id, file=filename)

        try:
            result = self._extraction_adapter.extract(
                file_path, self._settings.max_normal_size_bytes
            )
        except Exception as exc:
            Log.exception(
                "Unexpected extraction error", attachment_id=attachment_id, file=filename
            )
            return self._handle_failure(
                record,
                attachment_id,
                filename,
                error="Processing error",
                message=str(exc),
                placeholder=f"Error processing PDF {filename}: {exc}",
            )

        if result.is_failure:
            return self._handle_failure(
                record,
                attachment_id,
                filename,
                error="Processing error",
                message=result.message,
                placeholder=result.text,
            )

        try:
            self._index_repo.upsert(attachment_id, result.text)
        except StoreWriteError as exc:
            Log.error(str(exc))
            return self._handle_failure(
                record,
                attachment_id,
                filename,
                error="Store write error",
                message=str(exc),
                placeholder=f"[ERROR] Could not store extracted text for {filename}",
            )

        self._record_success(record, attachment_id, result)
        return False

    def _record_success(
        self, record: ProgressRecord, attachment_id: int, result: TextResult
    ) -> None:
        status = DocumentStatus.SECURED if result.is_secured else DocumentStatus.COMPLETED
        self._attachment_repo.mark_indexed(attachment_id, status.value)
        if result.kind is ExtractionKind.OVERSIZED:
            self._progress.add_error(record, result.filename, result.message, result.text)
        self._progress.add_log(record, result.filename, status.value)
        record.processed_count += 1
        self._progress.set_if_current(record)
        Log.info(
            "Attachment indexed",
            attachment_id=attachment_id,
            file=result.filename,
            status=status.value,
            size_mb=result.size_mb,
        )

    def _handle_failure(
        self,
        record: ProgressRecord,
        attachment_id: int,
        filename: str,
        error: str,
        message: str,
        placeholder: str,
    ) -> bool:
        """Count a failed attempt; give up on the document after the configured maximum."""
        self._progress.add_error(record, filename, error, message)
        failures = self._attachment_repo.increment_failed_count(attachment_id)
        max_failures = self._settings.max_document_failures

        if failures >= max_failures:
            Log.error(
                "Attachment permanently failed", attachment_id=attachment_id, attempts=failures
            )
            if self._write_terminal(attachment_id, placeholder):
                record.processed_count += 1
            self._attachment_repo.set_status(attachment_id, DocumentStatus.FAILED.value)
            self._progress.add_log(record, filename, DocumentStatus.FAILED.value)
        else:
            self._attachment_repo.set_status(attachment_id, DocumentStatus.PENDING.value)
            Log.warning(
                "Attachment will be retried",
                attachment_id=attachment_id,
                attempt=failures,
                max_attempts=max_failures,
            )

        self._progress.set_if_current(record)
        return True

    def _handle_missing(self, record: ProgressRecord, attachment_id: int, filename: str) -> bool:
        Log.warning("File missing on disk", attachment_id=attachment_id, file=filename)
        self._progress.add_error(
            record,
            filename,
            "File missing",
            f"Attachment {attachment_id} has no file on disk",
        )
        if self._write_terminal(attachment_id, MISSING_FILE_PLACEHOLDER):
            record.processed_count += 1
        self._attachment_repo.set_status(attachment_id, DocumentStatus.FAILED.value)
        self._progress.add_log(record, filename, DocumentStatus.FAILED.value)
        self._progress.set_if_current(record)
        return True

    def _write_terminal(self, attachment_id: int, placeholder: str) -> bool:
        try:
            self._index_repo.upsert(attachment_id, placeholder)
        except StoreWriteError as exc:
            Log.error(f"Could not write placeholder for attachment {attachment_id}: {exc}")
            return False
        return True

    def _drain(self, record: ProgressRecord) -> StepResult:
        Log.info("No unindexed PDFs left, indexing run complete")
        self._progress.reset_run(record)
        self._progress.set_if_current(record)
        return StepResult(StepOutcome.DRAINED)

    def _trip_safety_valve(self, record: ProgressRecord) -> StepResult:
        Log.error(
            f"Too many consecutive errors ({record.consecutive_errors}), "
            "stopping batch processing"
        )
        record.consecutive_errors = 0
        self._progress.set_if_current(record)
        return StepResult(StepOutcome.STALLED_OUT)

    def _cancelled(self, attachment_id: int) -> StepResult:
        Log.info(
            "Indexing run was stopped or restarted during the batch, not re-arming",
            attachment_id=attachment_id,
        )
        return StepResult(StepOutcome.CANCELLED, attachment_id=attachment_id)
