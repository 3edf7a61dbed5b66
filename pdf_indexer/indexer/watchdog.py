from collections.abc import Callable
from datetime import datetime, timedelta

from pdf_indexer.config.settings import Settings
from pdf_indexer.database.repositories.index_repository import IndexRepository
from pdf_indexer.database.repositories.lock_repository import LockRepository
from pdf_indexer.database.repositories.task_repository import TaskRepository
from pdf_indexer.indexer.clock import utc_now
from pdf_indexer.indexer.models import (
    BATCH_HOOK,
    PROCESSING_LOCK,
    WATCHDOG_RESTART_STATUS,
)
from pdf_indexer.indexer.progress import ProgressTracker
from pdf_indexer.logging.logger import Log


class Watchdog:
    """Restarts a run whose batch chain was lost.

    A run counts as stalled when its heartbeat is older than the stall threshold
    and no batch task is pending. The check runs on its own recurring task, so it
    does not depend on the batch chain it repairs.
    """

    def __init__(
        self,
        settings: Settings,
        progress: ProgressTracker,
        index_repo: IndexRepository,
        task_repo: TaskRepository,
        lock_repo: LockRepository,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._settings = settings
        self._progress = progress
        self._index_repo = index_repo
        self._task_repo = task_repo
        self._lock_repo = lock_repo
        self._clock = clock

    def check(self) -> bool:
        """Returns True when a stalled run was restarted."""
        record = self._progress.get()
        if not record.heartbeat:
            Log.debug("Watchdog: no active run")
            return False

        now = self._clock()
        idle_seconds = now.timestamp() - record.heartbeat
        if idle_seconds <= self._settings.stall_threshold_seconds:
            return False
        if self._task_repo.next_scheduled(BATCH_HOOK) is not None:
            return False

        token = self._lock_repo.acquire(
            PROCESSING_LOCK, self._settings.lock_ttl_seconds, now
        )
        if token is None:
            Log.debug("Watchdog: a batch is running, not stalled")
            return False

        try:
            return self._restart(now, idle_seconds)
        finally:
            self._lock_repo.release(PROCESSING_LOCK, token)

    def _restart(self, now: datetime, idle_seconds: float) -> bool:
        self._index_repo.refresh()
        record = self._progress.get()
        Log.warning(f"Watchdog: no heartbeat for {idle_seconds:.0f}s, run looks stalled")
        self._task_repo.clear(BATCH_HOOK)

        if not self._index_repo.has_unindexed():
            Log.info("Watchdog: nothing left to index, clearing heartbeat")
            record.heartbeat = 0.0
            self._progress.set(record)
            return False

        run_at = now + timedelta(seconds=self._settings.watchdog_restart_delay_seconds)
        self._task_repo.schedule_once(BATCH_HOOK, run_at)
        self._progress.add_log(
            record, record.current_file or "indexing run", WATCHDOG_RESTART_STATUS
        )
        self._progress.touch_heartbeat(record)
        self._progress.set(record)
        Log.warning("Watchdog: stalled indexing run restarted")
        return True
