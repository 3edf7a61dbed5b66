import time
from collections.abc import Callable
from datetime import datetime

from pdf_indexer.config.settings import Settings
from pdf_indexer.database.connection import get_connection
from pdf_indexer.database.models import ScheduledTask
from pdf_indexer.database.repositories.task_repository import TaskRepository
from pdf_indexer.indexer.clock import utc_now
from pdf_indexer.logging.logger import Log
from pdf_indexer.worker.job_runner import JobRunner


class Worker:
    """Poll loop: sleep -> claim due task -> dispatch."""

    def __init__(
        self,
        task_repo: TaskRepository,
        job_runner: JobRunner,
        settings: Settings,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._task_repo = task_repo
        self._job_runner = job_runner
        self._settings = settings
        self._clock = clock

    def run(self, max_tasks: int | None = None) -> None:
        """Main poll loop. Runs forever until interrupted.

        If max_tasks is set, stop after running that many tasks (for testing).
        """
        Log.info("Worker started, polling for scheduled tasks")
        tasks_done = 0
        try:
            while True:
                if max_tasks is not None and tasks_done >= max_tasks:
                    break
                task = self._try_claim_task()
                if task:
                    self._job_runner.run(task)
                    tasks_done += 1
                else:
                    Log.debug("No tasks due, sleeping")
                    time.sleep(self._settings.task_poll_interval_seconds)
        except KeyboardInterrupt:
            Log.info("Worker shutting down gracefully")

    def _try_claim_task(self) -> ScheduledTask | None:
        """Attempt to claim the next due task. Gracefully handle DB errors."""
        try:
            with get_connection() as conn:
                return self._task_repo.claim_due(conn, self._clock())
        except Exception as exc:
            Log.warning(f"Database error, will retry: {exc}")
            return None
