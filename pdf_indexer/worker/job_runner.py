from pdf_indexer.database.models import ScheduledTask
from pdf_indexer.indexer.batch_runner import BatchRunner
from pdf_indexer.indexer.models import BATCH_HOOK, WATCHDOG_HOOK
from pdf_indexer.indexer.watchdog import Watchdog
from pdf_indexer.logging.logger import Log


class JobRunner:
    """Run one scheduled task and keep its failures inside the worker."""

    def __init__(self, batch_runner: BatchRunner, watchdog: Watchdog) -> None:
        self._batch_runner = batch_runner
        self._watchdog = watchdog

    def run(self, task: ScheduledTask) -> None:
        """Dispatch a task to the batch runner or the watchdog by hook name."""
        Log.info(f"Running task {task.id} ({task.hook})")
        try:
            if task.hook == BATCH_HOOK:
                result = self._batch_runner.run_batch()
                Log.info(f"Task {task.id} finished: {result.outcome.value}")
            elif task.hook == WATCHDOG_HOOK:
                restarted = self._watchdog.check()
                Log.debug(f"Watchdog check done (restarted={restarted})")
            else:
                Log.warning(f"Task {task.id} has unknown hook '{task.hook}', ignoring")
        except Exception as exc:
            Log.error(f"Task {task.id} ({task.hook}) failed: {exc}")
